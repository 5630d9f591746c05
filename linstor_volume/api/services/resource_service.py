"""
Cluster-wide volume lifecycle: creation with compensating rollback, listing,
ownership checks and removal.
"""

import logging
from typing import Any, Dict, List

from linstor_volume.api.services.placement import (
    PLUGIN_FLAG_KEY,
    PLUGIN_FLAG_VALUE,
    LinstorParams,
    diskfull_props,
    resource_definition_props,
)
from linstor_volume.client.client import LinstorClient
from linstor_volume.exceptions import LinstorNotFound, LinstorVolumeException, VolumeNotManaged

logger = logging.getLogger(__name__)


def is_managed(resource_definition: Dict[str, Any]) -> bool:
    props = resource_definition.get("props") or {}
    return props.get(PLUGIN_FLAG_KEY) == PLUGIN_FLAG_VALUE


def _cleanup(action: str, func, *args) -> None:
    try:
        func(*args)
    except LinstorVolumeException as e:
        logger.warning("Rollback step '%s' failed for %s: %s", action, args[0], e.message)


def create_volume(client: LinstorClient, name: str, params: LinstorParams) -> None:
    """
    Create a volume in the cluster.

    Steps: volume definition, resource definition (with the plugin marker and
    filesystem properties), replica placement. When a later step fails the
    objects created by earlier steps are deleted on a best-effort basis and
    the original error is raised. A crash during rollback can leave orphaned
    definitions behind.

    Args:
        client: LINSTOR client
        name: Volume name
        params: Resolved volume parameters
    """
    client.create_volume_definition(name, params.size_kib)

    try:
        client.create_resource_definition(name, resource_definition_props(params))
    except LinstorVolumeException:
        _cleanup("delete volume definition", client.delete_volume_definition, name, 0)
        raise

    try:
        place_resources(client, name, params)
    except LinstorVolumeException:
        _cleanup("delete resource definition", client.delete_resource_definition, name)
        _cleanup("delete volume definition", client.delete_volume_definition, name, 0)
        raise

    logger.info("Created volume %s (%d KiB)", name, params.size_kib)


def place_resources(client: LinstorClient, name: str, params: LinstorParams) -> None:
    """
    Place the replicas of a volume.

    An explicit node list creates one diskful resource per node, in order,
    stopping at the first failure. Without nodes a single autoplace request
    is issued.
    """
    if not params.nodes:
        client.autoplace(
            name,
            place_count=params.replicas,
            storage_pool=params.storage_pool,
            not_place_with_rsc_regex=params.do_not_place_with_regex,
            replicas_on_same=params.replicas_on_same,
            replicas_on_different=params.replicas_on_different,
            diskless_on_remaining=params.diskless_on_remaining,
        )
        return

    props = diskfull_props(params)
    for node in params.nodes:
        client.create_resource(name, node, props=props)


def list_volumes(client: LinstorClient) -> List[Dict[str, Any]]:
    """Return the resource definitions owned by this plugin."""
    return [rd for rd in client.list_resource_definitions() if is_managed(rd)]


def get_volume(client: LinstorClient, name: str) -> Dict[str, Any]:
    """
    Return the resource definition of a volume owned by this plugin.

    Raises:
        VolumeNotManaged: If the volume does not exist or lacks the plugin marker
    """
    try:
        resource_definition = client.get_resource_definition(name)
    except LinstorNotFound:
        raise VolumeNotManaged(f"Volume '{name}' is not managed by this plugin")

    if not is_managed(resource_definition):
        raise VolumeNotManaged(f"Volume '{name}' is not managed by this plugin")
    return resource_definition


def remove_volume(client: LinstorClient, name: str) -> None:
    """
    Delete a volume from the cluster.

    All snapshots are deleted first; the first failing snapshot deletion
    aborts the removal and leaves the resource definition in place.
    """
    get_volume(client, name)

    for snapshot in client.list_snapshots(name):
        client.delete_snapshot(name, snapshot["name"])

    client.delete_resource_definition(name)
    logger.info("Removed volume %s", name)


def remove_local(client: LinstorClient, name: str, node: str) -> None:
    """Delete only the resource of a volume on one node."""
    client.delete_resource(name, node)
    logger.info("Removed resource %s from node %s", name, node)
