"""
Per-host attachment of volumes.

Everything here is derived from the controller on each call; nothing about
the local attachment is cached between requests.
"""

import logging
from enum import Enum
from typing import Tuple

from linstor_volume.api.services.placement import FS_TYPE_KEY, MKFS_PARAMS_KEY, LinstorParams, diskless_props
from linstor_volume.client.client import FLAG_DISKLESS, PROVIDER_DISKLESS, LinstorClient
from linstor_volume.exceptions import DeviceInUse, LinstorNotFound, VolumeInconsistent
from linstor_volume.lib import mount as mount_utils

logger = logging.getLogger(__name__)


class AttachmentState(str, Enum):
    """Outcome of ensuring a local resource."""

    EXISTING = "existing"
    CREATED = "created"


class DiskState(str, Enum):
    """Disk state of a resource on one node."""

    DISKFULL = "diskfull"
    DISKLESS = "diskless"


def ensure_attached(client: LinstorClient, name: str, node: str, params: LinstorParams) -> AttachmentState:
    """
    Make sure ``node`` has a resource of ``name``, creating a diskless one if
    there is none yet.
    """
    try:
        client.get_resource(name, node)
        return AttachmentState.EXISTING
    except LinstorNotFound:
        pass

    client.create_resource(name, node, props=diskless_props(params), flags=[FLAG_DISKLESS])
    logger.info("Created diskless resource %s on node %s", name, node)
    return AttachmentState.CREATED


def resolve_fs_type(client: LinstorClient, name: str) -> Tuple[str, str]:
    """
    Read the filesystem type and mkfs parameters stored on the resource
    definition at creation time.

    Returns:
        (fs_type, mkfs_params)

    Raises:
        VolumeInconsistent: If the filesystem type property is missing
    """
    resource_definition = client.get_resource_definition(name)
    props = resource_definition.get("props") or {}
    fs_type = props.get(FS_TYPE_KEY)
    if not fs_type:
        raise VolumeInconsistent(f"Volume '{name}' did not contain a file system key")
    return fs_type, props.get(MKFS_PARAMS_KEY, "")


def device_path(client: LinstorClient, name: str, node: str) -> str:
    volume = client.get_volume(name, node, 0)
    path = volume.get("device_path")
    if not path:
        raise VolumeInconsistent(f"Volume '{name}' has no device path on node {node}")
    return path


def check_exclusive(device: str) -> None:
    """
    Raises:
        DeviceInUse: If another process holds the device open
    """
    if mount_utils.device_opened(device):
        raise DeviceInUse(f"unable to get exclusive open on {device}")


def disk_state(client: LinstorClient, name: str, node: str) -> DiskState:
    """
    Determine whether the resource of ``name`` on ``node`` keeps local data.

    Raises:
        VolumeInconsistent: If the view does not contain exactly one resource
            with exactly one volume
    """
    resources = client.resource_view(resources=[name], nodes=[node])
    if len(resources) != 1:
        raise VolumeInconsistent("Resource filter has to contain exactly one resource")

    volumes = resources[0].get("volumes") or []
    if len(volumes) != 1:
        raise VolumeInconsistent("There has to be exactly one volume in the resource")

    if volumes[0].get("provider_kind") == PROVIDER_DISKLESS:
        return DiskState.DISKLESS
    return DiskState.DISKFULL
