"""
Mount and unmount of volumes on the local host.

The real mount point of a volume is ``<root>/<name>``; Docker is always handed
the ``data`` directory one level below it.
"""

import logging
import os

from linstor_volume.api.services import attachment_service, resource_service
from linstor_volume.api.services.attachment_service import DiskState
from linstor_volume.api.services.placement import LinstorParams
from linstor_volume.client.client import LinstorClient
from linstor_volume.exceptions import LinstorVolumeException, MountError
from linstor_volume.lib import mount as mount_utils

logger = logging.getLogger(__name__)

DATA_DIR = "data"


def real_mount_path(root: str, name: str) -> str:
    return os.path.join(root, name)


def reported_mount_path(root: str, name: str) -> str:
    return os.path.join(real_mount_path(root, name), DATA_DIR)


def mount_point(root: str, name: str) -> str:
    """
    Return the mountpoint to report for a volume, or "" if it is not mounted.
    """
    try:
        mounted = mount_utils.is_mount_point(real_mount_path(root, name))
    except MountError as e:
        logger.warning("Could not check mount state of %s: %s", name, e.message)
        return ""
    return reported_mount_path(root, name) if mounted else ""


def mount_volume(client: LinstorClient, root: str, node: str, name: str, params: LinstorParams) -> str:
    """
    Attach and mount a volume on this node.

    Args:
        client: LINSTOR client
        root: Mount root directory
        node: Name of this node in the cluster
        name: Volume name
        params: Resolved parameters (mount options, diskless storage pool)

    Returns:
        Mountpoint reported to Docker
    """
    attachment_service.ensure_attached(client, name, node, params)
    fs_type, mkfs_params = attachment_service.resolve_fs_type(client, name)

    source = attachment_service.device_path(client, name, node)
    attachment_service.check_exclusive(source)

    target = real_mount_path(root, name)
    mount_utils.make_dir(target)
    if mount_utils.format_device(source, fs_type, mkfs_params):
        logger.info("Created %s filesystem on %s", fs_type, source)
    mount_utils.mount(source, target, fs_type, params.mount_opts)

    # a fresh filesystem has no data directory yet
    reported = reported_mount_path(root, name)
    if not os.path.exists(reported):
        mount_utils.make_dir(reported)

    if mount_utils.need_resize(source, target, fs_type):
        logger.info("Growing %s filesystem of %s", fs_type, name)
        mount_utils.resize(source, target, fs_type)

    return reported


def unmount_volume(client: LinstorClient, root: str, node: str, name: str) -> None:
    """
    Unmount a volume and drop its local resource if it is diskless.

    Unmounting a volume that is not mounted is a no-op. Errors while looking
    up the disk state are only logged: a diskless resource left behind is
    preferred over deleting a diskful one by mistake.
    """
    target = real_mount_path(root, name)
    if not mount_utils.is_mount_point(target):
        return

    mount_utils.unmount(target)

    try:
        os.rmdir(target)
    except OSError as e:
        logger.debug("Could not remove %s: %s", target, e)

    try:
        state = attachment_service.disk_state(client, name, node)
    except LinstorVolumeException as e:
        logger.warning("Keeping local resource of %s, disk state unknown: %s", name, e.message)
        return

    if state == DiskState.DISKLESS:
        resource_service.remove_local(client, name, node)
