"""
Local mount namespace and filesystem helpers.

Thin wrappers around mount(8), umount(8), blkid(8), mkfs, blockdev(8) and the
filesystem resize tools. Failures are raised as MountError carrying the tool
output.
"""

import errno
import os
import shlex
import subprocess
from typing import List, Optional, Tuple

from linstor_volume.exceptions import MountError

EXT_FILESYSTEMS = ("ext2", "ext3", "ext4")


def _run(cmd: List[str]) -> subprocess.CompletedProcess:
    return subprocess.run(cmd, capture_output=True, text=True, check=False)


def is_mount_point(path: str) -> bool:
    """
    Check if path is currently a mount point.

    A path that does not exist is not a mount point.

    Raises:
        MountError: If the mount table cannot be read
    """
    if not os.path.exists(path):
        return False

    target = os.path.realpath(path)
    try:
        with open("/proc/mounts", "r") as f:
            for line in f:
                parts = line.split()
                if len(parts) >= 2 and parts[1].replace("\\040", " ") == target:
                    return True
    except OSError as e:
        raise MountError(f"Failed to read mount table: {e}")
    return False


def make_dir(path: str) -> None:
    """
    Create a directory (and parents) if it does not exist.

    Raises:
        MountError: If directory creation fails
    """
    try:
        os.makedirs(path, mode=0o755, exist_ok=True)
    except OSError as e:
        raise MountError(f"Failed to create directory {path}: {e}")


def device_opened(device: str) -> bool:
    """
    Check whether a block device is already held open exclusively.

    The device is opened with O_EXCL, which fails with EBUSY while it is
    mounted or claimed by another holder.

    Raises:
        MountError: If the device cannot be opened for another reason
    """
    try:
        fd = os.open(device, os.O_RDONLY | os.O_EXCL)
    except OSError as e:
        if e.errno == errno.EBUSY:
            return True
        raise MountError(f"Failed to open device {device}: {e}")
    os.close(fd)
    return False


def get_fs_type(device: str) -> Optional[str]:
    """
    Return the filesystem (or partition table) signature found on a device.

    Returns:
        Signature type, or None if the device is blank
    """
    result = _run(["blkid", "-p", "-s", "TYPE", "-s", "PTTYPE", "-o", "export", device])

    # blkid exits with 2 when no signature was found
    if result.returncode == 2:
        return None
    if result.returncode != 0:
        raise MountError(f"Failed to probe {device}: {result.stderr}")

    found = {}
    for line in result.stdout.splitlines():
        key, _, value = line.partition("=")
        found[key.strip()] = value.strip()
    return found.get("TYPE") or found.get("PTTYPE")


def format_device(device: str, fs_type: str, mkfs_params: str = "") -> bool:
    """
    Create a filesystem on a device that carries no signature yet.

    Args:
        device: Device path
        fs_type: Filesystem type (mkfs.<fs_type> is executed)
        mkfs_params: Additional mkfs arguments as a shell-quoted string

    Returns:
        True if the device was formatted, False if it already had a signature

    Raises:
        MountError: If formatting fails
    """
    if get_fs_type(device):
        return False

    cmd = [f"mkfs.{fs_type}"]
    if fs_type in EXT_FILESYSTEMS:
        cmd.append("-F")
    if mkfs_params:
        cmd.extend(shlex.split(mkfs_params))
    cmd.append(device)

    result = _run(cmd)
    if result.returncode != 0:
        raise MountError(f"Failed to format {device} as {fs_type}: {result.stderr}")
    return True


def mount(device: str, target: str, fs_type: str, options: Optional[List[str]] = None) -> None:
    """
    Mount a device.

    Raises:
        MountError: If mounting fails
    """
    cmd = ["mount", "-t", fs_type]
    if options:
        cmd.extend(["-o", ",".join(options)])
    cmd.extend([device, target])

    result = _run(cmd)
    if result.returncode != 0:
        raise MountError(f"Failed to mount {device} on {target}: {result.stderr}")


def unmount(target: str) -> None:
    """
    Unmount a mount point.

    Raises:
        MountError: If unmounting fails
    """
    result = _run(["umount", target])
    if result.returncode != 0:
        raise MountError(f"Failed to unmount {target}: {result.stderr}")


def device_size(device: str) -> int:
    """Return the size of a block device in bytes."""
    result = _run(["blockdev", "--getsize64", device])
    if result.returncode != 0:
        raise MountError(f"Failed to read size of {device}: {result.stderr}")
    try:
        return int(result.stdout.strip())
    except ValueError:
        raise MountError(f"Unexpected blockdev output for {device}: {result.stdout!r}")


def _parse_fields(output: str, separator: str) -> dict:
    fields = {}
    for line in output.splitlines():
        key, sep, value = line.partition(separator)
        if sep:
            fields[key.strip()] = value.strip()
    return fields


def filesystem_size(device: str, mount_path: str, fs_type: str) -> Optional[Tuple[int, int]]:
    """
    Return (block_size, block_count) of the filesystem on a device.

    Returns:
        None for filesystems whose geometry cannot be queried
    """
    if fs_type in EXT_FILESYSTEMS:
        result = _run(["dumpe2fs", "-h", device])
        keys = ("Block size", "Block count")
        separator = ":"
    elif fs_type == "xfs":
        result = _run(["xfs_io", "-c", "statfs", mount_path])
        keys = ("geom.bsize", "geom.datablocks")
        separator = "="
    else:
        return None

    if result.returncode != 0:
        raise MountError(f"Failed to read {fs_type} geometry of {device}: {result.stderr}")

    fields = _parse_fields(result.stdout, separator)
    try:
        return int(fields[keys[0]]), int(fields[keys[1]])
    except (KeyError, ValueError):
        raise MountError(f"Unexpected {fs_type} geometry output for {device}")


def need_resize(device: str, mount_path: str, fs_type: str) -> bool:
    """
    Check whether the device grew beyond the size of its filesystem.

    Growth smaller than one filesystem block is ignored.
    """
    geometry = filesystem_size(device, mount_path, fs_type)
    if geometry is None:
        return False

    block_size, block_count = geometry
    return device_size(device) > block_size * block_count + block_size


def resize(device: str, mount_path: str, fs_type: str) -> None:
    """
    Grow a mounted filesystem to the size of its device.

    Raises:
        MountError: If the filesystem type is not supported or growing fails
    """
    if fs_type in EXT_FILESYSTEMS:
        cmd = ["resize2fs", device]
    elif fs_type == "xfs":
        cmd = ["xfs_growfs", "-d", mount_path]
    else:
        raise MountError(f"Online resize of {fs_type} is not supported")

    result = _run(cmd)
    if result.returncode != 0:
        raise MountError(f"Failed to grow {fs_type} on {device}: {result.stderr}")
