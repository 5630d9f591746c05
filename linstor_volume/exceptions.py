"""Custom exceptions for the LINSTOR Docker volume plugin."""

from typing import Optional


class LinstorVolumeException(Exception):
    """Base exception for plugin errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class InvalidOptions(LinstorVolumeException):
    """Volume options or configuration values could not be decoded."""

    pass


class LinstorAPIConnectionError(LinstorVolumeException):
    """Failed to connect to the LINSTOR controller."""

    pass


class LinstorAPITimeout(LinstorVolumeException):
    """Controller request timed out."""

    pass


class LinstorAPIError(LinstorVolumeException):
    """Controller returned an error response."""

    def __init__(self, message: str, status_code: Optional[int] = None, response_data=None):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class LinstorNotFound(LinstorAPIError):
    """Requested controller object does not exist."""

    pass


class VolumeNotManaged(LinstorVolumeException):
    """Resource definition is missing or not owned by this plugin."""

    pass


class VolumeInconsistent(LinstorVolumeException):
    """Resource exists but its cluster metadata is incomplete."""

    pass


class DeviceInUse(LinstorVolumeException):
    """Block device is already held open by another process."""

    pass


class MountError(LinstorVolumeException):
    """Local mount, unmount, format or resize failed."""

    pass
