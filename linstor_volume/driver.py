"""LINSTOR volume driver.

Entry point for every plugin operation. The driver owns the controller
connection: the client is built once from the config file and environment on
first use and reused afterwards. All other state is re-read from the
controller and the local mount table on each call.
"""

import logging
import socket
import threading
from typing import Any, Dict, List, Mapping, Optional

from linstor_volume.api.services import mount_service, resource_service
from linstor_volume.api.services.placement import LinstorParams, resolve_params
from linstor_volume.client.client import LinstorClient
from linstor_volume.exceptions import InvalidOptions
from linstor_volume.lib.config import load_config, load_section
from linstor_volume.lib.validators import validate_name

logger = logging.getLogger(__name__)

DEFAULT_ROOT = "/var/lib/docker-volumes/linstor"
SCOPE = "global"


class LinstorDriver:
    """Docker volume driver backed by LINSTOR."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        node: Optional[str] = None,
        root: str = DEFAULT_ROOT,
        client: Optional[LinstorClient] = None,
    ):
        """
        Args:
            config_path: INI config file (default: /etc/linstor/docker-volume.conf)
            node: Name of this node in the LINSTOR cluster (default: hostname)
            root: Directory below which volumes are mounted
            client: Preconfigured client, mainly for tests
        """
        self.config_path = config_path
        self.node = node or socket.gethostname()
        self.root = root
        self._client = client
        self._client_lock = threading.Lock()

    @property
    def client(self) -> LinstorClient:
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = LinstorClient.from_config(load_config(self.config_path))
        return self._client

    def _params(self, name: str, options: Optional[Mapping[str, str]] = None) -> LinstorParams:
        return resolve_params(name, options, load_section(self.config_path))

    @staticmethod
    def _validate(name: str) -> None:
        try:
            validate_name(name)
        except ValueError as e:
            raise InvalidOptions(f"Invalid volume name '{name}': {e}")

    def _volume(self, name: str) -> Dict[str, str]:
        return {"name": name, "mountpoint": mount_service.mount_point(self.root, name)}

    def create(self, name: str, options: Optional[Mapping[str, str]] = None) -> None:
        self._validate(name)
        params = self._params(name, options)
        resource_service.create_volume(self.client, name, params)

    def get(self, name: str) -> Dict[str, str]:
        self._validate(name)
        resource_definition = resource_service.get_volume(self.client, name)
        return self._volume(resource_definition["name"])

    def list(self) -> List[Dict[str, str]]:
        return [self._volume(rd["name"]) for rd in resource_service.list_volumes(self.client)]

    def remove(self, name: str) -> None:
        self._validate(name)
        resource_service.remove_volume(self.client, name)

    def path(self, name: str) -> str:
        self._validate(name)
        return mount_service.mount_point(self.root, name)

    def mount(self, name: str) -> str:
        self._validate(name)
        params = self._params(name)
        mountpoint = mount_service.mount_volume(self.client, self.root, self.node, name, params)
        logger.info("Mounted %s at %s", name, mountpoint)
        return mountpoint

    def unmount(self, name: str) -> None:
        self._validate(name)
        mount_service.unmount_volume(self.client, self.root, self.node, name)

    def capabilities(self) -> Dict[str, Any]:
        return {"scope": SCOPE}
