"""REST API client for the LINSTOR controller."""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from linstor_volume.exceptions import (
    LinstorAPIConnectionError,
    LinstorAPIError,
    LinstorAPITimeout,
    LinstorNotFound,
)
from linstor_volume.lib.config import LinstorConfig

DEFAULT_HTTP_PORT = 3370
DEFAULT_HTTPS_PORT = 3371

KEY_STOR_POOL_NAME = "StorPoolName"
FLAG_DISKLESS = "DISKLESS"
PROVIDER_DISKLESS = "DISKLESS"


def base_url_from_controllers(controllers: str) -> str:
    """Build the controller base URL from a LINSTOR controllers string.

    Only the first entry of a comma-separated list is used. The
    ``linstor+ssl://`` and ``https://`` schemes select https, everything else
    plain http. A missing port defaults to 3370 (http) or 3371 (https).

    Args:
        controllers: e.g. ``linstor://ctrl-1,linstor://ctrl-2``

    Returns:
        Base URL such as ``http://ctrl-1:3370``
    """
    scheme = "http"
    host = "localhost"

    first = controllers.split(",", 1)[0].strip() if controllers else ""
    if first:
        if "://" in first:
            prefix, host = first.split("://", 1)
            if prefix in ("linstor+ssl", "https"):
                scheme = "https"
        else:
            host = first
        host = host.rstrip("/") or "localhost"

    # a bracketed IPv6 literal carries colons without a port
    has_port = ":" in host.rsplit("]", 1)[-1]
    if not has_port:
        host = f"{host}:{DEFAULT_HTTPS_PORT if scheme == 'https' else DEFAULT_HTTP_PORT}"

    return f"{scheme}://{host}"


class LinstorClient:
    """REST API client for the LINSTOR controller.

    Covers the subset of the LINSTOR v1 API the volume plugin needs: volume
    and resource definitions, resources and their volumes, snapshots, and
    automatic placement.
    """

    def __init__(
        self,
        base_url: str,
        username: str = "",
        password: str = "",
        cert_file: str = "",
        key_file: str = "",
        ca_file: str = "",
        timeout: Optional[int] = None,
        retry_count: int = 3,
    ):
        """Initialize the LINSTOR client.

        Args:
            base_url: Controller URL (e.g., https://controller:3371)
            username: Basic auth user name; auth is disabled when empty
            password: Basic auth password
            cert_file: Client certificate for mutual TLS
            key_file: Client key for mutual TLS
            ca_file: CA bundle; certificate verification is disabled when empty
            timeout: HTTP request timeout in seconds (None waits forever)
            retry_count: Number of retries for failed GET requests
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self.session = requests.Session()
        if username:
            self.session.auth = (username, password)
        if cert_file and key_file:
            self.session.cert = (cert_file, key_file)
        self.session.verify = ca_file if ca_file else False

        # Only retry GET; mutations are not idempotent on the controller
        retry_strategy = Retry(
            total=retry_count,
            backoff_factor=1,
            status_forcelist=[429, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    @classmethod
    def from_config(cls, config: LinstorConfig) -> "LinstorClient":
        return cls(
            base_url_from_controllers(config.controllers),
            username=config.username,
            password=config.password,
            cert_file=config.cert_file,
            key_file=config.key_file,
            ca_file=config.ca_file,
        )

    @staticmethod
    def _error_message(response) -> Tuple[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return response.text, None

        # LINSTOR answers with a list of api call results
        if isinstance(data, list):
            messages = [entry.get("message", "") for entry in data if isinstance(entry, dict)]
            messages = [m for m in messages if m]
            if messages:
                return "; ".join(messages), data
        elif isinstance(data, dict) and data.get("message"):
            return data["message"], data
        return response.text, data

    def _make_request(
        self,
        method: str,
        path: str,
        json_data: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make HTTP request to the LINSTOR controller.

        Args:
            method: HTTP method (GET, POST, DELETE)
            path: API path (e.g., /v1/resource-definitions)
            json_data: Request body as JSON
            params: Query parameters

        Returns:
            Decoded JSON response, or None for empty bodies

        Raises:
            LinstorAPIConnectionError: Connection failed
            LinstorAPITimeout: Request timed out
            LinstorNotFound: Controller answered 404
            LinstorAPIError: Controller returned another error
        """
        url = self.base_url + path

        try:
            response = self.session.request(
                method=method,
                url=url,
                json=json_data,
                params=params,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise LinstorAPITimeout(f"LINSTOR request timed out: {e}")
        except requests.exceptions.ConnectionError as e:
            raise LinstorAPIConnectionError(f"Failed to connect to LINSTOR controller: {e}")
        except requests.exceptions.RequestException as e:
            raise LinstorAPIError(f"LINSTOR request failed: {e}")

        if response.status_code == 404:
            message, data = self._error_message(response)
            raise LinstorNotFound(f"Not found: {message}", status_code=404, response_data=data)

        if response.status_code >= 400:
            message, data = self._error_message(response)
            raise LinstorAPIError(
                f"LINSTOR request failed: {message}",
                status_code=response.status_code,
                response_data=data,
            )

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise LinstorAPIError(
                f"Invalid response from LINSTOR controller: {e}",
                status_code=response.status_code,
            )

    @staticmethod
    def _single(result: Any, what: str) -> Dict[str, Any]:
        # some endpoints wrap a single object in a list
        if isinstance(result, list):
            if not result:
                raise LinstorNotFound(f"Not found: {what}", status_code=404)
            return result[0]
        if not result:
            raise LinstorNotFound(f"Not found: {what}", status_code=404)
        return result

    @staticmethod
    def _rsc_path(name: str) -> str:
        return f"/v1/resource-definitions/{quote(name, safe='')}"

    # Volume definitions

    def create_volume_definition(self, name: str, size_kib: int) -> None:
        """Create volume definition 0 of a resource definition."""
        data = {"volume_definition": {"size_kib": size_kib}}
        self._make_request("POST", f"{self._rsc_path(name)}/volume-definitions", json_data=data)

    def delete_volume_definition(self, name: str, volume_number: int = 0) -> None:
        self._make_request("DELETE", f"{self._rsc_path(name)}/volume-definitions/{volume_number}")

    # Resource definitions

    def create_resource_definition(self, name: str, props: Optional[Dict[str, str]] = None) -> None:
        data = {"resource_definition": {"name": name, "props": props or {}}}
        self._make_request("POST", "/v1/resource-definitions", json_data=data)

    def delete_resource_definition(self, name: str) -> None:
        self._make_request("DELETE", self._rsc_path(name))

    def get_resource_definition(self, name: str) -> Dict[str, Any]:
        """Get a resource definition.

        Raises:
            LinstorNotFound: Resource definition does not exist
        """
        result = self._make_request("GET", self._rsc_path(name))
        return self._single(result, f"resource definition {name}")

    def list_resource_definitions(self) -> List[Dict[str, Any]]:
        return self._make_request("GET", "/v1/resource-definitions") or []

    # Resources

    def create_resource(
        self,
        name: str,
        node: str,
        props: Optional[Dict[str, str]] = None,
        flags: Optional[List[str]] = None,
    ) -> None:
        """Create the resource of ``name`` on ``node``.

        Args:
            name: Resource definition name
            node: Node name
            props: Resource properties (e.g., StorPoolName)
            flags: Resource flags (e.g., DISKLESS)
        """
        resource: Dict[str, Any] = {"name": name, "node_name": node}
        if props:
            resource["props"] = props
        if flags:
            resource["flags"] = flags
        self._make_request(
            "POST", f"{self._rsc_path(name)}/resources/{quote(node, safe='')}", json_data={"resource": resource}
        )

    def get_resource(self, name: str, node: str) -> Dict[str, Any]:
        """Get the resource of ``name`` on ``node``.

        Raises:
            LinstorNotFound: No such resource on that node
        """
        result = self._make_request("GET", f"{self._rsc_path(name)}/resources/{quote(node, safe='')}")
        return self._single(result, f"resource {name} on {node}")

    def delete_resource(self, name: str, node: str) -> None:
        self._make_request("DELETE", f"{self._rsc_path(name)}/resources/{quote(node, safe='')}")

    def get_volume(self, name: str, node: str, volume_number: int = 0) -> Dict[str, Any]:
        """Get volume ``volume_number`` of the resource of ``name`` on ``node``."""
        result = self._make_request(
            "GET", f"{self._rsc_path(name)}/resources/{quote(node, safe='')}/volumes/{volume_number}"
        )
        return self._single(result, f"volume {volume_number} of {name} on {node}")

    def resource_view(
        self, resources: Optional[List[str]] = None, nodes: Optional[List[str]] = None
    ) -> List[Dict[str, Any]]:
        """List resources including their volumes and storage information."""
        params: Dict[str, Any] = {}
        if resources:
            params["resources"] = resources
        if nodes:
            params["nodes"] = nodes
        return self._make_request("GET", "/v1/view/resources", params=params) or []

    # Snapshots

    def list_snapshots(self, name: str) -> List[Dict[str, Any]]:
        return self._make_request("GET", f"{self._rsc_path(name)}/snapshots") or []

    def delete_snapshot(self, name: str, snapshot: str) -> None:
        self._make_request("DELETE", f"{self._rsc_path(name)}/snapshots/{quote(snapshot, safe='')}")

    # Placement

    def autoplace(
        self,
        name: str,
        place_count: int,
        storage_pool: str = "",
        not_place_with_rsc_regex: str = "",
        replicas_on_same: Optional[List[str]] = None,
        replicas_on_different: Optional[List[str]] = None,
        diskless_on_remaining: bool = False,
    ) -> None:
        """Ask the controller to place ``place_count`` diskful replicas.

        Args:
            name: Resource definition name
            place_count: Number of diskful replicas
            storage_pool: Storage pool to place into
            not_place_with_rsc_regex: Avoid nodes hosting matching resources
            replicas_on_same: Node properties all replicas must share
            replicas_on_different: Node properties replicas must not share
            diskless_on_remaining: Create diskless resources on all other nodes
        """
        select_filter: Dict[str, Any] = {"place_count": place_count}
        if storage_pool:
            select_filter["storage_pool"] = storage_pool
        if not_place_with_rsc_regex:
            select_filter["not_place_with_rsc_regex"] = not_place_with_rsc_regex
        if replicas_on_same:
            select_filter["replicas_on_same"] = replicas_on_same
        if replicas_on_different:
            select_filter["replicas_on_different"] = replicas_on_different

        data = {"diskless_on_remaining": diskless_on_remaining, "select_filter": select_filter}
        self._make_request("POST", f"{self._rsc_path(name)}/autoplace", json_data=data)

    def close(self):
        """Close the HTTP session."""
        if self.session:
            self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
