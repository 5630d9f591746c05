"""Unit tests for the LINSTOR REST client."""

import unittest
from unittest.mock import Mock, patch

import pytest
import requests

from linstor_volume import exceptions as lv_exceptions
from linstor_volume.client import client as linstor_client
from linstor_volume.lib.config import LinstorConfig


class TestBaseURL(unittest.TestCase):
    """Test base_url_from_controllers function."""

    def test_default(self):
        assert linstor_client.base_url_from_controllers("") == "http://localhost:3370"

    def test_linstor_scheme(self):
        assert linstor_client.base_url_from_controllers("linstor://ctrl-1") == "http://ctrl-1:3370"

    def test_ssl_schemes(self):
        assert linstor_client.base_url_from_controllers("linstor+ssl://ctrl-1") == "https://ctrl-1:3371"
        assert linstor_client.base_url_from_controllers("https://ctrl-1") == "https://ctrl-1:3371"

    def test_first_controller_and_explicit_port(self):
        url = linstor_client.base_url_from_controllers("linstor://ctrl-1:8080,linstor://ctrl-2")
        assert url == "http://ctrl-1:8080"

    def test_bare_host(self):
        assert linstor_client.base_url_from_controllers("10.0.0.5") == "http://10.0.0.5:3370"

    def test_ipv6_literal(self):
        assert linstor_client.base_url_from_controllers("linstor://[fd00::1]") == "http://[fd00::1]:3370"
        assert linstor_client.base_url_from_controllers("linstor://[fd00::1]:4000") == "http://[fd00::1]:4000"


class TestLinstorClient(unittest.TestCase):
    """Test LinstorClient class."""

    def setUp(self):
        """Set up test fixtures."""
        self.base_url = "http://ctrl-1:3370"

    def _client(self, mock_requests, response=None):
        mock_requests.exceptions = requests.exceptions
        mock_session = Mock()
        mock_requests.Session.return_value = mock_session
        if response is not None:
            mock_session.request.return_value = response
        return linstor_client.LinstorClient(self.base_url), mock_session

    @staticmethod
    def _response(status_code=200, body=None, text=""):
        response = Mock()
        response.status_code = status_code
        response.json.return_value = body
        response.content = b"x" if body is not None else b""
        response.text = text
        return response

    @patch("linstor_volume.client.client.requests")
    def test_init_tls_and_auth(self, mock_requests):
        mock_session = Mock()
        mock_requests.Session.return_value = mock_session

        linstor_client.LinstorClient(
            "https://ctrl-1:3371",
            username="admin",
            password="secret",
            cert_file="/c.crt",
            key_file="/c.key",
            ca_file="/ca.crt",
        )

        assert mock_session.auth == ("admin", "secret")
        assert mock_session.cert == ("/c.crt", "/c.key")
        assert mock_session.verify == "/ca.crt"

    @patch("linstor_volume.client.client.requests")
    def test_init_without_ca_disables_verification(self, mock_requests):
        mock_session = Mock()
        mock_requests.Session.return_value = mock_session

        linstor_client.LinstorClient(self.base_url)

        assert mock_session.verify is False

    @patch("linstor_volume.client.client.LinstorClient.__init__", return_value=None)
    def test_from_config(self, mock_init):
        config = LinstorConfig(controllers="linstor+ssl://ctrl-1", username="admin", ca_file="/ca.crt")

        linstor_client.LinstorClient.from_config(config)

        mock_init.assert_called_once_with(
            "https://ctrl-1:3371",
            username="admin",
            password="",
            cert_file="",
            key_file="",
            ca_file="/ca.crt",
        )

    @patch("linstor_volume.client.client.requests")
    def test_not_found(self, mock_requests):
        response = self._response(404, [{"ret_code": -1, "message": "Resource 'vol1' not found"}])
        client, _ = self._client(mock_requests, response)

        with pytest.raises(lv_exceptions.LinstorNotFound) as exc_info:
            client.get_resource("vol1", "node-a")

        assert exc_info.value.status_code == 404
        assert "Resource 'vol1' not found" in str(exc_info.value)

    @patch("linstor_volume.client.client.requests")
    def test_api_error_message(self, mock_requests):
        response = self._response(
            400, [{"ret_code": -4611686018407201800, "message": "Not enough nodes"}, {"message": "Placement failed"}]
        )
        client, _ = self._client(mock_requests, response)

        with pytest.raises(lv_exceptions.LinstorAPIError) as exc_info:
            client.autoplace("vol1", place_count=3)

        assert exc_info.value.status_code == 400
        assert "Not enough nodes; Placement failed" in exc_info.value.message
        assert not isinstance(exc_info.value, lv_exceptions.LinstorNotFound)

    @patch("linstor_volume.client.client.requests")
    def test_non_json_error(self, mock_requests):
        response = self._response(500, text="Internal Server Error")
        response.json.side_effect = ValueError("no json")
        client, _ = self._client(mock_requests, response)

        with pytest.raises(lv_exceptions.LinstorAPIError, match="Internal Server Error"):
            client.list_resource_definitions()

    @patch("linstor_volume.client.client.requests")
    def test_malformed_success_body(self, mock_requests):
        response = self._response(200, text="<html>proxy login</html>")
        response.content = b"<html>proxy login</html>"
        response.json.side_effect = requests.exceptions.JSONDecodeError("Expecting value", "<html>", 0)
        client, _ = self._client(mock_requests, response)

        with pytest.raises(lv_exceptions.LinstorAPIError, match="Invalid response") as exc_info:
            client.resource_view(resources=["vol1"], nodes=["node-a"])

        assert exc_info.value.status_code == 200

    @patch("linstor_volume.client.client.requests")
    def test_timeout(self, mock_requests):
        client, session = self._client(mock_requests)
        session.request.side_effect = requests.exceptions.Timeout("read timed out")

        with pytest.raises(lv_exceptions.LinstorAPITimeout):
            client.list_resource_definitions()

    @patch("linstor_volume.client.client.requests")
    def test_connection_error(self, mock_requests):
        client, session = self._client(mock_requests)
        session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(lv_exceptions.LinstorAPIConnectionError):
            client.list_resource_definitions()

    @patch("linstor_volume.client.client.requests")
    def test_create_volume_definition(self, mock_requests):
        client, session = self._client(mock_requests, self._response(201, [{"ret_code": 1, "message": "ok"}]))

        client.create_volume_definition("vol1", 97656)

        session.request.assert_called_once_with(
            method="POST",
            url="http://ctrl-1:3370/v1/resource-definitions/vol1/volume-definitions",
            json={"volume_definition": {"size_kib": 97656}},
            params=None,
            timeout=None,
        )

    @patch("linstor_volume.client.client.requests")
    def test_create_diskless_resource(self, mock_requests):
        client, session = self._client(mock_requests, self._response(201, []))

        client.create_resource("vol1", "node-a", props={"StorPoolName": "dl"}, flags=["DISKLESS"])

        kwargs = session.request.call_args.kwargs
        assert kwargs["url"] == "http://ctrl-1:3370/v1/resource-definitions/vol1/resources/node-a"
        assert kwargs["json"] == {
            "resource": {"name": "vol1", "node_name": "node-a", "props": {"StorPoolName": "dl"}, "flags": ["DISKLESS"]}
        }

    @patch("linstor_volume.client.client.requests")
    def test_autoplace_body(self, mock_requests):
        client, session = self._client(mock_requests, self._response(201, []))

        client.autoplace(
            "vol1",
            place_count=2,
            storage_pool="thin",
            not_place_with_rsc_regex="db-.*",
            replicas_on_different=["zone"],
            diskless_on_remaining=True,
        )

        kwargs = session.request.call_args.kwargs
        assert kwargs["url"] == "http://ctrl-1:3370/v1/resource-definitions/vol1/autoplace"
        assert kwargs["json"] == {
            "diskless_on_remaining": True,
            "select_filter": {
                "place_count": 2,
                "storage_pool": "thin",
                "not_place_with_rsc_regex": "db-.*",
                "replicas_on_different": ["zone"],
            },
        }

    @patch("linstor_volume.client.client.requests")
    def test_get_resource_unwraps_list(self, mock_requests):
        client, _ = self._client(mock_requests, self._response(200, [{"name": "vol1", "node_name": "node-a"}]))

        assert client.get_resource("vol1", "node-a") == {"name": "vol1", "node_name": "node-a"}

    @patch("linstor_volume.client.client.requests")
    def test_get_volume_empty_list_is_not_found(self, mock_requests):
        client, _ = self._client(mock_requests, self._response(200, []))

        with pytest.raises(lv_exceptions.LinstorNotFound):
            client.get_volume("vol1", "node-a", 0)

    @patch("linstor_volume.client.client.requests")
    def test_resource_view_filters(self, mock_requests):
        client, session = self._client(mock_requests, self._response(200, [{"name": "vol1", "volumes": []}]))

        result = client.resource_view(resources=["vol1"], nodes=["node-a"])

        assert result == [{"name": "vol1", "volumes": []}]
        kwargs = session.request.call_args.kwargs
        assert kwargs["url"] == "http://ctrl-1:3370/v1/view/resources"
        assert kwargs["params"] == {"resources": ["vol1"], "nodes": ["node-a"]}

    @patch("linstor_volume.client.client.requests")
    def test_delete_snapshot(self, mock_requests):
        client, session = self._client(mock_requests, self._response(200, []))

        client.delete_snapshot("vol1", "snap-1")

        kwargs = session.request.call_args.kwargs
        assert kwargs["method"] == "DELETE"
        assert kwargs["url"] == "http://ctrl-1:3370/v1/resource-definitions/vol1/snapshots/snap-1"
