"""
Unit tests for the plugin server entrypoint.
"""

from unittest.mock import patch

import pytest

from linstor_volume.api import server
from linstor_volume.api.main import app


class TestServerMain:
    """Tests for server.main."""

    @pytest.mark.unit
    def test_parser_defaults(self):
        args = server.build_parser().parse_args([])

        assert args.socket == "/run/docker/plugins/linstor.sock"
        assert args.config is None
        assert args.root == "/var/lib/docker-volumes/linstor"
        assert args.log_level == "info"

    @pytest.mark.unit
    @patch("linstor_volume.api.server.uvicorn.run")
    @patch("linstor_volume.api.server.mount_utils.make_dir")
    def test_main_serves_on_socket(self, mock_make_dir, mock_run):
        rc = server.main(["--socket", "/run/test/lv.sock", "--node", "node-a", "--root", "/mnt/lv"])

        assert rc == 0
        mock_make_dir.assert_any_call("/mnt/lv")
        mock_make_dir.assert_any_call("/run/test")
        mock_run.assert_called_once_with(app, uds="/run/test/lv.sock", log_level="info")
        assert app.state.driver.node == "node-a"
        assert app.state.driver.root == "/mnt/lv"
        del app.state.driver
