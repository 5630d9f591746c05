"""
Uvicorn server entrypoint for the LINSTOR Docker volume plugin.
"""

from __future__ import annotations

import argparse
import os

import uvicorn

from linstor_volume.api.main import app
from linstor_volume.driver import DEFAULT_ROOT, LinstorDriver
from linstor_volume.lib import mount as mount_utils

DEFAULT_SOCKET = "/run/docker/plugins/linstor.sock"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="linstor-docker-volume", description="LINSTOR Docker volume plugin")
    parser.add_argument("--socket", default=DEFAULT_SOCKET, help=f"Plugin unix socket (default: {DEFAULT_SOCKET})")
    parser.add_argument(
        "--config", default=None, help="Config file (default: /etc/linstor/docker-volume.conf)"
    )
    parser.add_argument("--node", default=None, help="LINSTOR node name of this host (default: hostname)")
    parser.add_argument("--root", default=DEFAULT_ROOT, help=f"Mount root directory (default: {DEFAULT_ROOT})")
    parser.add_argument("--log-level", default="info", help="Uvicorn log level (default: info)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    app.state.driver = LinstorDriver(config_path=args.config, node=args.node, root=args.root)
    mount_utils.make_dir(args.root)
    mount_utils.make_dir(os.path.dirname(args.socket))
    uvicorn.run(app, uds=args.socket, log_level=args.log_level)
    return 0
