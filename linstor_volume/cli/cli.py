#!/usr/bin/env python3
"""
Main CLI entry point using Typer.
"""

import sys
from typing import Optional

import typer

from linstor_volume.cli.commands import volume
from linstor_volume.driver import DEFAULT_ROOT, LinstorDriver

app = typer.Typer(
    name="linstor-volume",
    help="LINSTOR Docker volume control tool",
    add_completion=False,
)

# Add command groups
app.add_typer(volume.app, name="volume", help="Volume management commands")


@app.callback()
def setup(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(None, "--config", help="Config file (default: /etc/linstor/docker-volume.conf)"),
    node: Optional[str] = typer.Option(None, "--node", help="LINSTOR node name of this host (default: hostname)"),
    root: str = typer.Option(DEFAULT_ROOT, "--root", help="Mount root directory"),
):
    """Shared driver settings."""
    ctx.obj = LinstorDriver(config_path=config, node=node, root=root)


def main() -> int:
    """Main entry point."""
    try:
        app()
        return 0
    except KeyboardInterrupt:
        typer.echo("\nOperation cancelled by user", err=True)
        return 130
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
