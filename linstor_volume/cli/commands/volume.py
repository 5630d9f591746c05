"""
Volume management commands.

These run the same operations the plugin performs for Docker, directly
against the controller and the local mount table.
"""

from typing import Dict, List, Optional

import typer

from linstor_volume.driver import LinstorDriver

app = typer.Typer(help="Volume management commands")


def _parse_opts(opts: Optional[List[str]]) -> Dict[str, str]:
    parsed = {}
    for opt in opts or []:
        key, sep, value = opt.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got '{opt}'", param_hint="--opt")
        parsed[key] = value
    return parsed


@app.command()
def create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Volume name"),
    opt: Optional[List[str]] = typer.Option(None, "--opt", "-o", help="Volume option as key=value (repeatable)"),
):
    """
    Create a new volume.

    Defines the volume in LINSTOR and places its replicas.
    """
    options = _parse_opts(opt)
    driver: LinstorDriver = ctx.obj
    try:
        typer.echo(f"Creating volume: {name}")
        driver.create(name, options)
        typer.echo(f"Volume {name} created successfully")
    except Exception as e:
        typer.echo(f"Error creating volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def remove(ctx: typer.Context, name: str = typer.Argument(..., help="Volume name")):
    """
    Delete a volume, including all of its snapshots.
    """
    driver: LinstorDriver = ctx.obj
    try:
        typer.echo(f"Removing volume: {name}")
        driver.remove(name)
        typer.echo(f"Volume {name} removed successfully")
    except Exception as e:
        typer.echo(f"Error removing volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def inspect(ctx: typer.Context, name: str = typer.Argument(..., help="Volume name")):
    """
    Show a volume and its mountpoint on this node.
    """
    driver: LinstorDriver = ctx.obj
    try:
        vol = driver.get(name)
        typer.echo(f"{vol['name']} mountpoint={vol['mountpoint'] or '-'}")
    except Exception as e:
        typer.echo(f"Error inspecting volume: {e}", err=True)
        raise typer.Exit(1)


@app.command("list")
def list_volumes(ctx: typer.Context):
    """
    List volumes managed by the plugin.
    """
    driver: LinstorDriver = ctx.obj
    try:
        volumes = driver.list()
        if not volumes:
            typer.echo("No volumes found")
            return
        for vol in volumes:
            typer.echo(f"{vol['name']} mountpoint={vol['mountpoint'] or '-'}")
    except Exception as e:
        typer.echo(f"Error listing volumes: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def mount(ctx: typer.Context, name: str = typer.Argument(..., help="Volume name")):
    """
    Attach and mount a volume on this node.
    """
    driver: LinstorDriver = ctx.obj
    try:
        mountpoint = driver.mount(name)
        typer.echo(f"Volume {name} mounted at: {mountpoint}")
    except Exception as e:
        typer.echo(f"Error mounting volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def unmount(ctx: typer.Context, name: str = typer.Argument(..., help="Volume name")):
    """
    Unmount a volume; a diskless attachment is removed afterwards.
    """
    driver: LinstorDriver = ctx.obj
    try:
        driver.unmount(name)
        typer.echo(f"Volume {name} unmounted")
    except Exception as e:
        typer.echo(f"Error unmounting volume: {e}", err=True)
        raise typer.Exit(1)
