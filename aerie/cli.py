"""Aerie CLI - serve an MVC directory or list its routes.

Commands:
    serve   - Discover a directory and serve it with uvicorn
    routes  - Print the discovered bindings without serving
"""

import asyncio
import logging
import sys
from typing import Optional, Tuple

import click

from . import __version__
from .application import Application
from .config import ConfigLoader
from .faults import Fault


def success(message: str) -> None:
    click.echo(click.style(message, fg="green"))


def error(message: str) -> None:
    click.echo(click.style(message, fg="red"), err=True)


def dim(message: str) -> str:
    return click.style(message, dim=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def _build_app(
    directory: str,
    config_files: Tuple[str, ...],
    env_file: Optional[str],
    **overrides,
) -> Application:
    loader = ConfigLoader.load(paths=list(config_files), env_file=env_file)
    options = {key: value for key, value in overrides.items() if value is not None}
    return Application.from_loader(loader, directory=directory, **options)


@click.group()
@click.version_option(version=__version__, prog_name="aerie")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx, verbose: bool):
    """Convention-based MVC for ASGI.

    \b
    Quick start:
      aerie routes ./site
      aerie serve ./site --port=3000
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose)


@cli.command("serve")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--host", type=str, default="127.0.0.1", help="Server host")
@click.option("--port", type=int, default=3000, help="Server port")
@click.option("--mode", type=click.Choice(["development", "production"]), default=None, help="Deployment mode")
@click.option("--statics", type=str, default=None, help="URL prefix serving the directory's files")
@click.option("--config", "config_files", multiple=True, type=click.Path(), help="JSON config file (repeatable)")
@click.option("--env-file", type=click.Path(), default=None, help=".env file")
@click.pass_context
def serve(ctx, directory: str, host: str, port: int, mode: Optional[str], statics: Optional[str],
          config_files: Tuple[str, ...], env_file: Optional[str]):
    """
    Serve DIRECTORY.

    Examples:
      aerie serve ./site
      aerie serve ./site --mode=production --statics=/assets/
    """
    try:
        app = _build_app(directory, config_files, env_file, mode=mode, statics=statics)
        app.listen(port=port, host=host, log_level="debug" if ctx.obj["verbose"] else "info")
    except KeyboardInterrupt:
        success("Server stopped")
    except Fault as e:
        error(f"{e.code}: {e.message}")
        sys.exit(1)


@cli.command("routes")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--mode", type=click.Choice(["development", "production"]), default=None, help="Deployment mode")
@click.option("--config", "config_files", multiple=True, type=click.Path(), help="JSON config file (repeatable)")
@click.option("--env-file", type=click.Path(), default=None, help=".env file")
def routes(directory: str, mode: Optional[str], config_files: Tuple[str, ...], env_file: Optional[str]):
    """
    List the controllers and apis discovered under DIRECTORY, in match order.
    """
    try:
        app = _build_app(directory, config_files, env_file, mode=mode)
        asyncio.run(app.ready())
    except Fault as e:
        error(f"{e.code}: {e.message}")
        sys.exit(1)

    rows = app.describe()
    if not rows:
        click.echo(dim("No controllers or apis found"))
        return

    width = max(len(context) for _, _, context, _ in rows) + 2
    for _, kind, context, name in rows:
        click.echo(f"  {click.style(kind.ljust(11), fg='cyan')}{context.ljust(width)}{name}")
    success(f"{len(rows)} route(s)")


def main():
    """Entry point for the ``aerie`` command."""
    cli(obj={})


if __name__ == "__main__":
    main()
