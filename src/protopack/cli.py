"""protopack command-line surface.

Each command maps to one coroutine on the Protopack facade. Any
ProtopackError is reported on stderr and the process exits with status 1.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

import click

from protopack import __version__
from protopack.core.config import ProtopackSettings
from protopack.core.exceptions import ProtopackError
from protopack.facade import Protopack
from protopack.logging_config import setup_logging

T = TypeVar("T")


def _run(coro: Coroutine[Any, Any, T]) -> T:
    try:
        return asyncio.run(coro)
    except ProtopackError as e:
        raise click.ClickException(e.message) from e


@click.group()
@click.version_option(__version__, prog_name="protopack")
@click.option(
    "--log-level",
    default=None,
    help="Log level (DEBUG, INFO, WARNING, ERROR); defaults to PROTOPACK_LOG_LEVEL or INFO",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """protopack: an opinionated package manager for protobuf apis"""
    if ctx.obj is None:
        settings = ProtopackSettings()
        ctx.obj = Protopack(settings)
    protopack: Protopack = ctx.obj
    setup_logging(log_level or protopack.settings.log_level)


@cli.command()
@click.option("--api", default=None, help="Set up the project as an api package with this name")
@click.pass_obj
def init(protopack: Protopack, api: str | None) -> None:
    """Initialize a protopack project"""
    _run(protopack.init(api=api))
    click.echo(f"Initialized {protopack.settings.manifest_path}")


@cli.command()
@click.argument("dependency")
@click.pass_obj
def add(protopack: Protopack, dependency: str) -> None:
    """Add a dependency (format <repository>/<package>@<version>)"""
    dep = _run(protopack.add(dependency))
    click.echo(f"+ {dep}")


@click.command()
@click.argument("package")
@click.pass_obj
def remove(protopack: Protopack, package: str) -> None:
    """Remove a dependency and uninstall its package"""
    dep = _run(protopack.remove(package))
    click.echo(f"- {dep}")


@click.command()
@click.option("--repository", required=True, help="Destination repository for the release")
@click.pass_obj
def publish(protopack: Protopack, repository: str) -> None:
    """Package this api and upload it to the registry"""
    package = _run(protopack.publish(repository))
    click.echo(f"+ published {repository}/{package.name}@{package.version}")


@cli.command()
@click.pass_obj
def install(protopack: Protopack) -> None:
    """Install all dependencies"""
    packages = _run(protopack.install())
    for package in packages:
        click.echo(f"+ {package}")


@cli.command()
@click.pass_obj
def uninstall(protopack: Protopack) -> None:
    """Uninstall all dependencies"""
    removed = _run(protopack.uninstall())
    click.echo(f"Removed {removed} package(s)")


@cli.command()
@click.option("--url", required=True, help="Artifactory url (e.g. https://<domain>/artifactory)")
@click.option("--username", required=True, help="Artifactory username")
@click.option(
    "--token",
    prompt="Please enter your artifactory token",
    hide_input=True,
    envvar="PROTOPACK_TOKEN",
    help="Artifactory token (prompted when omitted)",
)
@click.pass_obj
def login(protopack: Protopack, url: str, username: str, token: str) -> None:
    """Log in to a registry"""
    _run(protopack.login(url, username, token.strip()))
    click.echo(f"Logged in as {username}")


@cli.command()
@click.pass_obj
def logout(protopack: Protopack) -> None:
    """Log out from the registry"""
    _run(protopack.logout())
    click.echo("Logged out")


cli.add_command(remove)
cli.add_command(remove, name="rm")
cli.add_command(publish)
cli.add_command(publish, name="pub")


def main() -> None:
    cli()
