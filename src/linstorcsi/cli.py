"""Command-line interface for LINSTOR volume operations."""

from __future__ import annotations

import functools
import json
import os
from collections.abc import Awaitable, Callable
from pathlib import Path

import click
from safir.asyncio import run_with_asyncio
from safir.click import display_help
from safir.sentry import initialize_sentry, report_exception
from safir.slack.webhook import SlackWebhookClient
from structlog.stdlib import get_logger

from . import __version__
from .config import Config
from .constants import (
    ALERT_HOOK_ENV_VAR,
    CONFIG_FILE,
    CONFIG_FILE_ENV_VAR,
    ROOT_LOGGER,
)
from .factory import Factory
from .models.domain.volume import Volume
from .units import allocation_size_kib, size_to_bytes

__all__ = ["main", "main_with_sentry"]


def _common[**P, R](
    func: Callable[P, Awaitable[R]],
) -> Callable[P, R]:
    """Add common Click options and error reporting to a command."""

    @click.option(
        "--debug",
        "-d",
        is_flag=True,
        help="Enable debug logging",
    )
    @click.option(
        "--config-file",
        "-c",
        help="Configuration file",
        type=Path,
        default=None,
    )
    @run_with_asyncio
    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        logger = get_logger(ROOT_LOGGER)
        if alert_hook := os.environ.get(ALERT_HOOK_ENV_VAR, None):
            slack_client = SlackWebhookClient(
                alert_hook, "LINSTOR CSI", logger=logger
            )
        else:
            slack_client = None

        try:
            return await func(*args, **kwargs)
        except Exception as exc:
            await report_exception(exc, slack_client)
            raise

    return wrapper


def _load_config(config_file: Path | None, *, debug: bool) -> Config:
    """Load the configuration, applying command-line overrides.

    An explicitly named configuration file must exist. If none is named and
    the default file is missing, configuration comes only from the
    environment.
    """
    if env_config_path := os.getenv(CONFIG_FILE_ENV_VAR):
        config_file = Path(env_config_path)
    if config_file is None and CONFIG_FILE.exists():
        config_file = CONFIG_FILE
    if config_file is None:
        config = Config()
        config.configure_logging()
    else:
        config = Config.from_file(config_file)
    if debug:
        config.debug = debug
        config.configure_logging()
    return config


def _echo_volume(volume: Volume | None) -> None:
    if volume is None:
        raise click.ClickException("Volume not found")
    click.echo(volume.model_dump_json(by_alias=True, indent=2))


def _parse_parameters(parameters: tuple[str, ...]) -> dict[str, str]:
    result = {}
    for parameter in parameters:
        key, sep, value = parameter.partition("=")
        if not sep or not key:
            msg = f"Parameter {parameter} is not of the form key=value"
            raise click.BadParameter(msg, param_hint="--parameter")
        result[key] = value
    return result


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, message="%(version)s")
def main() -> None:
    """LINSTOR volume command-line interface."""


@main.command()
@click.argument("topic", default=None, required=False, nargs=1)
@click.argument("subtopic", default=None, required=False, nargs=1)
@click.pass_context
def help(ctx: click.Context, topic: str | None, subtopic: str | None) -> None:
    """Show help for any command."""
    display_help(main, ctx, topic, subtopic)


@main.command(name="list")
@_common
async def list_volumes(*, config_file: Path | None, debug: bool) -> None:
    """List all volumes stored in LINSTOR."""
    config = _load_config(config_file, debug=debug)
    async with Factory.standalone(config) as factory:
        store = factory.create_volume_store()
        volumes = await store.list_all()
    data = [v.model_dump(by_alias=True) for v in volumes]
    click.echo(json.dumps(data, indent=2))


@main.command()
@click.option("--name", "-n", help="Volume name", default=None)
@click.option("--id", "-i", "volume_id", help="Volume ID", default=None)
@_common
async def get(
    *,
    name: str | None,
    volume_id: str | None,
    config_file: Path | None,
    debug: bool,
) -> None:
    """Show one volume, by name or by ID."""
    if (name is None) == (volume_id is None):
        raise click.UsageError("Exactly one of --name or --id is required")
    config = _load_config(config_file, debug=debug)
    async with Factory.standalone(config) as factory:
        store = factory.create_volume_store()
        if name is not None:
            volume = await store.get_by_name(name)
        else:
            volume = await store.get_by_id(str(volume_id))
    _echo_volume(volume)


@main.command()
@click.argument("name")
@click.argument("size")
@click.option(
    "--limit",
    "-l",
    help="Maximum size, such as 10Gi (default: unlimited)",
    default="0",
)
@click.option(
    "--parameter",
    "-p",
    "parameters",
    multiple=True,
    help="Volume parameter as key=value, may be repeated",
)
@_common
async def create(
    *,
    name: str,
    size: str,
    limit: str,
    parameters: tuple[str, ...],
    config_file: Path | None,
    debug: bool,
) -> None:
    """Create a volume of the given size, such as 10Gi."""
    volume_parameters = _parse_parameters(parameters)
    try:
        required_bytes = size_to_bytes(size)
        limit_bytes = size_to_bytes(limit)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    allocation_size_kib(required_bytes, limit_bytes)
    config = _load_config(config_file, debug=debug)
    async with Factory.standalone(config) as factory:
        store = factory.create_volume_store()
        existing = await store.get_by_name(name)
        if existing:
            _echo_volume(existing)
            return
        volume = Volume(
            id=await store.canonicalize_volume_name(name),
            name=name,
            size_bytes=required_bytes,
            parameters=volume_parameters,
        )
        await store.create(volume)
    _echo_volume(volume)


@main.command()
@click.argument("volume_id")
@_common
async def delete(
    *, volume_id: str, config_file: Path | None, debug: bool
) -> None:
    """Delete a volume by ID."""
    config = _load_config(config_file, debug=debug)
    async with Factory.standalone(config) as factory:
        store = factory.create_volume_store()
        volume = await store.get_by_id(volume_id)
        if volume is None:
            raise click.ClickException(f"Volume {volume_id} not found")
        await store.delete(volume)


@main.command()
@click.argument("volume_id")
@click.argument("node")
@_common
async def attach(
    *, volume_id: str, node: str, config_file: Path | None, debug: bool
) -> None:
    """Attach a volume to a node as a diskless client."""
    config = _load_config(config_file, debug=debug)
    async with Factory.standalone(config) as factory:
        store = factory.create_volume_store()
        volume = await store.get_by_id(volume_id)
        if volume is None:
            raise click.ClickException(f"Volume {volume_id} not found")
        if not await store.node_available(node):
            raise click.ClickException(f"Node {node} is not available")
        await store.attach(volume, node)
        assignment = await store.get_assignment_on_node(volume, node)
    click.echo(assignment.path)


@main.command()
@click.argument("volume_id")
@click.argument("node")
@_common
async def detach(
    *, volume_id: str, node: str, config_file: Path | None, debug: bool
) -> None:
    """Detach a volume from a node."""
    config = _load_config(config_file, debug=debug)
    async with Factory.standalone(config) as factory:
        store = factory.create_volume_store()
        volume = await store.get_by_id(volume_id)
        if volume is None:
            raise click.ClickException(f"Volume {volume_id} not found")
        await store.detach(volume, node)


@main.command()
@click.argument("name")
@_common
async def canonicalize(
    *, name: str, config_file: Path | None, debug: bool
) -> None:
    """Show the resource name a new volume with this name would get."""
    config = _load_config(config_file, debug=debug)
    async with Factory.standalone(config) as factory:
        store = factory.create_volume_store()
        click.echo(await store.canonicalize_volume_name(name))


def main_with_sentry() -> None:
    """Call the main command group after initializing Sentry."""
    initialize_sentry(release=__version__)
    main()
