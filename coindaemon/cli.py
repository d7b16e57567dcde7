"""CLI for CoinDaemon - send RPC commands to a daemon fleet."""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any

import click

from coindaemon import __version__
from coindaemon.client import DaemonClient
from coindaemon.config import CONFIG_ENV_VAR, ConfigError, load_daemon_configs, parse_daemon_uri
from coindaemon.logs import SEVERITY_LEVELS, configure_logging
from coindaemon.schemas import RpcError, RpcOutcome


def _parse_param(value: str) -> Any:
    """Read a CLI parameter as a JSON literal, falling back to a plain string."""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def _parse_call(spec: str) -> tuple[str, list[Any]]:
    """Parse ``"METHOD [JSON-ARRAY]"`` into a batch command pair."""
    method, _, raw_params = spec.strip().partition(" ")
    if not raw_params.strip():
        return method, []
    try:
        params = json.loads(raw_params)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Params for '{method}' are not valid JSON: {e}") from e
    if not isinstance(params, list):
        raise click.BadParameter(f"Params for '{method}' must be a JSON array")
    return method, params


def _outcome_to_dict(outcome: RpcOutcome) -> dict[str, Any]:
    error = outcome.error
    if isinstance(error, RpcError):
        error = error.model_dump(mode="json")

    result = {
        "instance": outcome.instance.label,
        "error": error,
        "response": outcome.response,
    }
    if outcome.data is not None:
        result["data"] = outcome.data
    return result


def _echo_json(value: Any) -> None:
    click.echo(json.dumps(value, indent=2))


@click.group()
@click.version_option(version=__version__, prog_name="coindaemon")
@click.option(
    "--daemon", "-d",
    "daemons",
    multiple=True,
    help="Daemon as user:password@host:port (repeatable)",
)
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help=f"JSON file of daemon definitions (defaults to ${CONFIG_ENV_VAR})",
)
@click.option(
    "--log-level",
    type=click.Choice(sorted(SEVERITY_LEVELS)),
    default="warning",
    help="Logging level",
)
@click.pass_context
def main(ctx: click.Context, daemons: tuple[str, ...], config_path: str | None, log_level: str) -> None:
    """CoinDaemon - fan JSON-RPC commands out to coin daemons.

    \b
    Example:
        coindaemon -d rpc:secret@127.0.0.1:8332 cmd getblockcount
        coindaemon -c daemons.json online
    """
    configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["daemons"] = daemons
    ctx.obj["config_path"] = config_path


def _build_client(ctx: click.Context) -> DaemonClient:
    daemons = ctx.obj.get("daemons") or ()
    config_path = ctx.obj.get("config_path") or os.environ.get(CONFIG_ENV_VAR)

    try:
        configs = [parse_daemon_uri(uri) for uri in daemons]
        if config_path:
            configs.extend(load_daemon_configs(config_path))
        if not configs:
            raise ConfigError(f"No daemons given; use --daemon, --config or ${CONFIG_ENV_VAR}")
        return DaemonClient(configs)
    except ConfigError as e:
        raise click.UsageError(str(e)) from e


@main.command()
@click.argument("method")
@click.argument("params", nargs=-1)
@click.option("--stream", is_flag=True, help="Print each outcome as its daemon answers")
@click.option("--raw", is_flag=True, help="Include the unparsed response body")
@click.pass_context
def cmd(ctx: click.Context, method: str, params: tuple[str, ...], stream: bool, raw: bool) -> None:
    """Send METHOD to every daemon.

    PARAMS are read as JSON literals where possible.

    \b
    Example:
        coindaemon -d rpc:secret@8332 cmd getblockhash 1000
        coindaemon -c daemons.json cmd getblocktemplate '{"rules": ["segwit"]}'
    """
    client = _build_client(ctx)
    rpc_params = [_parse_param(p) for p in params]

    async def run() -> None:
        if stream:
            async for outcome in client.stream(method, rpc_params, include_raw_data=raw):
                click.echo(json.dumps(_outcome_to_dict(outcome)))
            return
        outcomes = await client.cmd(method, rpc_params, include_raw_data=raw)
        _echo_json([_outcome_to_dict(outcome) for outcome in outcomes])

    asyncio.run(run())


@main.command()
@click.option(
    "--call",
    "calls",
    multiple=True,
    required=True,
    help='Command as "METHOD [JSON-ARRAY]" (repeatable)',
)
@click.pass_context
def batch(ctx: click.Context, calls: tuple[str, ...]) -> None:
    """Send a JSON-RPC batch to the first daemon.

    \b
    Example:
        coindaemon -d rpc:secret@8332 batch --call "getblockcount" --call 'getblockhash [1]'
    """
    commands = [_parse_call(spec) for spec in calls]
    client = _build_client(ctx)

    outcome = asyncio.run(client.batch_cmd(commands))
    _echo_json(_outcome_to_dict(outcome))
    if not outcome.ok:
        ctx.exit(1)


@main.command()
@click.pass_context
def online(ctx: click.Context) -> None:
    """Check that every daemon answers the liveness probe."""
    client = _build_client(ctx)

    live = asyncio.run(client.check_online())
    for outcome in client.health.last_outcomes:
        if outcome.ok:
            click.echo(f"  {outcome.instance.label}: online")
            continue
        error = _outcome_to_dict(outcome)["error"]
        message = error.get("message") or error.get("type") if isinstance(error, dict) else error
        click.echo(f"  {outcome.instance.label}: FAILED ({message})")

    if live:
        click.echo("All daemons online")
    else:
        click.echo("Daemon fleet is not online")
        ctx.exit(1)


if __name__ == "__main__":
    main()
