"""
fleet-command CLI.

Usage:
  fleet-command CLIENT_ID VIN ACCESS_TOKEN ACTION PARAM

Actions:
  chargingSetLimit  PERCENT     Set the charge limit (0-100)
  chargingStartStop start|stop  Start or stop charging
  setChargingAmps   AMPS        Set the charging current
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install fleet-command[cli]")

from pydantic import ValidationError

from fleet_command.client import AsyncVehicleClient
from fleet_command.errors import FleetCommandError
from fleet_command.keys import load_private_key
from fleet_command.transport.http import DEFAULT_BASE_URL, DEFAULT_TIMEOUT

console = Console(stderr=True)
CONFIG_FILE = Path.home() / ".fleet-command" / "config.json"

ACTIONS = ("chargingSetLimit", "chargingStartStop", "setChargingAmps")


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _parse_param(action: str, param: str):
    if action == "chargingStartStop":
        if param not in ("start", "stop"):
            raise click.BadParameter("must be 'start' or 'stop'", param_hint="PARAM")
        return param
    try:
        return int(param)
    except ValueError:
        raise click.BadParameter(f"{action} expects an integer, got {param!r}", param_hint="PARAM")


async def _dispatch(client: AsyncVehicleClient, action: str, value) -> None:
    try:
        if action == "chargingSetLimit":
            await client.charging_set_limit(value)
        elif action == "chargingStartStop":
            await client.charging_start_stop(value)
        elif action == "setChargingAmps":
            await client.set_charging_amps(value)
    finally:
        await client.close()


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("client_id")
@click.argument("vin")
@click.argument("access_token")
@click.argument("action", type=click.Choice(ACTIONS))
@click.argument("param")
@click.option("--key", "key_path", default=None, type=click.Path(dir_okay=False),
              help="PEM private key (default: private.pem)")
@click.option("--base-url", default=None, help="Fleet API base URL")
@click.option("--timeout", default=DEFAULT_TIMEOUT, type=float, show_default=True,
              help="HTTP request timeout in seconds")
@click.option("-v", "--verbose", is_flag=True, help="Log protocol traffic")
@click.version_option("0.1.0")
def main(client_id: str, vin: str, access_token: str, action: str, param: str,
         key_path: Optional[str], base_url: Optional[str], timeout: float, verbose: bool):
    """Send a signed charging command to a vehicle."""
    _setup_logging(verbose)
    cfg = _load_config()
    value = _parse_param(action, param)

    key_file = key_path or cfg.get("key_path", "private.pem")
    try:
        private_key = load_private_key(key_file)
    except (OSError, ValueError) as e:
        raise click.BadParameter(f"cannot load {key_file}: {e}", param_hint="--key")

    try:
        client = AsyncVehicleClient(
            vin, private_key,
            access_token=access_token,
            client_id=client_id,
            base_url=base_url or cfg.get("base_url", DEFAULT_BASE_URL),
            timeout=timeout,
        )
        asyncio.run(_dispatch(client, action, value))
    except ValidationError as e:
        raise click.BadParameter(str(e.errors()[0]["msg"]), param_hint="PARAM")
    except FleetCommandError as e:
        console.print(f"[red]{action} failed: {e}[/red]")
        raise SystemExit(1)

    console.print(f"[green]{action} {param}: OK[/green]")


if __name__ == "__main__":
    main()
