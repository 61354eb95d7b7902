"""Thin CLI wrapper over :class:`mfiplug.OutletPlugin`."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sys
from datetime import datetime

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from mfiplug import components
from mfiplug.config import DeviceConfig
from mfiplug.controller import OutletController, OutletSnapshot
from mfiplug.host import AsyncioScheduler, DeviceRegistry, LoggerService, ServiceRegistry
from mfiplug.plugin import OutletPlugin

app = typer.Typer(help="Control Ubiquiti mFi outlet strips.", invoke_without_command=True)

plugin = OutletPlugin()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log HTTP traffic"),
) -> None:
    """Control Ubiquiti mFi outlet strips."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


def _print_json(obj: object) -> None:
    """Print JSON, syntax-highlighted when stdout is a TTY and compact otherwise."""
    if sys.stdout.isatty():
        Console().print(Syntax(json.dumps(obj, indent=2), "json"))
    else:
        typer.echo(json.dumps(obj))


def _ensure_config() -> DeviceConfig:
    """Load the saved configuration or exit with an error."""
    try:
        return DeviceConfig.from_saved()
    except FileNotFoundError:
        typer.echo("No saved configuration. Run `mfiplug configure` first.", err=True)
        raise typer.Exit(1) from None


def _build(
    config: DeviceConfig, registry: DeviceRegistry | None = None
) -> tuple[OutletController, DeviceRegistry, AsyncioScheduler]:
    registry = registry or DeviceRegistry()
    scheduler = AsyncioScheduler()
    services = ServiceRegistry(
        scheduler=scheduler,
        loggingService=LoggerService(f"mfiplug.{config.ip_address}"),
        deviceFramework=registry,
    )
    return plugin.create_instance(config.ip_address, config, services), registry, scheduler


def _report_errors(errors: list[str]) -> None:
    for error in errors:
        typer.echo(f"  {error}", err=True)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def configure(
    ip_address: str = typer.Option(..., "--ip-address", prompt="IP Address", help="Device address"),
    username: str = typer.Option(..., prompt=True, help="Device username"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Device password"),
    outlet1_name: str = typer.Option("Outlet 1", prompt="Outlet 1 Name"),
    outlet2_name: str = typer.Option("Outlet 2", prompt="Outlet 2 Name"),
) -> None:
    """Check the device credentials and save them locally."""
    config = DeviceConfig(ip_address, username, password, outlet1_name, outlet2_name)
    typer.echo(f"Logging in to {ip_address}...")
    result = asyncio.run(plugin.validate(config))
    if not result.valid:
        typer.echo("Could not log in:", err=True)
        _report_errors(result.errors)
        raise typer.Exit(1)
    path = config.save()
    typer.echo(f"Logged in. Configuration saved to {path}.")


@app.command()
def validate() -> None:
    """Check that the saved configuration can log in."""
    config = _ensure_config()
    result = asyncio.run(plugin.validate(config))
    if not result.valid:
        typer.echo(f"{config.ip_address}: invalid", err=True)
        _report_errors(result.errors)
        raise typer.Exit(1)
    typer.echo(f"{config.ip_address}: OK")


@app.command()
def status(
    as_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Read voltage, current, power and output state of both outlets."""
    config = _ensure_config()
    controller, _, _ = _build(config)
    asyncio.run(controller.refresh())

    snapshots = controller.snapshots
    if all(snap == OutletSnapshot() for snap in snapshots.values()):
        typer.echo("No readings from device.", err=True)
        raise typer.Exit(1)

    if as_json:
        _print_json(
            {
                config.outlet_name(n): {
                    c.field: snap.value_of(c.field) for c in components.for_outlet(n)
                }
                for n, snap in snapshots.items()
            }
        )
        return

    if sys.stdout.isatty():
        table = Table(title=config.ip_address)
        table.add_column("Outlet", style="bold")
        for c in components.for_outlet(1):
            table.add_column(c.label, justify="right")
        for n, snap in snapshots.items():
            table.add_row(
                config.outlet_name(n),
                *(c.format_value(snap.value_of(c.field)) for c in components.for_outlet(n)),
            )
        Console().print(table)
        return

    typer.echo(config.ip_address)
    for n, snap in snapshots.items():
        typer.echo(f"  {config.outlet_name(n)}")
        for c in components.for_outlet(n):
            typer.echo(f"    {c.label}: {c.format_value(snap.value_of(c.field))}")


@app.command("set", context_settings={"help_option_names": ["-h", "--help"]})
def set_outlet(
    outlet: int = typer.Argument(..., help="Outlet number (1 or 2)"),
    state: str = typer.Argument(..., help="on | off"),
) -> None:
    """Switch an outlet on or off."""
    if outlet not in (1, 2):
        typer.echo(f"Invalid outlet {outlet}. Must be 1 or 2.", err=True)
        raise typer.Exit(1)
    state = state.lower()
    if state not in ("on", "off"):
        typer.echo(f"Invalid state '{state}'. Expected: on | off", err=True)
        raise typer.Exit(1)

    config = _ensure_config()
    controller, registry, _ = _build(config)
    on = state == "on"
    typer.echo(f"Setting {config.outlet_name(outlet)} {state}...")
    asyncio.run(controller.set_outlet_value(outlet, on))

    if registry[controller.id].values.get(components.OUTPUT_IDS[outlet]) is not on:
        typer.echo("Device did not accept the command.", err=True)
        raise typer.Exit(1)
    typer.echo(f"{config.outlet_name(outlet)} is {state.upper()}.")


@app.command()
def watch() -> None:
    """Poll the device every minute and print value changes.

    \b
    Press Ctrl+C to stop.
    """
    config = _ensure_config()
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_watch_async(config))


async def _watch_async(config: DeviceConfig) -> None:
    """Async implementation of the watch command."""
    is_tty = sys.stdout.isatty()
    names = {c.id: c.display_name(config) for c in components.COMPONENTS}

    def on_update(device_id: str, component_id: str, value: object) -> None:
        ts = datetime.now().strftime("%H:%M:%S")
        c = components.resolve(component_id)
        formatted = c.format_value(value) if c else str(value)
        label = names.get(component_id, component_id)
        if is_tty:
            typer.echo(f"[{ts}] {typer.style(label, fg='cyan')}: {formatted}")
        else:
            typer.echo(f"[{ts}] {label}: {formatted}")

    controller, _, scheduler = _build(config, DeviceRegistry(on_update=on_update))
    typer.echo(f"Watching {config.ip_address}... (Ctrl+C to stop)")
    await controller.start()
    try:
        await asyncio.gather(*(job.task for job in scheduler.jobs))
    finally:
        controller.shutdown()
        await scheduler.close()
