"""Flashwear CLI - infer flash storage type and remaining life."""

from __future__ import annotations

import json

import click

from flashwear.utils.logging import setup_logging


def _make_coordinator():
    from flashwear.config import EngineSettings
    from flashwear.coordinator import StorageCoordinator

    return StorageCoordinator.default(EngineSettings.from_env())


def _format_bytes(value: int) -> str:
    size = float(value)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TiB"


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.pass_context
def cli(ctx: click.Context, debug: bool, json_output: bool) -> None:
    """Flashwear - flash storage type and wear inference."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["json_output"] = json_output
    setup_logging(level="DEBUG" if debug else "WARNING", json_output=json_output)


@cli.command()
@click.option(
    "--tier",
    type=click.Choice(["root", "broker", "auto"]),
    default="auto",
    help="Restrict inference to one privilege tier",
)
@click.pass_context
def infer(ctx: click.Context, tier: str) -> None:
    """Infer storage type and remaining life.

    The usage-based estimate (used when no wear register or write
    counter is readable) needs an install-time anchor: set
    FLASHWEAR_PACKAGE_NAME to a package installed when the device was
    first set up.
    """
    from flashwear.exceptions import NoEvidenceError
    from flashwear.models.storage import DataSourceType

    coordinator = _make_coordinator()
    if tier != "auto":
        coordinator = coordinator.restricted_to(DataSourceType(tier))

    try:
        info = coordinator.infer()
    except NoEvidenceError as exc:
        if ctx.obj.get("json_output"):
            click.echo(json.dumps({
                "error": str(exc),
                "outcomes": [o.model_dump(mode="json", exclude={"info"}) for o in exc.outcomes],
            }, indent=2))
        else:
            click.echo(f"ERROR: {exc}")
            for outcome in exc.outcomes:
                click.echo(f"  {outcome.source.value}: {outcome.failure} {outcome.detail}")
        ctx.exit(1)

    if ctx.obj.get("json_output"):
        click.echo(json.dumps(info.model_dump(mode="json"), indent=2))
        return

    health = f"{info.health_percentage}%" if info.health_percentage >= 0 else "unknown"
    click.echo(f"Device: {info.name}")
    click.echo(f"  Type: {info.type.value}")
    click.echo(f"  Model: {info.model}")
    click.echo(f"  Firmware: {info.firmware_version}")
    click.echo(f"  Capacity: {_format_bytes(info.total_capacity)}")
    if info.available_bytes >= 0:
        click.echo(f"  Available: {_format_bytes(info.available_bytes)}")
    click.echo(f"  Health: {health} ({info.health_status.value})")
    if info.health_percentage_exact is not None:
        click.echo(f"  Health (exact): {info.health_percentage_exact:.2f}%")
    if info.pre_eol_info:
        click.echo(f"  Pre-EOL: {info.pre_eol_info}")
    if info.total_bytes_written:
        click.echo(f"  Written: {_format_bytes(info.total_bytes_written)}")
    if info.temperature >= 0:
        click.echo(f"  Temperature: {info.temperature} C")
    if info.source is not None:
        click.echo(f"  Source: {info.source.value}")
    if ctx.obj.get("debug") and info.detection_method:
        click.echo(info.detection_method)


@cli.command()
@click.pass_context
def sources(ctx: click.Context) -> None:
    """List evidence sources and whether they are usable here."""
    entries = _make_coordinator().available_data_sources()

    if ctx.obj.get("json_output"):
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return
    for entry in entries:
        mark = "yes" if entry.is_available else "no"
        click.echo(f"  {entry.type.value:<11} {mark:<4} {entry.description}")


@cli.command("root-status")
@click.pass_context
def root_status(ctx: click.Context) -> None:
    """Probe for root privilege."""
    status = _make_coordinator().check_root_status()
    if ctx.obj.get("json_output"):
        click.echo(json.dumps({"root_status": status.value}))
    else:
        click.echo(f"Root: {status.value}")


if __name__ == "__main__":
    cli()
