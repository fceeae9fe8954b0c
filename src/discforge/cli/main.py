"""
DiscForge CLI Main Entry Point.

Command-line access to drive queries and to burn, blank and format
operations.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click
import humanize
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from discforge import __version__
from discforge.core.config import DiscForgeConfig, load_config
from discforge.core.events import CallbackEventSink, EventName, QueueEventSink
from discforge.core.models import BurnJob, BurnState
from discforge.core.project import Project
from discforge.core.session import Session
from discforge.xorriso.executor import XorrisoError
from discforge.xorriso.parser import ProcessOutcome

console = Console()

_FINAL_EVENTS = {EventName.BURN_COMPLETE.value, EventName.BURN_ERROR.value}


def get_session(ctx: click.Context) -> Session:
    """Get or create session from context."""
    if "session" not in ctx.obj:
        config = ctx.obj.get("config") or load_config()
        ctx.obj["session"] = Session(config=config, events=ctx.obj.get("events"))
        ctx.call_on_close(ctx.obj["session"].close)
    return ctx.obj["session"]


def emit_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def fail(message: str) -> None:
    console.print(f"[red]✗ {message}[/red]")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="DiscForge")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.pass_context
def cli(ctx: click.Context, config: Path | None, json_output: bool) -> None:
    """
    DiscForge - Disc authoring with xorriso.

    Query optical drives and media, and burn, blank or format discs.
    """
    ctx.ensure_object(dict)

    if config:
        ctx.obj["config"] = DiscForgeConfig.load(config)
    else:
        ctx.obj["config"] = load_config()

    ctx.obj["json_output"] = json_output


@cli.command("version")
@click.pass_context
def xorriso_version(ctx: click.Context) -> None:
    """Show the xorriso version in use."""
    session = get_session(ctx)
    try:
        banner = session.xorriso_version()
    except XorrisoError as e:
        fail(str(e))
        return

    if ctx.obj.get("json_output"):
        emit_json({"discforge": __version__, "xorriso": banner})
        return
    console.print(f"DiscForge {__version__}")
    console.print(banner)


@cli.command("devices")
@click.pass_context
def list_devices(ctx: click.Context) -> None:
    """List optical drives."""
    session = get_session(ctx)

    with console.status("Scanning drives..."):
        try:
            devices = session.devices.list_devices()
        except XorrisoError as e:
            fail(str(e))
            return

    if ctx.obj.get("json_output"):
        emit_json([d.to_dict() for d in devices])
        return

    if not devices:
        console.print("[yellow]No optical drives found[/yellow]")
        return

    table = Table(title="Optical Drives")
    table.add_column("#", style="dim")
    table.add_column("Device", style="cyan")
    table.add_column("Vendor", style="white")
    table.add_column("Model", style="green")
    for device in devices:
        table.add_row(
            "" if device.index is None else str(device.index),
            device.path,
            device.vendor,
            device.model,
        )
    console.print(table)


@cli.command("media")
@click.argument("device")
@click.pass_context
def media_info(ctx: click.Context, device: str) -> None:
    """Show the medium loaded in DEVICE."""
    session = get_session(ctx)

    try:
        info = session.devices.get_media_info(device)
    except XorrisoError as e:
        fail(str(e))
        return

    if ctx.obj.get("json_output"):
        emit_json(info.to_dict())
        return

    console.print(
        Panel(
            f"""[cyan]Device:[/cyan] {info.device_path}
[cyan]Media:[/cyan] {info.media_type or "(none)"}
[cyan]Status:[/cyan] {info.media_status or "(unknown)"}
[cyan]Erasable:[/cyan] {"Yes" if info.erasable else "No"}
[cyan]Free:[/cyan] {humanize.naturalsize(info.free_bytes, binary=True)}
[cyan]Sessions:[/cyan] {len(info.sessions)}""",
            title="Media Information",
        )
    )

    if info.sessions:
        table = Table(title="Table of Contents")
        table.add_column("Session", style="dim")
        table.add_column("Start LBA", style="cyan")
        table.add_column("Size", style="green")
        table.add_column("Volume ID", style="white")
        for s in info.sessions:
            table.add_row(
                str(s.number),
                str(s.start_lba),
                humanize.naturalsize(s.size_blocks * 2048, binary=True),
                s.volume_id,
            )
        console.print(table)


@cli.command("speeds")
@click.argument("device")
@click.pass_context
def list_speeds(ctx: click.Context, device: str) -> None:
    """List write speeds for the medium in DEVICE."""
    session = get_session(ctx)

    try:
        speeds = session.devices.get_speeds(device)
    except XorrisoError as e:
        fail(str(e))
        return

    if ctx.obj.get("json_output"):
        emit_json([s.to_dict() for s in speeds])
        return

    table = Table(title=f"Write Speeds on {device}")
    table.add_column("Speed", style="cyan")
    table.add_column("Rate", style="green")
    for s in speeds:
        table.add_row(s.display_name, f"{s.write_speed_kbps:.0f} kB/s")
    console.print(table)


@cli.command("profiles")
@click.argument("device")
@click.pass_context
def list_profiles(ctx: click.Context, device: str) -> None:
    """List media profiles supported by DEVICE."""
    session = get_session(ctx)

    try:
        profiles = session.devices.get_drive_profiles(device)
    except XorrisoError as e:
        fail(str(e))
        return

    if ctx.obj.get("json_output"):
        emit_json([p.to_dict() for p in profiles])
        return

    table = Table(title=f"Media Profiles of {device}")
    table.add_column("Code", style="dim")
    table.add_column("Profile", style="cyan")
    table.add_column("Current", style="green")
    for p in profiles:
        code = f"0x{p.code:04X}" if p.code is not None else ""
        table.add_row(code, p.name, "Yes" if p.current else "")
    console.print(table)


@cli.command("eject")
@click.argument("device")
@click.pass_context
def eject(ctx: click.Context, device: str) -> None:
    """Eject the medium in DEVICE."""
    session = get_session(ctx)
    try:
        session.devices.eject_disc(device)
    except XorrisoError as e:
        fail(str(e))
        return
    if ctx.obj.get("json_output"):
        emit_json({"device": device, "ejected": True})
        return
    console.print(f"[green]✓ Ejected {device}[/green]")


@cli.command("burn")
@click.argument("device")
@click.argument("sources", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option(
    "--project",
    "-p",
    "project_file",
    type=click.Path(exists=True, path_type=Path),
    help="Project file to burn",
)
@click.option("--volid", help="Volume identifier")
@click.option("--dest", default="/", show_default=True, help="Target directory on disc for SOURCES")
@click.option("--speed", help="Write speed (e.g. 4, 8x, auto)")
@click.option("--dummy", is_flag=True, help="Simulate the write (laser off)")
@click.option("--verify", is_flag=True, help="Read the disc back after writing")
@click.option("--close", "close_disc", is_flag=True, help="Close the disc after writing")
@click.option("--eject", "eject_after", is_flag=True, help="Eject when finished")
@click.pass_context
def burn(
    ctx: click.Context,
    device: str,
    sources: tuple[Path, ...],
    project_file: Path | None,
    volid: str | None,
    dest: str,
    speed: str | None,
    dummy: bool,
    verify: bool,
    close_disc: bool,
    eject_after: bool,
) -> None:
    """Burn SOURCES (or a project file) to the medium in DEVICE."""
    config: DiscForgeConfig = ctx.obj["config"]

    if project_file is not None:
        project = Project.load(project_file)
    else:
        project = Project(
            iso_options=config.default_iso.model_copy(),
            burn_options=config.default_burn.model_copy(),
        )
    if sources:
        project.add_sources(list(sources), dest)
    if not project.entries:
        fail("Nothing to burn: give SOURCES or a project with entries")
        return
    if volid is not None:
        project.volume_id = volid

    options = project.burn_options.model_copy()
    if speed is not None:
        options.speed = speed
    options.dummy_mode = options.dummy_mode or dummy
    options.verify = options.verify or verify
    options.close_disc = options.close_disc or close_disc
    options.eject = options.eject or eject_after

    events = QueueEventSink(maxsize=0)
    ctx.obj["events"] = events
    session = get_session(ctx)

    job_id = session.burner.start_burn(project, device, options)
    json_output = ctx.obj.get("json_output", False)
    job = _follow_burn(session, job_id, events, quiet=json_output)

    if json_output:
        emit_json(job.to_dict())
        if job.state is not BurnState.DONE:
            sys.exit(130 if job.state is BurnState.CANCELLED else 1)
        return
    if job.state is BurnState.DONE:
        console.print(f"[green]✓ Burn completed ({job.id[:8]})[/green]")
        return
    if job.state is BurnState.CANCELLED:
        console.print("[yellow]Burn cancelled[/yellow]")
        sys.exit(130)
    fail(job.error or "Burn failed")


def _follow_burn(
    session: Session, job_id: str, events: QueueEventSink, quiet: bool = False
) -> BurnJob:
    """Render progress events until the job ends; Ctrl-C cancels it.

    With ``quiet`` the events are still consumed but nothing is drawn.
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TextColumn("{task.fields[speed]}"),
        TextColumn("fifo {task.fields[fifo]}%"),
        console=console,
        disable=quiet,
    ) as progress:
        task = progress.add_task("Preparing...", total=100, speed="", fifo=0)
        try:
            while True:
                item = events.get(timeout=0.5)
                if item is None:
                    if session.burner.get_job_status(job_id).is_terminal:
                        break
                    continue
                name, payload = item
                if name in (EventName.BURN_PROGRESS.value, EventName.VERIFY_PROGRESS.value):
                    progress.update(
                        task,
                        completed=payload["percent"],
                        description=payload["phase"].capitalize(),
                        speed=payload["speed_label"],
                        fifo=payload["buffer_fill_percent"],
                    )
                elif name == EventName.BURN_STATE_CHANGED.value:
                    progress.update(task, description=str(payload).capitalize())
                elif name in _FINAL_EVENTS:
                    break
        except KeyboardInterrupt:
            session.burner.cancel_burn(job_id)

    return session.burner.wait(job_id)


def _report_outcome(outcome: ProcessOutcome, action: str, json_output: bool) -> None:
    if json_output:
        emit_json(
            {
                "exit_code": outcome.exit_code,
                "result_lines": outcome.result_lines,
                "info_lines": outcome.info_lines,
            }
        )
        if not outcome.success:
            sys.exit(1)
        return
    if outcome.success:
        console.print(f"[green]✓ {action} completed[/green]")
    else:
        fail(outcome.last_info or f"{action} failed with exit code {outcome.exit_code}")


def _run_media_operation(ctx: click.Context, device: str, mode: str, blank: bool) -> None:
    events = CallbackEventSink()
    ctx.obj["events"] = events
    session = get_session(ctx)
    json_output = ctx.obj.get("json_output", False)
    action = "Blank" if blank else "Format"
    operation = session.burner.blank_disc if blank else session.burner.format_disc

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        console=console,
        disable=json_output,
    ) as progress:
        task = progress.add_task(f"{action}ing {device}...", total=100)
        events.subscribe(
            lambda _name, payload: progress.update(task, completed=payload["percent"]),
            EventName.BURN_PROGRESS,
        )

        token = session.executor.new_token()
        try:
            outcome = operation(device, mode, token=token)
        except XorrisoError as e:
            fail(str(e))
            return
        except KeyboardInterrupt:
            token.cancel()
            console.print(f"[yellow]{action} cancelled[/yellow]")
            sys.exit(130)

    _report_outcome(outcome, action, json_output)


@cli.command("blank")
@click.argument("device")
@click.option(
    "--mode",
    default="as_needed",
    show_default=True,
    help="Blank mode: as_needed, fast, all, deformat, ...",
)
@click.pass_context
def blank(ctx: click.Context, device: str, mode: str) -> None:
    """Blank the rewritable medium in DEVICE."""
    _run_media_operation(ctx, device, mode, blank=True)


@cli.command("format")
@click.argument("device")
@click.option(
    "--mode",
    default="as_needed",
    show_default=True,
    help="Format mode: as_needed, full, fast, by_size_<n>, ...",
)
@click.pass_context
def format_disc(ctx: click.Context, device: str, mode: str) -> None:
    """Format the medium in DEVICE (BD-RE, DVD-RAM, DVD+RW)."""
    _run_media_operation(ctx, device, mode, blank=False)


def main() -> None:
    """Main entry point."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
