"""
SecOps Reboot Notifier — CLI Entry Point

Usage:
    reboot-notifier run [--countdown 600] [--delays 1800,5400]
    reboot-notifier delay 1800
    reboot-notifier reboot-now
    reboot-notifier status [--json]
    reboot-notifier history [--limit 20]
    reboot-notifier paths
"""

from __future__ import annotations

# Load .env file FIRST, before any other imports that might read env vars
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

import json
import logging
import threading
from datetime import datetime
from typing import IO, Optional, Tuple

import click
from dateutil import parser as date_parser
from pydantic import ValidationError

from .config.paths import ResolvedPaths
from .config.settings import NotifierSettings, load_settings
from .engine.coordinator import Decision, RebootCoordinator, TickOutcome
from .engine.countdown import CountdownState
from .engine.time_format import format_countdown
from .logging_config import setup_logging
from .persistence.action_log import ActionLog
from .persistence.config_store import ConfigStore

# Initialize logging
setup_logging()
logger = logging.getLogger(__name__)


def _file_options(fn):
    fn = click.option("--config-file", type=click.Path(path_type=Path), help="Config document path")(fn)
    fn = click.option("--log-file", "history_file", type=click.Path(path_type=Path), help="History log path")(fn)
    fn = click.option("--state-file", type=click.Path(path_type=Path), help="State snapshot path")(fn)
    return fn


def _settings(**overrides) -> NotifierSettings:
    try:
        return load_settings(**overrides)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(p) for p in error["loc"]) or "settings"
        raise click.UsageError(f"Invalid {field}: {error['msg']}")


def _open(settings: NotifierSettings) -> Tuple[ResolvedPaths, ConfigStore, ActionLog]:
    paths = settings.resolve_paths()
    store = ConfigStore(paths.config_file)
    action_log = ActionLog(paths.state_file, paths.history_file)
    return paths, store, action_log


def _countdown(settings: NotifierSettings) -> CountdownState:
    return CountdownState(
        initial_seconds=settings.countdown_seconds,
        allowed_delay_options=settings.delay_options,
        max_total_delay=settings.max_total_delay,
    )


def _read_choices(coordinator: RebootCoordinator, stream: IO[str]) -> None:
    """Hand operator input to the coordinator until the stream closes."""
    try:
        for line in stream:
            choice = line.strip().lower()
            if not choice:
                continue
            if choice in ("r", "reboot"):
                coordinator.post_reboot_now()
            elif choice.isdigit():
                coordinator.post_delay(int(choice))
            else:
                click.secho(f"✗ Unknown choice {choice!r}", fg="yellow", err=True)
    except (OSError, ValueError) as e:
        logger.debug(f"Operator input closed: {e}")


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """SecOps Reboot Notifier — countdown to a mandatory reboot with limited deferrals."""
    ctx.ensure_object(dict)


@cli.command()
@click.option("--countdown", type=int, help="Initial countdown in seconds")
@click.option("--delays", help="Comma-separated delay options in seconds")
@click.option("--max-total-delay", type=int, help="Cap on total delay (accepted, not enforced)")
@click.option("--interval", type=float, default=1.0, hidden=True)
@_file_options
def run(
    countdown: Optional[int],
    delays: Optional[str],
    max_total_delay: Optional[int],
    interval: float,
    state_file: Optional[Path],
    history_file: Optional[Path],
    config_file: Optional[Path],
) -> None:
    """Show the notice and count down until a delay or reboot decision."""
    settings = _settings(
        countdown_seconds=countdown,
        delay_options=delays,
        max_total_delay=max_total_delay,
        config_path=config_file,
        state_path=state_file,
        history_path=history_file,
    )
    _, store, action_log = _open(settings)
    coordinator = RebootCoordinator(_countdown(settings), store, action_log)

    try:
        coordinator.start()
        notice = coordinator.notice()
        click.secho(notice.title, bold=True)
        click.echo(notice.body)
        for seconds, label in notice.delay_choices:
            click.echo(f"  [{seconds}] {label}")
        if notice.delay_choices:
            click.echo("Type a delay in seconds, or 'r' to reboot now.")
        else:
            click.echo("Type 'r' to reboot now.")

        threading.Thread(
            target=_read_choices,
            args=(coordinator, click.get_text_stream("stdin")),
            name="operator-input",
            daemon=True,
        ).start()

        def refresh(outcome: TickOutcome) -> None:
            remaining = outcome.remaining_seconds
            if outcome.expired or remaining % 60 == 0 or remaining <= 10:
                click.echo(f"Auto reboot in {format_countdown(remaining)}.")

        try:
            decision = coordinator.run(interval=interval, on_refresh=refresh)
        except KeyboardInterrupt:
            coordinator.stop()
            decision = None
    finally:
        store.close()
        action_log.close()

    if decision == Decision.REBOOT_NOW:
        click.secho("⚡ Reboot now", fg="red", bold=True)
    elif decision == Decision.DELAYED:
        click.secho(f"✓ Reboot delayed, scheduled for {store.scheduled_time}", fg="green")
    else:
        click.secho("Countdown cancelled", fg="yellow")


@cli.command()
@click.argument("seconds", type=int)
@click.option("--delays", help="Comma-separated delay options in seconds")
@_file_options
def delay(
    seconds: int,
    delays: Optional[str],
    state_file: Optional[Path],
    history_file: Optional[Path],
    config_file: Optional[Path],
) -> None:
    """
    Defer the reboot by SECONDS (must be an allowed option).

    For use when no countdown is running; during `run`, type the delay
    into the countdown instead.
    """
    settings = _settings(
        delay_options=delays,
        config_path=config_file,
        state_path=state_file,
        history_path=history_file,
    )
    _, store, action_log = _open(settings)
    coordinator = RebootCoordinator(_countdown(settings), store, action_log)
    try:
        accepted = coordinator.request_delay(seconds)
    finally:
        store.close()
        action_log.close()

    if not accepted:
        click.secho(f"✗ Delay of {seconds}s not available", fg="red", err=True)
        raise SystemExit(1)
    if not coordinator.config_saved:
        click.secho(f"✗ Delay accepted but {store.path} could not be updated", fg="red", err=True)
        raise SystemExit(1)
    click.secho(f"✓ Reboot delayed until {store.scheduled_time}", fg="green")
    click.echo(f"  Delays left: {store.delay_counter}")


@cli.command("reboot-now")
@_file_options
def reboot_now(
    state_file: Optional[Path],
    history_file: Optional[Path],
    config_file: Optional[Path],
) -> None:
    """Request an immediate reboot."""
    settings = _settings(config_path=config_file, state_path=state_file, history_path=history_file)
    _, store, action_log = _open(settings)
    coordinator = RebootCoordinator(_countdown(settings), store, action_log)
    try:
        coordinator.reboot_now()
    finally:
        store.close()
        action_log.close()
    if not coordinator.config_saved:
        click.secho(f"✗ Reboot now flag could not be written to {store.path}", fg="red", err=True)
        raise SystemExit(1)
    click.secho("⚡ Reboot now flag set", fg="red", bold=True)


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@_file_options
def status(
    as_json: bool,
    state_file: Optional[Path],
    history_file: Optional[Path],
    config_file: Optional[Path],
) -> None:
    """Show the config document and the latest action."""
    settings = _settings(config_path=config_file, state_path=state_file, history_path=history_file)
    _, store, action_log = _open(settings)
    try:
        doc = store.snapshot()
    finally:
        store.close()
        action_log.close()
    snapshot = action_log.read_snapshot()

    if as_json:
        click.echo(json.dumps({
            "config": doc.to_dict(),
            "snapshot": snapshot.to_dict() if snapshot else None,
        }, indent=2, sort_keys=True))
        return

    click.echo(f"Config file:    {store.path}")
    click.echo(f"Mode:           {doc.reboot_config.value}")
    click.echo(f"Message:        {doc.custom_message}")
    click.echo(f"Delays left:    {doc.delay_counter}")
    click.echo(f"Reboot now:     {doc.reboot_now}")
    click.echo(f"Task scheduled: {doc.task_scheduled}")
    click.echo(f"Scheduled time: {doc.scheduled_time or '-'}")

    if doc.scheduled_time:
        try:
            scheduled = date_parser.parse(doc.scheduled_time)
        except (ValueError, OverflowError):
            click.secho("  (scheduled time unreadable)", fg="yellow")
        else:
            seconds = int((scheduled - datetime.now()).total_seconds())
            if seconds >= 0:
                click.echo(f"Time left:      {format_countdown(seconds)}")
            else:
                click.secho(f"OVERDUE:        {format_countdown(-seconds)}", fg="red", bold=True)

    click.echo("")
    if snapshot:
        click.echo(f"Last action:    {snapshot.action} at {snapshot.timestamp} "
                   f"({snapshot.remaining_seconds}s remaining)")
    else:
        click.echo("Last action:    -")


@cli.command()
@click.option("--limit", default=20, type=int, help="Number of entries to show")
@_file_options
def history(
    limit: int,
    state_file: Optional[Path],
    history_file: Optional[Path],
    config_file: Optional[Path],
) -> None:
    """Show the most recent history entries."""
    settings = _settings(config_path=config_file, state_path=state_file, history_path=history_file)
    resolved = settings.resolve_paths()
    action_log = ActionLog(resolved.state_file, resolved.history_file)
    try:
        entries = action_log.read_history(limit=limit)
    finally:
        action_log.close()

    if not entries:
        click.echo("No actions recorded.")
        return
    for entry in entries:
        click.echo(f"{entry.timestamp}  {entry.action:<16} {entry.remaining_seconds}s")


@cli.command()
def paths() -> None:
    """Show resolved file locations."""
    resolved = _settings().resolve_paths()
    click.echo(f"Config:   {resolved.config_file}")
    click.echo(f"State:    {resolved.state_file}")
    click.echo(f"History:  {resolved.history_file}")
    click.echo(f"Base dir: {resolved.base_dir}")


if __name__ == "__main__":
    cli()
