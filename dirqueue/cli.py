"""
Command-line entry point.

Usage:
    dirqueue run                       # start the queue coordinator
    dirqueue heartbeat                 # start the periodic trigger
    dirqueue enqueue "hello" --channel telegram --sender Alice
    dirqueue reset                     # next job starts a fresh conversation
    dirqueue recover                   # requeue jobs stuck in processing
    dirqueue status
"""
from __future__ import annotations

import asyncio
import functools
import logging
import signal
from datetime import timedelta
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from dirqueue.adapters.generator.cli import CliGenerator
from dirqueue.adapters.store.filesystem import DirectoryStore
from dirqueue.config import HOME_ENV_VAR, QueueLayout, load_settings
from dirqueue.core import codec
from dirqueue.core.coordinator import QueueCoordinator, RetryPolicy
from dirqueue.core.heartbeat import HeartbeatTrigger, prompt_from_file
from dirqueue.core.reset import ResetSignal
from dirqueue.domain.models import JobRecord, JobState
from dirqueue.log import configure_logging

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Filesystem job queue for a long-running text generator",
    add_completion=False,
)

HomeOption = typer.Option(
    None,
    "--home",
    envvar=HOME_ENV_VAR,
    help="Queue home directory (default: .dirqueue)",
)


def _store(layout: QueueLayout) -> DirectoryStore:
    return DirectoryStore(layout.queue_dir, layout.log_dir)


def _install_stop_handlers(callback) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, callback)


# ---------------------------------------------------------------------------
# Long-running processes
# ---------------------------------------------------------------------------


async def _serve(coordinator: QueueCoordinator, layout: QueueLayout) -> None:
    def _on_signal() -> None:
        logger.info("Shutting down queue processor...")
        coordinator.request_stop()

    _install_stop_handlers(_on_signal)
    async with coordinator:
        logger.info("Queue processor started")
        logger.info("Watching: %s", _store(layout).incoming)
        await coordinator.wait_stopped()


@app.command()
def run(
    home: Path | None = HomeOption,
    poll_interval: float = typer.Option(1.0, help="Seconds between poll cycles"),
    command: str = typer.Option(
        "claude", envvar="DIRQUEUE_GENERATOR", help="Generator executable"
    ),
    workdir: Path | None = typer.Option(
        None, help="Generator working directory (default: parent of --home)"
    ),
    timeout: float | None = typer.Option(
        None, help="Generator timeout in seconds (default: wait forever)"
    ),
    max_attempts: int | None = typer.Option(
        None, min=1, help="Failed attempts before a job is dead-lettered"
    ),
    recover: bool = typer.Option(
        True, help="Requeue jobs left in processing/ by a previous run"
    ),
) -> None:
    """Run the queue coordinator until SIGINT/SIGTERM."""
    layout = QueueLayout.from_env(home)
    configure_logging(layout.queue_log_file)
    coordinator = QueueCoordinator(
        store=_store(layout),
        generator=CliGenerator(
            command=(command,),
            workdir=workdir or layout.home.resolve().parent,
            timeout=timeout,
        ),
        reset_signal=ResetSignal(layout.reset_flag),
        settings=functools.partial(load_settings, layout.settings_file),
        poll_interval=timedelta(seconds=poll_interval),
        retry=RetryPolicy(max_attempts=max_attempts),
        recover_on_start=recover,
    )
    asyncio.run(_serve(coordinator, layout))


async def _beat(trigger: HeartbeatTrigger) -> None:
    stop = asyncio.Event()

    def _on_signal() -> None:
        logger.info("Shutting down heartbeat...")
        stop.set()

    _install_stop_handlers(_on_signal)
    await trigger.store.ensure_layout()
    async with trigger:
        await stop.wait()


@app.command()
def heartbeat(
    home: Path | None = HomeOption,
    interval: int | None = typer.Option(
        None, min=1, help="Seconds between heartbeats (default: settings.json)"
    ),
    response_wait: float = typer.Option(
        10.0, help="Seconds to wait before collecting the reply; 0 disables"
    ),
) -> None:
    """Periodically enqueue a heartbeat job."""
    layout = QueueLayout.from_env(home)
    configure_logging(layout.heartbeat_log_file)
    seconds = interval or load_settings(layout.settings_file).monitoring.heartbeat_interval
    trigger = HeartbeatTrigger(
        store=_store(layout),
        interval=timedelta(seconds=seconds),
        prompt=prompt_from_file(layout.heartbeat_prompt_file),
        response_wait=timedelta(seconds=response_wait) if response_wait > 0 else None,
    )
    asyncio.run(_beat(trigger))


# ---------------------------------------------------------------------------
# One-shot commands
# ---------------------------------------------------------------------------


@app.command()
def enqueue(
    message: str = typer.Argument(..., help="Message text (the prompt)"),
    channel: str = typer.Option("cli", help="Origin channel name"),
    sender: str = typer.Option("cli", help="Sender display name"),
    sender_id: str | None = typer.Option(None, help="Sender identifier"),
    home: Path | None = HomeOption,
) -> None:
    """Write a job into the queue, as a channel adapter would."""
    layout = QueueLayout.from_env(home)
    job = JobRecord.new(channel, sender, message, sender_id=sender_id)
    store = _store(layout)

    async def _write() -> None:
        await store.ensure_layout()
        await store.enqueue(job.file_name(), codec.encode_job(job))

    asyncio.run(_write())
    typer.echo(job.message_id)


@app.command()
def reset(home: Path | None = HomeOption) -> None:
    """Make the next processed job start a fresh conversation."""
    layout = QueueLayout.from_env(home)
    ResetSignal(layout.reset_flag).request()
    typer.echo("Conversation reset requested")


@app.command()
def recover(home: Path | None = HomeOption) -> None:
    """Move every job stuck in processing/ back to incoming/."""
    layout = QueueLayout.from_env(home)
    store = _store(layout)

    async def _recover() -> list[str]:
        await store.ensure_layout()
        return await store.recover_in_flight()

    moved = asyncio.run(_recover())
    for name in moved:
        typer.echo(f"requeued {name}")
    typer.echo(f"{len(moved)} job(s) recovered")


@app.command()
def status(home: Path | None = HomeOption) -> None:
    """Show queue depth per state and the active settings."""
    layout = QueueLayout.from_env(home)
    counts = asyncio.run(_store(layout).counts())
    settings = load_settings(layout.settings_file)

    table = Table(title=f"dirqueue: {layout.home}")
    table.add_column("State", style="cyan")
    table.add_column("Jobs", justify="right")
    for state in JobState:
        table.add_row(state.value, str(counts[state]))

    console = Console()
    console.print(table)
    console.print(f"Enabled channels: {', '.join(settings.channels.enabled) or '-'}")
    console.print(f"Model: {settings.model_id() or 'default'}")
    reset_pending = ResetSignal(layout.reset_flag).is_requested()
    console.print(f"Reset requested: {'yes' if reset_pending else 'no'}")


if __name__ == "__main__":
    app()
