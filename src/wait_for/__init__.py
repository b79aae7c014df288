"""CLI entry point for wait-for."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

import click
from dotenv import load_dotenv

from .__about__ import __version__
from .config import WaitConfig
from .durations import format_duration
from .errors import SpecError
from .events import Event, Status, WaitOutcome
from .orchestrator import await_all
from .spec import EndpointSpec, parse_duration, parse_specs
from .status import StatusBoard

logger = logging.getLogger("wait-for")

_LAUNCH_KEY = "wait_for.launch"


class DurationParamType(click.ParamType):
    name = "duration"

    def convert(self, value, param, ctx):  # type: ignore[override]
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return parse_duration(value)
        except SpecError as exc:
            self.fail(str(exc), param, ctx)


DURATION = DurationParamType()


class _LaunchCommand(click.Command):
    """Command that keeps everything after ``--`` as the program to launch."""

    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        if "--" in args:
            index = args.index("--")
            ctx.meta[_LAUNCH_KEY] = args[index + 1 :]
            args = args[:index]
        return super().parse_args(ctx, args)


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")


def _load_env_file(env_file: Optional[str]) -> None:
    if env_file:
        path = Path(env_file)
        if path.exists():
            load_dotenv(path)
            return
        raise click.BadParameter(f"Environment file not found: {env_file}")
    default = Path.cwd() / ".env"
    if default.exists():
        load_dotenv(default)


def _not_ready(board: StatusBoard) -> List[str]:
    return [state["target"] for state in board.snapshot()["pollers"] if not state["ready"]]


async def _report_status(board: StatusBoard, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        pending = _not_ready(board)
        if pending:
            click.echo(f"waiting for: {', '.join(pending)}")


async def _wait(specs: Sequence[EndpointSpec], config: WaitConfig, board: StatusBoard) -> WaitOutcome:
    def _on_event(event: Event) -> None:
        board.record(event)
        if not config.quiet and event.status is Status.READY:
            click.echo(f"ready: {event.target} after {format_duration(event.elapsed)}")

    reporter: Optional[asyncio.Task[None]] = None
    if not config.quiet and config.status_interval > 0:
        reporter = asyncio.create_task(_report_status(board, config.status_interval))
    try:
        return await await_all(specs, config.timeout, on_event=_on_event)
    finally:
        if reporter is not None:
            reporter.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reporter


def _describe_failure(outcome: WaitOutcome) -> str:
    if outcome.culprit is not None:
        return f"{outcome.culprit.target}: {outcome.error}"
    return str(outcome.error)


def _launch(command: Sequence[str]) -> int:
    logger.info("Launching command", extra={"command": list(command)})
    try:
        completed = subprocess.run(list(command), check=False)
    except OSError as exc:
        click.echo(f"ERROR: cannot launch {command[0]}: {exc}")
        return 127
    return completed.returncode


@click.command(
    cls=_LaunchCommand,
    context_settings={"help_option_names": ["-h", "--help"]},
    options_metavar="[OPTIONS]",
)
@click.argument("addresses", nargs=-1, metavar="ADDRESS... [-- COMMAND [ARG]...]")
@click.option("-t", "--timeout", type=DURATION, default=None, help="Set wait timeout  [default: 5s]")
@click.option("-f", "--poll-freq", type=DURATION, default=None, help="Set connection poll frequency  [default: 500ms]")
@click.option("-s", "--status-freq", type=DURATION, default=None, help="Set status message frequency  [default: 1s]")
@click.option("-q", "--quiet/--no-quiet", default=None, help="Suppress waiting messages")
@click.option("-v", "--verbose", count=True, help="Increase logging verbosity")
@click.option("--env-file", type=str, help="Path to a .env file with wait-for settings")
@click.version_option(__version__, prog_name="wait-for")
@click.pass_context
def cli(
    ctx: click.Context,
    addresses: Sequence[str],
    timeout: Optional[float],
    poll_freq: Optional[float],
    status_freq: Optional[float],
    quiet: Optional[bool],
    verbose: int,
    env_file: Optional[str],
) -> None:
    """Launch a process when TCP server(s) are ready.

    Each ADDRESS is [scheme://]host[:port][#poll-freq], e.g. localhost:5432,
    http://example.com or redis:6379#2s.
    """

    _configure_logging(verbose)
    _load_env_file(env_file)
    if not addresses:
        raise click.UsageError("at least one address must be specified", ctx=ctx)

    try:
        config = WaitConfig.from_env().override(
            timeout=timeout,
            poll_interval=poll_freq,
            status_interval=status_freq,
            quiet=quiet,
        )
        specs = parse_specs(addresses, config.poll_interval)
    except SpecError as exc:
        click.echo(f"ERROR: {exc}")
        ctx.exit(1)

    board = StatusBoard()
    outcome = asyncio.run(_wait(specs, config, board))
    if not outcome.ok:
        if not config.quiet:
            pending = _not_ready(board)
            if pending:
                click.echo(f"not ready: {', '.join(pending)}")
            click.echo(f"ERROR: {_describe_failure(outcome)}")
        ctx.exit(1)
    if not config.quiet:
        click.echo(f"OK: all ready after {format_duration(outcome.elapsed)}")

    command = ctx.meta.get(_LAUNCH_KEY)
    if command:
        ctx.exit(_launch(command))


__all__ = ["cli", "__version__"]
