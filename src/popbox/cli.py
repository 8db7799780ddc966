"""Command-line interface for popbox."""

import asyncio
import sys
from collections.abc import Coroutine
from typing import Any, TypeVar

import click
import structlog

from popbox.config import Settings, get_settings
from popbox.core import configure_logging, format_size
from popbox.exceptions import ConfigurationError, PopboxError
from popbox.session import POP3Session, connect
from popbox.transport import MaildirWriter

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
@click.option("--json-logs/--no-json-logs", default=False, help="JSON log format")
@click.pass_context
def main(ctx: click.Context, debug: bool, json_logs: bool) -> None:
    """popbox - fetch and drain a POP3 mailbox over TLS."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["json_logs"] = json_logs
    configure_logging(json_format=json_logs, debug=debug)


def _load_settings(ctx: click.Context) -> Settings:
    try:
        settings = get_settings()
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    # environment settings can only turn on what the flags left off
    json_logs = ctx.obj["json_logs"] or settings.log_format == "json"
    debug = ctx.obj["debug"] or settings.debug
    if (json_logs, debug) != (ctx.obj["json_logs"], ctx.obj["debug"]):
        configure_logging(json_format=json_logs, debug=debug)
    return settings


async def _open_session(settings: Settings) -> POP3Session:
    session = await connect(settings.host, settings.port, timeout=settings.connect_timeout)
    try:
        await session.login(settings.user, settings.password.get_secret_value())
    except PopboxError:
        await session.quit()
        raise
    return session


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning library errors into exit status 1."""
    try:
        return asyncio.run(coro)
    except PopboxError as e:
        logger.error("popbox_failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.pass_context
def stat(ctx: click.Context) -> None:
    """Show the message count and mailbox size."""
    settings = _load_settings(ctx)

    async def run() -> str:
        async with await _open_session(settings) as session:
            result = await session.stat()
        return f"{result.count} messages ({format_size(result.octets)})"

    click.echo(_run(run()))


@main.command(name="list")
@click.pass_context
def list_messages(ctx: click.Context) -> None:
    """List message numbers and sizes."""
    settings = _load_settings(ctx)

    async def run() -> dict[int, int]:
        async with await _open_session(settings) as session:
            listing = await session.list()
        return listing.messages

    messages = _run(run())
    for msg, size in messages.items():
        click.echo(f"{msg} {size}")


@main.command()
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Stop after N messages")
@click.option(
    "--maildir",
    type=click.Path(file_okay=False),
    default=None,
    help="Store drained messages in this Maildir",
)
@click.pass_context
def drain(ctx: click.Context, limit: int | None, maildir: str | None) -> None:
    """Retrieve and delete every message in the mailbox."""
    settings = _load_settings(ctx)
    limit = limit or settings.drain_limit
    maildir = maildir or settings.maildir_path
    writer = MaildirWriter(maildir) if maildir else None

    async def run() -> tuple[int, int | None]:
        if writer:
            await writer.ensure_directories()
        count = 0
        async with await _open_session(settings) as session:
            async for message in session.drain(limit=limit):
                if writer:
                    await writer.save(message)
                count += 1
        waiting = await writer.count_new() if writer else None
        return count, waiting

    count, waiting = _run(run())
    click.echo(f"Drained {count} messages.")
    if waiting is not None:
        click.echo(f"{waiting} messages in {writer.new_dir}")


if __name__ == "__main__":
    main()
