#!/usr/bin/env python3
"""
JetStream File Transfer CLI

Command-line interface for moving files through NATS JetStream.

Usage:
    jsxfer put FILE              # Upload a file into a new stream
    jsxfer get NAME              # Download a stream into ./NAME
    jsxfer -s nats://host:4222 --creds user.creds put FILE
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn
from rich.panel import Panel
from rich.logging import RichHandler
from rich.markup import escape

from .broker import connect
from .config import load_config, parse_servers
from .errors import TransferError
from .file import canonical_name
from .transfer import FileUploader, FileDownloader, TransferSession
from .utils import format_size, format_duration

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(level: str = 'INFO'):
    """Configure logging with rich output."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)]
    )


def _run(ctx: click.Context, coro):
    """Run a transfer coroutine, exiting 1 on any transfer error."""
    try:
        asyncio.run(coro)
    except TransferError as e:
        logger.debug("Transfer failed", exc_info=True)
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        ctx.exit(1)


@click.group(invoke_without_command=True,
             context_settings=dict(help_option_names=['-h', '--help'],
                                   token_normalize_func=str.lower))
@click.option('-s', '--server', 'servers', default=None,
              help='The NATS server URLs (separated by comma)')
@click.option('--creds', type=click.Path(dir_okay=False), default=None,
              help='User credentials file')
@click.option('-c', '--config', 'config_path', type=click.Path(dir_okay=False),
              default=None, help='JSON config file')
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.pass_context
def cli(ctx, servers, creds, config_path, verbose):
    """Transfer a file through a NATS JetStream stream."""
    if ctx.invoked_subcommand is None:
        raise click.UsageError("Missing command.", ctx=ctx)

    config = load_config(Path(config_path) if config_path else None)
    if servers:
        config.servers = parse_servers(servers)
    if creds:
        config.creds = Path(creds)
    if verbose:
        config.log_level = 'DEBUG'

    setup_logging(config.log_level)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command()
@click.argument('file_path', type=click.Path(dir_okay=False))
@click.option('--replicas', type=int, default=None, help='Stream replication factor')
@click.pass_context
def put(ctx, file_path, replicas):
    """Upload FILE into a new stream named after it."""
    config = ctx.obj['config']
    if replicas is not None:
        config.replicas = replicas
    _validate(config)

    try:
        file_size: Optional[int] = Path(file_path).stat().st_size
    except OSError:
        file_size = None

    async def run():
        broker = await connect(config)
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                console=console,
            ) as progress:
                task = progress.add_task("Uploading...", total=file_size or None)

                def update_progress(session: TransferSession):
                    progress.update(task, completed=session.bytes_transferred)

                session = await FileUploader(broker, config).upload(file_path, update_progress)
                progress.update(task, description="Done!")
        finally:
            await broker.close()

        _show_result("File Uploaded", session)

    _run(ctx, run())


@cli.command()
@click.argument('name')
@click.option('--output-dir', '-o', type=click.Path(file_okay=False), default=None,
              help='Directory to write the file into')
@click.pass_context
def get(ctx, name, output_dir):
    """Download stream NAME into a local file of the same name."""
    config = ctx.obj['config']
    if output_dir:
        config.output_dir = Path(output_dir)
    _validate(config)

    async def run():
        broker = await connect(config)
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                console=console,
            ) as progress:
                task = progress.add_task("Finding stream...", total=None)

                def update_progress(session: TransferSession):
                    progress.update(
                        task,
                        total=session.last_sequence,
                        completed=session.expected_sequence - 1,
                        description=f"Downloading... ({session.expected_sequence - 1}"
                                    f"/{session.last_sequence} chunks)"
                    )

                session = await FileDownloader(broker, config).download(name, update_progress)
                progress.update(task, description="Done!")
        finally:
            await broker.close()

        _show_result("File Downloaded", session)
        console.print(f"[green]✓ Saved to: {Path(config.output_dir) / canonical_name(name)}[/green]")

    _run(ctx, run())


def _validate(config):
    try:
        config.validate()
    except ValueError as e:
        raise click.UsageError(str(e))


def _show_result(title: str, session: TransferSession):
    console.print(Panel.fit(
        f"[bold green]{title}[/bold green]\n\n"
        f"Stream: [cyan]{session.name}[/cyan]\n"
        f"Size: [yellow]{format_size(session.bytes_transferred)}[/yellow]\n"
        f"Chunks: [yellow]{session.chunks}[/yellow]\n"
        f"Time: [yellow]{format_duration(session.elapsed_seconds)}[/yellow]",
        title=session.name
    ))


def main():
    """Console entry point; malformed invocations exit with status 1."""
    try:
        rv = cli.main(prog_name='jsxfer', standalone_mode=False)
    except click.UsageError as e:
        e.show()
        sys.exit(1)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        console.print("[yellow]Aborted[/yellow]")
        sys.exit(1)
    sys.exit(rv if isinstance(rv, int) else 0)


if __name__ == '__main__':
    main()
