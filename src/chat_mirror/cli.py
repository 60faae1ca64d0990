"""CLI entry point for chat-mirror."""

import logging

import click
import uvicorn

from .config import load_settings
from .errors import ConfigError, FetchError
from .source import SqliteMessageSource


@click.group()
def main():
    """Mirror a WhatsApp bot conversation in the browser."""
    pass


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging verbosity.",
)
def serve(port: int, host: str, log_level: str):
    """Start the web interface."""
    try:
        load_settings()
    except ConfigError as e:
        raise click.ClickException(str(e))

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    click.echo(f"Starting chat-mirror on http://{host}:{port}")
    uvicorn.run("chat_mirror.server:app", host=host, port=port, reload=False, log_level=log_level)


@main.command()
def check():
    """Validate configuration and count stored messages."""
    try:
        settings = load_settings()
    except ConfigError as e:
        raise click.ClickException(str(e))

    source = SqliteMessageSource(settings.database_path)
    try:
        count = source.count_messages()
    except FetchError as e:
        raise click.ClickException(f"Cannot read messages: {e}")

    click.echo(f"Database: {settings.database_path} ({count} messages)")
    click.echo(f"Webhook:  {settings.callback_url}")
