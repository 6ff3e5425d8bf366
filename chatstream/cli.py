"""
Command-line interface for chatstream.

Lists the proxy's models and chats with one of them, rendering replies as
they stream in.
"""

import asyncio
import functools
import logging
import sys
from typing import Callable, Optional

import click
from click.core import ParameterSource

from . import __version__
from .client import AsyncChatClient
from .config import Settings
from .exceptions import ChatStreamError
from .session import ChatSession, open_chat
from .types import AccessDenied, StreamOutcome, Turn


def _echo_fragment(turn: Turn, text: str) -> None:
    click.echo(text, nl=False)


def _echo_notice(message: str) -> None:
    click.echo(f"\n{message}", err=True)


def with_session(f: Callable) -> Callable:
    """Decorator to run an async command with a ChatSession and handle errors/cleanup."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()
        try:
            settings = Settings.from_env()
            if ctx.obj.get("dev") is not None:
                environment = "development" if ctx.obj["dev"] else "production"
                settings = settings.model_copy(update={"environment": environment})
            client = AsyncChatClient(
                base_url=ctx.obj.get("base_url"),
                settings=settings,
                timeout=ctx.obj.get("timeout"),
            )
        except ChatStreamError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

        chat = open_chat(
            client,
            credential=ctx.obj.get("api_key"),
            user_id=ctx.obj.get("user_id"),
            user_role=ctx.obj.get("user_role"),
            notifier=_echo_notice,
            on_fragment=_echo_fragment,
        )

        async def run():
            try:
                if isinstance(chat, AccessDenied):
                    click.echo(chat.render())
                    return None
                return await f(*args, session=chat, **kwargs)
            finally:
                await client.close()

        try:
            return asyncio.run(run())
        except ChatStreamError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option("--base-url", envvar="CHATSTREAM_BASE_URL", help="Proxy URL (e.g., http://localhost:4000)")
@click.option("--dev/--no-dev", default=False, help="Use the local development proxy")
@click.option("--api-key", envvar="CHATSTREAM_API_KEY", help="Proxy key used as bearer credential")
@click.option("--user-id", envvar="CHATSTREAM_USER_ID", help="User ID sent to the model catalog")
@click.option("--user-role", envvar="CHATSTREAM_USER_ROLE", help="User role (restricted viewers are denied)")
@click.option("--timeout", type=float, help="Request timeout in seconds")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(
    ctx: click.Context,
    base_url: Optional[str],
    dev: bool,
    api_key: Optional[str],
    user_id: Optional[str],
    user_role: Optional[str],
    timeout: Optional[float],
    verbose: bool,
) -> None:
    """chatstream - chat with models served by an OpenAI-compatible proxy."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    ctx.ensure_object(dict)
    ctx.obj["base_url"] = base_url
    if ctx.get_parameter_source("dev") is not ParameterSource.COMMANDLINE:
        dev = None
    ctx.obj["dev"] = dev
    ctx.obj["api_key"] = api_key
    ctx.obj["user_id"] = user_id
    ctx.obj["user_role"] = user_role
    ctx.obj["timeout"] = timeout


@main.group(name="models")
def models_group() -> None:
    """Model catalog commands."""
    pass


@models_group.command(name="list")
@click.pass_context
@with_session
async def list_models(ctx: click.Context, session: ChatSession) -> None:
    """List available models."""
    models = await session.refresh_models()
    if not models:
        click.echo("No models available")
        return

    click.echo("Available Models:")
    click.echo("=" * 50)
    for model_id in models:
        marker = "*" if model_id == session.selected_model else " "
        click.echo(f"{marker} {model_id}")


async def _send(session: ChatSession, prompt: str) -> Optional[StreamOutcome]:
    click.echo("Assistant: ", nl=False)
    outcome = await session.send(prompt)
    click.echo()
    return outcome


async def _interactive(session: ChatSession) -> None:
    click.echo(f"Chatting with {session.selected_model} (/models, /model <id>, /quit)")
    while True:
        try:
            line = click.prompt("You", default="", show_default=False)
        except click.Abort:
            break

        command = line.strip()
        if command in ("/quit", "/exit"):
            break
        if command == "/models":
            for model_id in session.models:
                click.echo(f"  {model_id}")
            continue
        parts = command.split()
        if parts and parts[0] == "/model":
            if len(parts) != 2:
                click.echo("Usage: /model <id>")
                continue
            session.select_model(parts[1])
            click.echo(f"Using model {session.selected_model}")
            continue
        if not session.can_send(line):
            continue
        await _send(session, line)


@main.command()
@click.argument("prompt", required=False)
@click.option("-m", "--model", help="Model to use (default: first model in the catalog)")
@click.pass_context
@with_session
async def chat(
    ctx: click.Context,
    session: ChatSession,
    prompt: Optional[str],
    model: Optional[str],
) -> None:
    """Chat with a model. Starts an interactive session when PROMPT is omitted."""
    if not session.credential:
        raise click.UsageError("An API key is required (--api-key or CHATSTREAM_API_KEY)")
    if not session.user_id:
        raise click.UsageError("A user ID is required (--user-id or CHATSTREAM_USER_ID)")

    await session.refresh_models()
    if model:
        session.select_model(model)
    if not session.selected_model:
        raise click.UsageError("No model selected and the catalog returned none")

    if prompt is None:
        await _interactive(session)
        return

    outcome = await _send(session, prompt)
    if outcome is not None and not outcome.ok:
        ctx.exit(1)


if __name__ == "__main__":
    main()
