# lms_chat/client/cli.py
import asyncio
import logging
from typing import Optional
from uuid import UUID

import jwt
import typer

from .api_client import ChatApiClient
from .chat_panel import ChatPanel
from .realtime import RealtimeSubscriber
from .render import render_chat_list, render_transcript
from ..core.logging import setup_logging

app = typer.Typer(help="Terminal client for course chat")

BASE_URL = typer.Option("http://localhost:8000", "--base-url", envvar="LMS_CHAT_URL", help="API base URL")
TOKEN = typer.Option(..., "--token", envvar="LMS_CHAT_TOKEN", help="Auth token from login")


def _identity(token: str):
    """User id and role from the token; the server verifies the signature"""
    claims = jwt.decode(token, options={"verify_signature": False})
    return UUID(claims["userId"]), claims.get("role", "student")


def _panel(base_url: str, token: str) -> ChatPanel:
    user_id, role = _identity(token)
    return ChatPanel(ChatApiClient(base_url, token), user_id, role)


@app.command()
def chats(base_url: str = BASE_URL, token: str = TOKEN):
    """List chats with unread badges"""
    async def _run():
        panel = _panel(base_url, token)
        try:
            await panel.open()
            typer.echo(render_chat_list(panel))
            if panel.total_unread:
                typer.echo(f"\n{panel.total_unread} unread")
        finally:
            await panel.api.close()

    asyncio.run(_run())


@app.command("open")
def open_chat(chat_id: UUID, base_url: str = BASE_URL, token: str = TOKEN, limit: int = 20):
    """Show a chat transcript (marks received messages read)"""
    async def _run():
        panel = _panel(base_url, token)
        try:
            await panel.open()
            if not await panel.select(chat_id):
                raise typer.Exit(code=1)
            typer.echo(render_transcript(panel, limit))
        finally:
            await panel.api.close()

    asyncio.run(_run())


@app.command()
def send(chat_id: UUID, text: str, base_url: str = BASE_URL, token: str = TOKEN):
    """Send a message in an existing chat"""
    async def _run():
        panel = _panel(base_url, token)
        try:
            await panel.open()
            if not panel.can_send(text):
                typer.echo("Message is empty", err=True)
                raise typer.Exit(code=1)
            if not await panel.select(chat_id) or await panel.send(text) is None:
                raise typer.Exit(code=1)
            typer.echo(render_transcript(panel))
        finally:
            await panel.api.close()

    asyncio.run(_run())


@app.command()
def start(course_id: UUID, base_url: str = BASE_URL, token: str = TOKEN):
    """Start a chat with the instructor of a course"""
    async def _run():
        panel = _panel(base_url, token)
        try:
            await panel.open()
            if not panel.can_start_chat(course_id):
                typer.echo("A chat for this course already exists, or you are not a student", err=True)
                raise typer.Exit(code=1)
            if await panel.start_chat(course_id) is None:
                raise typer.Exit(code=1)
            typer.echo(render_transcript(panel))
        finally:
            await panel.api.close()

    asyncio.run(_run())


@app.command()
def watch(
    chat_id: Optional[UUID] = typer.Argument(None),
    base_url: str = BASE_URL,
    token: str = TOKEN,
    ws_url: Optional[str] = typer.Option(None, "--ws-url", envvar="LMS_CHAT_WS_URL")
):
    """Stay connected and print messages as they arrive"""
    async def _run():
        panel = _panel(base_url, token)

        async def on_message(message):
            await panel.handle_push(message)
            if message.chat_id == panel.active_chat_id:
                typer.echo(render_transcript(panel, limit=1).splitlines()[-1])
            else:
                typer.echo(f"New message from {message.sender.name} ({panel.total_unread} unread)")

        subscriber = RealtimeSubscriber(
            ws_url or base_url.replace("http", "ws", 1) + "/ws/chat",
            panel.user_id,
            token,
            on_message=on_message,
            on_reconnect=panel.open
        )
        try:
            await panel.open()
            if chat_id:
                await panel.select(chat_id)
                typer.echo(render_transcript(panel))
            await subscriber.run()
        finally:
            await panel.api.close()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        pass


def main():
    setup_logging("warning")
    app()


if __name__ == "__main__":
    main()
