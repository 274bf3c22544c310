"""Terminal client for the chat backend's streaming endpoints."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from pydantic import AnyHttpUrl, ValidationError
from rich.console import Console
from rich.style import Style

from .auth import TokenStore
from .config import Settings, get_settings
from .errors import ChatClientError
from .logging_config import configure_logging
from .messages import MessagesApi
from .request_builder import ImageFile

ASSISTANT_STYLE = Style(color="bright_green")
ERROR_STYLE = Style(color="red", bold=True)
INFO_STYLE = Style(color="cyan")


class ConsoleSink:
    """Render streamed fragments to a rich console."""

    def __init__(self, console: Console):
        self.console = console
        self.failed = False
        self.received = 0

    def on_chunk(self, text: str) -> None:
        self.received += len(text)
        self.console.print(
            text, end="", style=ASSISTANT_STYLE, markup=False, highlight=False
        )

    def on_complete(self) -> None:
        self.console.print()

    def on_error(self, error: BaseException) -> None:
        self.failed = True
        if self.received:
            self.console.print()
        self.console.print(f"Error: {error}", style=ERROR_STYLE, markup=False)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chat-client",
        description="Send chat turns to the backend and stream the reply.",
    )
    parser.add_argument("--server", help="Backend base URL (overrides CHAT_API_BASE_URL)")
    parser.add_argument("--log-level", help="Logging level (default: WARNING)")
    sub = parser.add_subparsers(dest="command", required=True)

    send = sub.add_parser("send", help="Send a message and stream the reply")
    send.add_argument("session_id")
    send.add_argument("content")
    send.add_argument("--image", type=Path, help="Attach an image to the message")
    send.add_argument("--image-path", help="Reference a previously uploaded image")

    upload = sub.add_parser("upload", help="Upload an image to a session")
    upload.add_argument("session_id")
    upload.add_argument("path", type=Path)

    sub.add_parser("health", help="Check connectivity to the backend")

    login = sub.add_parser("login", help="Store a bearer token")
    login.add_argument("token")
    sub.add_parser("logout", help="Forget the stored bearer token")
    return parser


def _resolve_settings(server: Optional[str]) -> Settings:
    settings = get_settings()
    if server:
        settings = settings.model_copy(update={"api_base_url": AnyHttpUrl(server)})
    return settings


async def _run(args: argparse.Namespace, console: Console) -> int:
    try:
        settings = _resolve_settings(args.server)
    except ValidationError as exc:
        console.print(
            f"Invalid server URL {args.server!r}: {exc.errors()[0]['msg']}",
            style=ERROR_STYLE,
            markup=False,
        )
        return 1
    store = TokenStore(settings.token_path)

    if args.command == "login":
        store.login(args.token)
        console.print(f"Token saved to {store.path}", style=INFO_STYLE)
        return 0
    if args.command == "logout":
        store.logout()
        console.print("Token removed", style=INFO_STYLE)
        return 0

    image: Optional[ImageFile] = None
    if args.command == "send" and args.image:
        try:
            image = ImageFile.from_path(args.image)
        except OSError as exc:
            console.print(f"Cannot read image: {exc}", style=ERROR_STYLE, markup=False)
            return 1

    async with MessagesApi(settings, store) as api:
        if args.command == "health":
            report = await api.check_connection()
            style = INFO_STYLE if report.success else ERROR_STYLE
            console.print(report.message, style=style, markup=False)
            console.print_json(json.dumps(report.details, default=str))
            return 0 if report.success else 1

        if args.command == "upload":
            try:
                path = await api.upload_image(args.session_id, ImageFile.from_path(args.path))
            except (ChatClientError, OSError) as exc:
                console.print(f"Upload failed: {exc}", style=ERROR_STYLE, markup=False)
                return 1
            console.print(path, markup=False)
            return 0

        sink = ConsoleSink(console)
        if image is not None:
            await api.create_message_with_image(args.session_id, args.content, image, sink)
        else:
            await api.create_message_stream(
                args.session_id, args.content, sink, image_path=args.image_path
            )
        return 1 if sink.failed else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level or os.getenv("LOG_LEVEL", "WARNING"))
    console = Console()
    try:
        return asyncio.run(_run(args, console))
    except KeyboardInterrupt:
        console.print("\nCancelled", style=INFO_STYLE)
        return 130


if __name__ == "__main__":  # pragma: no cover - manual invocation
    sys.exit(main())
