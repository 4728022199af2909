"""CLI for taffy - the scheduling assistant.

Usage:
    taffy init                  # Create state directory, show setup instructions
    taffy status                # Show configuration and session status
    taffy chat                  # Chat with Taffy (/signin, /signout, /status, /quit)
    taffy callback <url>        # Process a Google sign-in redirect URL
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import webbrowser
from typing import assert_never


def cmd_init() -> int:
    """Initialize the state directory."""
    from taffy.config import ENV_FILE, REPO_ROOT, SESSION_FILE, ensure_state_dir

    print("=" * 60)
    print("TAFFY SETUP")
    print("=" * 60)
    print()
    print(f"Repository: {REPO_ROOT}")
    print()

    state_dir = ensure_state_dir()
    print(f"Created: {state_dir}/")
    print()

    print("Configuration:")
    print()
    print(f"  {ENV_FILE}")
    print("    GOOGLE_API_KEY      Gemini + Calendar API key")
    print("    GOOGLE_CLIENT_ID    OAuth client ID (web application)")
    print("    TAFFY_REDIRECT_URI  Redirect URI registered for the client")
    print("    TAFFY_TIME_ZONE     IANA time zone for scheduled events")
    print()
    print(f"  {SESSION_FILE}")
    print("    Session store (created by 'taffy callback' and 'taffy chat')")
    print()
    return 0


def cmd_status() -> int:
    """Show configuration and session status."""
    from taffy.config import SESSION_FILE, get_config_status
    from taffy.session import ERROR_KEY, SessionStorage, load_stored_token

    status = get_config_status()
    storage = SessionStorage(SESSION_FILE)

    print("=" * 60)
    print("TAFFY STATUS")
    print("=" * 60)
    print()
    print(f"Repository: {status['repo_root']}")
    print()

    print("Google:")
    print(f"  API key:      {'[x]' if status['google']['api_key'] else '[ ]'}")
    print(f"  Client ID:    {'[x]' if status['google']['client_id'] else '[ ]'}")
    print(f"  Redirect URI: {status['google']['redirect_uri']}")
    print()

    token = load_stored_token(storage)
    print("Session:")
    print(f"  Stored token:  {'[x] valid' if token else '[ ] none or expired'}")
    print(f"  Pending error: {storage.get_item(ERROR_KEY) or '-'}")
    print()
    print(f"Time zone: {status['time_zone']}")
    print(f"Model:     {status['model']}")
    return 0


def cmd_callback(url: str) -> int:
    """Process a redirect URL from Google sign-in."""
    from taffy.config import SESSION_FILE
    from taffy.session import OAuthCallbackHandler, SessionStorage

    print("Processing Google Sign-In...")
    handler = OAuthCallbackHandler(
        SessionStorage(SESSION_FILE),
        navigate=lambda path: print(f"Redirecting to {path}"),
    )
    handler.handle(url)
    return 0


def _render(message) -> str:
    from taffy.chat import Sender

    match message.sender:
        case Sender.USER:
            prefix = "you"
        case Sender.ASSISTANT:
            prefix = "taffy"
        case Sender.SYSTEM:
            prefix = "system"
        case _:
            assert_never(message.sender)
    return f"{prefix}> {message.text}"


async def _chat(no_browser: bool) -> int:
    from taffy import config
    from taffy.chat import ChatAssistant
    from taffy.llm import Responder
    from taffy.session import SessionManager, SessionStorage

    async def consent_prompt(url: str) -> str | None:
        print(f"\nAuthorization URL:\n{url}\n")
        if not no_browser:
            webbrowser.open(url)
        redirect_url = await asyncio.to_thread(input, "Paste redirect URL (blank to cancel): ")
        return redirect_url.strip() or None

    storage = SessionStorage(config.SESSION_FILE)
    responder = Responder()

    async with SessionManager(
        consent_prompt=consent_prompt,
        api_key=config.get_api_key(),
        client_id=config.get_client_id(),
        redirect_uri=config.get_redirect_uri(),
        storage=storage,
    ) as session:
        assistant = ChatAssistant(session, storage, responder, time_zone=config.get_time_zone())
        for message in assistant.refresh():
            print(_render(message))

        while True:
            try:
                line = (await asyncio.to_thread(input, "you> ")).strip()
            except EOFError:
                break

            if line == "/quit":
                break
            elif line == "/signin":
                await session.sign_in()
                if session.is_signed_in:
                    print("Signed in to Google Calendar.")
            elif line == "/signout":
                await session.sign_out()
                print("Signed out.")
            elif line == "/status":
                print(f"Load status: {session.status.value}, signed in: {assistant.is_signed_in}")
            elif line:
                reply = await assistant.send(line)
                if reply is not None:
                    print(_render(reply))

            for message in assistant.refresh():
                print(_render(message))

    await responder.close()
    return 0


def cmd_chat(no_browser: bool = False) -> int:
    """Run the interactive chat."""
    try:
        return asyncio.run(_chat(no_browser))
    except KeyboardInterrupt:
        print()
        return 130


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="taffy",
        description="Chat-based scheduling assistant for Google Calendar",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("init", help="Initialize state directory")
    subparsers.add_parser("status", help="Show configuration and session status")

    chat_parser = subparsers.add_parser("chat", help="Chat with Taffy")
    chat_parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open browser automatically on sign-in",
    )

    callback_parser = subparsers.add_parser("callback", help="Process a sign-in redirect URL")
    callback_parser.add_argument("url", help="Full redirect URL, including the #fragment")

    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "init":
        return cmd_init()

    if args.command == "status":
        return cmd_status()

    if args.command == "chat":
        return cmd_chat(args.no_browser)

    if args.command == "callback":
        return cmd_callback(args.url)

    return 0


if __name__ == "__main__":
    sys.exit(main())
