"""CLI entry point and argument parsing"""

import asyncio
import sys
import argparse
from rich.console import Console

import settings
from spotify_oauth import Authenticator, CredentialStore, SpotifyAuthError, TokenManager
from utils.debug_console import configure_logging, create_debug_console
from utils.storage import JsonFileStorage
from cli.auth_handlers import login, logout, print_access_token, show_profile
from cli.status_display import show_token_status


COMMANDS = ("login", "logout", "status", "token", "me")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Spotify PKCE authentication CLI")
    parser.add_argument("command", nargs="?", default="status", choices=COMMANDS, help="Action to perform (default: status)")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument("--paste", action="store_true", help="Paste the redirect URL instead of running the local listener")
    parser.add_argument("--client-id", default=None, help="Override the Spotify client id (default: SPOTIFY_CLIENT_ID)")
    parser.add_argument("--state-file", default=None, help="Override the credential state file")
    return parser


async def run_command(args: argparse.Namespace, console: Console) -> int:
    """Run one CLI command against a freshly loaded token manager"""

    def report(error: SpotifyAuthError) -> None:
        console.print(f"[red]{error.user_message}[/red] [dim]({error})[/dim]")

    authenticator = Authenticator(
        mode="paste" if args.paste else settings.CALLBACK_MODE,
        on_error=report,
    )
    token_manager = TokenManager(
        store=CredentialStore(JsonFileStorage(args.state_file)),
        authenticator=authenticator,
        client_id=args.client_id if args.client_id is not None else settings.SPOTIFY_CLIENT_ID,
    )

    async with token_manager:
        if args.command == "login":
            ok = await login(token_manager, console)
        elif args.command == "logout":
            ok = logout(token_manager, console)
        elif args.command == "token":
            ok = await print_access_token(token_manager, console)
        elif args.command == "me":
            ok = await show_profile(token_manager, console, on_error=report)
        else:
            show_token_status(token_manager, console)
            ok = True

    return 0 if ok else 1


def main():
    """Entry point for the CLI"""
    args = build_parser().parse_args()

    debug_logger = configure_logging(settings.LOG_LEVEL, debug=args.debug, log_file=settings.DEBUG_LOG_FILE)
    console = create_debug_console(debug_enabled=args.debug, debug_logger=debug_logger)

    try:
        exit_code = asyncio.run(run_command(args, console))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        exit_code = 130
    except Exception as e:
        console.print(f"\n[red]Fatal error:[/red] {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
