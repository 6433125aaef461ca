"""Status display functionality for CLI"""

from rich.table import Table

from spotify_oauth import TokenManager


def get_auth_status(token_manager: TokenManager) -> tuple[str, str]:
    """
    Get authentication status and expiry info

    Returns:
        Tuple of (status, detail_message)
    """
    status = token_manager.get_status()

    if not status["has_tokens"]:
        return "NO AUTH", "No credential stored"

    if status["is_expired"]:
        if status["has_refresh_token"]:
            return "EXPIRED", f"Expired {status['time_until_expiry']}, will refresh on next use"
        return "EXPIRED", f"Expired {status['time_until_expiry']}, login required"

    return "VALID", f"Expires in {status['time_until_expiry']}"


def show_token_status(token_manager: TokenManager, console):
    """
    Display detailed credential status

    Args:
        token_manager: TokenManager instance
        console: Rich console for output
    """
    status = token_manager.get_status()
    label, detail = get_auth_status(token_manager)

    table = Table(title="Spotify Credential Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Status", f"{label} ({detail})")
    table.add_row("Has Tokens", "Yes" if status["has_tokens"] else "No")
    table.add_row("Is Expired", "Yes" if status["is_expired"] else "No")
    table.add_row("Refresh Token", "Yes" if status["has_refresh_token"] else "No")

    if status["expires_at"]:
        table.add_row("Expires At", status["expires_at"])
        table.add_row("Time Until Expiry", status["time_until_expiry"])

    table.add_row("Authenticated", "Yes" if token_manager.is_authenticated() else "No")

    console.print(table)
