"""Authentication handlers for CLI"""

import httpx

from spotify_oauth import AuthenticatedClient, SpotifyAuthError, TokenManager


async def login(token_manager: TokenManager, console) -> bool:
    """
    Handle the login flow

    Returns:
        True if a credential was obtained
    """
    console.print("Starting Spotify login...")
    console.print(f"[dim]Waiting for the browser redirect on {token_manager.authenticator.redirect_uri}[/dim]")

    if await token_manager.authenticate():
        status = token_manager.get_status()
        console.print("[green][OK][/green] Successfully authenticated with Spotify!")
        console.print(f"Token expires at: {status['expires_at']}")
        return True

    # The specific reason was already reported through the error callback
    console.print("[red]Authentication cancelled or failed[/red]")
    return False


def logout(token_manager: TokenManager, console) -> bool:
    """Forget the stored credential"""
    token_manager.clear()
    console.print("[green][OK][/green] Spotify credential cleared")
    return True


async def print_access_token(token_manager: TokenManager, console) -> bool:
    """Print a valid access token, refreshing it first when needed"""
    token = await token_manager.get_valid_access_token()
    if token is None:
        console.print("[yellow]Not authenticated. Run the login command first.[/yellow]")
        return False

    console.print(token, markup=False, highlight=False)
    return True


async def show_profile(token_manager: TokenManager, console, on_error=None) -> bool:
    """Fetch the current user's profile through the authenticated client"""
    async with AuthenticatedClient(token_manager, on_error=on_error) as client:
        try:
            response = await client.get("/me")
        except SpotifyAuthError:
            # Already reported through on_error
            return False
        except httpx.RequestError as e:
            console.print(f"[red]Network error talking to Spotify:[/red] {e}")
            return False

    if response.status_code != 200:
        console.print(f"[red]Spotify returned HTTP {response.status_code}[/red]")
        return False

    profile = response.json()
    console.print(f"Logged in as [bold]{profile.get('display_name') or profile.get('id')}[/bold]")
    if profile.get("product"):
        console.print(f"[dim]Subscription: {profile['product']}[/dim]")
    return True
