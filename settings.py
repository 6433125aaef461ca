from pathlib import Path
from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# Logging
LOG_LEVEL = config.get("LOG_LEVEL", "info")
DEBUG_LOG_FILE = config.get("DEBUG_LOG_FILE", "spotify_auth_debug.log")

# Spotify application (supplied by the developer, never hardcoded)
SPOTIFY_CLIENT_ID = config.get("SPOTIFY_CLIENT_ID", "")

# Spotify accounts service (hardcoded - not user configurable)
ACCOUNTS_BASE = "https://accounts.spotify.com"
AUTHORIZE_URL = f"{ACCOUNTS_BASE}/authorize"
TOKEN_URL = f"{ACCOUNTS_BASE}/api/token"
API_BASE = "https://api.spotify.com/v1"

# Fixed scope set: read playback state, modify playback, read currently playing
SCOPES = "user-read-playback-state user-modify-playback-state user-read-currently-playing"

# Local callback listener
# Spotify requires loopback redirect URIs to use an explicit IP literal
CALLBACK_HOST = config.get("SPOTIFY_CALLBACK_HOST", "127.0.0.1")
CALLBACK_PORT = config.get("SPOTIFY_CALLBACK_PORT", 8888)
CALLBACK_PATH = config.get("SPOTIFY_CALLBACK_PATH", "/callback")
REDIRECT_URI = f"http://{CALLBACK_HOST}:{CALLBACK_PORT}{CALLBACK_PATH}"
# Seconds to wait for the browser redirect before abandoning the attempt
CALLBACK_TIMEOUT = config.get("SPOTIFY_CALLBACK_TIMEOUT", 300.0)
# "listener" (local HTTP server) or "paste" (user pastes the redirect URL)
CALLBACK_MODE = config.get("SPOTIFY_CALLBACK_MODE", "listener")

# Token lifecycle
# Tokens expiring within this window are renewed before use
REFRESH_MARGIN_SECONDS = config.get("SPOTIFY_REFRESH_MARGIN_SECONDS", 300)
TOKEN_REQUEST_TIMEOUT = config.get("SPOTIFY_TOKEN_REQUEST_TIMEOUT", 30.0)
API_REQUEST_TIMEOUT = config.get("SPOTIFY_API_REQUEST_TIMEOUT", 30.0)

# Durable key-value state owned by the host
STATE_FILE = config.get("SPOTIFY_STATE_FILE", str(Path.home() / ".spotify-auth-core" / "state.json"))
CREDENTIAL_KEY = "spotify_tokens"
