"""CLI package for spotify-auth-core

Command-line front end for logging in to Spotify, inspecting and clearing
the stored credential.
"""

from cli.main import main, run_command

__all__ = [
    "main",
    "run_command",
]
