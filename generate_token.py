#!/usr/bin/env python3
"""
Spotify token generator for Vicify
Runs the browser OAuth flow once and stores the refresh token in ~/.vicify/.env
"""

import os
import sys

from dotenv import set_key
from spotipy.oauth2 import SpotifyOAuth

from vicify.auth import get_app_config_dir, load_credentials_env

REDIRECT_URI = os.getenv("SPOTIFY_REDIRECT_URI", "http://127.0.0.1:8080")

# Scopes needed by the launcher commands
SCOPES = [
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
    "user-follow-read",
    "user-follow-modify",
]


def get_spotify_token() -> int:
    """Authorize Vicify and persist the refresh token."""
    load_credentials_env()
    client_id = os.getenv("SPOTIFY_CLIENT_ID")
    client_secret = os.getenv("SPOTIFY_CLIENT_SECRET")
    if not client_id or not client_secret:
        print("❌ Error: SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET must be set in ~/.vicify/.env or .env")
        return 1

    print("🎵 Spotify Token Generator for Vicify")
    print("=" * 50)

    config_dir = get_app_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    sp_oauth = SpotifyOAuth(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=REDIRECT_URI,
        scope=" ".join(SCOPES),
        cache_path=str(config_dir / ".spotify_cache"),
    )

    # Opens the browser for authorization
    print("🌐 Opening browser for Spotify authorization...")
    token_info = sp_oauth.get_access_token(as_dict=True)
    if not token_info or not token_info.get("refresh_token"):
        print("❌ Token generation failed")
        return 1

    env_path = config_dir / ".env"
    env_path.touch(exist_ok=True)
    set_key(str(env_path), "SPOTIFY_CLIENT_ID", client_id)
    set_key(str(env_path), "SPOTIFY_CLIENT_SECRET", client_secret)
    set_key(str(env_path), "SPOTIFY_REFRESH_TOKEN", token_info["refresh_token"])

    print("\n✅ Token generated")
    print(f"EXPIRES_IN: {token_info.get('expires_in')} seconds")
    print(f"💾 Credentials written to {env_path}")
    return 0


if __name__ == "__main__":
    sys.exit(get_spotify_token())
