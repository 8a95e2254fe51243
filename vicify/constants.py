"""Central constants for Vicify (small, stable primitives only).

Avoid runtime/config dependent values here.
"""

# Seconds between now-playing refreshes
POLL_INTERVAL_SECONDS: float = 5.0

# Searches shorter than this are not sent to Spotify
MIN_SEARCH_QUERY_LENGTH: int = 2

SEARCH_TYPES = ("track", "artist", "album", "playlist")

VOLUME_PRESETS = (0, 25, 50, 75, 100)

# Spotify's personalised DJ playlist
DJ_PLAYLIST_URI: str = "spotify:playlist:37i9dQZF1EYkqdzj48dyYq"

RADIO_RECOMMENDATION_LIMIT: int = 50

# Icon used when an item has no artwork
PLACEHOLDER_ICON: str = "music"
