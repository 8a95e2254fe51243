"""
Vicify Route Blueprints
Flask blueprints for the remote-control HTTP API.
"""

from .library import library_bp
from .now_playing import now_playing_bp
from .player import player_bp

__all__ = [
    "library_bp",
    "now_playing_bp",
    "player_bp",
]
