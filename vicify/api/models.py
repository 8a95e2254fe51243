"""
Typed views over Spotify Web API payloads.

Only the fields Vicify actually uses are modelled. Every object is a snapshot
built from one response; nothing here is mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..constants import PLACEHOLDER_ICON


class RepeatMode(str, Enum):
    OFF = "off"
    TRACK = "track"
    CONTEXT = "context"

    @classmethod
    def parse(cls, value: Any) -> "RepeatMode":
        try:
            return cls(value)
        except ValueError:
            return cls.OFF


class ResultKind(str, Enum):
    TRACK = "track"
    ARTIST = "artist"
    ALBUM = "album"
    PLAYLIST = "playlist"


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


@dataclass(frozen=True)
class Image:
    url: str

    @classmethod
    def parse_list(cls, raw: Any) -> List["Image"]:
        return [cls(url=img["url"]) for img in _list(raw) if isinstance(img, dict) and img.get("url")]


@dataclass(frozen=True)
class Device:
    id: Optional[str]
    name: str
    type: str
    is_active: bool
    volume_percent: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Device":
        return cls(
            id=data.get("id") or None,
            name=data.get("name") or "Unknown",
            type=data.get("type") or "Unknown",
            is_active=bool(data.get("is_active")),
            volume_percent=_optional_int(data.get("volume_percent")),
        )


@dataclass(frozen=True)
class Artist:
    name: str
    id: Optional[str] = None
    uri: Optional[str] = None
    images: List[Image] = field(default_factory=list)
    followers: Optional[int] = None
    external_url: Optional[str] = None
    kind = ResultKind.ARTIST

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Artist":
        return cls(
            name=data.get("name") or "Unknown Artist",
            id=data.get("id"),
            uri=data.get("uri"),
            images=Image.parse_list(data.get("images")),
            followers=_optional_int(_dict(data.get("followers")).get("total")),
            external_url=_dict(data.get("external_urls")).get("spotify"),
        )


@dataclass(frozen=True)
class Album:
    name: str
    id: Optional[str] = None
    uri: Optional[str] = None
    images: List[Image] = field(default_factory=list)
    artists: List[Artist] = field(default_factory=list)
    release_date: Optional[str] = None
    total_tracks: Optional[int] = None
    external_url: Optional[str] = None
    kind = ResultKind.ALBUM

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Album":
        return cls(
            name=data.get("name") or "Unknown Album",
            id=data.get("id"),
            uri=data.get("uri"),
            images=Image.parse_list(data.get("images")),
            artists=[Artist.from_api(a) for a in _list(data.get("artists")) if isinstance(a, dict)],
            release_date=data.get("release_date"),
            total_tracks=_optional_int(data.get("total_tracks")),
            external_url=_dict(data.get("external_urls")).get("spotify"),
        )


@dataclass(frozen=True)
class Track:
    id: Optional[str]
    name: str
    uri: str
    duration_ms: int
    artists: List[Artist] = field(default_factory=list)
    album: Optional[Album] = None
    popularity: Optional[int] = None
    external_url: Optional[str] = None
    kind = ResultKind.TRACK

    @property
    def images(self) -> List[Image]:
        # Tracks carry no artwork of their own
        return []

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Track":
        album = data.get("album")
        return cls(
            id=data.get("id"),
            name=data.get("name") or "Unknown Track",
            uri=data.get("uri") or "",
            duration_ms=_optional_int(data.get("duration_ms")) or 0,
            artists=[Artist.from_api(a) for a in _list(data.get("artists")) if isinstance(a, dict)],
            album=Album.from_api(album) if isinstance(album, dict) else None,
            popularity=_optional_int(data.get("popularity")),
            external_url=_dict(data.get("external_urls")).get("spotify"),
        )


@dataclass(frozen=True)
class Playlist:
    id: Optional[str]
    name: str
    uri: str
    images: List[Image] = field(default_factory=list)
    track_total: Optional[int] = None
    owner: Optional[str] = None
    external_url: Optional[str] = None
    kind = ResultKind.PLAYLIST

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Playlist":
        tracks = data.get("tracks")
        return cls(
            id=data.get("id"),
            name=data.get("name") or "Untitled Playlist",
            uri=data.get("uri") or "",
            images=Image.parse_list(data.get("images")),
            track_total=_optional_int(_dict(tracks).get("total")),
            owner=_dict(data.get("owner")).get("display_name"),
            external_url=_dict(data.get("external_urls")).get("spotify"),
        )


SearchResult = Union[Track, Artist, Album, Playlist]

_RESULT_PARSERS = {
    ResultKind.TRACK: Track.from_api,
    ResultKind.ARTIST: Artist.from_api,
    ResultKind.ALBUM: Album.from_api,
    ResultKind.PLAYLIST: Playlist.from_api,
}


def parse_search_results(kind: ResultKind, payload: Dict[str, Any]) -> List[SearchResult]:
    """Extract the items of one result type from a ``/search`` response."""
    section = _dict(payload.get(f"{kind.value}s"))
    parser = _RESULT_PARSERS[kind]
    # Spotify returns null entries for unavailable playlists
    return [parser(item) for item in _list(section.get("items")) if isinstance(item, dict)]


def format_artists(artists: List[Artist]) -> str:
    return ", ".join(artist.name for artist in artists)


def format_duration(ms: Optional[int]) -> str:
    """Render milliseconds as ``m:ss``."""
    total_seconds = max(0, int(ms or 0)) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


def result_subtitle(item: SearchResult) -> str:
    kind = item.kind
    if kind in (ResultKind.TRACK, ResultKind.ALBUM):
        return format_artists(item.artists)
    if kind is ResultKind.PLAYLIST:
        return f"{item.track_total or 0} tracks"
    if kind is ResultKind.ARTIST:
        return f"{item.followers:,} followers" if item.followers is not None else ""
    raise ValueError(f"Unknown result kind: {kind!r}")


def result_icon(item: SearchResult) -> str:
    """Own artwork first, then the album artwork of a track, then the placeholder."""
    if item.images:
        return item.images[0].url
    if item.kind is ResultKind.TRACK and item.album is not None and item.album.images:
        return item.album.images[0].url
    return PLACEHOLDER_ICON


@dataclass(frozen=True)
class PlaybackState:
    is_playing: bool
    progress_ms: int = 0
    item: Optional[Track] = None
    device: Optional[Device] = None
    repeat_state: RepeatMode = RepeatMode.OFF
    shuffle_state: bool = False

    @property
    def has_active_device(self) -> bool:
        return self.device is not None and self.device.is_active

    @property
    def progress_percent(self) -> int:
        duration = self.item.duration_ms if self.item is not None else None
        return progress_percent(self.progress_ms, duration)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PlaybackState":
        item = data.get("item")
        device = data.get("device")
        return cls(
            is_playing=bool(data.get("is_playing")),
            progress_ms=_optional_int(data.get("progress_ms")) or 0,
            # Podcast episodes are not modelled
            item=Track.from_api(item) if isinstance(item, dict) and item.get("type", "track") == "track" else None,
            device=Device.from_api(device) if isinstance(device, dict) else None,
            repeat_state=RepeatMode.parse(data.get("repeat_state")),
            shuffle_state=bool(data.get("shuffle_state")),
        )


@dataclass(frozen=True)
class QueueState:
    currently_playing: Optional[Track]
    queue: List[Track] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "QueueState":
        current = data.get("currently_playing")
        return cls(
            currently_playing=Track.from_api(current) if isinstance(current, dict) else None,
            queue=[Track.from_api(t) for t in _list(data.get("queue")) if isinstance(t, dict)],
        )


def progress_percent(progress_ms: Optional[int], duration_ms: Optional[int]) -> int:
    """Whole percent of ``duration_ms`` elapsed; 0 when the duration is unknown."""
    if not duration_ms or duration_ms <= 0:
        return 0
    return round(((progress_ms or 0) / duration_ms) * 100)
