"""Plain-dict views of Spotify models for JSON responses and CLI output."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..api.models import (Device, PlaybackState, QueueState, SearchResult, Track,
                          format_artists, format_duration, result_icon,
                          result_subtitle)

__all__ = [
    "serialize_result",
    "serialize_track",
    "serialize_device",
    "serialize_playback_state",
    "serialize_queue",
]


def serialize_result(item: SearchResult) -> Dict[str, Any]:
    data = {
        "kind": item.kind.value,
        "id": item.id,
        "name": item.name,
        "uri": item.uri,
        "subtitle": result_subtitle(item),
        "icon": result_icon(item),
        "external_url": item.external_url,
    }
    if isinstance(item, Track):
        data["duration"] = format_duration(item.duration_ms)
    return data


def serialize_track(track: Optional[Track]) -> Optional[Dict[str, Any]]:
    if track is None:
        return None
    return {
        "id": track.id,
        "name": track.name,
        "uri": track.uri,
        "artists": format_artists(track.artists),
        "album": track.album.name if track.album else None,
        "icon": result_icon(track),
        "duration_ms": track.duration_ms,
        "duration": format_duration(track.duration_ms),
        "popularity": track.popularity,
        "external_url": track.external_url,
    }


def serialize_device(device: Optional[Device]) -> Optional[Dict[str, Any]]:
    if device is None:
        return None
    return {
        "id": device.id,
        "name": device.name,
        "type": device.type,
        "is_active": device.is_active,
        "volume_percent": device.volume_percent,
    }


def serialize_playback_state(state: Optional[PlaybackState]) -> Optional[Dict[str, Any]]:
    """Snapshot plus derived progress; None when nothing is playing."""
    if state is None:
        return None
    return {
        "is_playing": state.is_playing,
        "progress_ms": state.progress_ms,
        "progress": format_duration(state.progress_ms),
        "progress_percent": state.progress_percent,
        "track": serialize_track(state.item),
        "device": serialize_device(state.device),
        "repeat_state": state.repeat_state.value,
        "shuffle_state": state.shuffle_state,
    }


def serialize_queue(queue: QueueState) -> Dict[str, Any]:
    up_next: List[Dict[str, Any]] = []
    for position, track in enumerate(queue.queue, start=1):
        entry = serialize_track(track) or {}
        entry["position"] = position
        up_next.append(entry)
    return {
        "currently_playing": serialize_track(queue.currently_playing),
        "queue": up_next,
    }
