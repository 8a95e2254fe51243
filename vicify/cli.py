#!/usr/bin/env python3
"""
🎛️ Vicify command line
Each subcommand maps to one launcher command of ``PlayerService``; the
notification is printed and the exit code reflects success.
"""

import argparse
import threading
from typing import Any, Dict, List, Optional, Sequence

from .api.models import PlaybackState, ResultKind, format_artists, format_duration
from .constants import SEARCH_TYPES, VOLUME_PRESETS
from .notifications import ConsoleNotifier
from .services import ServiceResult
from .services.player_service import PlayerService
from .utils.logger import setup_logging
from .version import get_full_version


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vicify", description="Control Spotify playback")
    parser.add_argument("--version", action="version", version=get_full_version())
    sub = parser.add_subparsers(dest="command", metavar="command")
    sub.required = True

    sub.add_parser("play", help="Resume playback")
    sub.add_parser("pause", help="Pause playback")
    sub.add_parser("toggle", help="Toggle play/pause")
    sub.add_parser("next", help="Skip to the next track")
    sub.add_parser("previous", help="Skip to the previous track")

    volume = sub.add_parser("volume", help="Set volume (presets: %s)" % ", ".join(map(str, VOLUME_PRESETS)))
    volume.add_argument("level", type=int, help="Volume percent, 0-100")

    search = sub.add_parser("search", help="Search Spotify")
    search.add_argument("query", nargs="+", help="Search text")
    search.add_argument("--type", dest="kind", choices=SEARCH_TYPES, default="track", help="Result type")
    search.add_argument("--play", action="store_true", help="Play the first result")
    search.add_argument("--queue", action="store_true", help="Add the first result to the queue")

    play_uri = sub.add_parser("play-uri", help="Play a Spotify URI")
    play_uri.add_argument("uri")

    sub.add_parser("queue", help="Show the playback queue")
    sub.add_parser("radio", help="Start radio from the current track")
    sub.add_parser("dj", help="Start the Spotify DJ")

    artists = sub.add_parser("artists", help="List followed artists or search artists")
    artists.add_argument("query", nargs="*", help="Artist search text")

    follow = sub.add_parser("follow", help="Follow an artist")
    follow.add_argument("artist_id")
    unfollow = sub.add_parser("unfollow", help="Unfollow an artist")
    unfollow.add_argument("artist_id")

    sub.add_parser("devices", help="List available devices")
    transfer = sub.add_parser("transfer", help="Transfer playback to a device")
    transfer.add_argument("device", nargs="+", help="Device name or id")
    transfer.add_argument("--paused", action="store_true", help="Do not start playing after the transfer")

    now = sub.add_parser("now-playing", help="Show the current track")
    now.add_argument("--watch", action="store_true", help="Keep refreshing until interrupted")
    now.add_argument("--interval", type=float, default=None, help="Refresh interval in seconds")
    return parser


def _print_items(items: List[Dict[str, Any]]) -> None:
    for index, item in enumerate(items, start=1):
        line = f"{index:>2}. {item.get('name')}"
        if item.get("subtitle"):
            line += f" - {item['subtitle']}"
        if item.get("uri"):
            line += f"  [{item['uri']}]"
        print(line)


def _print_queue(data: Dict[str, Any]) -> None:
    current = data.get("currently_playing")
    if current:
        print(f"Now Playing: {current['name']} - {current['artists']} ({current['duration']})")
    for track in data.get("queue", []):
        print(f"#{track['position']:<3} {track['name']} - {track['artists']} ({track['duration']})")


def _print_devices(devices: List[Dict[str, Any]]) -> None:
    for device in devices:
        marker = "*" if device.get("is_active") else " "
        volume = device.get("volume_percent")
        volume_text = f" {volume}%" if volume is not None else ""
        print(f"{marker} {device['name']} ({device['type']}){volume_text}")


def format_state_line(state: Optional[PlaybackState]) -> str:
    if state is None or state.item is None:
        return "Nothing playing"
    track = state.item
    status = "▶" if state.is_playing else "⏸"
    return (
        f"{status} {track.name} - {format_artists(track.artists)} "
        f"[{format_duration(state.progress_ms)}/{format_duration(track.duration_ms)} "
        f"{state.progress_percent}%]"
    )


def _watch(service: PlayerService, interval: Optional[float], stop_event: threading.Event) -> int:
    handle = service.watch_now_playing(lambda state: print(format_state_line(state), flush=True), interval=interval)
    try:
        stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        handle.stop()
    return 0


def run_command(args: argparse.Namespace, service: PlayerService,
                stop_event: Optional[threading.Event] = None) -> int:
    command = args.command
    result: Optional[ServiceResult] = None

    if command == "play":
        result = service.just_play()
    elif command == "pause":
        result = service.pause()
    elif command == "toggle":
        result = service.toggle_play_pause()
    elif command == "next":
        result = service.next_track()
    elif command == "previous":
        result = service.previous_track()
    elif command == "volume":
        result = service.set_volume(args.level)
    elif command == "search":
        result = service.search(" ".join(args.query), ResultKind(args.kind))
        if result.success and result.data:
            _print_items(result.data)
            first = result.data[0]
            if args.play:
                result = service.play_uri(first["uri"], first["name"])
            elif args.queue:
                result = service.add_to_queue(first["uri"], first["name"])
    elif command == "play-uri":
        result = service.play_uri(args.uri)
    elif command == "queue":
        result = service.view_queue()
        if result.success:
            _print_queue(result.data)
    elif command == "radio":
        result = service.start_radio()
    elif command == "dj":
        result = service.start_dj()
    elif command == "artists":
        query = " ".join(args.query)
        result = service.search_artists(query) if query else service.followed_artists()
        if result.success and result.data:
            _print_items(result.data)
    elif command == "follow":
        result = service.toggle_follow(args.artist_id, following=False)
    elif command == "unfollow":
        result = service.toggle_follow(args.artist_id, following=True)
    elif command == "devices":
        result = service.list_devices()
        if result.success and result.data:
            _print_devices(result.data)
    elif command == "transfer":
        result = service.transfer_playback(" ".join(args.device), play=not args.paused)
    elif command == "now-playing":
        if args.watch:
            return _watch(service, args.interval, stop_event or threading.Event())
        result = service.now_playing()

    if result is None:
        return 2
    return 0 if result.success else 1


def main(argv: Optional[Sequence[str]] = None, service: Optional[PlayerService] = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging()
    if service is None:
        service = PlayerService(notifier=ConsoleNotifier())
    return run_command(args, service)


if __name__ == "__main__":
    raise SystemExit(main())
