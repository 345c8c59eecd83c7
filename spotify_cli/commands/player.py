"""Playback control, player settings and the queue."""

import logging
import re

from .. import endpoints
from ..api import HttpError
from ..response import ErrorKind, PayloadKind, Response
from . import common
from .common import api_call, handler

logger = logging.getLogger(__name__)

REPEAT_MODES = ("off", "track", "context")
ID_ONLY_KINDS = ("track", "album", "artist")

_SPOTIFY_URL = re.compile(r"open\.spotify\.com/(?:intl-[a-z]+/)?([a-z]+)/([A-Za-z0-9]+)")


def url_to_uri(value):
    """``https://open.spotify.com/<kind>/<id>?...`` becomes ``spotify:<kind>:<id>``."""
    match = _SPOTIFY_URL.search(value)
    if match:
        return f"spotify:{match.group(1)}:{match.group(2)}"
    return value


def parse_position_to_ms(position):
    """
    Parse a seek position: ``90``, ``90s``, ``5000ms``, ``1:30`` or ``1:02:03``.

    Raises ValueError with a user-facing message on malformed input.
    """
    position = position.strip()
    if ":" in position:
        parts = position.split(":")
        if len(parts) not in (2, 3):
            raise ValueError("Invalid time format. Use mm:ss or hh:mm:ss")
        labels = ("hours", "minutes", "seconds")[-len(parts):]
        total = 0
        for label, part in zip(labels, parts):
            if not part.isdigit():
                raise ValueError(f"Invalid {label}")
            total = total * 60 + int(part)
        return total * 1000
    if position.endswith("ms"):
        if not position[:-2].isdigit():
            raise ValueError("Invalid milliseconds")
        return int(position[:-2])
    if position.endswith("s"):
        if not position[:-1].isdigit():
            raise ValueError("Invalid seconds")
        return int(position[:-1]) * 1000
    if not position.isdigit():
        raise ValueError("Invalid position. Use: 90, 1:30, 90s, or 5000ms")
    return int(position) * 1000


def play_body(uri):
    """Tracks go in ``uris``; albums, playlists, artists and shows are contexts."""
    if uri.startswith("spotify:track:"):
        return {"uris": [uri]}
    return {"context_uri": uri}


def start_playback(client, uri=None):
    """
    Start playback of ``uri``, or resume when no uri is given.

    Resuming while already playing is answered locally since the Web API
    rejects that request with 403.
    """
    if uri is None:
        state = api_call("Failed to get playback state", client.get, endpoints.player_state())
        if state and state.get("is_playing"):
            return Response.success(200, "Already playing")
        api_call("Failed to start playback", client.put, endpoints.player_play())
        return Response.success(204, "Playback started")

    logger.info("Starting playback of %s", uri)
    api_call("Failed to start playback", client.put, endpoints.player_play(), play_body(uri))
    return Response.success(204, "Playing requested content")


@handler
def player_status(id_only=None):
    if id_only and id_only not in ID_ONLY_KINDS:
        return Response.err(
            400, f"Invalid id type '{id_only}'. Use: track, album, artist", ErrorKind.VALIDATION
        )
    client = common.get_authenticated_client()
    state = api_call("Failed to get playback status", client.get, endpoints.player_state())
    if id_only:
        if not state:
            return Response.err(404, "Nothing currently playing", ErrorKind.PLAYER)
        item = state.get("item") or {}
        if id_only == "track":
            value = item.get("id")
        elif id_only == "album":
            value = (item.get("album") or {}).get("id")
        else:
            artists = item.get("artists") or []
            value = artists[0].get("id") if artists else None
        if not value:
            return Response.err(404, "Nothing currently playing", ErrorKind.PLAYER)
        return Response.success(200, value)

    if not state:
        return Response.success_with_payload(
            204, "No active playback", {"is_playing": False, "active": False}
        )
    message = "Playing" if state.get("is_playing") else "Paused"
    return Response.success_typed(200, message, PayloadKind.PLAYER_STATUS, state)


@handler
def player_play(uri=None, pin=None):
    if pin:
        store = common.open_pin_store()
        found = store.find_by_alias(pin)
        if found is None:
            return Response.err(404, "Pin not found", ErrorKind.NOT_FOUND)
        uri = found.uri
    elif uri:
        uri = url_to_uri(uri)
    return start_playback(common.get_authenticated_client(), uri or None)


@handler
def player_pause():
    client = common.get_authenticated_client()
    api_call("Failed to pause playback", client.put, endpoints.player_pause())
    return Response.success(204, "Playback paused")


@handler
def player_toggle():
    client = common.get_authenticated_client()
    state = api_call("Failed to get playback state", client.get, endpoints.player_state())
    if not state:
        return Response.err(404, "No active playback device", ErrorKind.PLAYER)
    if state.get("is_playing"):
        api_call("Failed to pause playback", client.put, endpoints.player_pause())
        return Response.success(204, "Playback paused")
    api_call("Failed to start playback", client.put, endpoints.player_play())
    return Response.success(204, "Playback started")


@handler
def player_next():
    client = common.get_authenticated_client()
    api_call("Failed to skip to next track", client.post, endpoints.player_next())
    return Response.success(204, "Skipped to next track")


@handler
def player_previous():
    client = common.get_authenticated_client()
    api_call("Failed to skip to previous track", client.post, endpoints.player_previous())
    return Response.success(204, "Skipped to previous track")


@handler
def player_seek(position):
    try:
        position_ms = parse_position_to_ms(str(position))
    except ValueError as e:
        return Response.err(400, str(e), ErrorKind.VALIDATION)
    client = common.get_authenticated_client()
    api_call("Failed to seek", client.put, endpoints.player_seek(position_ms))
    return Response.success(204, "Seeked to position")


@handler
def player_volume(percent):
    try:
        percent = int(percent)
    except (TypeError, ValueError):
        percent = -1
    if not 0 <= percent <= 100:
        return Response.err(400, "Volume must be between 0 and 100", ErrorKind.VALIDATION)
    client = common.get_authenticated_client()
    api_call("Failed to set volume", client.put, endpoints.player_volume(percent))
    return Response.success(204, f"Volume set to {percent}%")


@handler
def player_shuffle(state):
    if state not in ("on", "off"):
        return Response.err(400, "Shuffle state must be 'on' or 'off'", ErrorKind.VALIDATION)
    enabled = state == "on"
    client = common.get_authenticated_client()
    api_call("Failed to set shuffle", client.put, endpoints.player_shuffle(enabled))
    return Response.success(204, "Shuffle enabled" if enabled else "Shuffle disabled")


@handler
def player_repeat(mode):
    if mode not in REPEAT_MODES:
        return Response.err(
            400,
            f"Invalid repeat mode '{mode}'. Use: {', '.join(REPEAT_MODES)}",
            ErrorKind.VALIDATION,
        )
    client = common.get_authenticated_client()
    api_call("Failed to set repeat mode", client.put, endpoints.player_repeat(mode))
    return Response.success(204, f"Repeat mode set to {mode}")


@handler
def player_devices():
    client = common.get_authenticated_client()
    payload = api_call("Failed to get devices", client.get, endpoints.player_devices())
    if not payload or not payload.get("devices"):
        return Response.success_typed(
            200, "No devices available", PayloadKind.DEVICES, {"devices": []}
        )
    return Response.success_typed(200, "Available devices", PayloadKind.DEVICES, payload)


def find_device_id(devices, name):
    """Id of the first device whose name contains ``name``, case-insensitively."""
    name_lower = name.lower()
    for device in devices:
        if name_lower in (device.get("name") or "").lower():
            return device.get("id")
    return None


@handler
def player_transfer(device):
    client = common.get_authenticated_client()
    try:
        client.put(endpoints.player_transfer(), {"device_ids": [device]})
        return Response.success(204, "Playback transferred")
    except HttpError as e:
        logger.debug("Transfer to %r as a device id failed (%s), trying by name", device, e)

    payload = api_call("Failed to get devices", client.get, endpoints.player_devices())
    if not payload:
        return Response.err(404, "No devices available", ErrorKind.PLAYER)
    device_id = find_device_id(payload.get("devices") or [], device)
    if device_id is None:
        return Response.err(404, "Device not found", ErrorKind.NOT_FOUND)
    api_call(
        "Failed to transfer playback",
        client.put,
        endpoints.player_transfer(),
        {"device_ids": [device_id]},
    )
    return Response.success(204, "Playback transferred")


@handler
def player_recent(limit=20):
    client = common.get_authenticated_client()
    payload = api_call(
        "Failed to get recent tracks", client.get, endpoints.player_recently_played(limit)
    )
    if not payload or not payload.get("items"):
        return Response.success_typed(
            200, "No recent tracks", PayloadKind.PLAY_HISTORY, {"items": []}
        )
    return Response.success_typed(200, "Recently played", PayloadKind.PLAY_HISTORY, payload)


@handler
def queue_list():
    client = common.get_authenticated_client()
    payload = api_call("Failed to get queue", client.get, endpoints.player_queue())
    if not payload:
        return Response.success_typed(
            200, "Queue is empty", PayloadKind.QUEUE, {"currently_playing": None, "queue": []}
        )
    return Response.success_typed(200, "Current queue", PayloadKind.QUEUE, payload)


@handler
def queue_add(uri=None, now_playing=False):
    if not uri and not now_playing:
        return Response.err(400, "Provide a URI or use --now-playing", ErrorKind.VALIDATION)
    client = common.get_authenticated_client()
    uris = [url_to_uri(uri)] if uri else []
    if now_playing:
        item = common.current_playback(client).get("item") or {}
        if not item.get("uri"):
            return Response.err(404, "Nothing currently playing", ErrorKind.PLAYER)
        uris.append(item["uri"])
    for value in uris:
        api_call("Failed to add to queue", client.post, endpoints.player_queue_add(value))
    return Response.success(204, "Added to queue")
