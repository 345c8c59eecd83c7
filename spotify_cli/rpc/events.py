"""
Playback change events for daemon subscribers.

The Web API has no push channel, so the poller fetches the playback state
on an interval and broadcasts one notification per field that changed
since the last successful poll.
"""

import asyncio
import logging
from dataclasses import dataclass

from .. import endpoints
from ..api import HttpError
from ..commands import common
from . import protocol

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0
SUBSCRIBER_CAPACITY = 100


@dataclass
class PlaybackSnapshot:
    track_id: str = None
    is_playing: bool = False
    volume: int = 0
    shuffle: bool = False
    repeat: str = "off"
    device_id: str = None

    @classmethod
    def from_state(cls, state):
        item = state.get("item") or {}
        device = state.get("device") or {}
        return cls(
            track_id=item.get("id"),
            is_playing=bool(state.get("is_playing", False)),
            volume=device.get("volume_percent") or 0,
            shuffle=bool(state.get("shuffle_state", False)),
            repeat=state.get("repeat_state") or "off",
            device_id=device.get("id"),
        )


def diff_snapshots(old, new):
    """``(method, params)`` for every tracked field that differs, in a fixed order."""
    events = []
    if old.track_id != new.track_id:
        events.append(("event.trackChanged", {"track_id": new.track_id}))
    if old.is_playing != new.is_playing:
        events.append(("event.playbackStateChanged", {"is_playing": new.is_playing}))
    if old.volume != new.volume:
        events.append(("event.volumeChanged", {"volume": new.volume}))
    if old.shuffle != new.shuffle:
        events.append(("event.shuffleChanged", {"shuffle": new.shuffle}))
    if old.repeat != new.repeat:
        events.append(("event.repeatChanged", {"repeat": new.repeat}))
    if old.device_id != new.device_id:
        events.append(("event.deviceChanged", {"device_id": new.device_id}))
    return events


class Broadcaster:
    """Fan-out of notifications to per-connection bounded queues."""

    def __init__(self, capacity=SUBSCRIBER_CAPACITY):
        self.capacity = capacity
        self.subscribers = set()
        self.closed = False

    def subscribe(self):
        queue = asyncio.Queue(maxsize=self.capacity)
        if self.closed:
            queue.put_nowait(None)
        else:
            self.subscribers.add(queue)
        return queue

    def unsubscribe(self, queue):
        self.subscribers.discard(queue)

    def publish(self, message):
        for queue in list(self.subscribers):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.debug("Subscriber lagging, dropping %s", message.get("method"))

    def close(self):
        """Wake every subscriber with ``None`` so its connection task ends."""
        self.closed = True
        for queue in list(self.subscribers):
            while queue.full():
                queue.get_nowait()
            queue.put_nowait(None)
        self.subscribers.clear()


def fetch_playback_state():
    """Current playback state, or None when logged out, idle or on error."""
    try:
        client = common.get_authenticated_client()
    except common.Abort:
        logger.debug("Not authenticated, skipping poll")
        return None
    try:
        return client.get(endpoints.player_state())
    except HttpError as e:
        logger.warning("Failed to poll playback state: %s", e)
        return None


class EventPoller:
    def __init__(self, broadcaster, interval=DEFAULT_POLL_INTERVAL, fetch_state=fetch_playback_state):
        self.broadcaster = broadcaster
        self.interval = interval
        self.fetch_state = fetch_state
        self.last = PlaybackSnapshot()

    async def tick(self):
        """Poll once; returns the notifications that were broadcast."""
        state = await asyncio.to_thread(self.fetch_state)
        if not state:
            return []
        current = PlaybackSnapshot.from_state(state)
        sent = []
        for method, params in diff_snapshots(self.last, current):
            logger.debug("%s %s", method, params)
            message = protocol.notification(method, params)
            self.broadcaster.publish(message)
            sent.append(message)
        self.last = current
        return sent

    async def run(self):
        logger.info("Event poller started (every %ss)", self.interval)
        while True:
            await self.tick()
            await asyncio.sleep(self.interval)
