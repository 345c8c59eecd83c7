"""
The ``Response`` envelope every command returns.

A response is either a success (optionally carrying a payload tagged with a
``PayloadKind``) or an error categorized by ``ErrorKind``. It serializes to a
single JSON object for ``--json`` mode and the RPC transport.
"""

import enum
import json
import logging

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"

SERIALIZE_FALLBACK = (
    '{"status":"error","code":500,"message":"Failed to serialize response"}'
)


class ErrorKind(enum.Enum):
    NETWORK = "network"
    API = "api"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    RATE_LIMITED = "rate_limited"
    VALIDATION = "validation"
    STORAGE = "storage"
    CONFIG = "config"
    PLAYER = "player"


class PayloadKind(enum.Enum):
    PLAYER_STATUS = "player_status"
    QUEUE = "queue"
    DEVICES = "devices"
    PLAY_HISTORY = "play_history"
    SEARCH_RESULTS = "search_results"
    COMBINED_SEARCH = "combined_search"
    PINS = "pins"
    TRACK = "track"
    ALBUM = "album"
    ARTIST = "artist"
    PLAYLIST = "playlist"
    SHOW = "show"
    EPISODE = "episode"
    AUDIOBOOK = "audiobook"
    CHAPTER = "chapter"
    CATEGORY = "category"
    USER = "user"
    TRACK_LIST = "track_list"
    ALBUM_LIST = "album_list"
    ARTIST_LIST = "artist_list"
    PLAYLIST_LIST = "playlist_list"
    SHOW_LIST = "show_list"
    EPISODE_LIST = "episode_list"
    AUDIOBOOK_LIST = "audiobook_list"
    CHAPTER_LIST = "chapter_list"
    CATEGORY_LIST = "category_list"
    TOP_TRACKS = "top_tracks"
    TOP_ARTISTS = "top_artists"
    ARTIST_TOP_TRACKS = "artist_top_tracks"
    RELATED_ARTISTS = "related_artists"
    FOLLOWED_ARTISTS = "followed_artists"
    FEATURED_PLAYLISTS = "featured_playlists"
    NEW_RELEASES = "new_releases"
    SAVED_TRACKS = "saved_tracks"
    SAVED_ALBUMS = "saved_albums"
    SAVED_SHOWS = "saved_shows"
    SAVED_EPISODES = "saved_episodes"
    SAVED_AUDIOBOOKS = "saved_audiobooks"
    LIBRARY_CHECK = "library_check"
    MARKETS = "markets"
    GENERIC = "generic"


class Response:
    def __init__(
        self, status, code, message, payload=None, payload_kind=None, error=None
    ):
        self.status = status
        self.code = code
        self.message = message
        self.payload = payload
        self.payload_kind = payload_kind
        self.error = error

    @classmethod
    def success(cls, code, message):
        return cls(STATUS_SUCCESS, code, message)

    @classmethod
    def success_with_payload(cls, code, message, payload):
        """Untyped payload; rendered through the shape-matching fallback."""
        return cls(STATUS_SUCCESS, code, message, payload=payload)

    @classmethod
    def success_typed(cls, code, message, kind, payload):
        return cls(STATUS_SUCCESS, code, message, payload=payload, payload_kind=kind)

    @classmethod
    def err(cls, code, message, kind):
        return cls(STATUS_ERROR, code, message, error={"kind": kind, "details": None})

    @classmethod
    def err_with_details(cls, code, message, kind, details):
        return cls(
            STATUS_ERROR, code, message, error={"kind": kind, "details": details}
        )

    @classmethod
    def from_http_error(cls, err, context):
        return cls.err_with_details(
            err.status_code, f"{context}: {err}", err.error_kind, err.user_message()
        )

    @property
    def is_success(self):
        return self.status == STATUS_SUCCESS

    @property
    def error_kind(self):
        return self.error["kind"] if self.error else None

    @property
    def error_details(self):
        return self.error["details"] if self.error else None

    def to_dict(self):
        data = {"status": self.status, "code": self.code, "message": self.message}
        if self.payload is not None:
            data["payload"] = self.payload
        if self.payload_kind is not None:
            data["payload_kind"] = self.payload_kind.value
        if self.error is not None:
            error = {"kind": self.error["kind"].value}
            if self.error.get("details") is not None:
                error["details"] = self.error["details"]
            data["error"] = error
        return data

    @classmethod
    def from_dict(cls, data):
        """Rebuild a response from its serialized form (used by the RPC client)."""
        kind = data.get("payload_kind")
        error = data.get("error")
        if error is not None:
            error = {
                "kind": ErrorKind(error.get("kind", ErrorKind.API.value)),
                "details": error.get("details"),
            }
        return cls(
            data.get("status", STATUS_ERROR),
            data.get("code", 500),
            data.get("message", ""),
            payload=data.get("payload"),
            payload_kind=PayloadKind(kind) if kind else None,
            error=error,
        )

    def to_json(self):
        try:
            return json.dumps(self.to_dict())
        except (TypeError, ValueError) as e:
            logger.error("Failed to serialize response: %s", e)
            return SERIALIZE_FALLBACK

    def __repr__(self):
        return f"Response({self.status!r}, {self.code}, {self.message!r})"
