"""
Pins: local aliases for Spotify resources.

Pins are kept in ``pins.json`` as ``{"pins": [...]}`` and every change
rewrites the whole file. Aliases are unique regardless of case.
"""

import enum
import json
import logging
from dataclasses import dataclass, field

from . import paths
from .fuzzy import similarity

logger = logging.getLogger(__name__)

WEB_URL_MARKER = "open.spotify.com"


class ResourceType(enum.Enum):
    PLAYLIST = "playlist"
    TRACK = "track"
    ALBUM = "album"
    ARTIST = "artist"
    SHOW = "show"
    EPISODE = "episode"
    AUDIOBOOK = "audiobook"

    @classmethod
    def parse(cls, value):
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            raise InvalidResourceType(
                f"Invalid resource type '{value}'. Valid types: {valid}"
            ) from None


class PinStoreError(Exception):
    pass


class InvalidResourceType(PinStoreError, ValueError):
    pass


class PinNotFound(PinStoreError):
    def __init__(self, key):
        self.key = key
        super().__init__(f"Pin not found: {key}")


class PinAlreadyExists(PinStoreError):
    def __init__(self, alias):
        self.alias = alias
        super().__init__(f"Pin already exists with alias: {alias}")


def extract_id(value):
    """
    Reduce a URL, URI or bare id to the bare id.

    ``https://open.spotify.com/track/abc?si=x`` and ``spotify:track:abc`` both
    give ``abc``; anything else is returned unchanged.
    """
    if WEB_URL_MARKER in value:
        last = value.rstrip("/").rsplit("/", 1)[-1]
        return last.split("?", 1)[0]
    if ":" in value:
        return value.rsplit(":", 1)[-1]
    return value


@dataclass
class Pin:
    resource_type: ResourceType
    id: str
    alias: str
    tags: list = field(default_factory=list)

    @property
    def uri(self):
        return f"spotify:{self.resource_type.value}:{self.id}"

    def to_dict(self):
        return {
            "resource_type": self.resource_type.value,
            "id": self.id,
            "alias": self.alias,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            resource_type=ResourceType.parse(data["resource_type"]),
            id=data["id"],
            alias=data["alias"],
            tags=list(data.get("tags", [])),
        )

    def summary(self, score=None):
        """The flat dict shape used in command payloads."""
        result = {
            "type": self.resource_type.value,
            "id": self.id,
            "alias": self.alias,
            "tags": list(self.tags),
            "uri": self.uri,
        }
        if score is not None:
            result["score"] = score
        return result


def score_pin(pin, query):
    alias = pin.alias.lower()
    query = query.lower()
    if alias == query:
        return 100.0

    score = 0.0
    if alias.startswith(query):
        score += 50.0
    if query in alias:
        score += 30.0

    tags = [tag.lower() for tag in pin.tags]
    for word in query.split():
        if word in alias:
            score += 10.0
        for tag in tags:
            if tag == word:
                score += 15.0
            elif word in tag:
                score += 8.0

    sim = similarity(alias, query)
    if sim > 0.6:
        score += sim * 20.0
    return score


class PinStore:
    def __init__(self, path, pins=None):
        self.path = path
        self.pins = pins if pins is not None else []

    @classmethod
    def load(cls, path=None):
        """Read the store from ``path`` (default location when None); a missing file is an empty store."""
        if path is None:
            path = paths.pins_file()
        if not path.exists():
            logger.debug("Pin file %s not found, starting empty.", path)
            return cls(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            pins = [Pin.from_dict(p) for p in data.get("pins", [])]
        except (OSError, json.JSONDecodeError, KeyError) as e:
            raise PinStoreError(f"Failed to read {path}: {e}") from e
        return cls(path, pins)

    def save(self):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({"pins": [p.to_dict() for p in self.pins]}, f, indent=2)
        except OSError as e:
            raise PinStoreError(f"Failed to write {self.path}: {e}") from e
        logger.debug("Saved %s pin(s) to %s", len(self.pins), self.path)

    def add(self, pin):
        if self.find_by_alias(pin.alias) is not None:
            raise PinAlreadyExists(pin.alias)
        self.pins.append(pin)
        self.save()

    def remove(self, key):
        """Remove by alias (any case) or exact id; returns the removed pin."""
        key_lower = key.lower()
        for index, pin in enumerate(self.pins):
            if pin.alias.lower() == key_lower or pin.id == key:
                removed = self.pins.pop(index)
                self.save()
                return removed
        raise PinNotFound(key)

    def list(self, resource_type=None):
        if resource_type is None:
            return list(self.pins)
        return [p for p in self.pins if p.resource_type == resource_type]

    def find_by_alias(self, alias):
        alias_lower = alias.lower()
        for pin in self.pins:
            if pin.alias.lower() == alias_lower:
                return pin
        return None

    def fuzzy_search(self, query):
        """Return ``(pin, score)`` pairs scoring above zero, in store order."""
        results = []
        for pin in self.pins:
            score = score_pin(pin, query)
            if score > 0:
                results.append((pin, score))
        return results
