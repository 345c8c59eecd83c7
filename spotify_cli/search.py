"""
Search planning and post-processing.

Remote results come back as one paging container per result type
(``{"tracks": {"items": [...]}, "albums": {...}}``). The helpers here edit
those containers in place: drop ghost entries without an id, apply the
limit-1 workaround, keep exact matches, and attach ``fuzzy_score``.
"""

from dataclasses import dataclass

from .fuzzy import calculate_score

SEARCH_TYPES = ("track", "artist", "album", "playlist", "show", "episode", "audiobook")
SEARCH_RESULT_KEYS = (
    "tracks",
    "artists",
    "albums",
    "playlists",
    "shows",
    "episodes",
    "audiobooks",
)
DEFAULT_LIMIT = 20
MAX_LIMIT = 50
OWNER_BONUS = 1.0


@dataclass
class SearchFilters:
    artist: str = None
    album: str = None
    track: str = None
    year: str = None
    genre: str = None
    isrc: str = None
    upc: str = None
    new: bool = False
    hipster: bool = False

    FIELDS = ("artist", "album", "track", "year", "genre", "isrc", "upc")

    def build_query(self, base_query):
        parts = [base_query] if base_query else []
        for name in self.FIELDS:
            value = getattr(self, name)
            if value:
                parts.append(f"{name}:{value}")
        if self.new:
            parts.append("tag:new")
        if self.hipster:
            parts.append("tag:hipster")
        return " ".join(parts)

    def has_filters(self):
        return self.new or self.hipster or any(getattr(self, n) for n in self.FIELDS)


def clamp_limit(limit):
    return max(1, min(MAX_LIMIT, int(limit)))


def _containers(data):
    if not isinstance(data, dict):
        return
    for key in SEARCH_RESULT_KEYS:
        container = data.get(key)
        if isinstance(container, dict) and isinstance(container.get("items"), list):
            yield container


def filter_ghost_entries(data):
    """Drop items whose ``id`` is missing or not a string."""
    for container in _containers(data):
        container["items"] = [
            item
            for item in container["items"]
            if isinstance(item, dict) and isinstance(item.get("id"), str)
        ]


def truncate_to_limit_one(data):
    for container in _containers(data):
        container["items"] = container["items"][:1]
        container["limit"] = 1


def filter_exact_matches(data, query):
    query_lower = query.lower()
    for container in _containers(data):
        container["items"] = [
            item
            for item in container["items"]
            if query_lower in (item.get("name") or "").lower()
        ]


def item_score(item, query, config=None):
    """Best of the item's name, any artist name and the playlist owner's name."""
    names = [item.get("name")]
    names.extend(a.get("name") for a in item.get("artists") or [] if isinstance(a, dict))
    owner = item.get("owner")
    if isinstance(owner, dict):
        names.append(owner.get("display_name"))
    return max(
        (calculate_score(n, query, config) for n in names if isinstance(n, str)),
        default=0.0,
    )


def add_fuzzy_scores(data, query, config=None, sort=False):
    for container in _containers(data):
        for item in container["items"]:
            item["fuzzy_score"] = item_score(item, query, config)
        if sort:
            container["items"].sort(key=lambda i: i["fuzzy_score"], reverse=True)


def search_pins(store, query):
    """Score the pin store against ``query``; best first, as payload dicts."""
    results = sorted(store.fuzzy_search(query), key=lambda r: r[1], reverse=True)
    return [pin.summary(score) for pin, score in results]


def extract_first_uri(pins, spotify):
    """First playable URI: remote containers in type order, then the best pin."""
    if isinstance(spotify, dict):
        for key in SEARCH_RESULT_KEYS:
            container = spotify.get(key)
            items = container.get("items") if isinstance(container, dict) else None
            if items and isinstance(items[0], dict) and items[0].get("uri"):
                return items[0]["uri"]
    if pins and pins[0].get("uri"):
        return pins[0]["uri"]
    return None


def best_match(items, query, user_name=None, config=None):
    """
    Pick the candidate whose name best matches ``query``.

    When ``user_name`` is given, playlists owned by that user get a small
    bonus so the user's own copy wins a tie. Equal scores keep the earlier
    item. Returns None for an empty list.
    """
    best = None
    best_score = None
    for item in items:
        score = calculate_score(item.get("name") or "", query, config)
        owner = item.get("owner")
        if user_name and isinstance(owner, dict):
            owner_name = owner.get("display_name") or owner.get("id") or ""
            if owner_name.lower() == user_name.lower():
                score += OWNER_BONUS
        if best_score is None or score > best_score:
            best = item
            best_score = score
    return best
