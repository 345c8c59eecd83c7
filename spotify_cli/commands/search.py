import logging

from .. import endpoints
from ..config import Config, ConfigError, FuzzyConfig
from ..paths import PathError
from ..response import ErrorKind, PayloadKind, Response
from ..search import (
    SEARCH_TYPES,
    SearchFilters,
    add_fuzzy_scores,
    clamp_limit,
    extract_first_uri,
    filter_exact_matches,
    filter_ghost_entries,
    search_pins,
    truncate_to_limit_one,
)
from . import common
from .common import api_call, handler
from .player import start_playback

logger = logging.getLogger(__name__)

EMPTY_QUERY = (
    "Search query is empty. Provide a query or use filters (--artist, --album, etc.)"
)


def _search_settings():
    """Fuzzy weights and sort flag from config; defaults when there is none."""
    try:
        config = Config.load()
    except (ConfigError, PathError) as e:
        logger.debug("Using default search settings: %s", e)
        return FuzzyConfig(), False
    return config.fuzzy, config.sort_by_score


def _play_first(client, pins, spotify):
    uri = extract_first_uri(pins, spotify)
    if uri is None:
        return Response.err(404, "No results to play", ErrorKind.NOT_FOUND)
    response = start_playback(client, uri)
    if not response.is_success:
        return response
    return Response.success(200, f"Playing {uri}")


@handler
def search_command(
    query="",
    types=None,
    limit=20,
    pins_only=False,
    exact=False,
    filters=None,
    play=False,
):
    filters = filters or SearchFilters()
    full_query = filters.build_query(query.strip())
    if not full_query:
        return Response.err(400, EMPTY_QUERY, ErrorKind.VALIDATION)

    pins = search_pins(common.open_pin_store(), query) if query.strip() else []
    if pins_only:
        return Response.success_typed(
            200,
            f"Found {len(pins)} pinned result(s)",
            PayloadKind.COMBINED_SEARCH,
            {"pins": pins, "spotify": None},
        )

    types = [t for t in types or [] if t] or list(SEARCH_TYPES)
    invalid = [t for t in types if t not in SEARCH_TYPES]
    if invalid:
        return Response.err(
            400,
            f"Invalid search type '{invalid[0]}'. Valid types: {', '.join(SEARCH_TYPES)}",
            ErrorKind.VALIDATION,
        )

    limit = clamp_limit(limit)
    client = common.get_authenticated_client()
    request_limit = 2 if limit == 1 else limit
    results = api_call(
        "Search failed", client.get, endpoints.search(full_query, types, request_limit)
    )
    results = results or {}

    if limit == 1:
        truncate_to_limit_one(results)
    filter_ghost_entries(results)
    if exact and query:
        filter_exact_matches(results, query)
    fuzzy, sort_by_score = _search_settings()
    add_fuzzy_scores(results, query or full_query, fuzzy, sort=sort_by_score)

    if play:
        return _play_first(client, pins, results)

    return Response.success_typed(
        200,
        f"Found {len(pins)} pinned + Spotify results",
        PayloadKind.COMBINED_SEARCH,
        {"pins": pins, "spotify": results},
    )
