"""Fuzzy text scoring used to rank search hits against the user's query."""

from .config import FuzzyConfig


def levenshtein_distance(a, b):
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(
                min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost)
            )
        previous = current
    return previous[-1]


def similarity(a, b):
    """Return ``1 - distance / longest``, or 0.0 for two empty strings."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 0.0
    return 1.0 - levenshtein_distance(a, b) / max_len


def calculate_score(name, query, config=None):
    """
    Score ``name`` against ``query``; case-insensitive, higher is better.

    An exact match short-circuits to ``config.exact_match``. Otherwise the
    prefix, substring, per-word and edit-distance bonuses add up.
    """
    if config is None:
        config = FuzzyConfig()
    name_lower = name.lower()
    query_lower = query.lower()

    if name_lower == query_lower:
        return config.exact_match

    score = 0.0
    if name_lower.startswith(query_lower):
        score += config.starts_with
    if query_lower in name_lower:
        score += config.contains
    for word in query_lower.split():
        if word in name_lower:
            score += config.word_match

    sim = similarity(name_lower, query_lower)
    if sim > config.similarity_threshold:
        score += sim * config.similarity_weight
    return score
