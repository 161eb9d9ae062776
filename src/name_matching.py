"""
Person-name matching with normalization, word-order tolerance and cached fuzzy scoring.
"""
import re
from functools import lru_cache

from rapidfuzz import fuzz


def normalize_text(text):
    """Normalize a name for matching: lowercase, strip punctuation, collapse spaces."""
    if not isinstance(text, str):
        return ""
    text = re.sub(r"[.,*'\"()]", " ", text.lower().strip())
    text = re.sub(r"\s+", " ", text)
    return text.strip()


@lru_cache(maxsize=8192)
def cached_name_score(name1, name2):
    """Cached token-sort ratio for performance."""
    return fuzz.token_sort_ratio(name1, name2)


def _significant_words(name):
    return {w for w in name.split() if len(w) > 1}


def find_name_match(name, candidates, word_index=None, fuzzy_threshold=90):
    """
    Find the best candidate for a single name.

    Matching strategy (in order of precedence):
    1. Exact match after normalization
    2. Word match (same significant words in any order, e.g. "Doe, Jane")
    3. Fuzzy token-sort match against candidates sharing a word (cached)

    candidates: set of normalized names. word_index (word -> names) narrows
    the fuzzy pass; without it every candidate is scored.

    Returns: (matched candidate or None, match_type)
    """
    name_norm = normalize_text(name)
    if not name_norm:
        return None, "no_match"

    # 1. Exact
    if name_norm in candidates:
        return name_norm, "exact"

    # 2. Word-based
    words = _significant_words(name_norm)
    if word_index is not None:
        pool = set()
        for w in words:
            pool |= word_index.get(w, set())
        pool &= candidates
    else:
        pool = set(candidates)

    for candidate in sorted(pool):
        if words and _significant_words(candidate) == words:
            return candidate, "word_match"

    # 3. Fuzzy
    best_match = None
    best_score = 0
    for candidate in sorted(pool):
        score = cached_name_score(name_norm, candidate)
        if score > best_score and score >= fuzzy_threshold:
            best_score = score
            best_match = candidate

    if best_match is not None:
        return best_match, "fuzzy"
    return None, "no_match"


def match_names(query_names, candidate_names, fuzzy_threshold=90):
    """
    Match each query name to at most one candidate; each candidate is used once.

    Returns: dict of match_type -> count (exact, word_match, fuzzy, no_match)
    """
    # Scores are cached per call so get_match_stats() describes this run only
    cached_name_score.cache_clear()

    candidates ={normalize_text(n) for n in candidate_names} - {""}
    word_index = {}
    for candidate in candidates:
        for w in _significant_words(candidate):
            word_index.setdefault(w, set()).add(candidate)

    counts = {"exact": 0, "word_match": 0, "fuzzy": 0, "no_match": 0}
    for name in sorted(query_names):
        match, match_type = find_name_match(name, candidates, word_index, fuzzy_threshold)
        counts[match_type] += 1
        if match is not None:
            candidates.discard(match)
    return counts


def get_match_stats():
    """Get cache statistics for fuzzy matching."""
    info = cached_name_score.cache_info()
    return {
        'cache_hits': info.hits,
        'cache_misses': info.misses,
        'cache_size': info.currsize
    }
