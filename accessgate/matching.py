"""
Route pattern matching and rule selection.
"""

import re
from functools import lru_cache
from typing import List, Optional, Sequence

from accessgate.models import PageRestriction

WILDCARD = "*"


@lru_cache(maxsize=1024)
def _compile_pattern(pattern: str) -> "re.Pattern[str]":
    # Everything except "*" is literal; each "*" spans any run of characters.
    parts = (re.escape(chunk) for chunk in pattern.split(WILDCARD))
    return re.compile(".*".join(parts), re.DOTALL)


def match_route_pattern(route: str, pattern: str) -> bool:
    """
    Check whether *route* matches *pattern*.

    Patterns without a wildcard require exact equality. Otherwise ``*``
    matches any sequence (including empty) and the whole route must match:
    ``/admin/*`` matches ``/admin/users`` and ``/admin/`` but not ``/adminx``.
    """
    if WILDCARD not in pattern:
        return route == pattern
    return _compile_pattern(pattern).fullmatch(route) is not None


def find_matching_rules(
    route: str, rules: Sequence[PageRestriction]
) -> List[PageRestriction]:
    """Return the rules whose pattern matches *route*, keeping their order."""
    return [rule for rule in rules if match_route_pattern(route, rule.route_path)]


def select_matching_rule(
    route: str, rules: Sequence[PageRestriction]
) -> Optional[PageRestriction]:
    """
    Pick the governing rule for *route* from priority-sorted *rules*.

    The first match wins, so equal priorities fall back to storage order.
    """
    matches = find_matching_rules(route, rules)
    return matches[0] if matches else None
