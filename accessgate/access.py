"""
Public access checks – single route, content, batch and filtering helpers.

Page checks fail closed (any error denies with reason "error"). Bulk content
filtering fails open and returns its input unchanged. Navigation visibility
falls back to "visible".
"""

import sys
import traceback
from typing import Any, Dict, List, Mapping, Sequence, TypeVar

from accessgate.decision import decide, error_result, no_restriction
from accessgate.matching import select_matching_rule
from accessgate.models import AccessCheckResult, UserContext
from accessgate.repository import RuleRepository

T = TypeVar("T")


def _item_key(item: Any, name: str) -> str:
    """Read ``path`` / ``id`` from either a mapping or an object."""
    if isinstance(item, Mapping):
        return item[name]
    return getattr(item, name)


# ── Single checks ────────────────────────────────────────────────────

def check_page_access(
    repo: RuleRepository, route_path: str, user: UserContext
) -> AccessCheckResult:
    """Decide access to *route_path* using the highest-priority matching rule."""
    try:
        rule = select_matching_rule(route_path, repo.list_active_page_rules())
        if rule is None:
            return no_restriction()

        print(f"[access] Route {route_path} matched pattern "
              f"\"{rule.route_path}\" (priority: {rule.priority})")
        return decide(rule, user)
    except Exception as e:
        print(f"[ERROR] Page access check failed for {route_path}: {e}", file=sys.stderr)
        return error_result()


def check_content_access(
    repo: RuleRepository,
    content_type: str,
    content_identifier: str,
    user: UserContext,
) -> AccessCheckResult:
    """Decide access to one content unit. Content is never public."""
    try:
        rule = repo.get_content_rule(content_type, content_identifier)
        if rule is None:
            return no_restriction()
        return decide(rule, user)
    except Exception as e:
        print(f"[ERROR] Content access check failed for "
              f"{content_type}/{content_identifier}: {e}", file=sys.stderr)
        return error_result()


# ── Batch checks ─────────────────────────────────────────────────────

def check_batch_page_access(
    repo: RuleRepository, route_paths: Sequence[str], user: UserContext
) -> Dict[str, AccessCheckResult]:
    """
    Check many routes against a single fetch of the rule set.

    Results are identical to calling check_page_access per route. If anything
    fails, every route is denied.
    """
    results: Dict[str, AccessCheckResult] = {}
    try:
        rules = repo.list_active_page_rules()
        for route_path in route_paths:
            rule = select_matching_rule(route_path, rules)
            results[route_path] = no_restriction() if rule is None else decide(rule, user)
        return results
    except Exception as e:
        print(f"[ERROR] Batch access check failed: {e}", file=sys.stderr)
        traceback.print_exc()
        return {route_path: error_result() for route_path in route_paths}


def filter_accessible_routes(
    repo: RuleRepository, routes: Sequence[T], user: UserContext
) -> List[T]:
    """Keep the routes (items with ``path``) the user may open, in input order."""
    paths = [_item_key(route, "path") for route in routes]
    results = check_batch_page_access(repo, paths, user)
    return [route for route, path in zip(routes, paths) if results[path].allowed]


def filter_accessible_content(
    repo: RuleRepository,
    content_type: str,
    items: Sequence[T],
    user: UserContext,
) -> List[T]:
    """
    Keep the content items (items with ``id``) the user may see.

    Items flagged hide_from_frontend are dropped for everyone. On error the
    input is returned unfiltered.
    """
    try:
        ids = [str(_item_key(item, "id")) for item in items]
        rules = repo.list_content_rules(content_type, ids)

        visible: List[T] = []
        for item, item_id in zip(items, ids):
            rule = rules.get(item_id)
            if rule is None:
                visible.append(item)
                continue
            if rule.hide_from_frontend:
                continue
            if decide(rule, user).allowed:
                visible.append(item)
        return visible
    except Exception as e:
        print(f"[ERROR] Content filtering failed for {content_type}: {e}", file=sys.stderr)
        return list(items)


# ── Navigation ───────────────────────────────────────────────────────

def should_hide_from_nav(repo: RuleRepository, route_path: str) -> bool:
    """True if the rule stored for exactly *route_path* hides it from menus."""
    try:
        rule = repo.get_page_rule(route_path)
    except Exception as e:
        print(f"[ERROR] Nav visibility check failed for {route_path}: {e}", file=sys.stderr)
        return False

    if rule is None or rule.show_in_nav_override:
        return False
    return rule.hide_from_nav
