"""
Rule repository – loads active restrictions from the database, with a
path-keyed cache for single-route lookups.
"""

import json
import sys
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from accessgate.cache import RuleCache
from accessgate.database import StorageError, content_restrictions, page_restrictions
from accessgate.models import ContentRestriction, PageRestriction


# ── Row validation ───────────────────────────────────────────────────

def _name_set(value: Any, field_name: str) -> FrozenSet[str]:
    """Coerce a stored role/username list into a frozenset of clean strings."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        # Some drivers hand JSON columns back as text.
        try:
            value = json.loads(value)
        except ValueError:
            raise StorageError(f"Column '{field_name}' holds invalid JSON: {value[:80]!r}")
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise StorageError(f"Column '{field_name}' must be a list, got {type(value).__name__}.")
    names = set()
    for item in value:
        if not isinstance(item, str):
            raise StorageError(f"Column '{field_name}' contains a non-string entry: {item!r}")
        item = item.strip()
        if item:
            names.add(item)
    return frozenset(names)


def _timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def page_rule_from_row(row: Mapping[str, Any]) -> PageRestriction:
    """Build a typed PageRestriction from a DB row or a decoded cache entry."""
    try:
        return PageRestriction(
            id=int(row["id"]),
            route_path=str(row["route_path"]),
            allowed_roles=_name_set(row["allowed_roles"], "allowed_roles"),
            blocked_roles=_name_set(row["blocked_roles"], "blocked_roles"),
            allowed_usernames=_name_set(row["allowed_usernames"], "allowed_usernames"),
            blocked_usernames=_name_set(row["blocked_usernames"], "blocked_usernames"),
            allow_non_logged_in=bool(row["allow_non_logged_in"]),
            priority=int(row["priority"] or 0),
            redirect_url=row.get("redirect_url") or None,
            custom_html_on_block=row.get("custom_html_on_block") or None,
            hide_from_nav=bool(row["hide_from_nav"]),
            show_in_nav_override=bool(row["show_in_nav_override"]),
            is_active=bool(row["is_active"]),
            description=row.get("description"),
            created_at=_timestamp(row.get("created_at")),
            updated_at=_timestamp(row.get("updated_at")),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise StorageError(f"Malformed page restriction row: {e}") from e


def content_rule_from_row(row: Mapping[str, Any]) -> ContentRestriction:
    """Build a typed ContentRestriction from a DB row."""
    try:
        return ContentRestriction(
            id=int(row["id"]),
            content_type=str(row["content_type"]),
            content_identifier=str(row["content_identifier"]),
            allowed_roles=_name_set(row["allowed_roles"], "allowed_roles"),
            blocked_roles=_name_set(row["blocked_roles"], "blocked_roles"),
            allowed_usernames=_name_set(row["allowed_usernames"], "allowed_usernames"),
            blocked_usernames=_name_set(row["blocked_usernames"], "blocked_usernames"),
            hide_from_frontend=bool(row["hide_from_frontend"]),
            description=row.get("description"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise StorageError(f"Malformed content restriction row: {e}") from e


# ── Repository ───────────────────────────────────────────────────────

class RuleRepository:
    """Read-only access to page and content restrictions."""

    def __init__(self, engine, cache: Optional[RuleCache] = None):
        self.engine = engine
        self.cache = cache if cache is not None else RuleCache()

    def _fetch_all(self, stmt) -> List[Mapping[str, Any]]:
        try:
            with self.engine.connect() as conn:
                return list(conn.execute(stmt).mappings().all())
        except SQLAlchemyError as e:
            raise StorageError(f"Restriction query failed: {e}") from e

    def list_active_page_rules(self) -> List[PageRestriction]:
        """All active page rules, highest priority first, ties in storage order."""
        stmt = (
            select(page_restrictions)
            .where(page_restrictions.c.is_active.is_(True))
            .order_by(page_restrictions.c.priority.desc(), page_restrictions.c.id.asc())
        )
        return [page_rule_from_row(row) for row in self._fetch_all(stmt)]

    def get_page_rule(self, route_path: str) -> Optional[PageRestriction]:
        """Active rule stored under exactly *route_path*, via the cache."""
        cached = self.cache.get(route_path)
        if cached is not None:
            try:
                payload = json.loads(cached)
                return None if payload is None else page_rule_from_row(payload)
            except (ValueError, StorageError) as e:
                print(f"[WARN] Discarding malformed cache entry for {route_path}: {e}",
                      file=sys.stderr)
                self.cache.invalidate(route_path)

        stmt = (
            select(page_restrictions)
            .where(page_restrictions.c.route_path == route_path)
            .where(page_restrictions.c.is_active.is_(True))
        )
        rows = self._fetch_all(stmt)
        rule = page_rule_from_row(rows[0]) if rows else None
        self.cache.set(route_path, json.dumps(rule.to_dict() if rule else None))
        return rule

    def get_content_rule(
        self, content_type: str, content_identifier: str
    ) -> Optional[ContentRestriction]:
        stmt = (
            select(content_restrictions)
            .where(content_restrictions.c.content_type == content_type)
            .where(content_restrictions.c.content_identifier == content_identifier)
        )
        rows = self._fetch_all(stmt)
        return content_rule_from_row(rows[0]) if rows else None

    def list_content_rules(
        self, content_type: str, identifiers: Iterable[str]
    ) -> Dict[str, ContentRestriction]:
        """Rules for the given identifiers of one content type, keyed by identifier."""
        identifiers = list(dict.fromkeys(identifiers))
        if not identifiers:
            return {}
        stmt = (
            select(content_restrictions)
            .where(content_restrictions.c.content_type == content_type)
            .where(content_restrictions.c.content_identifier.in_(identifiers))
        )
        rules = (content_rule_from_row(row) for row in self._fetch_all(stmt))
        return {rule.content_identifier: rule for rule in rules}

    def invalidate(self, route_path: Optional[str] = None) -> None:
        """Forget one cached route, or all of them."""
        self.cache.invalidate(route_path)
