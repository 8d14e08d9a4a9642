"""
Restriction management – validate admin input and write rules.

Every page-rule write drops the affected route keys from the rule cache.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from accessgate.cache import RuleCache
from accessgate.database import StorageError, content_restrictions, page_restrictions
from accessgate.models import ContentRestriction, PageRestriction
from accessgate.repository import content_rule_from_row, page_rule_from_row

NAME_LIST_FIELDS = ("allowed_roles", "blocked_roles", "allowed_usernames", "blocked_usernames")
PAGE_FLAG_FIELDS = ("allow_non_logged_in", "hide_from_nav", "show_in_nav_override", "is_active")
PAGE_TEXT_FIELDS = ("redirect_url", "custom_html_on_block", "description")


# ── Payload validation ───────────────────────────────────────────────

def parse_name_list(value: Any, field_name: str) -> List[str]:
    """Accept a list of strings or a comma-separated string; drop blanks and dupes."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"'{field_name}' must be a list or comma-separated string.")
    names: List[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"'{field_name}' entries must be strings, got {item!r}.")
        item = item.strip()
        if item and item not in names:
            names.append(item)
    return names


def _parse_flag(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"'{field_name}' must be true or false.")


def _parse_text(value: Any, field_name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"'{field_name}' must be a string.")
    return value.strip() or None


def parse_page_rule_payload(data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Turn a JSON body into page_restrictions column values."""
    if not isinstance(data, Mapping):
        raise ValueError("Request body must be a JSON object.")

    values: Dict[str, Any] = {}

    if "route_path" in data or not partial:
        route_path = data.get("route_path")
        if not isinstance(route_path, str) or not route_path.strip():
            raise ValueError("route_path is required.")
        route_path = route_path.strip()
        if not route_path.startswith("/"):
            raise ValueError(f"route_path must start with '/', got '{route_path}'.")
        values["route_path"] = route_path

    for name in NAME_LIST_FIELDS:
        if name in data or not partial:
            values[name] = parse_name_list(data.get(name), name)

    for name in PAGE_FLAG_FIELDS:
        if name in data:
            values[name] = _parse_flag(data[name], name)
        elif not partial:
            values[name] = name == "is_active"

    if "priority" in data or not partial:
        priority = data.get("priority", 0)
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValueError("priority must be an integer.")
        values["priority"] = priority

    for name in PAGE_TEXT_FIELDS:
        if name in data:
            values[name] = _parse_text(data[name], name)

    return values


def parse_content_rule_payload(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Turn a JSON body into content_restrictions column values."""
    if not isinstance(data, Mapping):
        raise ValueError("Request body must be a JSON object.")

    values: Dict[str, Any] = {}
    for key in ("content_type", "content_identifier"):
        raw = data.get(key)
        if isinstance(raw, int) and not isinstance(raw, bool):
            raw = str(raw)
        if not isinstance(raw, str) or not raw.strip():
            raise ValueError(f"{key} is required.")
        values[key] = raw.strip()

    for name in NAME_LIST_FIELDS:
        values[name] = parse_name_list(data.get(name), name)
    values["hide_from_frontend"] = _parse_flag(
        data.get("hide_from_frontend", False), "hide_from_frontend"
    )
    values["description"] = _parse_text(data.get("description"), "description")
    return values


# ── Page rules ───────────────────────────────────────────────────────

def _invalidate(cache: Optional[RuleCache], *route_paths: str) -> None:
    if cache is None:
        return
    for route_path in route_paths:
        cache.invalidate(route_path)


def _load_page_rule(conn, rule_id: int) -> Optional[PageRestriction]:
    row = conn.execute(
        select(page_restrictions).where(page_restrictions.c.id == rule_id)
    ).mappings().first()
    return page_rule_from_row(row) if row else None


def get_page_rule_by_id(engine, rule_id: int) -> Optional[PageRestriction]:
    try:
        with engine.connect() as conn:
            return _load_page_rule(conn, rule_id)
    except SQLAlchemyError as e:
        raise StorageError(f"Could not load restriction {rule_id}: {e}") from e


def list_page_rules(engine) -> List[PageRestriction]:
    """Every page rule, active or not, as the admin screen lists them."""
    stmt = select(page_restrictions).order_by(
        page_restrictions.c.priority.desc(), page_restrictions.c.id.asc()
    )
    try:
        with engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
    except SQLAlchemyError as e:
        raise StorageError(f"Could not list restrictions: {e}") from e
    return [page_rule_from_row(row) for row in rows]


def create_page_rule(
    engine, data: Mapping[str, Any], cache: Optional[RuleCache] = None
) -> PageRestriction:
    values = parse_page_rule_payload(data)
    now = datetime.now(timezone.utc)
    values.update(created_at=now, updated_at=now)
    try:
        with engine.begin() as conn:
            result = conn.execute(insert(page_restrictions).values(**values))
            rule = _load_page_rule(conn, result.inserted_primary_key[0])
    except IntegrityError as e:
        raise ValueError(
            f"A restriction for route '{values['route_path']}' already exists."
        ) from e
    except SQLAlchemyError as e:
        raise StorageError(f"Could not create restriction: {e}") from e

    _invalidate(cache, rule.route_path)
    return rule


def update_page_rule(
    engine, rule_id: int, data: Mapping[str, Any], cache: Optional[RuleCache] = None
) -> Optional[PageRestriction]:
    """Apply a partial update; returns None if the rule does not exist."""
    values = parse_page_rule_payload(data, partial=True)
    values["updated_at"] = datetime.now(timezone.utc)
    try:
        with engine.begin() as conn:
            existing = _load_page_rule(conn, rule_id)
            if existing is None:
                return None
            conn.execute(
                update(page_restrictions)
                .where(page_restrictions.c.id == rule_id)
                .values(**values)
            )
            rule = _load_page_rule(conn, rule_id)
    except IntegrityError as e:
        raise ValueError(
            f"A restriction for route '{values.get('route_path')}' already exists."
        ) from e
    except SQLAlchemyError as e:
        raise StorageError(f"Could not update restriction {rule_id}: {e}") from e

    _invalidate(cache, existing.route_path, rule.route_path)
    return rule


def delete_page_rule(engine, rule_id: int, cache: Optional[RuleCache] = None) -> bool:
    try:
        with engine.begin() as conn:
            existing = _load_page_rule(conn, rule_id)
            if existing is None:
                return False
            conn.execute(delete(page_restrictions).where(page_restrictions.c.id == rule_id))
    except SQLAlchemyError as e:
        raise StorageError(f"Could not delete restriction {rule_id}: {e}") from e

    _invalidate(cache, existing.route_path)
    return True


# ── Content rules ────────────────────────────────────────────────────

def list_content_rules_admin(engine) -> List[ContentRestriction]:
    stmt = select(content_restrictions).order_by(
        content_restrictions.c.content_type, content_restrictions.c.content_identifier
    )
    try:
        with engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
    except SQLAlchemyError as e:
        raise StorageError(f"Could not list content restrictions: {e}") from e
    return [content_rule_from_row(row) for row in rows]


def create_content_rule(engine, data: Mapping[str, Any]) -> ContentRestriction:
    values = parse_content_rule_payload(data)
    try:
        with engine.begin() as conn:
            result = conn.execute(insert(content_restrictions).values(**values))
            row = conn.execute(
                select(content_restrictions)
                .where(content_restrictions.c.id == result.inserted_primary_key[0])
            ).mappings().first()
    except IntegrityError as e:
        raise ValueError(
            f"A restriction for {values['content_type']}/"
            f"{values['content_identifier']} already exists."
        ) from e
    except SQLAlchemyError as e:
        raise StorageError(f"Could not create content restriction: {e}") from e
    return content_rule_from_row(row)


def delete_content_rule(engine, rule_id: int) -> bool:
    try:
        with engine.begin() as conn:
            result = conn.execute(
                delete(content_restrictions).where(content_restrictions.c.id == rule_id)
            )
    except SQLAlchemyError as e:
        raise StorageError(f"Could not delete content restriction {rule_id}: {e}") from e
    return result.rowcount > 0
