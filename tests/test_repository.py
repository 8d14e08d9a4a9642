"""
Tests for the rule repository against an in-memory SQLite database.
"""

import json

import pytest
from sqlalchemy import delete, insert
from sqlalchemy.exc import OperationalError

from accessgate.admin import create_content_rule, create_page_rule
from accessgate.cache import RuleCache
from accessgate.database import StorageError, page_restrictions
from accessgate.repository import RuleRepository, page_rule_from_row


# ── Helpers / Fakes ──────────────────────────────────────────────────

class FailingEngine:
    """Engine whose connections always fail."""
    def __init__(self):
        self.connect_calls = 0

    def connect(self):
        self.connect_calls += 1
        raise OperationalError("SELECT 1", {}, Exception("database is down"))


def repo_with_clock(engine, clock):
    return RuleRepository(engine, RuleCache(ttl_seconds=300, clock=clock))


# ── Tests: listing ───────────────────────────────────────────────────

def test_list_active_page_rules_sorted_by_priority(engine, clock):
    create_page_rule(engine, {"route_path": "/low/*", "priority": 5})
    create_page_rule(engine, {"route_path": "/high/*", "priority": 10})
    create_page_rule(engine, {"route_path": "/off/*", "priority": 99, "is_active": False})

    rules = repo_with_clock(engine, clock).list_active_page_rules()
    assert [r.route_path for r in rules] == ["/high/*", "/low/*"]


def test_list_active_page_rules_ties_keep_storage_order(engine, clock):
    create_page_rule(engine, {"route_path": "/b/*", "priority": 1})
    create_page_rule(engine, {"route_path": "/a/*", "priority": 1})
    rules = repo_with_clock(engine, clock).list_active_page_rules()
    assert [r.route_path for r in rules] == ["/b/*", "/a/*"]


def test_rows_become_typed_rules(engine, clock):
    create_page_rule(engine, {
        "route_path": "/admin/*",
        "allowed_roles": ["admin", "admin", " super_admin "],
        "blocked_usernames": "eve, mallory",
    })
    rule = repo_with_clock(engine, clock).list_active_page_rules()[0]
    assert rule.allowed_roles == frozenset({"admin", "super_admin"})
    assert rule.blocked_usernames == frozenset({"eve", "mallory"})
    assert rule.blocked_roles == frozenset()


def test_corrupt_row_raises_storage_error(engine, clock):
    with engine.begin() as conn:
        conn.execute(insert(page_restrictions).values(
            route_path="/broken", allowed_roles={"admin": True}, blocked_roles=[],
            allowed_usernames=[], blocked_usernames=[],
        ))
    with pytest.raises(StorageError, match="allowed_roles"):
        repo_with_clock(engine, clock).list_active_page_rules()


def test_page_rule_from_row_accepts_json_text():
    rule = page_rule_from_row({
        "id": 1, "route_path": "/x", "allowed_roles": '["admin"]', "blocked_roles": None,
        "allowed_usernames": [], "blocked_usernames": [], "allow_non_logged_in": 0,
        "priority": None, "hide_from_nav": 0, "show_in_nav_override": 0, "is_active": 1,
    })
    assert rule.allowed_roles == frozenset({"admin"})
    assert rule.priority == 0


def test_unreachable_store_raises_storage_error():
    repo = RuleRepository(FailingEngine())
    with pytest.raises(StorageError):
        repo.list_active_page_rules()
    with pytest.raises(StorageError):
        repo.get_content_rule("section", "earnings")


# ── Tests: cached single-route lookup ────────────────────────────────

def test_get_page_rule_is_cached_until_ttl(engine, clock):
    created = create_page_rule(engine, {"route_path": "/reports", "hide_from_nav": True})
    repo = repo_with_clock(engine, clock)

    assert repo.get_page_rule("/reports").id == created.id

    # Removed behind the cache's back: still served until expiry.
    with engine.begin() as conn:
        conn.execute(delete(page_restrictions))
    clock.advance(299)
    assert repo.get_page_rule("/reports").hide_from_nav is True

    clock.advance(2)
    assert repo.get_page_rule("/reports") is None


def test_get_page_rule_caches_absence(engine, clock):
    repo = repo_with_clock(engine, clock)
    assert repo.get_page_rule("/missing") is None
    assert json.loads(repo.cache.get("/missing")) is None


def test_get_page_rule_ignores_inactive(engine, clock):
    create_page_rule(engine, {"route_path": "/old", "is_active": False})
    assert repo_with_clock(engine, clock).get_page_rule("/old") is None


def test_invalidate_forces_refetch(engine, clock):
    repo = repo_with_clock(engine, clock)
    assert repo.get_page_rule("/new") is None
    create_page_rule(engine, {"route_path": "/new"})
    assert repo.get_page_rule("/new") is None
    repo.invalidate("/new")
    assert repo.get_page_rule("/new").route_path == "/new"


@pytest.mark.parametrize("payload", ["{not json", json.dumps({"id": "x"}), "[1, 2]"])
def test_malformed_cache_entry_is_a_miss(engine, clock, payload, capsys):
    create_page_rule(engine, {"route_path": "/reports"})
    repo = repo_with_clock(engine, clock)
    repo.cache.set("/reports", payload)

    assert repo.get_page_rule("/reports").route_path == "/reports"
    assert "[WARN]" in capsys.readouterr().err
    # Re-populated with a good entry.
    assert json.loads(repo.cache.get("/reports"))["route_path"] == "/reports"


# ── Tests: content rules ─────────────────────────────────────────────

def test_get_content_rule_exact_key(engine, clock):
    create_content_rule(engine, {"content_type": "section", "content_identifier": "earnings",
                                 "allowed_roles": ["tax_preparer"]})
    repo = repo_with_clock(engine, clock)
    assert repo.get_content_rule("section", "earnings").allowed_roles == {"tax_preparer"}
    assert repo.get_content_rule("component", "earnings") is None
    assert repo.get_content_rule("section", "earn*") is None


def test_list_content_rules_keyed_by_identifier(engine, clock):
    create_content_rule(engine, {"content_type": "section", "content_identifier": "a"})
    create_content_rule(engine, {"content_type": "section", "content_identifier": "b",
                                 "hide_from_frontend": True})
    create_content_rule(engine, {"content_type": "widget", "content_identifier": "a"})

    rules = repo_with_clock(engine, clock).list_content_rules("section", ["a", "b", "c", "a"])
    assert set(rules) == {"a", "b"}
    assert rules["b"].hide_from_frontend is True


def test_list_content_rules_empty_input_skips_query():
    engine = FailingEngine()
    assert RuleRepository(engine).list_content_rules("section", []) == {}
    assert engine.connect_calls == 0


def test_cache_stays_bounded_under_many_distinct_routes(engine, clock):
    repo = RuleRepository(engine, RuleCache(ttl_seconds=300, clock=clock, max_entries=50))
    for i in range(500):
        repo.get_page_rule(f"/junk/{i}")
    assert len(repo.cache) == 50

    clock.advance(10_000)
    repo.get_page_rule("/junk/after")
    assert len(repo.cache) == 1
