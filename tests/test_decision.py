"""
Unit tests for the access decision ladder.
"""

from accessgate.decision import decide, is_username_in_list, normalize_username
from accessgate.models import ContentRestriction, PageRestriction, Reason, UserContext


# ── Helpers ──────────────────────────────────────────────────────────

def page_rule(**kw):
    for key in ("allowed_roles", "blocked_roles", "allowed_usernames", "blocked_usernames"):
        kw[key] = frozenset(kw.get(key, ()))
    kw.setdefault("id", 1)
    kw.setdefault("route_path", "/admin/*")
    return PageRestriction(**kw)


def user(role=None, username=None, authenticated=True):
    return UserContext(user_id="u1" if authenticated else None, username=username,
                       role=role, is_authenticated=authenticated)


# ── Tests: username helpers ──────────────────────────────────────────

def test_normalize_username():
    assert normalize_username("  Eve ") == "eve"


def test_is_username_in_list_case_insensitive():
    assert is_username_in_list("EVE", ["bob", " eve "])
    assert not is_username_in_list("eve", ["evelyn"])


def test_blank_username_never_matches():
    assert not is_username_in_list(None, ["eve"])
    assert not is_username_in_list("   ", ["", "   "])


# ── Tests: precedence ────────────────────────────────────────────────

def test_blocked_role_scenario():
    rule = page_rule(blocked_roles=["client"], priority=1)
    result = decide(rule, user(role="client"))
    assert result.allowed is False
    assert result.reason == Reason.BLOCKED_ROLE


def test_empty_allow_list_passes_other_authenticated_roles():
    rule = page_rule(blocked_roles=["client"], priority=1)
    result = decide(rule, user(role="tax_preparer"))
    assert result.allowed is True
    assert result.reason == "authenticated"


def test_blocked_username_beats_allowed_role():
    rule = page_rule(allowed_roles=["admin"], blocked_usernames=["eve"])
    result = decide(rule, user(role="admin", username="Eve"))
    assert result.allowed is False
    assert result.reason == Reason.BLOCKED_USERNAME


def test_allowed_username_beats_blocked_role():
    rule = page_rule(blocked_roles=["client"], allowed_usernames=["carol"])
    result = decide(rule, user(role="client", username="carol"))
    assert result.allowed is True
    assert result.reason == Reason.ALLOWED_USERNAME


def test_allowed_username_applies_before_authentication_gate():
    rule = page_rule(allowed_usernames=["carol"])
    result = decide(rule, user(username="carol", authenticated=False))
    assert result.reason == Reason.ALLOWED_USERNAME


def test_unauthenticated_denied_regardless_of_roles():
    rule = page_rule(allowed_roles=[], blocked_roles=[])
    result = decide(rule, user(role="admin", authenticated=False))
    assert result.allowed is False
    assert result.reason == Reason.NOT_AUTHENTICATED


def test_unauthenticated_allowed_when_public():
    rule = page_rule(allow_non_logged_in=True, blocked_roles=["client"])
    result = decide(rule, user(authenticated=False))
    assert result.allowed is True
    assert result.reason == Reason.PUBLIC_ACCESS


def test_allowed_role():
    rule = page_rule(allowed_roles=["admin", "super_admin"])
    result = decide(rule, user(role="super_admin"))
    assert result.allowed is True
    assert result.reason == Reason.ALLOWED_ROLE


def test_role_outside_allow_list_is_denied():
    rule = page_rule(allowed_roles=["admin"])
    result = decide(rule, user(role="client"))
    assert result.allowed is False
    assert result.reason == Reason.NO_PERMISSION


def test_missing_role_with_allow_list_is_denied():
    rule = page_rule(allowed_roles=["admin"])
    assert decide(rule, user(role=None)).reason == Reason.NO_PERMISSION


def test_missing_role_with_empty_allow_list_is_allowed():
    assert decide(page_rule(), user(role=None)).reason == Reason.AUTHENTICATED


def test_denials_carry_fallback_and_rule_id():
    rule = page_rule(id=7, allowed_roles=["admin"], redirect_url="/forbidden",
                     custom_html_on_block="<p>Nope</p>")
    result = decide(rule, user(role="client"))
    assert result.redirect_url == "/forbidden"
    assert result.custom_content == "<p>Nope</p>"
    assert result.restriction_id == 7


def test_allows_carry_no_fallback():
    rule = page_rule(redirect_url="/forbidden")
    result = decide(rule, user(role="client"))
    assert result.allowed is True
    assert result.redirect_url is None


# ── Tests: content rules ─────────────────────────────────────────────

def content_rule(**kw):
    for key in ("allowed_roles", "blocked_roles", "allowed_usernames", "blocked_usernames"):
        kw[key] = frozenset(kw.get(key, ()))
    return ContentRestriction(id=3, content_type="section", content_identifier="earnings", **kw)


def test_content_rules_are_never_public():
    result = decide(content_rule(), user(authenticated=False))
    assert result.allowed is False
    assert result.reason == Reason.NOT_AUTHENTICATED
    assert result.redirect_url is None


def test_content_rules_follow_same_ladder():
    rule = content_rule(allowed_roles=["tax_preparer"], blocked_usernames=["mallory"])
    assert decide(rule, user(role="tax_preparer")).reason == Reason.ALLOWED_ROLE
    assert decide(rule, user(role="tax_preparer", username="Mallory")).reason == \
        Reason.BLOCKED_USERNAME
    assert decide(rule, user(role="client")).reason == Reason.NO_PERMISSION


def test_to_dict_uses_plain_reason_string():
    out = decide(page_rule(), user(role="client")).to_dict()
    assert out == {"allowed": True, "reason": "authenticated", "restriction_id": 1}
