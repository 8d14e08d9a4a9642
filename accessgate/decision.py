"""
Access decision core – the fixed precedence ladder applied to one rule.

Order (first match wins):
  1. blocked username
  2. allowed username
  3. authentication gate (allow_non_logged_in)
  4. blocked role
  5. allowed role (empty list = any authenticated role)
"""

from typing import Iterable, Optional, Union

from accessgate.models import (
    AccessCheckResult,
    ContentRestriction,
    PageRestriction,
    Reason,
    UserContext,
)

Rule = Union[PageRestriction, ContentRestriction]


def normalize_username(username: str) -> str:
    """Lowercase and trim a username for comparison."""
    return username.strip().lower()


def is_username_in_list(username: Optional[str], usernames: Iterable[str]) -> bool:
    """Case-insensitive membership test; blank usernames never match."""
    if not username:
        return False
    needle = normalize_username(username)
    if not needle:
        return False
    return any(normalize_username(u) == needle for u in usernames)


def _allow(reason: Reason, rule: Rule) -> AccessCheckResult:
    return AccessCheckResult(allowed=True, reason=reason, restriction_id=rule.id)


def _deny(reason: Reason, rule: Rule) -> AccessCheckResult:
    return AccessCheckResult(
        allowed=False,
        reason=reason,
        restriction_id=rule.id,
        redirect_url=rule.redirect_url or None,
        custom_content=rule.custom_html_on_block or None,
    )


def decide(rule: Rule, user: UserContext) -> AccessCheckResult:
    """Evaluate *user* against a single restriction."""

    if is_username_in_list(user.username, rule.blocked_usernames):
        return _deny(Reason.BLOCKED_USERNAME, rule)

    # Explicit username allow outranks every role rule below.
    if is_username_in_list(user.username, rule.allowed_usernames):
        return _allow(Reason.ALLOWED_USERNAME, rule)

    if not user.is_authenticated:
        if rule.allow_non_logged_in:
            return _allow(Reason.PUBLIC_ACCESS, rule)
        return _deny(Reason.NOT_AUTHENTICATED, rule)

    if user.role and user.role in rule.blocked_roles:
        return _deny(Reason.BLOCKED_ROLE, rule)

    if not rule.allowed_roles:
        return _allow(Reason.AUTHENTICATED, rule)

    if user.role and user.role in rule.allowed_roles:
        return _allow(Reason.ALLOWED_ROLE, rule)

    return _deny(Reason.NO_PERMISSION, rule)


def no_restriction() -> AccessCheckResult:
    return AccessCheckResult(allowed=True, reason=Reason.NO_RESTRICTION)


def error_result() -> AccessCheckResult:
    return AccessCheckResult(allowed=False, reason=Reason.ERROR)
