"""
Domain dataclasses used across the application.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class Reason(str, Enum):
    """Why an access decision came out the way it did."""
    NO_RESTRICTION = "no_restriction"
    BLOCKED_USERNAME = "blocked_username"
    ALLOWED_USERNAME = "allowed_username"
    PUBLIC_ACCESS = "public_access"
    NOT_AUTHENTICATED = "not_authenticated"
    BLOCKED_ROLE = "blocked_role"
    AUTHENTICATED = "authenticated"
    ALLOWED_ROLE = "allowed_role"
    NO_PERMISSION = "no_permission"
    ERROR = "error"


@dataclass(frozen=True)
class UserContext:
    """Identity of the requester, resolved once per request."""
    user_id: Optional[str] = None
    username: Optional[str] = None
    role: Optional[str] = None           # "admin", "tax_preparer", "client", ...
    is_authenticated: bool = False


ANONYMOUS = UserContext()


@dataclass(frozen=True)
class PageRestriction:
    """Access rule for every route matching ``route_path``."""
    id: int
    route_path: str                      # exact path or pattern with "*"
    allowed_roles: FrozenSet[str] = frozenset()
    blocked_roles: FrozenSet[str] = frozenset()
    allowed_usernames: FrozenSet[str] = frozenset()
    blocked_usernames: FrozenSet[str] = frozenset()
    allow_non_logged_in: bool = False
    priority: int = 0
    redirect_url: Optional[str] = None
    custom_html_on_block: Optional[str] = None
    hide_from_nav: bool = False
    show_in_nav_override: bool = False
    is_active: bool = True
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "route_path": self.route_path,
            "allowed_roles": sorted(self.allowed_roles),
            "blocked_roles": sorted(self.blocked_roles),
            "allowed_usernames": sorted(self.allowed_usernames),
            "blocked_usernames": sorted(self.blocked_usernames),
            "allow_non_logged_in": self.allow_non_logged_in,
            "priority": self.priority,
            "redirect_url": self.redirect_url,
            "custom_html_on_block": self.custom_html_on_block,
            "hide_from_nav": self.hide_from_nav,
            "show_in_nav_override": self.show_in_nav_override,
            "is_active": self.is_active,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class ContentRestriction:
    """Access rule for one named piece of content (exact key, no patterns)."""
    id: int
    content_type: str                    # "section", "component", ...
    content_identifier: str
    allowed_roles: FrozenSet[str] = frozenset()
    blocked_roles: FrozenSet[str] = frozenset()
    allowed_usernames: FrozenSet[str] = frozenset()
    blocked_usernames: FrozenSet[str] = frozenset()
    hide_from_frontend: bool = False
    description: Optional[str] = None

    # Content is never public and has no fallback page.
    @property
    def allow_non_logged_in(self) -> bool:
        return False

    @property
    def redirect_url(self) -> Optional[str]:
        return None

    @property
    def custom_html_on_block(self) -> Optional[str]:
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content_type": self.content_type,
            "content_identifier": self.content_identifier,
            "allowed_roles": sorted(self.allowed_roles),
            "blocked_roles": sorted(self.blocked_roles),
            "allowed_usernames": sorted(self.allowed_usernames),
            "blocked_usernames": sorted(self.blocked_usernames),
            "hide_from_frontend": self.hide_from_frontend,
            "description": self.description,
        }


@dataclass(frozen=True)
class AccessCheckResult:
    """Verdict for one route or content item."""
    allowed: bool
    reason: Reason
    redirect_url: Optional[str] = None
    custom_content: Optional[str] = None
    restriction_id: Optional[int] = None    # rule that produced the verdict

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"allowed": self.allowed, "reason": self.reason.value}
        if self.restriction_id is not None:
            out["restriction_id"] = self.restriction_id
        if self.redirect_url:
            out["redirect_url"] = self.redirect_url
        if self.custom_content:
            out["custom_content"] = self.custom_content
        return out


@dataclass
class AccessAttempt:
    """One row of the access log."""
    id: int
    attempted_route: str
    was_blocked: bool
    block_reason: Optional[str]
    restriction_type: str = "page"
    restriction_id: Optional[int] = None
    user_id: Optional[str] = None
    user_role: Optional[str] = None
    username: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: Optional[datetime] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_role": self.user_role,
            "username": self.username,
            "attempted_route": self.attempted_route,
            "restriction_type": self.restriction_type,
            "restriction_id": self.restriction_id,
            "was_blocked": self.was_blocked,
            "block_reason": self.block_reason,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
