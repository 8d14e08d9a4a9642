"""
Access attempt log – write denied attempts, read them back for admins.
"""

import sys
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError

from accessgate.config import DEFAULT_LOG_LIMIT, MAX_LOG_LIMIT
from accessgate.database import StorageError, access_attempt_logs
from accessgate.models import AccessAttempt, UserContext


def _fit(value: Optional[str], column) -> Optional[str]:
    """Clip *value* to the column's VARCHAR width; empty becomes None."""
    if not value:
        return None
    return value[:column.type.length]


def log_access_attempt(
    engine,
    user: UserContext,
    attempted_route: str,
    block_reason: str,
    restriction_id: Optional[int] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    restriction_type: str = "page",
) -> None:
    """Record a blocked attempt. Failures are reported, never raised."""
    cols = access_attempt_logs.c
    try:
        with engine.begin() as conn:
            conn.execute(
                insert(access_attempt_logs).values(
                    user_id=_fit(user.user_id, cols.user_id),
                    user_role=_fit(user.role, cols.user_role),
                    username=_fit(user.username, cols.username),
                    attempted_route=attempted_route[:cols.attempted_route.type.length],
                    restriction_type=restriction_type,
                    restriction_id=restriction_id,
                    was_blocked=True,
                    block_reason=_fit(block_reason, cols.block_reason),
                    ip_address=_fit(ip_address, cols.ip_address),
                    user_agent=_fit(user_agent, cols.user_agent),
                    timestamp=datetime.now(timezone.utc),
                )
            )
    except Exception as e:
        print(f"[ERROR] Could not log access attempt for {attempted_route}: {e}",
              file=sys.stderr)


def list_access_logs(
    engine, blocked_only: bool = True, limit: int = DEFAULT_LOG_LIMIT
) -> List[AccessAttempt]:
    """Newest access attempts first, capped at MAX_LOG_LIMIT."""
    limit = max(1, min(int(limit), MAX_LOG_LIMIT))
    stmt = select(access_attempt_logs)
    if blocked_only:
        stmt = stmt.where(access_attempt_logs.c.was_blocked.is_(True))
    stmt = stmt.order_by(
        access_attempt_logs.c.timestamp.desc(), access_attempt_logs.c.id.desc()
    ).limit(limit)

    try:
        with engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
    except SQLAlchemyError as e:
        raise StorageError(f"Access log query failed: {e}") from e

    return [
        AccessAttempt(
            id=row["id"],
            attempted_route=row["attempted_route"],
            was_blocked=bool(row["was_blocked"]),
            block_reason=row["block_reason"],
            restriction_type=row["restriction_type"],
            restriction_id=row["restriction_id"],
            user_id=row["user_id"],
            user_role=row["user_role"],
            username=row["username"],
            ip_address=row["ip_address"],
            user_agent=row["user_agent"],
            timestamp=row["timestamp"],
        )
        for row in rows
    ]
