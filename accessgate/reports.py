"""
Access log reporting – denial summaries over the attempt log.
"""

from typing import Optional

import pandas as pd
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from accessgate.database import StorageError, access_attempt_logs

TOP_N = 10


def load_access_log_frame(engine, blocked_only: bool = True) -> pd.DataFrame:
    """Read the access log into a DataFrame."""
    stmt = select(access_attempt_logs)
    if blocked_only:
        stmt = stmt.where(access_attempt_logs.c.was_blocked.is_(True))
    try:
        with engine.connect() as conn:
            return pd.read_sql_query(stmt, conn)
    except SQLAlchemyError as e:
        raise StorageError(f"Access log query failed: {e}") from e


def _top_counts(df: pd.DataFrame, column: str, label: Optional[str] = None) -> str:
    vc = df[column].fillna("(none)").value_counts().head(TOP_N).reset_index()
    vc.columns = [label or column, "count"]
    return vc.to_markdown(index=False)


def summarize_denials(df: pd.DataFrame) -> str:
    """
    Text summary of blocked attempts: totals, then the busiest reasons,
    routes and roles.
    """
    if df.empty:
        return "No blocked access attempts recorded."

    blocked = df[df["was_blocked"].astype(bool)] if "was_blocked" in df else df
    if blocked.empty:
        return "No blocked access attempts recorded."

    lines = [f"Blocked attempts: {len(blocked)}"]

    anonymous = blocked["user_id"].isna().sum()
    lines.append(f"Anonymous attempts: {anonymous} ({anonymous * 100.0 / len(blocked):.1f}%)")

    if "timestamp" in blocked:
        ts = pd.to_datetime(blocked["timestamp"], errors="coerce", utc=True).dropna()
        if not ts.empty:
            lines.append(f"Window: {ts.min():%Y-%m-%d %H:%M} to {ts.max():%Y-%m-%d %H:%M} UTC")

    lines.append("\nBy reason:\n" + _top_counts(blocked, "block_reason", "reason"))
    lines.append("\nTop routes:\n" + _top_counts(blocked, "attempted_route", "route"))
    lines.append("\nBy role:\n" + _top_counts(blocked, "user_role", "role"))
    return "\n".join(lines)


def denial_counts_by_reason(df: pd.DataFrame) -> dict:
    """Reason -> count for blocked attempts, for JSON responses."""
    if df.empty:
        return {}
    blocked = df[df["was_blocked"].astype(bool)]
    counts = blocked["block_reason"].fillna("(none)").value_counts()
    return {str(k): int(v) for k, v in counts.items()}
