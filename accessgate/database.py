"""
Database engine initialisation and the restriction / access-log schema.
"""

import sys
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    text,
)

from accessgate.config import get_env


class StorageError(Exception):
    """The rule store could not be reached or returned unusable data."""


metadata = MetaData()

page_restrictions = Table(
    "page_restrictions", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("route_path", String(512), nullable=False, unique=True),
    Column("allowed_roles", JSON, nullable=False, default=list),
    Column("blocked_roles", JSON, nullable=False, default=list),
    Column("allowed_usernames", JSON, nullable=False, default=list),
    Column("blocked_usernames", JSON, nullable=False, default=list),
    Column("allow_non_logged_in", Boolean, nullable=False, default=False),
    Column("priority", Integer, nullable=False, default=0),
    Column("redirect_url", String(1024)),
    Column("custom_html_on_block", Text),
    Column("hide_from_nav", Boolean, nullable=False, default=False),
    Column("show_in_nav_override", Boolean, nullable=False, default=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("description", Text),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
)

content_restrictions = Table(
    "content_restrictions", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("content_type", String(128), nullable=False),
    Column("content_identifier", String(256), nullable=False),
    Column("allowed_roles", JSON, nullable=False, default=list),
    Column("blocked_roles", JSON, nullable=False, default=list),
    Column("allowed_usernames", JSON, nullable=False, default=list),
    Column("blocked_usernames", JSON, nullable=False, default=list),
    Column("hide_from_frontend", Boolean, nullable=False, default=False),
    Column("description", Text),
    UniqueConstraint("content_type", "content_identifier", name="uq_content_key"),
)

access_attempt_logs = Table(
    "access_attempt_logs", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(128)),
    Column("user_role", String(64)),
    Column("username", String(256)),
    Column("attempted_route", String(1024), nullable=False),
    Column("restriction_type", String(16), nullable=False, default="page"),
    Column("restriction_id", Integer),
    Column("was_blocked", Boolean, nullable=False, default=True),
    Column("block_reason", String(64)),
    Column("ip_address", String(64)),
    Column("user_agent", String(512)),
    Column("timestamp", DateTime(timezone=True), server_default=func.now()),
)


def init_engine(db_uri: Optional[str] = None):
    """Create a SQLAlchemy engine, verify the connection and ensure the schema."""
    db_uri = db_uri or get_env("DB_URI")
    engine = create_engine(db_uri, echo=False, future=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    create_schema(engine)
    print("[init] Connected to DB.")
    return engine


def create_schema(engine) -> None:
    """Create the restriction and access-log tables if they do not exist."""
    metadata.create_all(engine)
