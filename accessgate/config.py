"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Roles ────────────────────────────────────────────────────────────
KNOWN_ROLES = {
    "super_admin", "admin", "tax_preparer", "affiliate", "lead", "client",
}

# Roles allowed to manage restrictions and read the access log.
ADMIN_ROLES = {"super_admin", "admin"}

# ── Rule cache ───────────────────────────────────────────────────────
RULE_CACHE_TTL_SECONDS = int(os.getenv("RULE_CACHE_TTL_SECONDS", "300"))
RULE_CACHE_MAX_ENTRIES = int(os.getenv("RULE_CACHE_MAX_ENTRIES", "1024"))

# ── Access log ───────────────────────────────────────────────────────
DEFAULT_LOG_LIMIT = 50
MAX_LOG_LIMIT = 500

# ── API server ───────────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
TOKEN_EXPIRY_HOURS = 24


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value
