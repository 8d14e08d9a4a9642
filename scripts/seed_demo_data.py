#!/usr/bin/env python3
"""
Seed demo page/content restrictions and a history of blocked attempts.
Usage: DB_URI=sqlite:///accessgate.db python scripts/seed_demo_data.py
"""

import random
from datetime import datetime, timedelta, timezone

from faker import Faker
from sqlalchemy import delete, insert

from accessgate.admin import create_content_rule, create_page_rule
from accessgate.database import (
    access_attempt_logs,
    content_restrictions,
    init_engine,
    page_restrictions,
)

# --------------------------------------------------------------------
# CONFIG
# --------------------------------------------------------------------
NUM_USERS = 40
NUM_ATTEMPTS = 300

ROLES = ["super_admin", "admin", "tax_preparer", "affiliate", "lead", "client"]

PAGE_RULES = [
    {
        "route_path": "/admin/*",
        "allowed_roles": ["super_admin", "admin"],
        "redirect_url": "/forbidden",
        "priority": 10,
        "description": "Admin area",
    },
    {
        "route_path": "/admin/analytics/*",
        "allowed_roles": ["super_admin", "admin", "tax_preparer"],
        "priority": 20,
        "description": "Analytics shared with preparers",
    },
    {
        "route_path": "/dashboard/*",
        "blocked_roles": ["lead"],
        "priority": 5,
        "description": "Any signed-in user except leads",
    },
    {
        "route_path": "/store/*",
        "allow_non_logged_in": True,
        "priority": 1,
        "description": "Public storefront",
    },
    {
        "route_path": "/admin/content-generator",
        "allowed_roles": ["super_admin"],
        "hide_from_nav": True,
        "priority": 30,
        "description": "Internal tool",
    },
]

CONTENT_RULES = [
    {"content_type": "section", "content_identifier": "earnings",
     "allowed_roles": ["tax_preparer", "affiliate", "admin", "super_admin"]},
    {"content_type": "section", "content_identifier": "beta-tools",
     "hide_from_frontend": True},
    {"content_type": "component", "content_identifier": "referral-widget",
     "blocked_roles": ["lead"]},
]

ATTEMPTED_ROUTES = [
    "/admin/users", "/admin/analytics/clients", "/admin/content-generator",
    "/dashboard/client", "/dashboard/preparer/leads", "/admin/earnings",
]

REASONS = ["not_authenticated", "blocked_role", "no_permission", "blocked_username"]

# --------------------------------------------------------------------
# SETUP
# --------------------------------------------------------------------
fake = Faker()
random.seed(42)
Faker.seed(42)


def random_datetime_within(days_back=90):
    now = datetime.now(timezone.utc)
    delta = timedelta(days=random.randint(0, days_back), seconds=random.randint(0, 86400))
    return now - delta


def fake_users(n=NUM_USERS):
    return [
        {"user_id": str(fake.uuid4()), "username": fake.user_name(), "role": random.choice(ROLES)}
        for _ in range(n)
    ]


# --------------------------------------------------------------------
# SEED FUNCTIONS
# --------------------------------------------------------------------
def seed_rules(engine, users):
    # One preparer gets a personal pass into the admin area, one client is banned.
    preparer = next((u for u in users if u["role"] == "tax_preparer"), users[0])
    banned = next((u for u in users if u["role"] == "client"), users[-1])

    created = []
    for rule_def in PAGE_RULES:
        data = dict(rule_def)
        if data["route_path"] == "/admin/*":
            data["allowed_usernames"] = [preparer["username"]]
        if data["route_path"] == "/dashboard/*":
            data["blocked_usernames"] = [banned["username"]]
        created.append(create_page_rule(engine, data))

    for rule_def in CONTENT_RULES:
        create_content_rule(engine, rule_def)
    return created


def seed_attempts(engine, users, n=NUM_ATTEMPTS):
    rows = []
    for _ in range(n):
        anonymous = random.random() < 0.25
        user = None if anonymous else random.choice(users)
        rows.append(
            {
                "user_id": None if anonymous else user["user_id"],
                "user_role": None if anonymous else user["role"],
                "username": None if anonymous else user["username"],
                "attempted_route": random.choice(ATTEMPTED_ROUTES),
                "restriction_type": "page",
                "restriction_id": None,
                "was_blocked": True,
                "block_reason": "not_authenticated" if anonymous else random.choice(REASONS[1:]),
                "ip_address": fake.ipv4_public(),
                "user_agent": fake.user_agent(),
                "timestamp": random_datetime_within(90),
            }
        )
    with engine.begin() as conn:
        conn.execute(insert(access_attempt_logs), rows)


def main():
    engine = init_engine()

    with engine.begin() as conn:
        for table in (access_attempt_logs, content_restrictions, page_restrictions):
            conn.execute(delete(table))

    users = fake_users()
    rules = seed_rules(engine, users)
    seed_attempts(engine, users)

    print(f"[seed] {len(rules)} page rules, {len(CONTENT_RULES)} content rules, "
          f"{NUM_ATTEMPTS} access attempts.")
    print("[seed] Sample users:")
    for user in users[:5]:
        print(f"  - {user['username']} ({user['role']})")


if __name__ == "__main__":
    main()
