#!/usr/bin/env python3
"""
Mint a bearer token for the access API.
Usage: python scripts/issue_token.py <username> <role> [user_id]
       python scripts/issue_token.py --new-secret
"""

import secrets
import sys

from accessgate.api.auth import generate_token
from accessgate.config import KNOWN_ROLES, SECRET_KEY
from accessgate.models import UserContext


def main(argv):
    if argv and argv[0] == "--new-secret":
        print("=" * 60)
        print("Add this line to your .env file:")
        print(f"JWT_SECRET_KEY={secrets.token_hex(32)}")
        print("=" * 60)
        return 0

    if len(argv) not in (2, 3):
        print(__doc__.strip(), file=sys.stderr)
        return 2

    username, role = argv[0], argv[1].lower()
    if role not in KNOWN_ROLES:
        print(f"ERROR: unknown role '{role}', expected one of {sorted(KNOWN_ROLES)}",
              file=sys.stderr)
        return 2

    if SECRET_KEY == "dev-secret-key-change-in-production":
        print("[WARN] JWT_SECRET_KEY is not set; using the development key.", file=sys.stderr)

    user_id = argv[2] if len(argv) == 3 else username
    token = generate_token(UserContext(user_id=user_id, username=username, role=role,
                                       is_authenticated=True))
    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
