"""
Interactive CLI for checking route and content access.
Pick an identity, then ask which routes it may open.
"""

from accessgate.access import check_content_access, check_page_access, should_hide_from_nav
from accessgate.cache import RuleCache
from accessgate.config import KNOWN_ROLES
from accessgate.database import StorageError, init_engine
from accessgate.models import ANONYMOUS, UserContext
from accessgate.reports import load_access_log_frame, summarize_denials
from accessgate.repository import RuleRepository

HELP = """Commands:
  /some/route                   check page access
  content <type> <identifier>   check content access
  summary                       blocked-attempt summary
  reload                        drop cached rules
  quit                          exit"""


def prompt_user_context() -> UserContext:
    """Ask for a username and role; an empty username means anonymous."""
    username = input("Username (blank for anonymous): ").strip()
    if not username:
        return ANONYMOUS

    role = input(f"Role {sorted(KNOWN_ROLES)}: ").strip().lower()
    if role and role not in KNOWN_ROLES:
        print(f"[WARN] '{role}' is not a known role; checking it anyway.")
    return UserContext(user_id=None, username=username, role=role or None,
                       is_authenticated=True)


def main():
    print("=== accessgate: Route & Content Access Checker ===\n")

    engine = init_engine()
    repo = RuleRepository(engine, RuleCache())

    # ── Identity ─────────────────────────────────────────────────────
    try:
        user = prompt_user_context()
    except (EOFError, KeyboardInterrupt):
        print("\nExiting.")
        return

    if user.is_authenticated:
        print(f"\n[auth] Checking as: {user.username} (role={user.role})")
    else:
        print("\n[auth] Checking as: anonymous visitor")
    print(HELP)

    # ── REPL ─────────────────────────────────────────────────────────
    while True:
        try:
            line = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        if not line:
            continue
        if line.lower() in {"quit", "exit"}:
            print("Goodbye.")
            break

        if line.lower() == "reload":
            repo.invalidate()
            print("[cache] Cleared.")
            continue

        if line.lower() == "summary":
            try:
                print(summarize_denials(load_access_log_frame(engine)))
            except StorageError as e:
                print("\n[DB ERROR] Could not read the access log.")
                print("Details:", e)
            continue

        if line.lower().startswith("content "):
            parts = line.split()
            if len(parts) != 3:
                print("Usage: content <type> <identifier>")
                continue
            result = check_content_access(repo, parts[1], parts[2], user)
            verdict = "ALLOWED" if result.allowed else "DENIED"
            print(f"[content] {parts[1]}/{parts[2]}: {verdict} ({result.reason.value})")
            continue

        if not line.startswith("/"):
            print(HELP)
            continue

        result = check_page_access(repo, line, user)
        verdict = "ALLOWED" if result.allowed else "DENIED"
        print(f"[page] {line}: {verdict} ({result.reason.value})")
        if result.redirect_url:
            print(f"  redirect -> {result.redirect_url}")
        if result.custom_content:
            print(f"  fallback content: {result.custom_content[:120]}")
        if should_hide_from_nav(repo, line):
            print("  hidden from navigation")


if __name__ == "__main__":
    main()
