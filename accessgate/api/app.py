"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from accessgate.cache import RuleCache
from accessgate.config import RULE_CACHE_MAX_ENTRIES, RULE_CACHE_TTL_SECONDS, TOKEN_EXPIRY_HOURS
from accessgate.database import init_engine
from accessgate.repository import RuleRepository
from accessgate.api.routes import register_routes


def create_app(engine=None, repo=None):
    """Build and return a fully configured Flask application."""
    app = Flask(__name__)
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    try:
        if engine is None:
            print("[init] Initializing database connection...")
            engine = init_engine()

        if repo is None:
            repo = RuleRepository(engine, RuleCache(ttl_seconds=RULE_CACHE_TTL_SECONDS))

        print("[init] ✓ API server ready")
    except Exception as e:
        print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
        traceback.print_exc()
        sys.exit(1)

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, engine, repo)

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("accessgate – Route & Content Access API")
    print("=" * 60)

    app = create_app()

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print(f"[server] Rule cache TTL: {RULE_CACHE_TTL_SECONDS}s (max {RULE_CACHE_MAX_ENTRIES} routes)")
    print(f"[server] Token expiry: {TOKEN_EXPIRY_HOURS} hours")
    print("\nAPI Endpoints:")
    print(f"  - POST http://{host}:{port}/api/access/check")
    print(f"  - POST http://{host}:{port}/api/access/batch")
    print(f"  - POST http://{host}:{port}/api/access/navigation")
    print(f"  - POST http://{host}:{port}/api/access/content")
    print(f"  - *    http://{host}:{port}/api/restrictions/page")
    print(f"  - *    http://{host}:{port}/api/restrictions/content")
    print(f"  - GET  http://{host}:{port}/api/restrictions/logs")
    print(f"  - GET  http://{host}:{port}/health")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
