"""
Flask route handlers for the REST API.
"""

import sys
import traceback

from flask import jsonify, request
from sqlalchemy import text

from accessgate.access import (
    check_batch_page_access,
    check_content_access,
    check_page_access,
    filter_accessible_content,
    filter_accessible_routes,
    should_hide_from_nav,
)
from accessgate.admin import (
    create_content_rule,
    create_page_rule,
    delete_content_rule,
    delete_page_rule,
    get_page_rule_by_id,
    list_content_rules_admin,
    list_page_rules,
    update_page_rule,
)
from accessgate.api.auth import admin_required, user_context_optional
from accessgate.audit import list_access_logs, log_access_attempt
from accessgate.config import DEFAULT_LOG_LIMIT
from accessgate.database import StorageError
from accessgate.reports import denial_counts_by_reason, load_access_log_frame, summarize_denials


def _json_body():
    if not request.is_json:
        raise ValueError("Content-Type must be application/json")
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object.")
    return data


def _client_ip():
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr


def _rule_id_arg():
    raw = request.args.get("id")
    if raw is None:
        raise ValueError("id query parameter is required")
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"id must be an integer, got '{raw}'")


def register_routes(app, engine, repo):
    """Register all API routes on the Flask *app*."""

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "accessgate",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "check": "/api/access/check",
                "batch": "/api/access/batch",
                "navigation": "/api/access/navigation",
                "content": "/api/access/content",
                "restrictions": "/api/restrictions/page",
                "logs": "/api/restrictions/logs",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        checks = {"database": False}
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            checks["database"] = True
        except Exception as e:
            print(f"[WARN] Health check DB ping failed: {e}", file=sys.stderr)

        all_healthy = all(checks.values())
        return jsonify({
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
            "cached_routes": len(repo.cache),
        }), 200 if all_healthy else 503

    # ── Access checks ────────────────────────────────────────────────

    @app.route("/api/access/check", methods=["POST"])
    @user_context_optional
    def check_route():
        try:
            data = _json_body()
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        route = data.get("route")
        if not isinstance(route, str) or not route.strip():
            return jsonify({"error": "route is required and must be a string"}), 400
        route = route.strip()

        user = request.user_context
        result = check_page_access(repo, route, user)
        if not result.allowed:
            log_access_attempt(
                engine, user, route, result.reason.value,
                restriction_id=result.restriction_id,
                ip_address=_client_ip(),
                user_agent=request.headers.get("User-Agent"),
            )
        return jsonify({"route": route, **result.to_dict()}), 200

    @app.route("/api/access/batch", methods=["POST"])
    @user_context_optional
    def check_batch():
        try:
            data = _json_body()
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        routes = data.get("routes")
        if not isinstance(routes, list) or not all(isinstance(r, str) for r in routes):
            return jsonify({"error": "routes must be a list of strings"}), 400

        results = check_batch_page_access(repo, routes, request.user_context)
        return jsonify({
            "results": {route: result.to_dict() for route, result in results.items()},
        }), 200

    @app.route("/api/access/navigation", methods=["POST"])
    @user_context_optional
    def navigation():
        try:
            data = _json_body()
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        items = data.get("items")
        if not isinstance(items, list) or not all(
            isinstance(i, dict) and isinstance(i.get("path"), str) for i in items
        ):
            return jsonify({"error": "items must be a list of objects with a 'path'"}), 400

        accessible = filter_accessible_routes(repo, items, request.user_context)
        visible = [item for item in accessible if not should_hide_from_nav(repo, item["path"])]
        return jsonify({"items": visible}), 200

    @app.route("/api/access/content", methods=["POST"])
    @user_context_optional
    def content():
        try:
            data = _json_body()
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        content_type = data.get("content_type")
        if not isinstance(content_type, str) or not content_type.strip():
            return jsonify({"error": "content_type is required and must be a string"}), 400
        content_type = content_type.strip()

        user = request.user_context

        if "content_identifier" in data:
            identifier = data["content_identifier"]
            if not isinstance(identifier, str) or not identifier.strip():
                return jsonify({"error": "content_identifier must be a non-empty string"}), 400
            identifier = identifier.strip()
            result = check_content_access(repo, content_type, identifier, user)
            return jsonify({
                "content_type": content_type,
                "content_identifier": identifier,
                **result.to_dict(),
            }), 200

        items = data.get("items")
        if not isinstance(items, list) or not all(
            isinstance(i, dict) and "id" in i for i in items
        ):
            return jsonify({"error": "items must be a list of objects with an 'id'"}), 400

        visible = filter_accessible_content(repo, content_type, items, user)
        return jsonify({"content_type": content_type, "items": visible}), 200

    # ── Page restrictions (admin) ────────────────────────────────────

    @app.route("/api/restrictions/page", methods=["GET"])
    @admin_required
    def get_page_restrictions():
        try:
            if request.args.get("id") is not None:
                rule = get_page_rule_by_id(engine, _rule_id_arg())
                if rule is None:
                    return jsonify({"error": "Restriction not found"}), 404
                return jsonify(rule.to_dict()), 200
            return jsonify([rule.to_dict() for rule in list_page_rules(engine)]), 200
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except StorageError as e:
            print(f"[ERROR] Listing restrictions failed: {e}", file=sys.stderr)
            return jsonify({"error": "Restriction store unavailable"}), 503

    @app.route("/api/restrictions/page", methods=["POST"])
    @admin_required
    def create_page_restriction():
        try:
            rule = create_page_rule(engine, _json_body(), cache=repo.cache)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except StorageError as e:
            print(f"[ERROR] Creating restriction failed: {e}", file=sys.stderr)
            return jsonify({"error": "Restriction store unavailable"}), 503
        return jsonify(rule.to_dict()), 201

    @app.route("/api/restrictions/page", methods=["PUT"])
    @admin_required
    def update_page_restriction():
        try:
            data = _json_body()
            rule_id = data.get("id")
            if isinstance(rule_id, bool) or not isinstance(rule_id, int):
                raise ValueError("id must be an integer")
            rule = update_page_rule(engine, rule_id, data, cache=repo.cache)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except StorageError as e:
            print(f"[ERROR] Updating restriction failed: {e}", file=sys.stderr)
            return jsonify({"error": "Restriction store unavailable"}), 503
        if rule is None:
            return jsonify({"error": "Restriction not found"}), 404
        return jsonify(rule.to_dict()), 200

    @app.route("/api/restrictions/page", methods=["DELETE"])
    @admin_required
    def delete_page_restriction():
        try:
            deleted = delete_page_rule(engine, _rule_id_arg(), cache=repo.cache)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except StorageError as e:
            print(f"[ERROR] Deleting restriction failed: {e}", file=sys.stderr)
            return jsonify({"error": "Restriction store unavailable"}), 503
        if not deleted:
            return jsonify({"error": "Restriction not found"}), 404
        return jsonify({"success": True}), 200

    # ── Content restrictions (admin) ─────────────────────────────────

    @app.route("/api/restrictions/content", methods=["GET"])
    @admin_required
    def get_content_restrictions():
        try:
            rules = list_content_rules_admin(engine)
        except StorageError as e:
            print(f"[ERROR] Listing content restrictions failed: {e}", file=sys.stderr)
            return jsonify({"error": "Restriction store unavailable"}), 503
        return jsonify([rule.to_dict() for rule in rules]), 200

    @app.route("/api/restrictions/content", methods=["POST"])
    @admin_required
    def create_content_restriction():
        try:
            rule = create_content_rule(engine, _json_body())
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except StorageError as e:
            print(f"[ERROR] Creating content restriction failed: {e}", file=sys.stderr)
            return jsonify({"error": "Restriction store unavailable"}), 503
        return jsonify(rule.to_dict()), 201

    @app.route("/api/restrictions/content", methods=["DELETE"])
    @admin_required
    def delete_content_restriction():
        try:
            deleted = delete_content_rule(engine, _rule_id_arg())
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except StorageError as e:
            print(f"[ERROR] Deleting content restriction failed: {e}", file=sys.stderr)
            return jsonify({"error": "Restriction store unavailable"}), 503
        if not deleted:
            return jsonify({"error": "Restriction not found"}), 404
        return jsonify({"success": True}), 200

    # ── Access logs (admin) ──────────────────────────────────────────

    @app.route("/api/restrictions/logs", methods=["GET"])
    @admin_required
    def get_access_logs():
        blocked_only = request.args.get("blockedOnly", "true").lower() != "false"
        try:
            limit = int(request.args.get("limit", DEFAULT_LOG_LIMIT))
        except ValueError:
            return jsonify({"error": "limit must be an integer"}), 400

        try:
            logs = list_access_logs(engine, blocked_only=blocked_only, limit=limit)
        except StorageError as e:
            print(f"[ERROR] Reading access logs failed: {e}", file=sys.stderr)
            return jsonify({"error": "Access log unavailable"}), 503
        return jsonify([log.to_dict() for log in logs]), 200

    @app.route("/api/restrictions/logs/summary", methods=["GET"])
    @admin_required
    def get_access_log_summary():
        try:
            df = load_access_log_frame(engine)
            return jsonify({
                "total_blocked": int(len(df)),
                "by_reason": denial_counts_by_reason(df),
                "summary": summarize_denials(df),
            }), 200
        except StorageError as e:
            print(f"[ERROR] Summarising access logs failed: {e}", file=sys.stderr)
            return jsonify({"error": "Access log unavailable"}), 503
        except Exception as e:
            print(f"[ERROR] Access log summary error: {e}", file=sys.stderr)
            traceback.print_exc()
            return jsonify({"error": "Internal server error"}), 500

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({"error": "Internal server error", "message": str(e)}), 500
