"""
Health check blueprint.

Endpoints:
    GET /api/health        simple 200 for load balancers
    GET /api/health/live   repository round-trip per entity type
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from eduadmin.blueprints import get_service

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/health")


@health_bp.route("", methods=["GET"])
def ready():
    """Readiness probe: always 200 if the app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Liveness check: every collection must answer a list() call."""
    store = get_service().store
    checks = {}
    overall = True

    t0 = time.perf_counter()
    counts = {}
    try:
        for repo in store:
            counts[repo.entity_type] = len(repo.list())
        checks["repository"] = {
            "status": "ok",
            "backend": store.backend,
            "latency_ms": round((time.perf_counter() - t0) * 1000, 1),
            "records": counts,
        }
    except Exception as exc:
        logger.error("Health check: repository failed: %s", exc)
        checks["repository"] = {"status": "error", "backend": store.backend, "detail": str(exc)}
        overall = False

    checks["app"] = {
        "name": "Franchise Education Admin",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }
    status = "ok" if overall else "degraded"
    return jsonify({"status": status, "checks": checks}), 200 if overall else 503
