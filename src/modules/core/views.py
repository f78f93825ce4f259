"""Operational endpoints (liveness / dependency health)."""

import time
from typing import Any, Callable, Dict

import structlog
from django.conf import settings
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

logger = structlog.get_logger()


def _ping_database() -> None:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _ping_cache() -> None:
    cache.set("_health_check", "ok", 10)
    if cache.get("_health_check") != "ok":
        raise ConnectionError("Cache read failed")


def _timed(probe: Callable[[], None], name: str) -> Dict[str, Any]:
    start = time.monotonic()
    try:
        probe()
    except Exception:
        logger.error("health_check_failure", dependency=name)
        return {"status": "down"}
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - start) * 1000, 2),
    }


def health_check(request: HttpRequest) -> JsonResponse:
    """GET /health

    Database and cache are hard dependencies.  The payment gateway is only
    reported as configured / unconfigured; no outbound call is made.
    """
    services: Dict[str, Dict[str, Any]] = {
        "database": _timed(_ping_database, "database"),
        "cache": _timed(_ping_cache, "cache"),
    }
    overall_healthy = all(s["status"] == "up" for s in services.values())

    services["payments"] = {
        "status": "configured"
        if settings.STRIPE_SECRET_KEY and settings.STRIPE_WEBHOOK_SECRET
        else "unconfigured"
    }

    status_label = "healthy" if overall_healthy else "unhealthy"
    logger.info("health_check_completed", status=status_label)

    return JsonResponse(
        {
            "status": status_label,
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if overall_healthy else 503,
    )
