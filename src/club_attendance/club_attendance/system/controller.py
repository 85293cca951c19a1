from __future__ import annotations

import logging

from flask import Flask, current_app, jsonify

from ..common.datetime_utils import load_timezone, now_utc
from ..common.http import admin_api_key_required, int_arg
from ..core.constants import DEFAULT_LOG_LIMIT, LOGOUT_WINDOW_END, LOGOUT_WINDOW_START
from ..container import Container
from .service import logout_window_open

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/admin/force-logout-all", methods=["POST"], endpoint="force_logout_all")
    @admin_api_key_required
    def force_logout_all():
        """Scheduler hook. Only runs inside the configured local time window."""
        cfg = current_app.config
        now = now_utc()
        start = cfg.get("LOGOUT_WINDOW_START", LOGOUT_WINDOW_START)
        end = cfg.get("LOGOUT_WINDOW_END", LOGOUT_WINDOW_END)
        if not logout_window_open(now, tz=load_timezone(cfg.get("TIMEZONE")), start=start, end=end):
            logger.warning("bulk logout refused at %s (window %s-%s)", now.isoformat(), start, end)
            return (
                jsonify({"success": False, "message": "Bulk logout is only allowed inside the scheduled window"}),
                403,
            )

        result = container.bulk_logout_service.force_logout_all()
        return (
            jsonify(
                {
                    "success": result.success,
                    "status": result.status.value,
                    "closed_count": result.closed_count,
                    "message": result.message,
                    "executed_at": result.executed_at.isoformat(),
                }
            ),
            200 if result.success else 500,
        )

    @app.route("/api/admin/logout-logs", methods=["GET"], endpoint="logout_logs")
    @admin_api_key_required
    def logout_logs():
        entries = container.bulk_logout_service.list_logs(limit=int_arg("limit", DEFAULT_LOG_LIMIT))
        return jsonify({"logs": [e.to_dict() for e in entries]})
