from __future__ import annotations

from flask import Flask, Response, current_app, jsonify

from ..common.datetime_utils import now_utc
from ..common.http import admin_api_key_required, int_arg, json_body
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_LOG_LIMIT
from ..core.enums import ConsumeStatus, IssueStatus
from ..container import Container
from .qr import registration_url, render_qr_png

_ISSUE_HTTP_STATUS = {
    IssueStatus.OK: 201,
    IssueStatus.ALREADY_REGISTERED: 409,
    IssueStatus.INVALID_CARD: 400,
    IssueStatus.FAILURE: 503,
}

_CONSUME_HTTP_STATUS = {
    ConsumeStatus.OK: 200,
    ConsumeStatus.INVALID: 404,
    ConsumeStatus.ALREADY_USED: 409,
    ConsumeStatus.EXPIRED: 410,
    ConsumeStatus.DUPLICATE_CARD: 409,
    ConsumeStatus.FAILURE: 503,
}


def _url_for_token(token: str) -> str:
    return registration_url(current_app.config.get("PUBLIC_BASE_URL", ""), token)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/kiosk/registrations", methods=["POST"], endpoint="issue_registration")
    def issue_registration():
        """An unknown card was tapped: hand out a short-lived registration link."""
        result = container.registration_service.issue(str(json_body().get("card_id", "")))
        payload = {"success": result.success, "status": result.status.value, "message": result.message}
        if result.token is not None:
            payload.update(
                {
                    "token": result.token.token,
                    "expires_at": result.token.expires_at.isoformat(),
                    "url": _url_for_token(result.token.token),
                }
            )
        return jsonify(payload), _ISSUE_HTTP_STATUS[result.status]

    @app.route("/api/kiosk/registrations/<token>/qr.png", methods=["GET"], endpoint="registration_qr")
    def registration_qr(token: str):
        found = container.registration_repo.get(token)
        if found is None or not found.is_live(now_utc()):
            return jsonify({"success": False, "message": "Registration token not found"}), 404
        return Response(render_qr_png(_url_for_token(token)), mimetype="image/png")

    @app.route("/api/registrations/<token>", methods=["GET"], endpoint="peek_registration")
    def peek_registration(token: str):
        found = container.registration_service.peek(token)
        if found is None:
            return jsonify({"success": False, "message": "Registration token not found"}), 404
        return jsonify({"success": True, "token": found.to_dict(now_utc())})

    @app.route("/api/registrations/<token>/complete", methods=["POST"], endpoint="complete_registration")
    def complete_registration(token: str):
        # The identity layer in front of this app supplies the signed-in user.
        user_id = require_non_empty(str(json_body().get("user_id", "")), "user_id")
        result = container.registration_service.consume(token, user_id)
        return (
            jsonify({"success": result.success, "status": result.status.value, "message": result.message}),
            _CONSUME_HTTP_STATUS[result.status],
        )

    @app.route("/api/admin/registrations", methods=["GET"], endpoint="admin_list_registrations")
    @admin_api_key_required
    def admin_list_registrations():
        now = now_utc()
        tokens = container.registration_service.list_tokens(limit=int_arg("limit", DEFAULT_LOG_LIMIT))
        return jsonify({"tokens": [t.to_dict(now) for t in tokens]})

    @app.route("/api/admin/registrations/<token>", methods=["DELETE"], endpoint="admin_delete_registration")
    @admin_api_key_required
    def admin_delete_registration(token: str):
        if not container.registration_service.delete_token(token):
            return jsonify({"success": False, "message": "Registration token not found"}), 404
        return jsonify({"success": True})
