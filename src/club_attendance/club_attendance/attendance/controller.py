from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import admin_api_key_required, json_body
from ..core.enums import BindingStatus, PunchStatus
from ..container import Container

_PUNCH_HTTP_STATUS = {
    PunchStatus.OK: 200,
    PunchStatus.UNKNOWN_CARD: 404,
    PunchStatus.FAILURE: 503,
}

_BINDING_HTTP_STATUS = {
    BindingStatus.OK: 200,
    BindingStatus.DUPLICATE_CARD: 409,
    BindingStatus.NOT_FOUND: 404,
    BindingStatus.INVALID_CARD: 400,
    BindingStatus.FAILURE: 503,
}


def register(app: Flask, container: Container) -> None:
    @app.route("/api/kiosk/punch", methods=["POST"], endpoint="kiosk_punch")
    def kiosk_punch():
        """Card reader tap: toggles the card owner's IN/OUT state."""
        result = container.punch_service.record_punch(str(json_body().get("card_id", "")))
        return jsonify(result.to_kiosk()), _PUNCH_HTTP_STATUS[result.status]

    @app.route("/api/users/<user_id>/status", methods=["GET"], endpoint="user_status")
    def user_status(user_id: str):
        kind = container.punch_service.current_status(user_id)
        return jsonify({"user_id": user_id, "status": kind.value if kind else None})

    @app.route("/api/presence", methods=["GET"], endpoint="presence")
    def presence():
        present = container.punch_service.currently_present()
        return jsonify(
            {
                "count": len(present),
                "users": [{"user_id": e.user_id, "since": e.occurred_at.isoformat()} for e in present],
            }
        )

    @app.route("/api/admin/users/<user_id>/toggle", methods=["POST"], endpoint="admin_force_toggle")
    @admin_api_key_required
    def admin_force_toggle(user_id: str):
        result = container.punch_service.force_toggle(user_id)
        return jsonify(result.to_kiosk()), _PUNCH_HTTP_STATUS[result.status]

    @app.route("/api/admin/users/<user_id>/card", methods=["PUT"], endpoint="admin_rebind_card")
    @admin_api_key_required
    def admin_rebind_card(user_id: str):
        result = container.binding_service.rebind(user_id, str(json_body().get("card_id", "")))
        return (
            jsonify({"success": result.success, "status": result.status.value, "message": result.message}),
            _BINDING_HTTP_STATUS[result.status],
        )

    @app.route("/api/admin/cards/<card_id>", methods=["GET"], endpoint="admin_card_owner")
    @admin_api_key_required
    def admin_card_owner(card_id: str):
        binding = container.binding_service.lookup(card_id)
        if binding is None:
            return jsonify({"success": False, "message": "Card is not registered"}), 404
        return jsonify(
            {
                "success": True,
                "card_id": binding.card_id,
                "user_id": binding.user_id,
                "updated_at": binding.updated_at.isoformat() if binding.updated_at else None,
            }
        )
