from __future__ import annotations

from flask import jsonify, request

from classroom.helpers.logging_helper import log_module_import
from classroom.live.errors import BroadcastNotAllowed, MediaCaptureError
from classroom.live.models import BroadcastMode, PermissionKind, UserRole
from classroom.live.utils.control_access_guard import ControlAccessGuard
from classroom.whiteboard.views.web.api_blueprint import extract_participant_id

log_module_import(__name__)


def _extract_token() -> str | None:
    return request.headers.get("X-Control-Token") or request.args.get("token")


def register_live_api(app, coordinator, access_guard: ControlAccessGuard | None):
    access_guard = access_guard or ControlAccessGuard(token="")

    def _require_control():
        if not access_guard.is_request_authorized(_extract_token()):
            return jsonify({"message": "Invalid or missing control token"}), 401
        return None

    def _state_payload():
        participant_id = extract_participant_id()
        payload = {
            "state": coordinator.state.to_dict(),
            "raised_hands": coordinator.permissions.raised_hands,
            "last_error": coordinator.last_error,
        }
        if participant_id:
            entry = coordinator.permission_for(participant_id)
            payload["participant_id"] = participant_id
            payload["permissions"] = entry.to_dict()
            payload["read_only"] = coordinator.is_read_only(participant_id, role=UserRole.STUDENT)
        return payload

    @app.route("/api/live/state", methods=["GET"])
    def api_live_state():
        return jsonify(_state_payload())

    @app.route("/api/live/start", methods=["POST"])
    def api_live_start():
        unauthorized = _require_control()
        if unauthorized:
            return unauthorized
        payload = request.get_json(silent=True) or {}
        try:
            mode = BroadcastMode(str(payload.get("mode") or "").upper())
        except ValueError:
            return jsonify({"message": "mode must be VIDEO or WHITEBOARD"}), 400
        try:
            coordinator.start_session(mode, payload.get("requester_id"))
        except BroadcastNotAllowed as exc:
            return jsonify({"message": str(exc)}), 403
        except MediaCaptureError as exc:
            return jsonify({"message": str(exc)}), 409
        return jsonify(_state_payload())

    @app.route("/api/live/end", methods=["POST"])
    def api_live_end():
        unauthorized = _require_control()
        if unauthorized:
            return unauthorized
        coordinator.end_session()
        return jsonify(_state_payload())

    @app.route("/api/live/mic", methods=["POST"])
    def api_live_mic():
        unauthorized = _require_control()
        if unauthorized:
            return unauthorized
        coordinator.toggle_microphone()
        return jsonify(_state_payload())

    @app.route("/api/live/camera", methods=["POST"])
    def api_live_camera():
        unauthorized = _require_control()
        if unauthorized:
            return unauthorized
        try:
            coordinator.toggle_camera()
        except MediaCaptureError as exc:
            return jsonify({"message": str(exc)}), 409
        return jsonify(_state_payload())

    @app.route("/api/live/raise", methods=["POST"])
    def api_live_raise():
        participant_id = extract_participant_id()
        if not participant_id:
            return jsonify({"message": "participant_id is required"}), 400
        if not coordinator.is_live:
            return jsonify({"message": "No live session"}), 409
        added = coordinator.raise_hand(participant_id)
        return jsonify({"status": "ok", "added": added, "raised_hands": coordinator.permissions.raised_hands})

    @app.route("/api/live/grant", methods=["POST"])
    def api_live_grant():
        unauthorized = _require_control()
        if unauthorized:
            return unauthorized
        payload = request.get_json(silent=True) or {}
        participant_id = str(payload.get("participant_id") or "").strip()
        if not participant_id:
            return jsonify({"message": "participant_id is required"}), 400
        try:
            kind = PermissionKind(str(payload.get("kind") or "").upper())
        except ValueError:
            return jsonify({"message": "kind must be SPEAK or DRAW"}), 400
        try:
            entry = coordinator.grant_permission(participant_id, kind)
        except BroadcastNotAllowed as exc:
            return jsonify({"message": str(exc)}), 403
        return jsonify(
            {
                "status": "ok",
                "participant_id": participant_id,
                "permissions": entry.to_dict(),
                "raised_hands": coordinator.permissions.raised_hands,
            }
        )
