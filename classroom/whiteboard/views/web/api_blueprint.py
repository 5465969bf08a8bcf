from __future__ import annotations

from flask import Response, jsonify, request

from classroom.helpers.logging_helper import log_module_import, log_warning
from classroom.live.models import UserRole
from classroom.whiteboard.models.tool_state import ToolState, clamp_width, normalize_tool
from classroom.whiteboard.utils.drawing_surface import DEFAULT_SIZE
from classroom.whiteboard.utils.uploaded_images import DecodeError, read_upload

log_module_import(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def extract_participant_id() -> str | None:
    payload = request.get_json(silent=True) if request.is_json else None
    candidate = (
        request.headers.get("X-Participant-Id")
        or request.args.get("participant_id")
        or request.form.get("participant_id")
        or (payload or {}).get("participant_id")
    )
    candidate = str(candidate or "").strip()
    return candidate or None


def register_whiteboard_api(
    app,
    coordinator,
    registry,
    *,
    refresh_ms: int = 1000,
    max_board_size: tuple[int, int] = (DEFAULT_SIZE[0] * 3, DEFAULT_SIZE[1] * 3),
):
    """Per-participant board routes for browser clients.

    Web callers are always treated as students: the host's own id is refused,
    and a surface only exists once its participant was allowed to draw.
    """

    max_width, max_height = max_board_size

    def _web_participant():
        participant_id = extract_participant_id()
        if not participant_id:
            return None, (jsonify({"message": "participant_id is required"}), 400)
        if participant_id == coordinator.participant.id:
            log_warning(
                f"Rejected web request using the host id {participant_id}",
                func_name="api_blueprint._web_participant",
            )
            return None, (jsonify({"message": "This participant id is reserved for the host"}), 403)
        return participant_id, None

    def _read_only(participant_id: str) -> bool:
        return coordinator.is_read_only(participant_id, role=UserRole.STUDENT)

    def _writable_surface():
        participant_id, error = _web_participant()
        if error:
            return None, error
        if _read_only(participant_id):
            return None, (jsonify({"message": "Drawing is disabled for this participant"}), 403)
        return registry.get(participant_id, create=True), None

    @app.route("/api/status", methods=["GET"])
    def api_status():
        participant_id, error = _web_participant()
        if error:
            return error
        surface = registry.get(participant_id)
        return jsonify(
            {
                "participant_id": participant_id,
                "board_size": list(surface.size if surface else registry.size),
                "read_only": _read_only(participant_id),
                "refresh_ms": int(refresh_ms),
                "live": coordinator.state.to_dict(),
            }
        )

    @app.route("/board.png", methods=["GET"])
    def board_png():
        participant_id, error = _web_participant()
        if error:
            return error
        surface = registry.get(participant_id)
        data = surface.to_png_bytes() if surface else registry.blank_png()
        return Response(data, mimetype="image/png", headers=NO_CACHE_HEADERS)

    @app.route("/api/strokes", methods=["POST"])
    def api_strokes():
        surface, error = _writable_surface()
        if error:
            return error
        payload = request.get_json(silent=True) or {}
        points = payload.get("points") or []
        if not isinstance(points, list) or len(points) < 2:
            return jsonify({"message": "At least two points are required"}), 400
        tool_state = ToolState(
            tool=normalize_tool(payload.get("tool")),
            color=str(payload.get("color") or "#000000"),
            base_width=clamp_width(payload.get("width")),
        )
        try:
            surface.draw_stroke(points, tool_state)
        except ValueError as exc:
            return jsonify({"message": str(exc)}), 400
        return jsonify({"status": "ok", "width": tool_state.effective_width})

    @app.route("/api/clear", methods=["POST"])
    def api_clear():
        surface, error = _writable_surface()
        if error:
            return error
        surface.clear()
        return jsonify({"status": "ok"})

    @app.route("/api/images/insert", methods=["POST"])
    def api_image_insert():
        surface, error = _writable_surface()
        if error:
            return error

        file = request.files.get("file")
        if not file:
            return jsonify({"message": "Image file is required"}), 400

        try:
            placement = surface.insert_image(read_upload(file))
        except DecodeError as exc:
            return jsonify({"message": str(exc)}), 400
        except ValueError as exc:
            return jsonify({"message": str(exc)}), 400

        x, y, width, height = placement
        return jsonify({"status": "ok", "position": [x, y], "size": {"width": width, "height": height}})

    @app.route("/api/resize", methods=["POST"])
    def api_resize():
        surface, error = _writable_surface()
        if error:
            return error
        payload = request.get_json(silent=True) or {}
        try:
            width = int(payload.get("width"))
            height = int(payload.get("height"))
        except (TypeError, ValueError):
            return jsonify({"message": "width and height must be integers"}), 400
        if width <= 0 or height <= 0:
            return jsonify({"message": "width and height must be positive"}), 400
        if width > max_width or height > max_height:
            return jsonify({"message": f"Board size is limited to {max_width}x{max_height}"}), 400
        surface.initialize(width, height)
        return jsonify({"status": "ok", "board_size": list(surface.size)})
