import logging
import threading
from typing import Tuple

from flask import Flask, request
from werkzeug.serving import make_server

from classroom.helpers.config_helper import ConfigHelper
from classroom.helpers.logging_helper import log_info, log_module_import, log_warning
from classroom.live.utils.control_access_guard import ControlAccessGuard
from classroom.live.views.live_api import register_live_api
from classroom.whiteboard.views.web.api_blueprint import register_whiteboard_api
from classroom.whiteboard.views.web.viewer_page import build_viewer_page

log_module_import(__name__)

DEFAULT_PORT = 32600
DEFAULT_REFRESH_MS = 1000
DEFAULT_MAX_BOARD_SIZE = (3840, 2160)


def _configured_refresh_ms() -> int:
    return max(100, ConfigHelper.getint("LiveServer", "refresh_ms", fallback=DEFAULT_REFRESH_MS))


def _configured_max_board_size() -> Tuple[int, int]:
    width = ConfigHelper.getint("LiveServer", "max_board_width", fallback=DEFAULT_MAX_BOARD_SIZE[0])
    height = ConfigHelper.getint("LiveServer", "max_board_height", fallback=DEFAULT_MAX_BOARD_SIZE[1])
    return max(1, width), max(1, height)


def create_classroom_app(coordinator, registry, access_guard=None, *, refresh_ms=None, max_board_size=None) -> Flask:
    """Build the Flask app serving the viewer page, whiteboard API and live API."""

    refresh_ms = int(refresh_ms or _configured_refresh_ms())
    access_guard = access_guard or ControlAccessGuard.from_config()
    if access_guard.open:
        log_warning(
            "No [LiveServer] control_token set; session controls are open to every client on the network",
            func_name="create_classroom_app",
        )
    app = Flask(__name__)

    register_whiteboard_api(
        app,
        coordinator,
        registry,
        refresh_ms=refresh_ms,
        max_board_size=max_board_size or _configured_max_board_size(),
    )
    register_live_api(app, coordinator, access_guard)

    def _release_surfaces(event, payload):
        state = payload.get("state")
        if event == "state_changed" and state is not None and not state.is_live:
            registry.clear()

    coordinator.add_listener(_release_surfaces)
    app.config["CLASSROOM_SURFACE_LISTENER"] = _release_surfaces

    @app.route("/")
    def index():
        participant_id = str(request.args.get("participant_id") or "").strip()
        surface = registry.get(participant_id) if participant_id else None
        board_size = surface.size if surface else registry.size
        return build_viewer_page(board_size, refresh_ms)

    return app


def open_classroom_display(host, port=None):
    """Serve ``host.coordinator``/``host.surface_registry`` on a background thread."""

    if port is None:
        port = ConfigHelper.getint("LiveServer", "port", fallback=DEFAULT_PORT)
    if getattr(host, "_classroom_web_thread", None):
        return

    app = create_classroom_app(host.coordinator, host.surface_registry)
    host._classroom_web_app = app
    host._classroom_port = port

    def run_app():
        logging.getLogger("werkzeug").setLevel(logging.ERROR)
        app.logger.setLevel(logging.ERROR)
        try:
            host._classroom_server = make_server("0.0.0.0", port, app, threaded=True)
        except OSError as exc:
            log_warning(f"Unable to bind classroom web server on port {port}: {exc}", func_name="open_classroom_display")
            host._classroom_web_thread = None
            return
        log_info(f"Classroom web server listening on port {port}", func_name="open_classroom_display")
        host._classroom_server.serve_forever()

    host._classroom_web_thread = threading.Thread(target=run_app, name="classroom-web", daemon=True)
    host._classroom_web_thread.start()


def close_classroom_display(host):
    thread = getattr(host, "_classroom_web_thread", None)
    server = getattr(host, "_classroom_server", None)
    if not thread:
        return
    if server:
        server.shutdown()
    app = getattr(host, "_classroom_web_app", None)
    if app is not None:
        host.coordinator.remove_listener(app.config["CLASSROOM_SURFACE_LISTENER"])
    thread.join(timeout=2)
    host._classroom_web_thread = None
    host._classroom_server = None
    host._classroom_web_app = None
