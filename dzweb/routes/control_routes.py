"""Control API route registration for the DayZ server panel."""

from flask import jsonify, request

from dzweb.core.errors import ConfigValidationError, SupervisorError
from dzweb.core.response_helpers import (
    action_failed_response,
    config_rejected_response,
    message_response,
)


def register_control_routes(app, supervisor, *, log_action):
    """Register start/stop/status/config/mods routes against ``supervisor``."""

    # Route: /api/server/start
    @app.route("/api/server/start", methods=["POST"])
    def start_server():
        try:
            supervisor.start()
        except SupervisorError as exc:
            log_action("start", rejection_message=f"{type(exc).__name__}: {exc}")
            return action_failed_response("Failed to start server")
        log_action("start")
        return message_response("Server started successfully")

    # Route: /api/server/stop
    @app.route("/api/server/stop", methods=["POST"])
    def stop_server():
        try:
            supervisor.stop()
        except SupervisorError as exc:
            log_action("stop", rejection_message=f"{type(exc).__name__}: {exc}")
            return action_failed_response("Failed to stop server")
        log_action("stop")
        return message_response("Server stopped successfully")

    # Route: /api/server/status
    @app.route("/api/server/status", methods=["GET"])
    def server_status():
        return jsonify(supervisor.get_status().to_dict())

    # Route: /api/server/config
    @app.route("/api/server/config", methods=["GET"])
    def get_server_config():
        return jsonify(supervisor.get_config().to_dict())

    @app.route("/api/server/config", methods=["POST"])
    def update_server_config():
        """Merge a partial config object from the JSON body."""
        updates = request.get_json(silent=True)
        try:
            merged = supervisor.update_config(updates if updates is not None else {})
        except ConfigValidationError as exc:
            log_action("config", rejection_message=str(exc))
            return config_rejected_response(exc)
        log_action("config", command=", ".join(sorted(updates or {})))
        return jsonify(merged.to_dict())

    # Route: /api/server/mods
    @app.route("/api/server/mods", methods=["POST"])
    def replace_server_mods():
        """Replace the mod list with ``{"mods": [...]}`` from the JSON body."""
        payload = request.get_json(silent=True) or {}
        try:
            merged = supervisor.replace_mods(payload.get("mods") if isinstance(payload, dict) else None)
        except ConfigValidationError as exc:
            log_action("mods", rejection_message=str(exc))
            return config_rejected_response(exc)
        log_action("mods", command=";".join(merged.mods) or "cleared")
        return jsonify(merged.to_dict())
