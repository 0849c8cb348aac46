"""Shared Flask JSON responses for the control API."""

from flask import jsonify


def message_response(message):
    """Return a 200 payload carrying a human-readable message."""
    return jsonify({"message": message})


def action_failed_response(message):
    """Return the coarse 500 failure used by start/stop."""
    return jsonify({"error": message}), 500


def config_rejected_response(exc):
    """Return a 400 payload describing which config field was rejected."""
    return jsonify({
        "error": "invalid_config",
        "field": exc.field,
        "message": str(exc),
    }), 400


def internal_error_response():
    """Return generic internal-error payload."""
    return jsonify({"error": "internal_error", "message": "Internal server error."}), 500
