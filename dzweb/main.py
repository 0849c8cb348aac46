"""Web control panel for one DayZ dedicated server process.

This app provides:
- Start/stop controls for the server executable
- Status polling (state, uptime) for the browser client
- In-memory launch configuration and mod load order
- Scheduled automatic restarts
"""

from datetime import timezone
from pathlib import Path
from types import SimpleNamespace
from zoneinfo import ZoneInfo

from flask import Flask

from dzweb.core.config import build_default_config
from dzweb.core.logging_setup import build_loggers
from dzweb.core.web_config import WebConfig
from dzweb.routes.control_routes import register_control_routes
from dzweb.services import bootstrap as bootstrap_service
from dzweb.services.app_lifecycle import install_flask_hooks, install_shutdown_hooks
from dzweb.services.launch_command import DEFAULT_EXECUTABLE_NAME
from dzweb.services.supervisor import (
    DEFAULT_RESTART_SETTLE_SECONDS,
    DEFAULT_START_GRACE_SECONDS,
    DEFAULT_STOP_TIMEOUT_SECONDS,
    ServerSupervisor,
)

APP_DIR = Path(__file__).resolve().parent.parent
WEB_CONF_PATH = APP_DIR / "dzweb.env"
SUPERVISOR_EXTENSION_KEY = "dzweb.supervisor"


def load_settings(config_path=WEB_CONF_PATH, environ=None):
    """Resolve panel settings from ``dzweb.env`` and the environment."""
    cfg = WebConfig(config_path, APP_DIR, environ=environ)
    try:
        display_tz = ZoneInfo(cfg.get_str("DISPLAY_TZ", "UTC"))
    except Exception:
        display_tz = timezone.utc
    return SimpleNamespace(
        web_host=cfg.get_str("WEB_HOST", "0.0.0.0"),
        web_port=cfg.get_int("PORT", 3000, minimum=1),
        server_directory=cfg.get_str("DAYZ_SERVER_PATH", ""),
        executable_name=cfg.get_str("DAYZ_SERVER_EXECUTABLE", DEFAULT_EXECUTABLE_NAME),
        start_grace_seconds=cfg.get_float("START_GRACE_SECONDS", DEFAULT_START_GRACE_SECONDS, minimum=0.0),
        restart_settle_seconds=cfg.get_float("RESTART_SETTLE_SECONDS", DEFAULT_RESTART_SETTLE_SECONDS, minimum=0.0),
        stop_timeout_seconds=cfg.get_float("STOP_TIMEOUT_SECONDS", DEFAULT_STOP_TIMEOUT_SECONDS, minimum=1.0),
        log_dir=cfg.get_path("DZWEB_LOG_DIR", APP_DIR / "logs"),
        display_tz=display_tz,
    )


def build_supervisor(settings, loggers):
    """Construct the one supervisor owned by this panel process."""
    return ServerSupervisor(
        build_default_config(settings.server_directory or None),
        log_system=loggers.log_system,
        log_exception=loggers.log_exception,
        log_output=loggers.log_output,
        executable_name=settings.executable_name,
        start_grace_seconds=settings.start_grace_seconds,
        restart_settle_seconds=settings.restart_settle_seconds,
        stop_timeout_seconds=settings.stop_timeout_seconds,
    )


def create_app(settings=None, supervisor=None, loggers=None):
    """Build the Flask app with its supervisor injected into the routes."""
    settings = settings or load_settings()
    loggers = loggers or build_loggers(settings.display_tz, settings.log_dir)
    if supervisor is None:
        supervisor = build_supervisor(settings, loggers)

    app = Flask(__name__)
    app.extensions[SUPERVISOR_EXTENSION_KEY] = supervisor
    install_flask_hooks(app, log_exception=loggers.log_exception)
    register_control_routes(app, supervisor, log_action=loggers.log_action)
    return app


def run_server(settings=None):
    """Build the app, hook host shutdown, then serve HTTP."""
    settings = settings or load_settings()
    loggers = build_loggers(settings.display_tz, settings.log_dir)
    supervisor = build_supervisor(settings, loggers)
    app = create_app(settings, supervisor=supervisor, loggers=loggers)

    def _log_boot_config():
        config = supervisor.get_config()
        loggers.log_system(
            "boot-config",
            command=f"server_directory={config.server_directory} executable={settings.executable_name}",
        )

    boot_steps = [
        ("install_shutdown_hooks", lambda: install_shutdown_hooks(supervisor, loggers.log_system)),
        ("log_boot_config", _log_boot_config),
    ]
    bootstrap_service.run_server(
        app,
        settings.web_host,
        settings.web_port,
        loggers.log_system,
        loggers.log_exception,
        boot_steps,
    )
