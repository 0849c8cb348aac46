"""Logging setup helpers."""

from types import SimpleNamespace

from dzweb.core.action_logging import make_log_action, make_log_exception, make_log_output


def build_loggers(display_tz, log_dir):
    """Create the action/system/server-output log writers under ``log_dir``."""
    log_action = make_log_action(display_tz, log_dir, log_dir / "dzweb-actions.log")
    log_system = make_log_action(display_tz, log_dir, log_dir / "dzweb.log")
    return SimpleNamespace(
        log_action=log_action,
        log_system=log_system,
        log_exception=make_log_exception(log_system),
        log_output=make_log_output(display_tz, log_dir, log_dir / "dzserver-output.log"),
    )
