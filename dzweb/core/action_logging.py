"""Action, error and server-output log writers with size-based rotation."""

from datetime import datetime
import os
import traceback
from flask import request, has_request_context

LOG_ROTATE_MAX_BYTES = 5 * 1024 * 1024
LOG_ROTATE_BACKUP_COUNT = 5


def sanitize_log_fragment(text):
    """Normalize user/system text into a single safe log line fragment."""
    return " ".join(str(text or "").replace("\r", " ").replace("\n", " ").split()).strip()


def request_source():
    """Name who triggered an action: the HTTP peer, or the panel itself."""
    if not has_request_context():
        return "dzweb"
    return (request.remote_addr or "").strip() or "dzweb"


def _rotate_log_file(path, max_bytes=LOG_ROTATE_MAX_BYTES, backup_count=LOG_ROTATE_BACKUP_COUNT):
    """Rotate log file when size reaches threshold."""
    if max_bytes <= 0 or backup_count <= 0:
        return
    try:
        if not path.exists():
            return
        if path.stat().st_size < max_bytes:
            return
        for idx in range(backup_count - 1, 0, -1):
            src = path.with_name(f"{path.name}.{idx}")
            dst = path.with_name(f"{path.name}.{idx + 1}")
            if src.exists():
                os.replace(src, dst)
        os.replace(path, path.with_name(f"{path.name}.1"))
    except OSError:
        # Rotation failures must not break control endpoints.
        pass


def _stamp(display_tz):
    return datetime.now(tz=display_tz).strftime("%b %d %H:%M:%S")


def _append_line(log_dir, log_file, line):
    """Append one line, rotating first; I/O errors are dropped."""
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        _rotate_log_file(log_file)
        with log_file.open("a", encoding="utf-8", errors="replace") as f:
            f.write(line + "\n")
    except OSError:
        # Logging must not break control endpoints.
        pass


def make_log_action(display_tz, log_dir, action_log_file, source="dzweb"):
    """Build the action logger: ``<ts> <who> [source/action] command rejected: why``."""

    def log_action(action, command=None, rejection_message=None):
        who = sanitize_log_fragment(request_source()) or "unknown"
        parts = [f"{_stamp(display_tz)} <{who}> [{source}/{sanitize_log_fragment(action) or 'unknown'}]"]
        detail = sanitize_log_fragment(command)
        if detail:
            parts.append(detail)
        reason = sanitize_log_fragment(rejection_message)
        if reason:
            parts.append(f"rejected: {reason}")
        _append_line(log_dir, action_log_file, " ".join(parts))

    return log_action


def make_log_exception(log_action, traceback_limit=700):
    """Build an exception logger that reports through ``log_action("error")``."""

    def log_exception(context, exc):
        message = f"{context}: {type(exc).__name__}"
        text = sanitize_log_fragment(str(exc))
        if text:
            message += f": {text}"
        if exc.__traceback__ is not None:
            tb = sanitize_log_fragment(" | ".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
            message += f" | traceback: {tb[:traceback_limit]}"
        log_action("error", rejection_message=message)

    return log_exception


def make_log_output(display_tz, log_dir, output_log_file):
    """Build a writer for raw server stdout/stderr lines."""

    def log_output(stream_name, line):
        text = str(line or "").rstrip("\r\n")
        if text.strip():
            _append_line(log_dir, output_log_file, f"{_stamp(display_tz)} [dzserver/{stream_name}] {text}")

    return log_output
