"""Flask error hook and host-shutdown hook installation."""
import atexit
import signal
import sys

from flask import has_request_context, request
from werkzeug.exceptions import HTTPException

from dzweb.core.response_helpers import internal_error_response


def install_flask_hooks(app, *, log_exception):
    """Log unhandled request exceptions and answer with a JSON 500."""

    @app.errorhandler(Exception)
    def _unhandled_exception_handler(exc):
        if isinstance(exc, HTTPException):
            return exc
        path = request.path if has_request_context() else "unknown-path"
        log_exception(f"unhandled_exception path={path}", exc)
        return internal_error_response()


def install_shutdown_hooks(supervisor, log_system, *, signals=(signal.SIGINT, signal.SIGTERM)):
    """Make sure the supervised server dies with the panel.

    ``supervisor.shutdown`` is idempotent, so atexit and the signal handlers
    may all fire and the child is still killed only once.
    """
    atexit.register(supervisor.shutdown)

    def _handle_signal(signum, _frame):
        log_system("signal", command=signal.Signals(signum).name)
        supervisor.shutdown()
        sys.exit(0)

    installed = []
    for signum in signals:
        try:
            signal.signal(signum, _handle_signal)
        except (ValueError, OSError) as exc:
            # Not the main thread, or the platform lacks this signal.
            log_system("signal", command=str(signum), rejection_message=str(exc))
            continue
        installed.append(signum)
    return installed
