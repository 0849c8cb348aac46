"""Application bootstrap/run helpers."""


def run_server(app, host, port, log_system, log_exception, boot_steps):
    """Run startup steps, then start the Flask server."""
    log_system("boot-start", command=f"host={host} port={port}")

    for step_name, step_func in boot_steps:
        try:
            step_func()
        except Exception as exc:
            log_exception(f"boot_step/{step_name}", exc)
            log_system("boot-failed", command=step_name, rejection_message=str(exc)[:500] or "startup step failed")
            raise

    log_system("boot-ready", command=f"host={host} port={port}")
    try:
        # The reloader would fork a second supervisor owning its own server.
        app.run(host=host, port=port, use_reloader=False, threaded=True)
    except Exception as exc:
        log_exception("boot_step/app.run", exc)
        log_system("boot-failed", command="app.run", rejection_message=str(exc)[:500] or "web server startup failed")
        raise
