"""Child-process spawn/kill helpers for the supervised server."""

import subprocess
import threading

import psutil


def spawn_server(args, cwd):
    """Launch the server executable with piped output; raises ``OSError`` on failure."""
    return subprocess.Popen(
        args,
        cwd=str(cwd),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        errors="replace",
    )


def start_stream_reader(stream, stream_name, log_output):
    """Pump one process stream into ``log_output`` on a daemon thread."""
    if stream is None:
        return None

    def reader():
        try:
            for line in stream:
                log_output(stream_name, line)
        except (OSError, ValueError):
            # Stream closed underneath us after kill.
            pass

    thread = threading.Thread(target=reader, name=f"dzserver-{stream_name}", daemon=True)
    thread.start()
    return thread


def kill_process(process, timeout_seconds):
    """Kill exactly ``process`` and wait for it to exit.

    Returns True when the process is confirmed gone.
    """
    if process.poll() is not None:
        return True
    try:
        process.kill()
    except OSError:
        if process.poll() is not None:
            return True
        return False
    try:
        process.wait(timeout=timeout_seconds)
    except subprocess.TimeoutExpired:
        return False
    return True


def kill_processes_by_name(executable_name, timeout_seconds):
    """Last-resort kill of every process whose name matches the server executable.

    This reaches unrelated instances on a shared host, so it only runs after a
    handle-based kill failed. Returns the number of processes that were
    signalled.
    """
    target = executable_name.lower()
    matched = []
    for proc in psutil.process_iter(["name"]):
        name = (proc.info.get("name") or "").lower()
        if name != target:
            continue
        try:
            proc.kill()
            matched.append(proc)
        except psutil.NoSuchProcess:
            continue
    if matched:
        _, alive = psutil.wait_procs(matched, timeout=timeout_seconds)
        if alive:
            raise psutil.TimeoutExpired(timeout_seconds, pid=alive[0].pid)
    return len(matched)
