"""Lifecycle supervisor for the single DayZ dedicated server process."""

import threading
import time

import psutil

from dzweb.core.config import validate_config_update, validate_mods
from dzweb.core.errors import (
    AlreadyRunningError,
    DirectoryCreationError,
    NotRunningError,
    ServerBusyError,
    SpawnError,
    SupervisorError,
    TerminationError,
)
from dzweb.services import launch_command, process_control
from dzweb.state import LifecycleState, ServerStatus, SupervisorRuntime

ZERO_UPTIME = "0:00:00"
DEFAULT_START_GRACE_SECONDS = 2.0
DEFAULT_RESTART_SETTLE_SECONDS = 10.0
DEFAULT_STOP_TIMEOUT_SECONDS = 15.0
SHUTDOWN_WAIT_SECONDS = 5.0


def format_uptime(seconds):
    """Format elapsed seconds as ``H:MM:SS`` (hours are not padded)."""
    elapsed = max(0, int(seconds))
    hours = elapsed // 3600
    minutes = (elapsed % 3600) // 60
    secs = elapsed % 60
    return f"{hours}:{minutes:02d}:{secs:02d}"


def _discard_log(*_args, **_kwargs):
    return None


class ServerSupervisor:
    """Own the server process, its restart timer and the reported status.

    Every state change happens under ``_lock``. Slow work (the startup grace
    wait, killing and reaping the process) runs outside the lock while the
    runtime reports ``starting``/``stopping``, so ``get_status`` never blocks
    behind a transition and a second start/stop is rejected instead of
    interleaving.
    """

    def __init__(
        self,
        config,
        *,
        log_system=None,
        log_exception=None,
        log_output=None,
        executable_name=launch_command.DEFAULT_EXECUTABLE_NAME,
        start_grace_seconds=DEFAULT_START_GRACE_SECONDS,
        restart_settle_seconds=DEFAULT_RESTART_SETTLE_SECONDS,
        stop_timeout_seconds=DEFAULT_STOP_TIMEOUT_SECONDS,
        clock=time.time,
    ):
        self._lock = threading.Lock()
        self._config = config.copy()
        self._runtime = SupervisorRuntime()
        self._shutdown_event = threading.Event()
        self.log_system = log_system or _discard_log
        self.log_exception = log_exception or _discard_log
        self.log_output = log_output or _discard_log
        self.executable_name = executable_name
        self.start_grace_seconds = start_grace_seconds
        self.restart_settle_seconds = restart_settle_seconds
        self.stop_timeout_seconds = stop_timeout_seconds
        self._clock = clock

    # Status/config reads

    def get_status(self):
        """Return a consistent snapshot; uptime is computed at read time."""
        with self._lock:
            state = self._runtime.state
            started_at = self._runtime.started_at
            process = self._runtime.process
            config = self._config.copy()
        uptime = ZERO_UPTIME
        if state == LifecycleState.RUNNING and started_at is not None:
            uptime = format_uptime(self._clock() - started_at)
        return ServerStatus(
            state=state,
            players=None,
            uptime=uptime,
            pid=getattr(process, "pid", None),
            config=config,
        )

    def get_config(self):
        with self._lock:
            return self._config.copy()

    def update_config(self, updates):
        """Validate and merge a partial JSON config; returns the merged config.

        Launch settings apply at the next start. A change to ``autoRestart`` or
        ``restartInterval`` while running re-arms the pending restart timer,
        measured from the current session start.
        """
        normalized = validate_config_update(updates)
        with self._lock:
            previous = self._config
            self._config = previous.merged(normalized)
            schedule_changed = (
                previous.auto_restart != self._config.auto_restart
                or previous.restart_interval != self._config.restart_interval
            )
            if schedule_changed and self._runtime.state == LifecycleState.RUNNING:
                self._arm_restart_timer_locked(self._remaining_session_delay_locked())
            merged = self._config.copy()
        self.log_system("config-update", command=", ".join(sorted(normalized)) or "no fields")
        return merged

    def replace_mods(self, mods):
        """Replace the mod load order wholesale; returns the merged config."""
        cleaned = validate_mods(mods)
        with self._lock:
            self._config = self._config.merged({"mods": cleaned})
            merged = self._config.copy()
        self.log_system("mods-update", command=";".join(cleaned) or "no mods")
        return merged

    # Transitions

    def start(self):
        """Launch the server and mark it running after the grace period.

        Raises ``AlreadyRunningError``, ``ServerBusyError``,
        ``DirectoryCreationError`` or ``SpawnError``; on any failure the
        supervisor is back in ``stopped`` with no process attached.
        """
        with self._lock:
            state = self._runtime.state
            if self._runtime.shutdown_done:
                raise ServerBusyError("shutdown")
            if state in (LifecycleState.STARTING, LifecycleState.RUNNING):
                raise AlreadyRunningError()
            if state != LifecycleState.STOPPED:
                raise ServerBusyError(state.value)
            self._runtime.state = LifecycleState.STARTING
            config = self._config.copy()

        try:
            process, exited = self._launch(config)
        except Exception as exc:
            with self._lock:
                if self._runtime.state == LifecycleState.STARTING:
                    self._reset_runtime_locked()
            self.log_system("server-start", rejection_message=str(exc))
            if isinstance(exc, SupervisorError):
                raise
            raise SpawnError(f"Failed to launch server: {exc}") from exc

        # The server emits no readiness signal; wait out the grace period
        # unless it dies first.
        exited.wait(self.start_grace_seconds)

        with self._lock:
            if self._runtime.process is not process:
                raise SpawnError("Server startup was aborted by shutdown")
            if exited.is_set():
                self._reset_runtime_locked()
                code = process.poll()
                message = f"Server exited during startup (code {code})"
            else:
                message = None
                self._runtime.state = LifecycleState.RUNNING
                self._runtime.started_at = self._clock()
                self._arm_restart_timer_locked()
        if message:
            self.log_system("server-start", rejection_message=message)
            raise SpawnError(message)
        self.log_system("server-started", command=f"pid={process.pid}")

    def stop(self):
        """Kill the running server and reset runtime state.

        Raises ``NotRunningError`` when stopped (no kill is issued),
        ``ServerBusyError`` mid-transition and ``TerminationError`` when the
        process survives; in that case the supervisor stays ``running``.
        """
        with self._lock:
            state = self._runtime.state
            if state == LifecycleState.STOPPED:
                raise NotRunningError()
            if state != LifecycleState.RUNNING:
                raise ServerBusyError(state.value)
            self._runtime.state = LifecycleState.STOPPING
            self._cancel_restart_timer_locked()
            process = self._runtime.process

        try:
            self._terminate(process)
        except TerminationError as exc:
            with self._lock:
                gone = self._settle_failed_stop_locked(process)
            if not gone:
                self.log_exception("server_stop", exc)
                raise
            self.log_system(
                "server-stopped",
                command=f"pid={process.pid} exited after kill timeout",
                rejection_message=str(exc),
            )
            return
        with self._lock:
            owned = self._runtime.process is process
            if owned:
                self._reset_runtime_locked()
        suffix = "" if owned else " (runtime already released by shutdown)"
        self.log_system("server-stopped", command=f"pid={process.pid}{suffix}")

    def shutdown(self):
        """Cancel timers and kill the child once; later calls are no-ops.

        Returns True only for the call that performed the cleanup.
        """
        with self._lock:
            if self._runtime.shutdown_done:
                return False
            self._runtime.shutdown_done = True
            self._shutdown_event.set()
            process = self._runtime.process
            # An in-flight stop() has already signalled this process.
            kill_owned_by_stop = self._runtime.state == LifecycleState.STOPPING
            self._reset_runtime_locked()
        if kill_owned_by_stop:
            self.log_system("shutdown", command=f"pid={getattr(process, 'pid', None)} left to in-flight stop")
            return True
        if process is not None and process.poll() is None:
            try:
                process.kill()
                process.wait(timeout=SHUTDOWN_WAIT_SECONDS)
            except Exception as exc:
                self.log_exception("shutdown_kill", exc)
        self.log_system("shutdown", command=f"pid={getattr(process, 'pid', None)}")
        return True

    # Internals

    def _launch(self, config):
        profile_dir = launch_command.profile_path(config)
        try:
            profile_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DirectoryCreationError(f"Cannot create profile directory {profile_dir}: {exc}") from exc

        args = launch_command.build_launch_args(config, self.executable_name)
        self.log_system("server-launch", command=" ".join(args))
        try:
            process = process_control.spawn_server(args, config.server_directory)
        except OSError as exc:
            raise SpawnError(f"Failed to launch {args[0]}: {exc}") from exc

        with self._lock:
            aborted = self._runtime.shutdown_done
            if not aborted:
                self._runtime.process = process
        if aborted:
            process_control.kill_process(process, self.stop_timeout_seconds)
            raise SpawnError("Server startup was aborted by shutdown")

        exited = threading.Event()
        process_control.start_stream_reader(process.stdout, "stdout", self.log_output)
        process_control.start_stream_reader(process.stderr, "stderr", self.log_output)
        watcher = threading.Thread(
            target=self._watch_exit,
            args=(process, exited),
            name="dzserver-exit-watcher",
            daemon=True,
        )
        watcher.start()
        return process, exited

    def _watch_exit(self, process, exited):
        code = process.wait()
        exited.set()
        with self._lock:
            # start() and stop() clean up the transitions they own.
            if self._runtime.process is not process or self._runtime.state != LifecycleState.RUNNING:
                return
            self._reset_runtime_locked()
        self.log_system(
            "server-exited",
            command=f"pid={process.pid}",
            rejection_message=f"Server process exited unexpectedly (code {code}).",
        )

    def _terminate(self, process):
        if process_control.kill_process(process, self.stop_timeout_seconds):
            return
        self.log_system(
            "server-kill-fallback",
            command=self.executable_name,
            rejection_message=f"pid={process.pid} survived kill; killing by executable name.",
        )
        try:
            process_control.kill_processes_by_name(self.executable_name, self.stop_timeout_seconds)
        except psutil.Error as exc:
            raise TerminationError(f"Failed to kill {self.executable_name}: {exc}") from exc
        if process.poll() is None:
            raise TerminationError(f"Server process {process.pid} is still running")

    def _settle_failed_stop_locked(self, process):
        """Return True when the process died anyway; otherwise resume ``running``.

        A shutdown may have released the runtime meanwhile; the answer still
        comes from the process itself.
        """
        owned = self._runtime.process is process
        if process.poll() is not None:
            if owned:
                self._reset_runtime_locked()
            return True
        if not owned:
            return False
        self._runtime.state = LifecycleState.RUNNING
        self._arm_restart_timer_locked()
        return False

    def _auto_restart(self):
        with self._lock:
            if self._runtime.restart_timer is not threading.current_thread():
                return
            self._runtime.restart_timer = None
        self.log_system("auto-restart", command="restart timer fired")
        try:
            self.stop()
        except SupervisorError as exc:
            self.log_exception("auto_restart/stop", exc)
            return
        if self._shutdown_event.wait(self.restart_settle_seconds):
            return
        try:
            self.start()
        except SupervisorError as exc:
            self.log_exception("auto_restart/start", exc)

    def _arm_restart_timer_locked(self, delay=None):
        self._cancel_restart_timer_locked()
        config = self._config
        if self._runtime.shutdown_done or not config.auto_restart or config.restart_interval <= 0:
            return
        if delay is None:
            delay = config.restart_interval
        timer = threading.Timer(delay, self._auto_restart)
        timer.name = "dzserver-restart"
        timer.daemon = True
        self._runtime.restart_timer = timer
        timer.start()

    def _remaining_session_delay_locked(self):
        started_at = self._runtime.started_at
        if started_at is None:
            return None
        return max(0.0, self._config.restart_interval - (self._clock() - started_at))

    def _cancel_restart_timer_locked(self):
        timer = self._runtime.restart_timer
        if timer is not None:
            timer.cancel()
        self._runtime.restart_timer = None

    def _reset_runtime_locked(self):
        self._cancel_restart_timer_locked()
        self._runtime.process = None
        self._runtime.started_at = None
        self._runtime.state = LifecycleState.STOPPED
