"""Typed runtime state for the DayZ server supervisor."""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional


class LifecycleState(str, Enum):
    """Supervisor lifecycle values reported to clients."""
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


# JSON name -> dataclass attribute.
CONFIG_FIELD_NAMES = {
    "serverName": "server_name",
    "serverDirectory": "server_directory",
    "serverPort": "server_port",
    "serverConfig": "server_config",
    "serverProfile": "server_profile",
    "serverCPU": "server_cpu",
    "mods": "mods",
    "autoRestart": "auto_restart",
    "restartInterval": "restart_interval",
}


@dataclass
class ServerConfig:
    """Launch and scheduling settings for the managed server."""
    server_name: str
    server_directory: str
    server_port: int
    server_config: str
    server_profile: str
    server_cpu: int
    mods: list = field(default_factory=list)
    auto_restart: bool = True
    restart_interval: int = 14400

    def copy(self):
        return replace(self, mods=list(self.mods))

    def merged(self, updates):
        """Return a copy with JSON-named ``updates`` applied field by field."""
        values = {CONFIG_FIELD_NAMES[key]: value for key, value in updates.items()}
        if "mods" in values:
            values["mods"] = list(values["mods"])
        return replace(self.copy(), **values)

    def to_dict(self):
        data = {}
        for json_name, attr in CONFIG_FIELD_NAMES.items():
            value = getattr(self, attr)
            data[json_name] = list(value) if attr == "mods" else value
        return data


@dataclass
class ServerStatus:
    """Point-in-time status snapshot returned by the supervisor."""
    state: LifecycleState
    players: Optional[int]
    uptime: str
    pid: Optional[int]
    config: ServerConfig

    @property
    def is_running(self):
        return self.state == LifecycleState.RUNNING

    def to_dict(self):
        return {
            "isRunning": self.is_running,
            "players": self.players,
            "uptime": self.uptime,
            "state": self.state.value,
            "pid": self.pid,
            "config": self.config.to_dict(),
        }


@dataclass
class SupervisorRuntime:
    """Mutable process/timer handles owned by one supervisor (guarded by its lock)."""
    state: LifecycleState = LifecycleState.STOPPED
    process: Any = None
    started_at: Optional[float] = None
    restart_timer: Any = None
    shutdown_done: bool = False

