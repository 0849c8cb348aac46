"""Server configuration defaults and validation for partial updates."""

from pathlib import Path, PurePosixPath, PureWindowsPath

from dzweb.core.errors import ConfigValidationError
from dzweb.state import CONFIG_FIELD_NAMES, ServerConfig

DEFAULT_SERVER_DIRECTORY = "C:\\Program Files (x86)\\Steam\\steamapps\\common\\DayZServer\\"
DEFAULT_RESTART_INTERVAL_SECONDS = 4 * 60 * 60


def build_default_config(server_directory=None):
    """Return the boot-time server configuration."""
    return ServerConfig(
        server_name="DayZ Server",
        server_directory=server_directory or DEFAULT_SERVER_DIRECTORY,
        server_port=2302,
        server_config="serverDZ.cfg",
        server_profile="profiles",
        server_cpu=2,
        mods=[],
        auto_restart=True,
        restart_interval=DEFAULT_RESTART_INTERVAL_SECONDS,
    )


def _is_int(value):
    # bool is an int subclass; JSON true/false must not pass as a port.
    return isinstance(value, int) and not isinstance(value, bool)


def _require_text(key, value):
    if not isinstance(value, str) or not value.strip():
        raise ConfigValidationError(key, "must be a non-empty string")
    if "\x00" in value:
        raise ConfigValidationError(key, "must not contain NUL characters")
    return value.strip()


def _validate_profile(value):
    value = _require_text("serverProfile", value)
    for flavour in (PurePosixPath, PureWindowsPath):
        candidate = flavour(value)
        if candidate.is_absolute() or candidate.anchor:
            raise ConfigValidationError("serverProfile", "must be a relative path")
        if ".." in candidate.parts:
            raise ConfigValidationError("serverProfile", "must stay inside the server directory")
    return value


def validate_mods(mods):
    """Return a clean mod list or raise ``ConfigValidationError``."""
    if not isinstance(mods, list):
        raise ConfigValidationError("mods", "must be a list of mod names")
    cleaned = []
    for mod in mods:
        if not isinstance(mod, str) or not mod.strip():
            raise ConfigValidationError("mods", "mod names must be non-empty strings")
        name = mod.strip().lstrip("@")
        if not name or ";" in name or "\x00" in name:
            raise ConfigValidationError("mods", f"invalid mod name: {mod!r}")
        cleaned.append(name)
    return cleaned


def validate_config_update(updates):
    """Validate a partial JSON config and return the normalized values.

    Nothing is merged here; the caller applies the returned mapping only when
    every field passed.
    """
    if not isinstance(updates, dict):
        raise ConfigValidationError("config", "must be a JSON object")
    normalized = {}
    for key, value in updates.items():
        if key not in CONFIG_FIELD_NAMES:
            raise ConfigValidationError(key, "unknown configuration field")
        if key in ("serverName", "serverConfig"):
            normalized[key] = _require_text(key, value)
        elif key == "serverDirectory":
            text = _require_text(key, value)
            if not Path(text).is_dir():
                raise ConfigValidationError(key, "directory does not exist")
            normalized[key] = text
        elif key == "serverProfile":
            normalized[key] = _validate_profile(value)
        elif key == "serverPort":
            if not _is_int(value) or not 1 <= value <= 65535:
                raise ConfigValidationError(key, "must be an integer between 1 and 65535")
            normalized[key] = value
        elif key == "serverCPU":
            if not _is_int(value) or value < 1:
                raise ConfigValidationError(key, "must be a positive integer")
            normalized[key] = value
        elif key == "restartInterval":
            if not _is_int(value) or value < 0:
                raise ConfigValidationError(key, "must be a non-negative integer (seconds)")
            normalized[key] = value
        elif key == "autoRestart":
            if not isinstance(value, bool):
                raise ConfigValidationError(key, "must be true or false")
            normalized[key] = value
        elif key == "mods":
            normalized[key] = validate_mods(value)
    return normalized
