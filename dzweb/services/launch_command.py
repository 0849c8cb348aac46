"""DayZ dedicated server command-line construction."""

from pathlib import Path

DEFAULT_EXECUTABLE_NAME = "DayZServer_x64.exe"
BATTLEYE_PATH = "battleye"
LOG_FLAGS = ("-dologs", "-adminlog", "-netlog", "-freezecheck")


def build_mod_argument(mods):
    """Return ``-mod=@a;@b`` for the given load order, or ``""`` when empty."""
    if not mods:
        return ""
    return "-mod=" + ";".join(f"@{mod}" for mod in mods)


def executable_path(config, executable_name=DEFAULT_EXECUTABLE_NAME):
    return Path(config.server_directory) / executable_name


def profile_path(config):
    """Absolute profile directory the server writes logs and state into."""
    return Path(config.server_directory) / config.server_profile


def build_launch_args(config, executable_name=DEFAULT_EXECUTABLE_NAME):
    """Build the argv list used to spawn the server (no shell involved)."""
    args = [
        str(executable_path(config, executable_name)),
        f"-config={config.server_config}",
        f"-port={config.server_port}",
        f"-profiles={config.server_profile}",
        f"-BEpath={BATTLEYE_PATH}",
    ]
    mod_argument = build_mod_argument(config.mods)
    if mod_argument:
        args.append(mod_argument)
    args.append(f"-cpuCount={config.server_cpu}")
    args.extend(LOG_FLAGS)
    return args
