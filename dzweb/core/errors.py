"""Error kinds raised by the server supervisor and config validation."""


class SupervisorError(Exception):
    """Base class for lifecycle failures surfaced to the HTTP layer."""


class AlreadyRunningError(SupervisorError):
    def __init__(self, message="Server is already running"):
        super().__init__(message)


class NotRunningError(SupervisorError):
    def __init__(self, message="Server is not running"):
        super().__init__(message)


class ServerBusyError(SupervisorError):
    """Another start/stop transition currently owns the server."""

    def __init__(self, state):
        self.state = state
        super().__init__(f"Server is busy ({state})")


class SpawnError(SupervisorError):
    """The server executable could not be launched or died during startup."""


class DirectoryCreationError(SupervisorError):
    """The profile directory could not be created before launch."""


class TerminationError(SupervisorError):
    """The server process could not be killed."""


class ConfigValidationError(ValueError):
    """A partial configuration update was rejected."""

    def __init__(self, field, message):
        self.field = field
        super().__init__(f"{field}: {message}")
