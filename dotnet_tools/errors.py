"""Exception hierarchy.

Two families:
    ConfigError      invalid or missing configuration, raised before any
                     external process starts
    ExecutionError   an external command failed or did not produce its report
"""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


class ProjectNotFoundError(ConfigError):
    """Raised when a project name is not found in the solution."""


class ExecutableNotFoundError(ConfigError):
    """Raised when a tool executable is missing or is not a regular file."""

    def __init__(self, message: str, path=None) -> None:
        super().__init__(message)
        self.path = path


class CoverageExecutableNotFoundError(ExecutableNotFoundError):
    """Raised when the selected coverage tool is not installed where expected."""


class WorkDirNotFoundError(ConfigError):
    """Raised when the working directory does not exist."""

    def __init__(self, message: str, path=None) -> None:
        super().__init__(message)
        self.path = path


class MissingReportFileError(ConfigError):
    """Raised when a report file location has not been specified."""


class NoTestAssemblyError(ConfigError):
    """Raised when there is nothing to run the tests against."""


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

class ExecutionError(Exception):
    """Base exception for external command failures."""


class CommandFailedError(ExecutionError):
    """Raised when a command exits with an unexpected status or cannot start."""

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class CommandTimeoutError(ExecutionError):
    """Raised when a command runs longer than its timeout."""


class ReportNotFoundError(ExecutionError):
    """Raised when a command completed but its report file is missing."""

    def __init__(self, message: str, path=None) -> None:
        super().__init__(message)
        self.path = path
