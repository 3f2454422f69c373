"""Generic external command execution.

Usage:
    result = run_command(command, timeout=600)   # never raises on exit status
    result.check()                               # CommandFailedError if exit != 0
    report = locate_report(path)                 # ReportNotFoundError if absent
"""

import os
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from dotnet_tools.errors import CommandFailedError, CommandTimeoutError, ReportNotFoundError
from dotnet_tools.models import CommandSpec

# Only the head of the output is kept in error messages
_OUTPUT_EXCERPT = 200


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommandResult:
    command: CommandSpec
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def check(self, success_codes: Iterable[int] = (0,)) -> "CommandResult":
        """Return self, or raise CommandFailedError for an unexpected exit status."""
        if self.exit_code not in tuple(success_codes):
            detail = (self.stderr or self.stdout).strip()[:_OUTPUT_EXCERPT]
            raise CommandFailedError(
                f"'{Path(self.command.executable).name}' exited with status {self.exit_code}"
                + (f": {detail}" if detail else ""),
                exit_code=self.exit_code,
            )
        return self


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def run_command(
    command: CommandSpec,
    timeout: int | None = None,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """Run *command* to completion and capture its output.

    Raises:
        CommandFailedError:  the executable could not be started
        CommandTimeoutError: the command ran longer than *timeout* seconds
    """
    try:
        completed = subprocess.run(  # noqa: S603
            command.to_argv(),
            cwd=command.work_dir,
            env=os.environ.copy() if env is None else env,
            text=True,
            capture_output=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise CommandTimeoutError(
            f"'{Path(command.executable).name}' timed out after {timeout}s"
        ) from exc
    except OSError as exc:
        raise CommandFailedError(f"Unable to start '{command.executable}': {exc}") from exc

    return CommandResult(
        command=command,
        exit_code=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )


def locate_report(path: Path) -> Path:
    """Return *path* if the report exists, else raise ReportNotFoundError."""
    report = Path(path)
    if not report.is_file():
        raise ReportNotFoundError(f"Report file was not generated: {report}", path=report)
    return report
