"""Gallio test (and coverage) run.

Functions:
    run_gallio(solution, settings, dry_run=False, timeout=None) -> dict
"""

from datetime import datetime, timezone

import structlog

from dotnet_tools.builders.gallio import GallioSettings, build_command, describe, expected_report
from dotnet_tools.executor import locate_report, run_command
from dotnet_tools.models import CoverageTool, Solution


def run_gallio(
    solution: Solution,
    settings: GallioSettings,
    dry_run: bool = False,
    timeout: int | None = None,
) -> dict:
    """Build the Gallio command, run it and locate the produced reports.

    With *dry_run* the command is built and returned without being executed.

    Raises:
        ConfigError:    invalid settings, before anything is executed
        ExecutionError: the command failed or a report is missing
    """
    log = structlog.get_logger().bind(tool="gallio")

    command = build_command(solution, settings)
    describe(command, settings, solution)

    report = {
        "report_type":   "gallio",
        "generated_at":  datetime.now(timezone.utc).isoformat(),
        "coverage_tool": settings.coverage_tool.display_name,
        "command":       command.to_payload(),
    }
    if dry_run:
        return {**report, "executed": False}

    log.info("gallio_launch", executable=command.executable)
    result = run_command(command, timeout=timeout)
    log.debug("gallio_output", stdout=result.stdout, stderr=result.stderr)
    result.check()

    reports = {"tests": str(locate_report(expected_report(settings)))}
    if settings.coverage_tool is not CoverageTool.NONE:
        reports["coverage"] = str(locate_report(settings.coverage_report_file))
    log.info("gallio_done", exit_code=result.exit_code, **reports)

    return {**report, "executed": True, "exit_code": result.exit_code, "reports": reports}
