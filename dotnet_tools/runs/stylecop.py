"""StyleCop analysis run.

Functions:
    run_stylecop(solution, settings, project=None, dry_run=False, timeout=None) -> dict
"""

from datetime import datetime, timezone

import structlog

from dotnet_tools.builders.stylecop import StyleCopSettings, prepare, prepare_project
from dotnet_tools.executor import locate_report, run_command
from dotnet_tools.models import Solution


def run_stylecop(
    solution: Solution,
    settings: StyleCopSettings,
    project: str | None = None,
    dry_run: bool = False,
    timeout: int | None = None,
) -> dict:
    """Generate the MSBuild project, launch it and locate the StyleCop report.

    When *project* names a single project only that one is analysed; web
    projects cannot be analysed alone and are reported as skipped.
    """
    log = structlog.get_logger().bind(tool="stylecop")

    report = {
        "report_type":  "stylecop",
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }
    if project is not None:
        report["project"] = project
        run = prepare_project(solution.project(project), settings)
        if run is None:
            log.info("stylecop_skipped", project=project, reason="web project")
            return {**report, "executed": False, "skipped": True}
    else:
        run = prepare(solution, settings)

    log.info("stylecop_msbuild_generated", path=str(run.msbuild_file))
    log.debug(
        "stylecop_settings",
        analyzed=[str(p) for p in run.analyzed],
        rules=str(run.rules_file),
        report=str(run.report_file),
        ignores=list(settings.ignores),
        stylecop_root=str(settings.stylecop_root),
    )

    report = {**report, "command": run.command.to_payload(), "msbuild_file": str(run.msbuild_file)}
    if dry_run:
        return {**report, "executed": False}

    log.info("stylecop_launch", msbuild=run.command.executable)
    result = run_command(run.command, timeout=timeout)
    # MSBuild output is verbose
    log.debug("stylecop_output", stdout=result.stdout, stderr=result.stderr)
    result.check()

    report_file = locate_report(run.report_file)
    log.info("stylecop_done", report=str(report_file))
    return {**report, "executed": True, "exit_code": result.exit_code, "reports": {"stylecop": str(report_file)}}
