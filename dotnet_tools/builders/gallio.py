"""Gallio command builder.

Usage:
    settings = GallioSettings(executable=..., report_file=..., work_dir=..., ...)
    command  = build_command(solution, settings)   # raises ConfigError subclasses
    report   = expected_report(settings)

The base Gallio arguments are assembled first; when a coverage tool is
selected they are embedded into that tool's own command line by one of the
strategy functions registered in ``_STRATEGIES``.
"""

import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

import structlog

from dotnet_tools.errors import (
    CoverageExecutableNotFoundError,
    ExecutableNotFoundError,
    MissingReportFileError,
    NoTestAssemblyError,
    WorkDirNotFoundError,
)
from dotnet_tools.models import CommandSpec, CoverageTool, GallioRunnerType, Solution


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GallioSettings:
    executable: Path | None
    report_file: Path | None
    work_dir: Path | None
    test_assemblies: tuple[Path, ...] = ()
    filter: str = ""
    runner: GallioRunnerType | None = None
    coverage_tool: CoverageTool = CoverageTool.NONE
    # Installation directory per coverage tool, read-only once built
    install_dirs: Mapping[CoverageTool, Path] = field(default_factory=dict, hash=False)
    coverage_excludes: tuple[str, ...] = ()
    attribute_excludes: str = ""
    base_directory: Path | None = None
    coverage_report_file: Path | None = None

    @property
    def effective_runner(self) -> GallioRunnerType:
        """Explicit runner, else the coverage tool's default."""
        if self.runner is not None:
            return self.runner
        return self.coverage_tool.gallio_runner

    def __post_init__(self) -> None:
        object.__setattr__(self, "install_dirs", MappingProxyType(dict(self.install_dirs)))

    def coverage_executable(self) -> Path | None:
        name = self.coverage_tool.executable_name
        install_dir = self.install_dirs.get(self.coverage_tool)
        if name is None or install_dir is None:
            return None
        return Path(install_dir) / name


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_command(solution: Solution, settings: GallioSettings) -> CommandSpec:
    """Validate *settings* and return the command that runs the tests.

    Raises:
        ExecutableNotFoundError:         Gallio is not a regular file
        MissingReportFileError:          no test (or coverage) report file set
        WorkDirNotFoundError:            working directory is not a directory
        NoTestAssemblyError:             the test assembly list is empty
        CoverageExecutableNotFoundError: the coverage tool is not installed
    """
    validate(settings)
    gallio_arguments = gallio_arguments_for(settings)
    strategy = _STRATEGIES[settings.coverage_tool]
    executable, arguments = strategy(solution, settings, gallio_arguments)
    return CommandSpec(
        executable=executable,
        work_dir=settings.work_dir,
        arguments=tuple(arguments),
    )


def expected_report(settings: GallioSettings) -> Path:
    """Return the path of the XML report Gallio writes for *settings*."""
    if settings.report_file is None:
        raise MissingReportFileError("Gallio report file has not been specified.")
    report_file = Path(settings.report_file)
    return _absolute(report_file.parent) / f"{trim_report_name(report_file.name)}.xml"


def gallio_arguments_for(settings: GallioSettings) -> list[str]:
    """Return the Gallio-native arguments, test assemblies last."""
    arguments = [f"/r:{settings.effective_runner.value}"]

    if settings.base_directory is not None and str(settings.base_directory):
        arguments.append(f"/abd:{_absolute(settings.base_directory)}")

    report_file = Path(settings.report_file)
    arguments.append(f"/report-directory:{_absolute(report_file.parent)}")
    arguments.append(f"/report-name-format:{trim_report_name(report_file.name)}")
    arguments.append("/report-type:Xml")

    if settings.filter:
        arguments.append(f"/f:{settings.filter}")

    arguments.extend(str(_absolute(assembly)) for assembly in settings.test_assemblies)
    return arguments


def covered_assemblies(solution: Solution) -> list[str]:
    """Assembly names of every non-test project, in solution order."""
    return [project.assembly_name for project in solution.non_test_projects()]


def trim_report_name(report_name: str) -> str:
    # Gallio appends the extension itself
    if report_name.lower().endswith(".xml"):
        return report_name[:-4]
    return report_name


def escape_arguments(arguments: Sequence[str]) -> str:
    """Join *arguments* into one string that survives another level of quoting."""
    return " ".join(escape_quotes(argument) for argument in arguments)


def escape_quotes(text: str) -> str:
    """Escape the quotes of *text* and wrap it in escaped quotes.

    A boundary character that is already a quote is escaped instead of being
    wrapped, e.g. ``ab`` gives ``\\"ab\\"`` and ``"ab"`` gives ``\\"ab\\"``.
    """
    result = []
    last = len(text) - 1
    for index, char in enumerate(text):
        if char == '"':
            result.append("\\")
        elif index == 0:
            result.append('\\"')
        result.append(char)
        if char != '"' and index == last:
            result.append('\\"')
    return "".join(result)


def validate(settings: GallioSettings) -> None:
    """Raise a ConfigError subclass if *settings* cannot produce a command."""
    if settings.executable is None or not Path(settings.executable).is_file():
        raise ExecutableNotFoundError(
            f"Gallio executable cannot be found at the following location: {settings.executable}",
            path=settings.executable,
        )
    if settings.report_file is None:
        raise MissingReportFileError("Gallio report file has not been specified.")
    if settings.work_dir is None or not Path(settings.work_dir).is_dir():
        raise WorkDirNotFoundError(
            f"The working directory cannot be found at the following location: {settings.work_dir}",
            path=settings.work_dir,
        )
    if not settings.test_assemblies:
        raise NoTestAssemblyError(
            "No test assembly was found. Please check your project's Gallio configuration."
        )

    tool = settings.coverage_tool
    if tool.executable_name is not None:
        executable = settings.coverage_executable()
        if executable is None or not executable.is_file():
            raise CoverageExecutableNotFoundError(
                f"{tool.display_name} executable cannot be found at the following location: "
                f"{executable}",
                path=executable,
            )
    if tool is not CoverageTool.NONE and settings.coverage_report_file is None:
        raise MissingReportFileError("Gallio coverage report file has not been specified.")


def describe(command: CommandSpec, settings: GallioSettings, solution: Solution) -> None:
    """Log the inputs and the resulting command at debug level."""
    log = structlog.get_logger().bind(tool="gallio")
    log.debug("gallio_executable", path=str(settings.executable))
    log.debug("gallio_runner", runner=settings.effective_runner.value)
    log.debug("gallio_report", path=str(expected_report(settings)))
    if settings.filter:
        log.debug("gallio_filter", filter=settings.filter)
    log.debug("gallio_test_assemblies", assemblies=[str(a) for a in settings.test_assemblies])
    if settings.coverage_tool is not CoverageTool.NONE:
        log.debug(
            "coverage_settings",
            coverage_tool=settings.coverage_tool.display_name,
            covered=covered_assemblies(solution),
            excludes=list(settings.coverage_excludes),
            report=str(settings.coverage_report_file),
        )
    log.debug("command", executable=command.executable, arguments=list(command.arguments))


# ---------------------------------------------------------------------------
# Coverage strategies
# ---------------------------------------------------------------------------

_Strategy = Callable[[Solution, GallioSettings, list[str]], tuple[str, list[str]]]


def _no_coverage(solution, settings, gallio_arguments):
    return str(_absolute(settings.executable)), list(gallio_arguments)


def _partcover(solution, settings, gallio_arguments):
    arguments = [
        "--target", str(_absolute(settings.executable)),
        "--target-work-dir", str(_absolute(settings.work_dir)),
        "--target-args", escape_arguments(gallio_arguments),
    ]
    for assembly in covered_assemblies(solution):
        arguments += ["--include", f"[{assembly}]*"]
    for exclusion in settings.coverage_excludes:
        arguments += ["--exclude", exclusion.strip()]
    arguments += ["--output", str(_absolute(settings.coverage_report_file))]
    return str(_absolute(settings.coverage_executable())), arguments


def _opencover(solution, settings, gallio_arguments):
    arguments = [
        "-register:user",
        f"-target:{_absolute(settings.executable)}",
        f"-targetdir:{_absolute(settings.work_dir)}",
        f'"-targetargs:{escape_arguments(gallio_arguments)}"',
    ]

    # Includes and excludes are concatenated as OpenCover has always received them
    filters = ['"-filter:']
    filters += [f"+[{assembly}]* " for assembly in covered_assemblies(solution)]
    filters += [exclusion.strip() for exclusion in settings.coverage_excludes]
    filters.append('"')
    arguments.append("".join(filters))

    arguments.append("-mergebyhash")
    if settings.attribute_excludes and settings.attribute_excludes.strip():
        arguments.append(f"-excludebyattribute:{settings.attribute_excludes}")
    arguments.append(f"-output:{_absolute(settings.coverage_report_file)}")
    return str(_absolute(settings.coverage_executable())), arguments


def _dotcover(solution, settings, gallio_arguments):
    arguments = [
        "a",
        f"/TargetExecutable={_absolute(settings.executable)}",
        f"/TargetWorkingDir={_absolute(settings.work_dir)}",
        f'"/TargetArguments={escape_arguments(gallio_arguments)}"',
    ]

    filters = "/Filters="
    filters += "".join(
        f"+:module={assembly};class=*;function=*;" for assembly in covered_assemblies(solution)
    )
    filters += ";".join(settings.coverage_excludes)
    arguments.append(filters)

    arguments.append("/ReportType=TeamCityXML")
    arguments.append(f"/Output={_absolute(settings.coverage_report_file)}")
    return str(_absolute(settings.coverage_executable())), arguments


def _ncover(solution, settings, gallio_arguments):
    arguments = list(gallio_arguments)
    arguments.append(
        f"/runner-property:NCoverCoverageFile={_absolute(settings.coverage_report_file)}"
    )

    covered = covered_assemblies(solution)
    for exclusion in settings.coverage_excludes:
        if exclusion.strip() in covered:
            covered.remove(exclusion.strip())
    arguments.append(f"/runner-property:NCoverArguments=//ias {';'.join(covered)}")
    return str(_absolute(settings.executable)), arguments


_STRATEGIES: dict[CoverageTool, _Strategy] = {
    CoverageTool.NONE: _no_coverage,
    CoverageTool.PARTCOVER: _partcover,
    CoverageTool.OPENCOVER: _opencover,
    CoverageTool.DOTCOVER: _dotcover,
    CoverageTool.NCOVER: _ncover,
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _absolute(path) -> Path:
    return Path(os.path.abspath(path))
