"""StyleCop analysis through a generated MSBuild project.

Usage:
    run = prepare(solution, settings)           # writes the MSBuild file
    run = prepare_project(project, settings)    # single project, None for web
    run.command                                 # msbuild /p:AppRoot=... /target:CheckStyle ...
"""

import os
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from dotnet_tools.errors import ConfigError, ExecutableNotFoundError
from dotnet_tools.models import CommandSpec, Project, Solution

MSBUILD_NAMESPACE = "http://schemas.microsoft.com/developer/msbuild/2003"
MSBUILD_FILE_NAME = "stylecop-msbuild.xml"
DEFAULT_RULES_FILE_NAME = "default-rules.stylecop"
DEFAULT_REPORT_NAME = "stylecop-report.xml"
TARGET = "CheckStyle"

DEFAULT_RULES = """\
<StyleCopSettings Version="4.3">
  <Analyzers>
    <Analyzer AnalyzerId="Microsoft.StyleCop.CSharp.DocumentationRules">
      <AnalyzerSettings>
        <BooleanProperty Name="IgnorePrivates">True</BooleanProperty>
        <BooleanProperty Name="IgnoreInternals">True</BooleanProperty>
      </AnalyzerSettings>
    </Analyzer>
  </Analyzers>
</StyleCopSettings>
"""


# ---------------------------------------------------------------------------
# Settings and result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StyleCopSettings:
    msbuild: Path | None
    stylecop_root: Path | None
    report_directory: Path
    project_root: Path
    rules_file: Path | None = None
    report_name: str = DEFAULT_REPORT_NAME
    ignores: tuple[str, ...] = ()
    skipped_projects: tuple[str, ...] = ()

    @property
    def report_file(self) -> Path:
        return self.report_directory / self.report_name

    @property
    def msbuild_file(self) -> Path:
        return self.report_directory / MSBUILD_FILE_NAME


@dataclass(frozen=True)
class StyleCopRun:
    command: CommandSpec
    report_file: Path
    msbuild_file: Path
    rules_file: Path
    analyzed: tuple[Path, ...]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def analyzed_paths(solution: Solution, skipped_projects: Iterable[str] = ()) -> list[Path]:
    """Paths handed to StyleCop: every non-test, non-skipped project."""
    skipped = {name.strip() for name in skipped_projects}
    return [
        project.analysis_path
        for project in solution.projects
        if not project.is_test and project.name not in skipped
    ]


def prepare(solution: Solution, settings: StyleCopSettings) -> StyleCopRun:
    """Write the MSBuild project analysing *solution* and return the run to launch.

    Raises:
        ExecutableNotFoundError: MSBuild is not a regular file
        ConfigError:             StyleCop root or rules file missing, or the
                                 MSBuild file cannot be written
    """
    return _prepare(
        solution.solution_file,
        analyzed_paths(solution, settings.skipped_projects),
        settings,
    )


def prepare_project(project: Project, settings: StyleCopSettings) -> StyleCopRun | None:
    """Single-project variant of :func:`prepare`.

    StyleCop cannot run on a web project alone: returns None for those.
    """
    if project.is_web:
        return None
    return _prepare(project.analysis_path, [project.analysis_path], settings)


def generate_msbuild_project(
    target_file: Path,
    analyzed: Iterable[Path],
    settings: StyleCopSettings,
    rules_file: Path,
) -> str:
    """Return the MSBuild project document running StyleCop on *analyzed*."""
    root = ET.Element(
        "Project",
        {"xmlns": MSBUILD_NAMESPACE, "DefaultTargets": TARGET, "ToolsVersion": "3.5"},
    )

    properties = ET.SubElement(root, "PropertyGroup")
    ET.SubElement(properties, "ProjectRoot").text = "$(AppRoot)"
    ET.SubElement(properties, "StyleCopRoot").text = str(_absolute(settings.stylecop_root))
    ET.SubElement(properties, "SolutionFile").text = str(_absolute(target_file))

    ET.SubElement(
        root,
        "UsingTask",
        {
            "AssemblyFile": str(Path("$(StyleCopRoot)") / "Microsoft.StyleCop.dll"),
            "TaskName": "StyleCopTask",
        },
    )

    projects = ET.SubElement(root, "ItemGroup")
    directories = []
    for path in analyzed:
        path = _absolute(path)
        ET.SubElement(projects, "Project", {"Include": str(path)})
        directories.append(path.parent if path.suffix.lower().endswith("proj") else path)

    target = ET.SubElement(root, "Target", {"Name": TARGET})
    for directory in directories:
        attributes = {"Include": str(directory / "**" / "*.cs")}
        if settings.ignores:
            attributes["Exclude"] = ";".join(settings.ignores)
        create = ET.SubElement(target, "CreateItem", attributes)
        ET.SubElement(create, "Output", {"TaskParameter": "Include", "ItemName": "SourceAnalysisFiles"})

    ET.SubElement(
        target,
        "StyleCopTask",
        {
            "ProjectFullPath": "$(SolutionFile)",
            "SourceFiles": "@(SourceAnalysisFiles)",
            "ForceFullAnalysis": "true",
            "TreatErrorsAsWarnings": "true",
            "OutputFile": str(_absolute(settings.report_file)),
            "OverrideSettingsFile": str(_absolute(rules_file)),
            "MaxViolationCount": "-1",
            "CacheResults": "false",
        },
    )

    ET.indent(root)
    return '<?xml version="1.0" encoding="utf-8"?>\n' + ET.tostring(root, encoding="unicode") + "\n"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _prepare(target_file: Path, analyzed: list[Path], settings: StyleCopSettings) -> StyleCopRun:
    if settings.msbuild is None or not Path(settings.msbuild).is_file():
        raise ExecutableNotFoundError(
            f"MSBuild executable cannot be found at the following location: {settings.msbuild}",
            path=settings.msbuild,
        )
    if settings.stylecop_root is None or not Path(settings.stylecop_root).is_dir():
        raise ConfigError(
            f"StyleCop directory cannot be found at the following location: {settings.stylecop_root}"
        )

    try:
        settings.report_directory.mkdir(parents=True, exist_ok=True)
        rules_file = _rules_file(settings)
        document = generate_msbuild_project(target_file, analyzed, settings, rules_file)
        settings.msbuild_file.write_text(document, encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not generate the MSBuild file for StyleCop: {exc}") from exc

    command = CommandSpec(
        executable=str(_absolute(settings.msbuild)),
        work_dir=_absolute(settings.project_root),
        arguments=(
            f"/p:AppRoot={_absolute(settings.project_root)}",
            f"/target:{TARGET}",
            str(_absolute(settings.msbuild_file)),
        ),
    )
    return StyleCopRun(
        command=command,
        report_file=_absolute(settings.report_file),
        msbuild_file=_absolute(settings.msbuild_file),
        rules_file=_absolute(rules_file),
        analyzed=tuple(analyzed),
    )


def _rules_file(settings: StyleCopSettings) -> Path:
    """Return the configured rules file, writing the default one when unset."""
    if settings.rules_file is None:
        rules_file = settings.report_directory / DEFAULT_RULES_FILE_NAME
        rules_file.write_text(DEFAULT_RULES, encoding="utf-8")
        return rules_file
    if not Path(settings.rules_file).exists():
        raise ConfigError(f"Could not find the stylecop rules file: {settings.rules_file}")
    return Path(settings.rules_file)


def _absolute(path) -> Path:
    return Path(os.path.abspath(path))
