"""Configuration loading and validation.

Usage:
    config   = load("dotnet-tools.yaml")          # raises ConfigError on bad config
    gallio   = config.gallio_settings()           # GallioSettings for the solution
    stylecop = config.stylecop_settings()         # StyleCopSettings
    generate_template("dotnet-tools.yaml")        # writes example file to disk

Relative paths are resolved against the directory holding the config file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from dotnet_tools.builders.gallio import GallioSettings
from dotnet_tools.builders.stylecop import DEFAULT_REPORT_NAME, StyleCopSettings
from dotnet_tools.errors import ConfigError, ProjectNotFoundError
from dotnet_tools.models import CoverageTool, GallioRunnerType, Project, ProjectType, Solution

__all__ = ["Config", "ConfigError", "ProjectNotFoundError", "generate_template", "load"]

DEFAULT_CONFIG_PATH = "dotnet-tools.yaml"


# ---------------------------------------------------------------------------
# Config dataclass
# ---------------------------------------------------------------------------

@dataclass
class Config:
    solution: Solution
    base_dir: Path
    gallio: dict[str, Any] = field(default_factory=dict)
    coverage: dict[str, Any] = field(default_factory=dict)
    stylecop: dict[str, Any] = field(default_factory=dict)
    report_directory: Path = Path("target")

    def gallio_settings(self) -> GallioSettings:
        """Return the Gallio settings, test assemblies taken from the solution
        unless listed explicitly under ``gallio.test_assemblies``."""
        gallio, coverage = self.gallio, self.coverage

        explicit = gallio.get("test_assemblies") or []
        if explicit:
            assemblies = tuple(self._path(a) for a in explicit)
        else:
            assemblies = tuple(self.solution.test_assemblies())

        runner = gallio.get("runner")
        install_dirs = {
            CoverageTool.find(name): self._path(directory)
            for name, directory in (coverage.get("install_dirs") or {}).items()
            if directory
        }
        report_file = gallio.get("report_file") or self.report_directory / "gallio-report.xml"
        coverage_report = coverage.get("report_file") or self.report_directory / "coverage-report.xml"

        return GallioSettings(
            executable=self._optional_path(gallio.get("executable")),
            report_file=self._path(report_file),
            work_dir=self._path(gallio.get("work_dir") or "."),
            test_assemblies=assemblies,
            filter=str(gallio.get("filter") or ""),
            runner=GallioRunnerType.parse(runner) if runner else None,
            coverage_tool=CoverageTool.find(coverage.get("tool")),
            install_dirs=install_dirs,
            coverage_excludes=tuple(_split_list(coverage.get("excludes"))),
            attribute_excludes=str(coverage.get("attribute_excludes") or ""),
            base_directory=self._optional_path(gallio.get("base_directory")),
            coverage_report_file=self._path(coverage_report),
        )

    def stylecop_settings(self) -> StyleCopSettings:
        stylecop = self.stylecop
        return StyleCopSettings(
            msbuild=self._optional_path(stylecop.get("msbuild")),
            stylecop_root=self._optional_path(stylecop.get("root")),
            report_directory=self.report_directory,
            project_root=self._path(stylecop.get("project_root") or "."),
            rules_file=self._optional_path(stylecop.get("rules_file")),
            report_name=str(stylecop.get("report_name") or DEFAULT_REPORT_NAME),
            ignores=tuple(_split_list(stylecop.get("ignores"), strip=True)),
            skipped_projects=tuple(_split_list(stylecop.get("skipped_projects"), strip=True)),
        )

    def _path(self, value) -> Path:
        path = Path(os.path.expanduser(str(value)))
        return path if path.is_absolute() else self.base_dir / path

    def _optional_path(self, value) -> Path | None:
        return self._path(value) if value else None


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """Load and validate configuration from a YAML file.

    Environment variables GALLIO_EXECUTABLE, MSBUILD_EXECUTABLE and
    COVERAGE_TOOL override file values.

    Raises:
        ConfigError: if the file is missing, malformed, or required fields
                     are absent.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(
            f"Config file not found: '{config_path}'\n"
            "Run `python -m dotnet_tools init` to generate a template."
        )

    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse '{config_path}': {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"'{config_path}' must be a YAML mapping at the top level.")

    base_dir = path.resolve().parent
    gallio   = dict(raw.get("gallio") or {})
    coverage = dict(raw.get("coverage") or {})
    stylecop = dict(raw.get("stylecop") or {})

    if os.environ.get("GALLIO_EXECUTABLE"):
        gallio["executable"] = os.environ["GALLIO_EXECUTABLE"]
    if os.environ.get("MSBUILD_EXECUTABLE"):
        stylecop["msbuild"] = os.environ["MSBUILD_EXECUTABLE"]
    if os.environ.get("COVERAGE_TOOL"):
        coverage["tool"] = os.environ["COVERAGE_TOOL"]

    _validate(raw, gallio)
    solution = _load_solution(raw["solution"], base_dir)
    report_directory = Path(raw.get("report_directory") or "target")

    return Config(
        solution=solution,
        base_dir=base_dir,
        gallio=gallio,
        coverage=coverage,
        stylecop=stylecop,
        report_directory=report_directory if report_directory.is_absolute() else base_dir / report_directory,
    )


def _validate(raw: dict, gallio: dict) -> None:
    """Raise ConfigError listing every problem found."""
    errors: list[str] = []

    solution = raw.get("solution")
    if not isinstance(solution, dict) or not solution.get("file"):
        errors.append("  - 'solution.file' is missing")
    if not isinstance(solution, dict) or not solution.get("projects"):
        errors.append("  - 'solution.projects' is empty, add at least one project")
    else:
        for index, project in enumerate(solution["projects"]):
            if not isinstance(project, dict):
                errors.append(f"  - 'solution.projects[{index}]' must be a mapping")
                continue
            if not project.get("name"):
                errors.append(f"  - 'solution.projects[{index}].name' is missing")
            kind = project.get("type", ProjectType.LIBRARY.value)
            try:
                ProjectType.parse(kind)
            except ConfigError as exc:
                errors.append(f"  - 'solution.projects[{index}].type': {exc}")

    runner = gallio.get("runner")
    if runner:
        try:
            GallioRunnerType.parse(runner)
        except ConfigError as exc:
            errors.append(f"  - 'gallio.runner': {exc}")

    if errors:
        raise ConfigError("Invalid configuration:\n" + "\n".join(errors))


def _load_solution(raw: dict, base_dir: Path) -> Solution:
    def resolve(value) -> Path | None:
        if not value:
            return None
        path = Path(str(value))
        return path if path.is_absolute() else base_dir / path

    solution_file = resolve(raw["file"])
    projects = []
    for entry in raw["projects"]:
        project_file = resolve(entry.get("file"))
        directory = resolve(entry.get("directory"))
        if directory is None:
            directory = project_file.parent if project_file is not None else solution_file.parent
        projects.append(
            Project(
                name=str(entry["name"]),
                assembly_name=str(entry.get("assembly") or entry["name"]),
                type=ProjectType.parse(entry.get("type", ProjectType.LIBRARY.value)),
                directory=directory,
                project_file=project_file,
                assembly_path=resolve(entry.get("assembly_path")),
            )
        )
    return Solution(solution_file=solution_file, projects=tuple(projects))


def _split_list(value, strip: bool = False) -> list[str]:
    """Accept a YAML list or a comma-separated string.

    Items keep their surrounding whitespace unless *strip* is set: coverage
    excludes reach dotCover exactly as written.
    """
    if not value:
        return []
    items = value.split(",") if isinstance(value, str) else [str(item) for item in value]
    if strip:
        return [item.strip() for item in items if item.strip()]
    return [item for item in items if item.strip()]


# ---------------------------------------------------------------------------
# Template generator (used by `init` command)
# ---------------------------------------------------------------------------

TEMPLATE = """\
report_directory: "target"

solution:
  file: "MySolution.sln"
  projects:
    # type is one of: library, test, web
    - name: "MyCompany.Core"
      assembly: "MyCompany.Core"
      type: library
      file: "Core/Core.csproj"
    - name: "MyCompany.Core.Tests"
      assembly: "MyCompany.Core.Tests"
      type: test
      file: "Core.Tests/Core.Tests.csproj"
      assembly_path: "Core.Tests/bin/Debug/MyCompany.Core.Tests.dll"

gallio:
  executable: "C:/Program Files/Gallio/bin/Gallio.Echo.exe"
  report_file: "target/gallio-report.xml"
  work_dir: "."
  filter: ""                      # e.g. "CategoryName:unit"
  runner: ""                      # Local, IsolatedAppDomain, IsolatedProcess, NCover3

coverage:
  tool: "opencover"               # none, partcover, opencover, dotcover, ncover
  report_file: "target/coverage-report.xml"
  excludes: []                    # "[assembly]namespace" entries
  attribute_excludes: ""          # OpenCover only
  install_dirs:
    partcover: "C:/Program Files/PartCover/PartCover .NET 4.0"
    opencover: "C:/Program Files/OpenCover"
    dotcover:  "C:/Program Files/JetBrains/dotCover/v1.2/Bin"

stylecop:
  msbuild: "C:/Windows/Microsoft.NET/Framework/v4.0.30319/MSBuild.exe"
  root: "C:/Program Files/Microsoft StyleCop 4.3.2.1"
  rules_file: ""                  # default rules are generated when empty
  report_name: "stylecop-report.xml"
  ignores: []
  skipped_projects: []
"""


def generate_template(output_path: str = DEFAULT_CONFIG_PATH) -> None:
    """Write a template dotnet-tools.yaml to *output_path*.

    Raises:
        ConfigError: if the file already exists (to avoid overwriting it).
    """
    path = Path(output_path)
    if path.exists():
        raise ConfigError(
            f"'{output_path}' already exists. Remove it first or choose a different path."
        )
    path.write_text(TEMPLATE, encoding="utf-8")
