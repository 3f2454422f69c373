"""Data models shared by the command builders.

Contains the read-only solution description and the command value:
    - ProjectType
    - Project
    - Solution
    - CommandSpec
    - GallioRunnerType
    - CoverageTool
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from dotnet_tools.errors import ConfigError, ProjectNotFoundError


# ---------------------------------------------------------------------------
# Solution model
# ---------------------------------------------------------------------------

class ProjectType(Enum):
    LIBRARY = "library"
    TEST = "test"
    WEB = "web"

    @classmethod
    def parse(cls, text: str) -> "ProjectType":
        for member in cls:
            if member.value == str(text).strip().lower():
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ConfigError(f"Unknown project type '{text}'. Expected one of: {allowed}")


@dataclass(frozen=True)
class Project:
    name: str
    assembly_name: str
    type: ProjectType = ProjectType.LIBRARY
    directory: Path = Path(".")
    project_file: Path | None = None
    assembly_path: Path | None = None

    @property
    def is_test(self) -> bool:
        return self.type is ProjectType.TEST

    @property
    def is_web(self) -> bool:
        return self.type is ProjectType.WEB

    @property
    def analysis_path(self) -> Path:
        """Project file, or the project directory for web sites without one."""
        return self.project_file if self.project_file is not None else self.directory


@dataclass(frozen=True)
class Solution:
    solution_file: Path
    projects: tuple[Project, ...] = ()

    def test_projects(self) -> list[Project]:
        return [p for p in self.projects if p.is_test]

    def non_test_projects(self) -> list[Project]:
        return [p for p in self.projects if not p.is_test]

    def test_assemblies(self) -> list[Path]:
        """Built assemblies of the test projects, in solution order.

        Test projects that declare no assembly path are skipped.
        """
        return [p.assembly_path for p in self.test_projects() if p.assembly_path is not None]

    def project(self, name: str) -> Project:
        for project in self.projects:
            if project.name == name:
                return project
        available = ", ".join(p.name for p in self.projects) or "(none configured)"
        raise ProjectNotFoundError(
            f"Project '{name}' not found in solution. Available projects: {available}"
        )


# ---------------------------------------------------------------------------
# Command value
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommandSpec:
    """An external command: executable, working directory and ordered arguments."""

    executable: str
    work_dir: Path | None = None
    arguments: tuple[str, ...] = field(default_factory=tuple)

    def to_argv(self) -> list[str]:
        return [self.executable, *self.arguments]

    def to_payload(self) -> dict[str, Any]:
        return {
            "executable": self.executable,
            "work_dir": str(self.work_dir) if self.work_dir is not None else None,
            "arguments": list(self.arguments),
        }


# ---------------------------------------------------------------------------
# Tool vocabularies
# ---------------------------------------------------------------------------

class GallioRunnerType(Enum):
    """How Gallio isolates test executions from each other."""

    LOCAL = "Local"
    ISOLATED_APP_DOMAIN = "IsolatedAppDomain"
    ISOLATED_PROCESS = "IsolatedProcess"
    NCOVER = "NCover3"

    @classmethod
    def parse(cls, text: str) -> "GallioRunnerType":
        wanted = str(text).strip().lower()
        for member in cls:
            if wanted in (member.value.lower(), member.name.lower()):
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ConfigError(f"Unknown Gallio runner type '{text}'. Expected one of: {allowed}")


class CoverageTool(Enum):
    """Coverage tools that can instrument a Gallio run.

    Each member carries ``(display name, default runner, wrapping executable)``.
    NCover has no wrapping executable: Gallio drives it through its runner.
    """

    NONE = ("None", GallioRunnerType.ISOLATED_PROCESS, None)
    PARTCOVER = ("PartCover", GallioRunnerType.ISOLATED_APP_DOMAIN, "PartCover.exe")
    OPENCOVER = ("OpenCover", GallioRunnerType.ISOLATED_APP_DOMAIN, "OpenCover.Console.exe")
    DOTCOVER = ("dotCover", GallioRunnerType.ISOLATED_APP_DOMAIN, "dotCover.exe")
    NCOVER = ("NCover", GallioRunnerType.NCOVER, None)

    def __init__(self, display_name: str, runner: GallioRunnerType, executable: str | None) -> None:
        self.display_name = display_name
        self.gallio_runner = runner
        self.executable_name = executable

    @property
    def key(self) -> str:
        return self.display_name.lower()

    @classmethod
    def find(cls, name: str | None) -> "CoverageTool":
        """Return the tool matching *name* (case-insensitive), or NONE.

        Empty or unknown names mean no coverage tool is used.
        """
        wanted = (name or "").strip().lower()
        for member in cls:
            if member.key == wanted:
                return member
        return cls.NONE
