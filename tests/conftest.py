"""Shared fixtures: a small solution and fake tool installations on disk."""

from pathlib import Path

import pytest

from dotnet_tools.builders.gallio import GallioSettings
from dotnet_tools.models import CoverageTool, Project, ProjectType, Solution


def touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")
    return path


@pytest.fixture
def solution(tmp_path) -> Solution:
    root = tmp_path / "src"
    return Solution(
        solution_file=root / "Example.sln",
        projects=(
            Project("Core", "Example.Core", ProjectType.LIBRARY,
                    directory=root / "Core", project_file=root / "Core" / "Core.csproj"),
            Project("Core.Tests", "Example.Core.Tests", ProjectType.TEST,
                    directory=root / "Core.Tests",
                    project_file=root / "Core.Tests" / "Core.Tests.csproj",
                    assembly_path=root / "Core.Tests" / "bin" / "Example.Core.Tests.dll"),
            Project("Web", "Example.Web", ProjectType.WEB, directory=root / "Web"),
            Project("Data", "Example.Data", ProjectType.LIBRARY,
                    directory=root / "Data", project_file=root / "Data" / "Data.csproj"),
        ),
    )


@pytest.fixture
def tools(tmp_path) -> dict[str, Path]:
    """Fake executables laid out like real installations."""
    return {
        "gallio": touch(tmp_path / "Gallio" / "bin" / "Gallio.Echo.exe"),
        "partcover": touch(tmp_path / "PartCover" / "PartCover.exe").parent,
        "opencover": touch(tmp_path / "OpenCover" / "OpenCover.Console.exe").parent,
        "dotcover": touch(tmp_path / "dotCover" / "dotCover.exe").parent,
        "msbuild": touch(tmp_path / "MSBuild" / "MSBuild.exe"),
    }


@pytest.fixture
def work_dir(tmp_path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path, tools, work_dir, solution) -> GallioSettings:
    return GallioSettings(
        executable=tools["gallio"],
        report_file=tmp_path / "target" / "gallio-report.xml",
        work_dir=work_dir,
        test_assemblies=tuple(solution.test_assemblies()),
        install_dirs={
            CoverageTool.PARTCOVER: tools["partcover"],
            CoverageTool.OPENCOVER: tools["opencover"],
            CoverageTool.DOTCOVER: tools["dotcover"],
        },
        coverage_report_file=tmp_path / "target" / "coverage-report.xml",
    )
