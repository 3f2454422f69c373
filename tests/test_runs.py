"""Tests for dotnet_tools/runs — build, execute, locate reports."""

import stat
import sys
import textwrap
from dataclasses import replace

import pytest

from dotnet_tools.builders.stylecop import StyleCopSettings
from dotnet_tools.errors import CommandFailedError, NoTestAssemblyError, ReportNotFoundError
from dotnet_tools.models import CoverageTool, Project, ProjectType, Solution
from dotnet_tools.runs.gallio import run_gallio
from dotnet_tools.runs.stylecop import run_stylecop

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a shebang script as executable")


def fake_tool(path, body: str):
    """Write an executable Python script standing in for a .NET tool."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!{sys.executable}\nimport sys\n" + textwrap.dedent(body), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


FAKE_GALLIO = """\
    from pathlib import Path
    args = dict(a[1:].split(":", 1) for a in sys.argv[1:] if a.startswith("/") and ":" in a[1:])
    report = Path(args["report-directory"]) / (args["report-name-format"] + ".xml")
    report.parent.mkdir(parents=True, exist_ok=True)
    report.write_text("<report/>")
    for a in sys.argv[1:]:
        if a.startswith("/runner-property:NCoverCoverageFile="):
            Path(a.split("=", 1)[1]).write_text("<coverage/>")
    """


# ---------------------------------------------------------------------------
# run_gallio()
# ---------------------------------------------------------------------------

def test_dry_run_does_not_execute(solution, settings, tools):
    report = run_gallio(solution, settings, dry_run=True)
    assert report["report_type"] == "gallio"
    assert report["executed"] is False
    assert report["coverage_tool"] == "None"
    assert report["command"]["executable"] == str(tools["gallio"])
    assert report["command"]["arguments"][0] == "/r:IsolatedProcess"


def test_invalid_settings_raise_before_execution(solution, settings):
    with pytest.raises(NoTestAssemblyError):
        run_gallio(solution, replace(settings, test_assemblies=()))


@posix_only
def test_run_locates_test_report(solution, settings, tmp_path):
    settings = replace(settings, executable=fake_tool(tmp_path / "bin" / "gallio", FAKE_GALLIO))
    report = run_gallio(solution, settings)
    assert report["executed"] is True
    assert report["exit_code"] == 0
    assert report["reports"] == {"tests": str(tmp_path / "target" / "gallio-report.xml")}


@posix_only
def test_run_with_ncover_locates_coverage_report(solution, settings, tmp_path):
    settings = replace(settings, executable=fake_tool(tmp_path / "bin" / "gallio", FAKE_GALLIO),
                       coverage_tool=CoverageTool.NCOVER)
    report = run_gallio(solution, settings)
    assert report["reports"]["coverage"] == str(tmp_path / "target" / "coverage-report.xml")


@posix_only
def test_run_failure_is_reported(solution, settings, tmp_path):
    settings = replace(settings, executable=fake_tool(tmp_path / "bin" / "gallio", "sys.exit(2)\n"))
    with pytest.raises(CommandFailedError) as info:
        run_gallio(solution, settings)
    assert info.value.exit_code == 2


@posix_only
def test_run_missing_report(solution, settings, tmp_path):
    settings = replace(settings, executable=fake_tool(tmp_path / "bin" / "gallio", "pass\n"))
    with pytest.raises(ReportNotFoundError, match="gallio-report.xml"):
        run_gallio(solution, settings)


# ---------------------------------------------------------------------------
# run_stylecop()
# ---------------------------------------------------------------------------

@pytest.fixture
def stylecop_settings(tmp_path, tools) -> StyleCopSettings:
    root = tmp_path / "StyleCop"
    root.mkdir()
    return StyleCopSettings(
        msbuild=tools["msbuild"],
        stylecop_root=root,
        report_directory=tmp_path / "target",
        project_root=tmp_path,
    )


def test_stylecop_dry_run(solution, stylecop_settings, tmp_path):
    report = run_stylecop(solution, stylecop_settings, dry_run=True)
    assert report["executed"] is False
    assert report["command"]["arguments"][1] == "/target:CheckStyle"
    assert (tmp_path / "target" / "stylecop-msbuild.xml").is_file()


def test_stylecop_web_project_skipped(solution, stylecop_settings):
    report = run_stylecop(solution, stylecop_settings, project="Web")
    assert report["project"] == "Web"
    assert report["executed"] is False
    assert report["skipped"] is True
    assert "command" not in report


def test_stylecop_library_without_project_file_is_analysed(solution, stylecop_settings, tmp_path):
    library = Project("Lib", "Example.Lib", ProjectType.LIBRARY, directory=tmp_path / "src" / "Lib")
    solution = Solution(solution.solution_file, solution.projects + (library,))

    report = run_stylecop(solution, stylecop_settings, project="Lib", dry_run=True)
    assert report["project"] == "Lib"
    assert "skipped" not in report
    assert report["executed"] is False
    assert report["command"]["arguments"][1] == "/target:CheckStyle"


@posix_only
def test_stylecop_run_locates_report(solution, stylecop_settings, tmp_path):
    msbuild = fake_tool(tmp_path / "bin" / "msbuild", f"""\
        open({str(tmp_path / "target" / "stylecop-report.xml")!r}, "w").write("<StyleCopViolations/>")
        """)
    report = run_stylecop(solution, replace(stylecop_settings, msbuild=msbuild))
    assert report["executed"] is True
    assert report["reports"] == {"stylecop": str(tmp_path / "target" / "stylecop-report.xml")}
