"""Tests for dotnet_tools/builders/stylecop.py"""

import xml.etree.ElementTree as ET
from dataclasses import replace

import pytest

from dotnet_tools.builders.stylecop import (
    DEFAULT_RULES_FILE_NAME,
    MSBUILD_NAMESPACE,
    StyleCopSettings,
    analyzed_paths,
    prepare,
    prepare_project,
)
from dotnet_tools.errors import ConfigError, ExecutableNotFoundError
from dotnet_tools.models import Project, ProjectType

NS = {"m": MSBUILD_NAMESPACE}


@pytest.fixture
def stylecop_settings(tmp_path, tools) -> StyleCopSettings:
    root = tmp_path / "StyleCop"
    root.mkdir()
    return StyleCopSettings(
        msbuild=tools["msbuild"],
        stylecop_root=root,
        report_directory=tmp_path / "target",
        project_root=tmp_path / "src",
    )


# ---------------------------------------------------------------------------
# analyzed_paths()
# ---------------------------------------------------------------------------

def test_analyzed_paths_skip_test_projects(solution, tmp_path):
    src = tmp_path / "src"
    assert analyzed_paths(solution) == [
        src / "Core" / "Core.csproj",
        src / "Web",
        src / "Data" / "Data.csproj",
    ]


def test_analyzed_paths_skip_configured_projects(solution, tmp_path):
    assert analyzed_paths(solution, ["Web", " Data"]) == [tmp_path / "src" / "Core" / "Core.csproj"]


# ---------------------------------------------------------------------------
# prepare()
# ---------------------------------------------------------------------------

def test_prepare_command(solution, stylecop_settings, tools, tmp_path):
    run = prepare(solution, stylecop_settings)

    assert run.command.executable == str(tools["msbuild"])
    assert list(run.command.arguments) == [
        f"/p:AppRoot={tmp_path / 'src'}",
        "/target:CheckStyle",
        str(tmp_path / "target" / "stylecop-msbuild.xml"),
    ]
    assert run.report_file == tmp_path / "target" / "stylecop-report.xml"


def test_prepare_writes_msbuild_project(solution, stylecop_settings, tmp_path):
    run = prepare(solution, stylecop_settings)

    root = ET.parse(run.msbuild_file).getroot()
    assert root.tag == f"{{{MSBUILD_NAMESPACE}}}Project"
    assert root.get("DefaultTargets") == "CheckStyle"

    included = [e.get("Include") for e in root.findall("m:ItemGroup/m:Project", NS)]
    assert included == [str(p) for p in analyzed_paths(solution)]

    sources = [e.get("Include") for e in root.findall("m:Target/m:CreateItem", NS)]
    assert sources[0] == str(tmp_path / "src" / "Core" / "**" / "*.cs")
    assert sources[1] == str(tmp_path / "src" / "Web" / "**" / "*.cs")

    task = root.find("m:Target/m:StyleCopTask", NS)
    assert task.get("OutputFile") == str(run.report_file)
    assert task.get("OverrideSettingsFile") == str(run.rules_file)


def test_prepare_writes_default_rules(solution, stylecop_settings, tmp_path):
    run = prepare(solution, stylecop_settings)
    assert run.rules_file == tmp_path / "target" / DEFAULT_RULES_FILE_NAME
    assert "StyleCopSettings" in run.rules_file.read_text(encoding="utf-8")


def test_prepare_uses_configured_rules(solution, stylecop_settings, tmp_path):
    rules = tmp_path / "custom.stylecop"
    rules.write_text("<StyleCopSettings/>", encoding="utf-8")
    run = prepare(solution, replace(stylecop_settings, rules_file=rules))
    assert run.rules_file == rules
    assert not (tmp_path / "target" / DEFAULT_RULES_FILE_NAME).exists()


def test_prepare_overwrites_previous_msbuild_file(solution, stylecop_settings):
    stylecop_settings.report_directory.mkdir(parents=True)
    stylecop_settings.msbuild_file.write_text("stale", encoding="utf-8")
    prepare(solution, stylecop_settings)
    assert "stale" not in stylecop_settings.msbuild_file.read_text(encoding="utf-8")


def test_ignores_become_excludes(solution, stylecop_settings):
    run = prepare(solution, replace(stylecop_settings, ignores=("**\\*.Designer.cs", "**\\AssemblyInfo.cs")))
    root = ET.parse(run.msbuild_file).getroot()
    excludes = {e.get("Exclude") for e in root.findall("m:Target/m:CreateItem", NS)}
    assert excludes == {"**\\*.Designer.cs;**\\AssemblyInfo.cs"}


def test_missing_rules_file(solution, stylecop_settings, tmp_path):
    with pytest.raises(ConfigError, match="rules file"):
        prepare(solution, replace(stylecop_settings, rules_file=tmp_path / "missing.stylecop"))


def test_missing_msbuild(solution, stylecop_settings, tmp_path):
    with pytest.raises(ExecutableNotFoundError, match="MSBuild"):
        prepare(solution, replace(stylecop_settings, msbuild=tmp_path / "MSBuild.exe"))


def test_missing_stylecop_root(solution, stylecop_settings, tmp_path):
    with pytest.raises(ConfigError, match="StyleCop directory"):
        prepare(solution, replace(stylecop_settings, stylecop_root=tmp_path / "nowhere"))


# ---------------------------------------------------------------------------
# prepare_project()
# ---------------------------------------------------------------------------

def test_prepare_single_project(solution, stylecop_settings, tmp_path):
    run = prepare_project(solution.project("Data"), stylecop_settings)
    assert run.analyzed == (tmp_path / "src" / "Data" / "Data.csproj",)


def test_prepare_web_project_is_skipped(solution, stylecop_settings):
    assert prepare_project(solution.project("Web"), stylecop_settings) is None
    assert not stylecop_settings.msbuild_file.exists()


def test_prepare_library_without_project_file(stylecop_settings, tmp_path):
    library = Project("Lib", "Example.Lib", ProjectType.LIBRARY, directory=tmp_path / "src" / "Lib")
    run = prepare_project(library, stylecop_settings)

    assert run.analyzed == (tmp_path / "src" / "Lib",)
    assert run.msbuild_file.is_file()
    document = ET.parse(run.msbuild_file).getroot()
    [item] = document.findall("m:ItemGroup/m:Project", NS)
    assert item.get("Include") == str(tmp_path / "src" / "Lib")
