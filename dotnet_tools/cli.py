"""CLI entry point — command definitions using Click.

Commands:
    init          Generate a template config file
    gallio        Run the tests through Gallio, optionally under a coverage tool
    stylecop      Run the StyleCop analysis through MSBuild
"""

import functools
import json
import sys
from typing import Any

import click

from dotnet_tools import __version__


# ---------------------------------------------------------------------------
# Helpers shared by all run commands
# ---------------------------------------------------------------------------

def _load_config(ctx: click.Context):
    """Load the config file. Exits on error."""
    from dotnet_tools.config import ConfigError, load

    try:
        return load(ctx.obj["config_path"])
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)


def _emit_json(data: Any, ctx: click.Context) -> None:
    """Write JSON to stdout or to the file specified by --output."""
    obj = ctx.obj
    indent = 2 if obj["pretty"] else None
    text = json.dumps(data, indent=indent, ensure_ascii=False)

    output_path: str | None = obj["output_path"]
    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(text)
        click.echo(f"Result written to '{output_path}'", err=True)
    else:
        click.echo(text)


def _handle_run_errors(func):
    """Decorator that turns configuration and execution errors into exit 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        from dotnet_tools.errors import (
            CommandFailedError,
            CommandTimeoutError,
            ConfigError,
            ExecutableNotFoundError,
            ProjectNotFoundError,
            ReportNotFoundError,
        )

        try:
            return func(*args, **kwargs)
        except ProjectNotFoundError as exc:
            click.echo(f"Project error: {exc}", err=True)
            sys.exit(1)
        except ExecutableNotFoundError as exc:
            click.echo(f"Executable not found: {exc}", err=True)
            sys.exit(1)
        except ConfigError as exc:
            click.echo(f"Configuration error: {exc}", err=True)
            sys.exit(1)
        except CommandTimeoutError as exc:
            click.echo(f"Timeout: {exc}", err=True)
            sys.exit(1)
        except CommandFailedError as exc:
            click.echo(f"Command failed: {exc}", err=True)
            sys.exit(1)
        except ReportNotFoundError as exc:
            click.echo(f"Report not found: {exc}", err=True)
            sys.exit(1)

    return wrapper


def _timeout_seconds(minutes: int | None) -> int | None:
    return minutes * 60 if minutes else None


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", default="dotnet-tools.yaml", show_default=True,
              help="Path to the configuration file.")
@click.option("--output", "output_path", default=None,
              help="Write the JSON result to a file instead of stdout.")
@click.option("--pretty", is_flag=True, default=False,
              help="Pretty-print the JSON output.")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable debug logging.")
@click.version_option(__version__, prog_name="dotnet-tools")
@click.pass_context
def cli(ctx: click.Context, config_path: str, output_path: str | None,
        pretty: bool, verbose: bool) -> None:
    """.NET test, coverage and StyleCop runner for Sonar analyses."""
    from dotnet_tools.logs import configure_logging

    configure_logging(verbose=verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["output_path"] = output_path
    ctx.obj["pretty"] = pretty
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@cli.command("init")
@click.option("--output", "output_path", default="dotnet-tools.yaml", show_default=True,
              help="Path where the template config file will be written.")
def init_command(output_path: str) -> None:
    """Generate a template dotnet-tools.yaml file."""
    from dotnet_tools.config import ConfigError, generate_template
    try:
        generate_template(output_path)
        click.echo(f"Template written to '{output_path}'.")
        click.echo("Edit it with your solution layout and tool locations.")
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# gallio
# ---------------------------------------------------------------------------

@cli.command("gallio")
@click.option("--coverage-tool", default=None,
              help="Coverage tool (none, partcover, opencover, dotcover, ncover). "
                   "Overrides the config file.")
@click.option("--dry-run", is_flag=True, default=False,
              help="Print the command without running it.")
@click.option("--timeout", "timeout_minutes", type=int, default=30, show_default=True,
              help="Timeout in minutes (0 for none).")
@click.pass_context
@_handle_run_errors
def gallio_command(ctx: click.Context, coverage_tool: str | None, dry_run: bool,
                   timeout_minutes: int) -> None:
    """Run the test assemblies through Gallio."""
    from dotnet_tools.runs.gallio import run_gallio

    config = _load_config(ctx)
    if coverage_tool is not None:
        config.coverage["tool"] = coverage_tool
    settings = config.gallio_settings()

    report = run_gallio(config.solution, settings, dry_run=dry_run,
                        timeout=_timeout_seconds(timeout_minutes))
    _emit_json(report, ctx)


# ---------------------------------------------------------------------------
# stylecop
# ---------------------------------------------------------------------------

@cli.command("stylecop")
@click.option("--project", default=None,
              help="Analyse a single project of the solution.")
@click.option("--dry-run", is_flag=True, default=False,
              help="Generate the MSBuild file and print the command without running it.")
@click.option("--timeout", "timeout_minutes", type=int, default=10, show_default=True,
              help="Timeout in minutes (0 for none).")
@click.pass_context
@_handle_run_errors
def stylecop_command(ctx: click.Context, project: str | None, dry_run: bool,
                     timeout_minutes: int) -> None:
    """Run the StyleCop analysis on the solution (or a single project)."""
    from dotnet_tools.runs.stylecop import run_stylecop

    config = _load_config(ctx)
    report = run_stylecop(config.solution, config.stylecop_settings(), project=project,
                          dry_run=dry_run, timeout=_timeout_seconds(timeout_minutes))
    _emit_json(report, ctx)
