# templatepipe/cli/interface.py
import sys
import logging as stdlib_logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
from click_option_group import optgroup
from rich.console import Console as RichConsole
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
import structlog

from templatepipe import __version__ as app_version
from templatepipe.config.loader import config_from_mapping, load_and_merge_configs, run_settings
from templatepipe.config.settings import EngineWiring, PipelineConfig, UnmatchedStripPolicy
from templatepipe.core.discovery import discover_files
from templatepipe.core.output import write_outputs
from templatepipe.core.pipeline import BatchResult, BatchRunner
from templatepipe.exceptions import TemplatePipeError
from templatepipe.logging_setup import configure_logging
from templatepipe.util import parse_key_value_pairs

log = structlog.get_logger(__name__)

DEFAULT_OUT_DIR = Path("dist")


def _build_overrides(
    source_dir: Path,
    raw_config: Dict[str, Any],
    profile_name: Optional[str],
    cli_params: Dict[str, Any],
) -> Dict[str, Any]:
    # cli flags layered over whatever the toml files and profile provide.
    file_settings = dict(raw_config)
    if profile_name:
        file_settings.update(raw_config.get("profiles", {}).get(profile_name, {}))

    overrides: Dict[str, Any] = {"base_dir": source_dir.as_posix()}

    strip_patterns: Tuple[str, ...] = cli_params["strip_patterns"]
    if strip_patterns:
        overrides["strip_prefix"] = parse_key_value_pairs(strip_patterns, "--strip")
    elif cli_params["strip_prefix"] is not None:
        overrides["strip_prefix"] = cli_params["strip_prefix"]

    if cli_params["locals_"]:
        file_locals = file_settings.get("locals") or {}
        overrides["locals"] = {**file_locals, **parse_key_value_pairs(cli_params["locals_"], "--local")}

    engine_options = dict(file_settings.get("engine") or {})
    if cli_params["ignore_paths"]:
        engine_options["ignore_paths"] = list(engine_options.get("ignore_paths", [])) + list(cli_params["ignore_paths"])
    if cli_params["meta_name"]:
        engine_options["meta_name"] = cli_params["meta_name"]
    overrides["engine_options"] = engine_options

    overrides["unmatched_strip_policy"] = cli_params["unmatched"]
    overrides["engine_wiring"] = cli_params["wiring"]
    overrides["output_suffix"] = cli_params["output_suffix"]
    if cli_params["require_coverage"]:
        overrides["require_full_coverage"] = True
    return overrides


def _print_cli_summary_output(result: BatchResult, written: int, dry_run: bool):
    for path, err in result.errors:
        click.secho(f"Error: {path or 'render'}: {err}", fg="red", err=True)
    click.secho("--- batch summary ---", fg="cyan", err=True)
    click.echo(f"Files accepted: {result.accepted}", err=True)
    click.echo(f"Files rendered: {len(result.outputs)}", err=True)
    if not dry_run:
        click.echo(f"Files written: {written}", err=True)
    if result.errors:
        click.secho(f"Errors: {len(result.errors)}", fg="red", err=True)


def _run_batch_flow(config: PipelineConfig, source_dir: Path, run: Dict[str, Any], dry_run: bool) -> BatchResult:
    files = list(
        discover_files(
            source_dir,
            include_patterns=run.get("include_patterns"),
            exclude_patterns=run.get("exclude_patterns"),
            hidden=run.get("hidden", False),
        )
    )
    log.info("batch_files_discovered", count=len(files))

    app_log_level = stdlib_logging.getLogger("templatepipe").getEffectiveLevel()
    progress_disabled = app_log_level > stdlib_logging.INFO or not sys.stderr.isatty()
    stderr_console = RichConsole(file=sys.stderr)

    with Progress(
        SpinnerColumn(), TextColumn("[bold blue]{task.description}"), BarColumn(),
        transient=True, disable=progress_disabled, console=stderr_console
    ) as progress:
        accept_task = progress.add_task("registering templates...", total=len(files))
        runner = BatchRunner(
            config,
            fail_fast=run.get("fail_fast", False),
            on_file=lambda _file: progress.advance(accept_task),
        )
        result = runner.run(files)

    written = 0
    if dry_run:
        for output in result.outputs:
            click.echo(output.relative)
    elif result.outputs:
        out_dir = Path(run.get("out_dir") or DEFAULT_OUT_DIR)
        written = len(write_outputs(result.outputs, out_dir))
        click.echo(f"Info: {written} file(s) written to: {out_dir}", err=True)

    _print_cli_summary_output(result, written, dry_run)
    return result


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.argument("source_dir", type=click.Path(exists=True, file_okay=False, path_type=Path), default=".")
@optgroup.group("Input Options", help="Select the files that make up the batch.")
@optgroup.option("-i", "--include", "include_patterns", multiple=True, help="Glob patterns for files to include.")
@optgroup.option("-e", "--exclude", "exclude_patterns", multiple=True, help="Glob patterns for files to exclude.")
@optgroup.option("--hidden", "hidden", is_flag=True, default=False, help="Include hidden files and directories.")
@optgroup.group("Path Rebasing Options", help="How file locations are reduced to template keys.")
@optgroup.option("--strip-prefix", "strip_prefix", default=None, help="Directory prefix stripped from every template path.")
@optgroup.option("--strip", "strip_patterns", multiple=True, metavar="PATTERN=PREFIX", help="Strip PREFIX from paths matching the regex PATTERN (first match wins).")
@optgroup.option("--unmatched", "unmatched", type=click.Choice([p.value for p in UnmatchedStripPolicy]), default=None, help="What to do when no --strip pattern matches. Default: fallback.")
@optgroup.group("Rendering Options", help="Values and engine settings used while rendering.")
@optgroup.option("--local", "locals_", multiple=True, metavar="KEY=VALUE", help="Value made available to every template.")
@optgroup.option("--ignore-path", "ignore_paths", multiple=True, help="Glob of templates usable as partials but not rendered.")
@optgroup.option("--meta-name", "meta_name", default=None, help="File name of metadata files. Default: _meta.toml.")
@optgroup.option("--wiring", "wiring", type=click.Choice([w.value for w in EngineWiring]), default=None, help="Register files incrementally or render them in one batch call.")
@optgroup.option("--require-coverage", "require_coverage", is_flag=True, default=False, help="Fail when a template produces no output.")
@optgroup.group("Output Options", help="Where rendered files go.")
@optgroup.option("-o", "--out-dir", "out_dir", type=click.Path(file_okay=False, path_type=Path), default=None, help=f"Output directory. Default: {DEFAULT_OUT_DIR}.")
@optgroup.option("--suffix", "output_suffix", default=None, help="Suffix appended to every output path.")
@optgroup.option("--dry-run", "dry_run", is_flag=True, default=False, help="List output paths instead of writing files.")
@optgroup.option("--fail-fast", "fail_fast", is_flag=True, default=False, help="Stop at the first file that cannot be registered.")
@optgroup.group("Application Behavior Options")
@optgroup.option("--profile", "profile_name", default=None, help="Named profile from the config file.")
@optgroup.option("-v", "--verbose", "verbosity_level", count=True, help="Increase log verbosity (-v info, -vv debug).")
@optgroup.option("--json-logs", "force_json_logs", is_flag=True, default=False, help="Force JSON output for logs.")
@click.version_option(version=app_version, package_name="templatepipe", prog_name="templatepipe")
def main_cli(source_dir: Path, **cli_params: Any):
    """templatepipe: render a directory of handlebars templates in one batch."""
    log_level_str = "warning"
    if cli_params["verbosity_level"] == 1:
        log_level_str = "info"
    elif cli_params["verbosity_level"] >= 2:
        log_level_str = "debug"
    configure_logging(log_level_str=log_level_str, force_json_logs=cli_params["force_json_logs"])
    log.debug("cli_invocation", params=cli_params)

    try:
        source_dir = source_dir.resolve()
        profile_name = cli_params["profile_name"]
        raw_config = load_and_merge_configs(Path.cwd())

        run = run_settings(raw_config, profile_name)
        if cli_params["include_patterns"]:
            run["include_patterns"] = list(cli_params["include_patterns"])
        if cli_params["exclude_patterns"]:
            run["exclude_patterns"] = list(cli_params["exclude_patterns"])
        if cli_params["hidden"]:
            run["hidden"] = True
        if cli_params["fail_fast"]:
            run["fail_fast"] = True
        if cli_params["out_dir"] is not None:
            run["out_dir"] = cli_params["out_dir"]

        overrides = _build_overrides(source_dir, raw_config, profile_name, cli_params)
        config = config_from_mapping(raw_config, profile=profile_name, overrides=overrides)

        result = _run_batch_flow(config, source_dir, run, cli_params["dry_run"])

    except TemplatePipeError as e:
        log.error("cli_execution_error", error_type=type(e).__name__, message=str(e))
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    if not result.ok:
        sys.exit(1)
