"""Command-line interface for taxokey.

Commands:
- `taxokey merge EXISTING CANDIDATE`: merge an AI/import payload into a key
- `taxokey fill-gaps EXISTING RESPONSE`: apply a gap-fill response
- `taxokey sanitize PROJECT`: strip invalid traits and duplicate ids
- `taxokey check CANDIDATE`: run the pre-merge safety gate only

The resulting project is written to ``--output`` when given, else printed
as JSON on stdout. Messages go to stderr.

Example:
    $ taxokey merge key.json ai-response.txt -o key.json
    $ taxokey check ai-response.txt
"""

import json
import logging
from pathlib import Path

import typer

from taxokey import __version__
from taxokey.cli_utils import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    _error,
    _info,
    _setup_logging,
    _success,
    _warning,
    console,
)
from taxokey.core.config import Config, find_config_file, load_config
from taxokey.core.exceptions import ConfigError, PayloadError, StorageError
from taxokey.ingest import candidate_from_payload, fill_gaps
from taxokey.merge import can_merge, reconcile_projects, sanitize_project
from taxokey.merge.report import MergeReport, MergeResult
from taxokey.models import Project
from taxokey.storage import load_payload, load_project, save_project

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="taxokey",
    help="Lossless merging of AI-generated identification keys",
    no_args_is_help=True,
)

OutputOption = typer.Option(
    None,
    "--output",
    "-o",
    help="Write the resulting project here (.json/.yaml) instead of stdout",
)
ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to config file (default: ./taxokey.yaml if present)",
)
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable debug logging")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"taxokey {__version__}", highlight=False)
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Lossless merging of AI-generated identification keys."""


def _prepare(config_path: Path | None, verbose: bool) -> Config:
    """Load configuration and set up logging for a command."""
    try:
        if config_path is not None:
            config = load_config(config_path)
        else:
            found = find_config_file(Path.cwd())
            config = load_config(found) if found else load_config({})
    except ConfigError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None

    _setup_logging(verbose=verbose, level=config.log_level)
    return config


def _load_project_or_exit(path: Path) -> Project:
    try:
        return load_project(path)
    except StorageError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None


def _emit(project: Project, output: Path | None) -> None:
    """Write the project to ``output`` or print it as JSON."""
    if output is None:
        typer.echo(json.dumps(project.to_wire(), ensure_ascii=False, indent=2))
        return
    try:
        save_project(project, output)
    except StorageError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None
    _info(f"Wrote {output}")


def _report_result(result: MergeResult, before: Project) -> None:
    if not result.merged:
        assert result.rejection is not None
        _warning(
            f"AI returned invalid or empty data ({result.rejection.value}) - "
            f"original project preserved"
        )
        return
    after = result.project
    report: MergeReport = result.report
    _success(report.summary())
    _info(
        f"Entities: {len(before.entities)} -> {len(after.entities)}, "
        f"features: {len(before.features)} -> {len(after.features)}"
    )


@app.command(name="merge")
def merge_command(
    existing: Path = typer.Argument(..., help="Existing project file"),
    candidate: Path = typer.Argument(..., help="Candidate payload (AI response or import)"),
    output: Path = OutputOption,
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Merge a candidate payload into an existing project without data loss.

    A response with no entities or no features leaves the existing project
    untouched (exit code 0, with a warning).
    """
    cfg = _prepare(config, verbose)
    existing_project = _load_project_or_exit(existing)

    try:
        payload = load_payload(candidate)
        candidate_project = (
            candidate_from_payload(payload, existing_project) if payload is not None else None
        )
    except (StorageError, PayloadError) as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None

    if candidate_project is not None:
        logger.debug(
            "Candidate %s: %d entities, %d features",
            candidate,
            len(candidate_project.entities),
            len(candidate_project.features),
        )
    result = reconcile_projects(candidate_project, existing_project, config=cfg.merge)
    _report_result(result, existing_project)
    _emit(result.project, output)


@app.command(name="fill-gaps")
def fill_gaps_command(
    existing: Path = typer.Argument(..., help="Existing project file"),
    response: Path = typer.Argument(..., help="Gap-fill response payload"),
    output: Path = OutputOption,
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Fill empty trait slots of existing entities from an AI response."""
    _prepare(config, verbose)
    existing_project = _load_project_or_exit(existing)

    try:
        result = fill_gaps(existing_project, load_payload(response))
    except (StorageError, PayloadError) as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None

    _report_result(result, existing_project)
    _emit(result.project, output)


@app.command(name="sanitize")
def sanitize_command(
    project: Path = typer.Argument(..., help="Project file"),
    output: Path = OutputOption,
    verbose: bool = VerboseOption,
) -> None:
    """Remove invalid trait references and duplicate ids from a project."""
    _setup_logging(verbose=verbose)
    loaded = _load_project_or_exit(project)

    report = MergeReport()
    clean = sanitize_project(loaded, report)
    _success(
        f"Removed {report.invalid_traits_removed} invalid trait reference(s), "
        f"{report.duplicate_entities_removed} duplicate entities, "
        f"{report.duplicate_features_removed} duplicate features"
    )
    _emit(clean, output)


@app.command(name="check")
def check_command(
    candidate: Path = typer.Argument(..., help="Candidate payload (AI response or import)"),
    verbose: bool = VerboseOption,
) -> None:
    """Run the pre-merge safety gate on a candidate payload.

    Exits with code 0 when the candidate is mergeable, 1 otherwise.
    """
    _setup_logging(verbose=verbose)
    try:
        payload = load_payload(candidate)
        candidate_project = candidate_from_payload(payload) if payload is not None else None
    except (StorageError, PayloadError) as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None

    verdict = can_merge(candidate_project)
    if not verdict.ok:
        assert verdict.reason is not None
        _error(f"Candidate rejected: {verdict.reason.value}")
        raise typer.Exit(code=EXIT_ERROR)

    assert candidate_project is not None
    _success(
        f"Candidate mergeable: {len(candidate_project.entities)} entities, "
        f"{len(candidate_project.features)} features"
    )
