"""Typer based command line entry points for EvidFlow."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from evidflow.core.errors import ConfigError, EvidFlowError
from evidflow.core.logger import get_logger
from evidflow.core.pipeline import ImportJob, config_for_profile, store_for_profile
from evidflow.core.profiles import Profile, load_profiles
from evidflow.services.standard_import import ImportPipeline, ImportPreview, resolve_context
from evidflow.services.standard_import.template import export_records, export_template
from evidflow_io import read_table
from evidflow_persist import StoreError

app = typer.Typer(help="Bulk import tooling for accreditation standards.")


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Set global logging level (e.g. DEBUG/INFO/WARNING).",
    ),
) -> None:
    """Configure global CLI behaviour before executing commands."""

    logger = get_logger()

    level_value = getattr(logging, log_level.upper(), None)
    if not isinstance(level_value, int):
        raise typer.BadParameter(f"Unknown log level: {log_level}")

    logging.getLogger().setLevel(level_value)
    logger.setLevel(level_value)


def _load_profile(name: Optional[str], profiles_file: Optional[Path]) -> Profile | None:
    if not name:
        return None
    profiles = load_profiles(profiles_file)
    if name not in profiles:
        raise ConfigError(f"unknown profile: {name} (available: {', '.join(sorted(profiles))})")
    return profiles[name]


def _fail(message: str, code: int = 2) -> typer.Exit:
    typer.secho(message, fg=typer.colors.RED, err=True)
    return typer.Exit(code=code)


def _echo_rejects(preview: ImportPreview) -> None:
    for entry in preview.invalid_records:
        for issue in entry.issues:
            typer.echo(f"  row {entry.row_index}: {issue.message}")
    for entry in preview.duplicate_records:
        typer.echo(f"  row {entry.row_index}: duplicate of row {entry.duplicate_of} (key {entry.key})")


@app.command("template")
def template_cmd(
    output: Path = typer.Argument(..., dir_okay=False, help="Destination .xlsx path"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Profile name from profiles.yaml"),
    profiles_file: Optional[Path] = typer.Option(None, "--profiles-file", help="Override profiles.yaml location"),
) -> None:
    """Write an example workbook with the canonical headers and sample rows."""

    try:
        config = config_for_profile(_load_profile(profile, profiles_file))
        path = export_template(output, config)
    except EvidFlowError as exc:
        raise _fail(str(exc)) from exc
    typer.echo(str(path))


@app.command("preview")
def preview_cmd(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, help="CSV or Excel file"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Profile name from profiles.yaml"),
    profiles_file: Optional[Path] = typer.Option(None, "--profiles-file", help="Override profiles.yaml location"),
    as_json: bool = typer.Option(False, "--json", help="Print the preview as JSON"),
) -> None:
    """Validate a file and report what an import would do, without writing anything."""

    try:
        config = config_for_profile(_load_profile(profile, profiles_file))
        preview = ImportPipeline(config).preview(read_table(source))
    except (EvidFlowError, ValueError) as exc:
        raise _fail(str(exc)) from exc

    if as_json:
        typer.echo(json.dumps(preview.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return
    typer.echo(
        f"total={preview.total_rows} valid={preview.valid_count} "
        f"invalid={preview.invalid_count} duplicates={preview.duplicate_count}"
    )
    if preview.unmapped_headers:
        typer.echo(f"ignored columns: {', '.join(preview.unmapped_headers)}")
    _echo_rejects(preview)


@app.command("import")
def import_cmd(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, help="CSV or Excel file"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Profile name from profiles.yaml"),
    profiles_file: Optional[Path] = typer.Option(None, "--profiles-file", help="Override profiles.yaml location"),
    program: Optional[str] = typer.Option(None, "--program", help="Program id (overrides the profile)"),
    organization: Optional[str] = typer.Option(None, "--organization", help="Organization id (overrides the profile)"),
    store: Optional[Path] = typer.Option(None, "--store", help="Standards workbook or directory"),
    out_dir: Optional[Path] = typer.Option(None, "--out", help="Directory for report files"),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Concurrent create calls"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
) -> None:
    """Import standards from a file into the standards store."""

    try:
        prof = _load_profile(profile, profiles_file)
        context = resolve_context(
            program or (prof.program_id if prof else None),
            organization or (prof.organization_id if prof else None),
        )
        config = config_for_profile(prof)
        max_workers = workers or int(prof.get("import_options.max_workers", 1) if prof else 1)
        job = ImportJob(config, store_for_profile(prof, store), max_workers=max_workers)
        result = job.run(source, context, out_dir=out_dir)
    except (EvidFlowError, StoreError, ValueError) as exc:
        raise _fail(str(exc)) from exc

    report = result.report
    if as_json:
        typer.echo(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    else:
        summary = report.summary()
        typer.echo(" ".join(f"{key}={value}" for key, value in summary.items()))
        _echo_rejects(report)
        for item in report.commit_outcomes:
            if item.error:
                typer.echo(f"  row {item.row_index}: commit failed: {item.error}")
        typer.echo(f"report: {result.report_path}")

    if report.failed_count:
        raise typer.Exit(code=1)


@app.command("export")
def export_cmd(
    output: Path = typer.Argument(..., dir_okay=False, help="Destination .xlsx path"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Profile name from profiles.yaml"),
    profiles_file: Optional[Path] = typer.Option(None, "--profiles-file", help="Override profiles.yaml location"),
    program: Optional[str] = typer.Option(None, "--program", help="Program id (overrides the profile)"),
    organization: Optional[str] = typer.Option(None, "--organization", help="Organization id (overrides the profile)"),
    store: Optional[Path] = typer.Option(None, "--store", help="Standards workbook or directory"),
) -> None:
    """Export stored standards of one program/organization to a workbook."""

    try:
        prof = _load_profile(profile, profiles_file)
        context = resolve_context(
            program or (prof.program_id if prof else None),
            organization or (prof.organization_id if prof else None),
        )
        config = config_for_profile(prof)
        rows = store_for_profile(prof, store).export(context.program_id, context.organization_id)
        path = export_records(output, config, rows)
    except (EvidFlowError, StoreError) as exc:
        raise _fail(str(exc)) from exc
    typer.echo(f"exported {len(rows)} standards to {path}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
