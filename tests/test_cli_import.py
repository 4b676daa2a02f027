"""CLI integration tests for the standards import commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from evidflow import cli


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


def _write_source(path: Path, *rows: str) -> Path:
    path.write_text("\n".join(("Code,Name,Weight", *rows)) + "\n", encoding="utf-8")
    return path


def test_import_then_reimport_reports_conflicts(cli_runner: CliRunner, tmp_path: Path) -> None:
    source = _write_source(tmp_path / "standards.csv", "1,Mission,10", "2,Curriculum,20", "2,Again,5")
    store = tmp_path / "store"
    out = tmp_path / "out"
    args = [
        "import",
        str(source),
        "--program",
        "prog-1",
        "--organization",
        "org-1",
        "--store",
        str(store),
        "--out",
        str(out),
    ]

    result = cli_runner.invoke(cli.app, args)
    assert result.exit_code == 0, result.stdout
    assert "committed=2" in result.stdout
    assert "duplicate of row 3" in result.stdout
    assert (out / "import_report.md").exists()
    assert (out / "import_rejects.csv").exists()
    assert (out / "import_report.json").exists()

    repeat = cli_runner.invoke(cli.app, args)
    assert repeat.exit_code == 1, repeat.stdout
    assert "failed=2" in repeat.stdout
    assert "already exists" in repeat.stdout


def test_import_without_context_exits_with_usage_error(cli_runner: CliRunner, tmp_path: Path) -> None:
    source = _write_source(tmp_path / "standards.csv", "1,Mission,10")

    result = cli_runner.invoke(cli.app, ["import", str(source), "--program", "prog-1"])

    assert result.exit_code == 2


def test_import_of_headerless_file_exits_with_usage_error(cli_runner: CliRunner, tmp_path: Path) -> None:
    source = tmp_path / "empty.csv"
    source.write_text("", encoding="utf-8")

    result = cli_runner.invoke(
        cli.app, ["import", str(source), "--program", "p", "--organization", "o", "--store", str(tmp_path)]
    )

    assert result.exit_code == 2


def test_import_json_output(cli_runner: CliRunner, tmp_path: Path) -> None:
    source = _write_source(tmp_path / "standards.csv", "1,Mission,10", "1A,Broken,150")

    result = cli_runner.invoke(
        cli.app,
        [
            "--log-level",
            "ERROR",
            "import",
            str(source),
            "--program",
            "p",
            "--organization",
            "o",
            "--store",
            str(tmp_path / "store"),
            "--out",
            str(tmp_path / "out"),
            "--json",
        ],
    )

    assert result.exit_code == 0, result.stdout
    payload = json.loads(result.stdout)
    assert payload["summary"]["valid"] == 1
    assert payload["summary"]["invalid"] == 1
    assert payload["invalid_records"][0]["row_index"] == 3


def test_preview_does_not_touch_the_store(cli_runner: CliRunner, tmp_path: Path) -> None:
    source = _write_source(tmp_path / "standards.csv", "1,Mission,10", "1,Mission again,10")

    result = cli_runner.invoke(cli.app, ["--log-level", "ERROR", "preview", str(source), "--json"])

    assert result.exit_code == 0, result.stdout
    payload = json.loads(result.stdout)
    assert payload["valid_count"] == 1
    assert payload["duplicate_records"][0]["duplicate_of"] == 2


def test_profile_supplies_context_and_store(
    cli_runner: CliRunner,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    profiles = tmp_path / "profiles.yaml"
    profiles.write_text(
        "profiles:\n"
        "  office:\n"
        "    program_id: prog-9\n"
        "    organization_id: org-9\n"
        "    import:\n"
        "      max_workers: 2\n"
        "    store:\n"
        "      path: store/office.xlsx\n",
        encoding="utf-8",
    )
    source = _write_source(tmp_path / "standards.csv", "3,Staff,10", "4,Students,10")

    result = cli_runner.invoke(
        cli.app, ["import", str(source), "--profile", "office", "--profiles-file", str(profiles)]
    )
    assert result.exit_code == 0, result.stdout

    store_file = Path(tmp_path / "work" / "store" / "office.xlsx")
    assert store_file.exists()

    exported = tmp_path / "export.xlsx"
    result = cli_runner.invoke(
        cli.app, ["export", str(exported), "--profile", "office", "--profiles-file", str(profiles)]
    )
    assert result.exit_code == 0, result.stdout
    assert "exported 2 standards" in result.stdout

    unknown = cli_runner.invoke(cli.app, ["import", str(source), "--profile", "nope", "--profiles-file", str(profiles)])
    assert unknown.exit_code == 2


def test_template_command_writes_workbook(cli_runner: CliRunner, tmp_path: Path) -> None:
    target = tmp_path / "template.xlsx"

    result = cli_runner.invoke(cli.app, ["template", str(target)])

    assert result.exit_code == 0, result.stdout
    assert target.exists()
