"""Unit tests for CLI command handling."""

from __future__ import annotations

import json

import pytest

from cli.main import main
from core.errors import VbStoreError


def _write_input(tmp_path, rows: list[object]) -> str:
    input_path = tmp_path / "records.jsonl"
    input_path.write_text("\n".join(json.dumps(row) for row in rows) + "\n", encoding="utf-8")
    return str(input_path)


def _base_args(tmp_path) -> list[str]:
    return ["--data-root", str(tmp_path / "data")]


def test_cli_write_last_prints_version(tmp_path, capsys, monkeypatch) -> None:
    """CLI write-last should print the committed version number."""
    monkeypatch.setenv("VBSTORE_BATCH_DURATION_MS", "1000")
    input_path = _write_input(tmp_path, [["a", 1]])

    exit_code = main(
        _base_args(tmp_path) + ["write-last", "events", "--batch", "4", "--input", input_path]
    )
    output = capsys.readouterr().out.strip()

    assert (exit_code, output) == (0, "5000")


def test_cli_read_last_prints_batch_and_records(tmp_path, capsys, monkeypatch) -> None:
    """CLI read-last should print the chosen batch then its records."""
    monkeypatch.setenv("VBSTORE_BATCH_DURATION_MS", "1000")
    input_path = _write_input(tmp_path, [["b", 2], ["a", 1]])
    main(_base_args(tmp_path) + ["write-last", "events", "--batch", "4", "--input", input_path])
    capsys.readouterr()

    exit_code = main(_base_args(tmp_path) + ["read-last", "events", "--before", "5"])
    lines = capsys.readouterr().out.strip().splitlines()

    assert (exit_code, lines) == (0, ["BatchID.4", '["b", 2]', '["a", 1]'])


def test_cli_read_last_reports_missing_version(tmp_path, capsys) -> None:
    """CLI read-last should exit non-zero when nothing precedes the bound."""
    exit_code = main(_base_args(tmp_path) + ["read-last", "events", "--before", "5"])
    error_output = capsys.readouterr().err

    assert exit_code == 1 and "No last batch available < BatchID.5" in error_output


def test_cli_versions_lists_tagged_versions(tmp_path, capsys, monkeypatch) -> None:
    """CLI versions should show tags and resolved batches."""
    monkeypatch.setenv("VBSTORE_BATCH_DURATION_MS", "1000")
    input_path = _write_input(tmp_path, [["a", 1]])
    main(_base_args(tmp_path) + ["write-last", "events", "--batch", "4", "--input", input_path])
    main(_base_args(tmp_path) + ["tag", "events", "5000", "BatchID.3"])
    capsys.readouterr()

    exit_code = main(_base_args(tmp_path) + ["versions", "events"])
    output = capsys.readouterr().out.strip()

    assert (exit_code, output) == (0, "5000\tBatchID.3\tBatchID.2\tlegacy")


def test_cli_write_last_rejects_malformed_rows(tmp_path) -> None:
    """Rows that are not [key, value] arrays should be rejected."""
    input_path = _write_input(tmp_path, [{"key": "a"}])

    with pytest.raises(VbStoreError):
        main(_base_args(tmp_path) + ["write-last", "events", "--batch", "1", "--input", input_path])
