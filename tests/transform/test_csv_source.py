from __future__ import annotations

from pathlib import Path

import pytest

from profilesync.infra.csv_source import CsvFormatError, CsvProfileSource, parseRows

RESOURCES = Path(__file__).resolve().parent.parent / "resources"


def test_parse_rows_keeps_order_and_drops_unknown_columns():
    rows = parseRows(str(RESOURCES / "update-profiles.csv"))

    assert len(rows) == 2
    assert rows[0].profile == {"status_emoji": ":sunglasses:", "email": "suzuki-ichiro1@example.com"}
    assert rows[1].profile == {"status_emoji": ":sleepy:", "email": "jiro@example.com"}
    assert rows[0].line_no == 2
    assert rows[1].line_no == 3


def test_blank_lines_are_skipped(tmp_path: Path):
    csv_path = tmp_path / "rows.csv"
    csv_path.write_text("email,display_name\n\na@example.com,A\n,\nb@example.com,B\n", encoding="utf-8")

    rows = list(CsvProfileSource(str(csv_path)))

    assert [r.email for r in rows] == ["a@example.com", "b@example.com"]


def test_utf8_bom_header_is_recognized(tmp_path: Path):
    csv_path = tmp_path / "bom.csv"
    csv_path.write_bytes("email,real_name\na@example.com,山田 太郎\n".encode("utf-8-sig"))

    rows = parseRows(str(csv_path))

    assert rows[0].profile == {"email": "a@example.com", "real_name": "山田 太郎"}


def test_extra_columns_raise_format_error(tmp_path: Path):
    csv_path = tmp_path / "bad.csv"
    csv_path.write_text("email,display_name\na@example.com,A,unexpected\n", encoding="utf-8")

    with pytest.raises(CsvFormatError):
        parseRows(str(csv_path))


def test_empty_file_raises_format_error(tmp_path: Path):
    csv_path = tmp_path / "empty.csv"
    csv_path.write_text("", encoding="utf-8")

    with pytest.raises(CsvFormatError):
        parseRows(str(csv_path))


def test_short_row_raises_format_error(tmp_path: Path):
    csv_path = tmp_path / "short.csv"
    csv_path.write_text("email,display_name,real_name\njiro@example.com,JIRO-T\n", encoding="utf-8")

    with pytest.raises(CsvFormatError) as exc_info:
        parseRows(str(csv_path))

    assert "line 2" in str(exc_info.value)
    assert "expected 3, got 2" in str(exc_info.value)


def test_explicit_empty_cell_is_kept_as_clear(tmp_path: Path):
    csv_path = tmp_path / "clear.csv"
    csv_path.write_text("email,display_name,real_name\njiro@example.com,JIRO-T,\n", encoding="utf-8")

    rows = parseRows(str(csv_path))

    assert rows[0].profile == {"email": "jiro@example.com", "display_name": "JIRO-T", "real_name": ""}
