from __future__ import annotations

import csv
from typing import Iterator

from profilesync.domain.models import DesiredProfile
from profilesync.domain.profile_mapper import csvRowToProfileUpdateBody


class CsvFormatError(Exception):
    """
    Назначение:
        Ошибка критического формата CSV (нет заголовка, лишние или недостающие колонки).
    """


class CsvProfileSource:
    """
    Назначение/ответственность:
        Читает CSV желаемого состояния (первая строка - заголовок) и отдаёт DesiredProfile по строкам.

    Ограничения:
        - Порядок строк сохраняется и задаёт порядок обработки.
        - Пустые строки пропускаются.
    """

    def __init__(self, path: str, delimiter: str = ",") -> None:
        self.path = path
        self.delimiter = delimiter

    def __iter__(self) -> Iterator[DesiredProfile]:
        with open(self.path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f, delimiter=self.delimiter)
            if not reader.fieldnames:
                raise CsvFormatError(f"Missing header in CSV: {self.path}")
            for row in reader:
                csv_line_no = reader.line_num
                if not row or all((v or "").strip() == "" for k, v in row.items() if k is not None):
                    continue
                if None in row:
                    extra = row.get(None) or []
                    got = len(reader.fieldnames) + len(extra)
                    raise CsvFormatError(
                        f"Invalid column count at line {csv_line_no}: expected {len(reader.fieldnames)}, got {got}"
                    )
                missing = [k for k, v in row.items() if v is None]
                if missing:
                    got = len(reader.fieldnames) - len(missing)
                    raise CsvFormatError(
                        f"Invalid column count at line {csv_line_no}: expected {len(reader.fieldnames)}, got {got}"
                    )
                yield csvRowToProfileUpdateBody(row, line_no=csv_line_no)


def parseRows(path: str) -> list[DesiredProfile]:
    """
    Назначение:
        Загружает все строки CSV в список DesiredProfile.
    """
    return list(CsvProfileSource(path))


__all__ = ["CsvFormatError", "CsvProfileSource", "parseRows"]
