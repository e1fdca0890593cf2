from __future__ import annotations

from typing import Mapping

from profilesync.domain.models import USER_COLUMN, DesiredProfile, ProfileField

_ALLOWED_FIELDS = frozenset(ProfileField.ALL)


def _clean(value: str) -> str:
    return value.strip()


def csvRowToProfileUpdateBody(row: Mapping[str, str | None], line_no: int | None = None) -> DesiredProfile:
    """
    Назначение:
        Преобразует строку CSV (колонка -> значение) в DesiredProfile.

    Контракт (вход/выход):
        - Вход: плоский словарь строки, номер строки (необязательно).
        - Выход: DesiredProfile с полями allow-list в profile и колонкой user рядом.

    Алгоритм:
        - Колонки из ProfileField.ALL попадают в profile (значение тримится, пустое остаётся пустой строкой).
        - Колонка user переносится как есть.
        - Ячейка None (нет значения вовсе) не попадает в profile: очистку поля задаёт только "".
        - Остальные колонки (служебные пометки таблицы) молча отбрасываются.
    """
    profile: dict[str, str] = {}
    user: str | None = None
    for column, value in row.items():
        if column is None or value is None:
            continue
        name = column.strip()
        if name == USER_COLUMN:
            user = _clean(value) or None
        elif name in _ALLOWED_FIELDS:
            profile[name] = _clean(value)
    return DesiredProfile(profile=profile, user=user, line_no=line_no)


__all__ = ["csvRowToProfileUpdateBody"]
