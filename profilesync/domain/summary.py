from __future__ import annotations

from typing import Any


class OperationKind:
    """
    Константы видов удалённых операций, по которым ведутся счётчики.
    """

    PROFILE_SET = "profileSet"
    POST_MESSAGE = "postMessage"

    ALL: tuple[str, ...] = (PROFILE_SET, POST_MESSAGE)


class Counter:
    TRY = "try"
    SKIP = "skip"
    SUCCESS = "success"
    ERROR = "error"

    ALL: tuple[str, ...] = (TRY, SKIP, SUCCESS, ERROR)


class SyncSummary:
    """
    Назначение/ответственность:
        Счётчики try/skip/success/error по каждому виду операции за один запуск.

    Ограничения:
        Только увеличение; сброса нет. Пишет единственный последовательный обработчик.
    """

    def __init__(self) -> None:
        self._counters: dict[str, dict[str, int]] = {
            kind: {name: 0 for name in Counter.ALL} for kind in OperationKind.ALL
        }

    def increment(self, kind: str, counter: str) -> None:
        if kind not in self._counters:
            raise ValueError(f"Unknown operation kind: {kind}")
        if counter not in Counter.ALL:
            raise ValueError(f"Unknown counter: {counter}")
        self._counters[kind][counter] += 1

    def get(self, kind: str, counter: str) -> int:
        return self._counters[kind][counter]

    def to_dict(self) -> dict[str, Any]:
        return {kind: dict(values) for kind, values in self._counters.items()}

    def format_line(self) -> str:
        parts = []
        for kind in OperationKind.ALL:
            values = self._counters[kind]
            parts.append(
                f"{kind}: try={values[Counter.TRY]} skip={values[Counter.SKIP]} "
                f"success={values[Counter.SUCCESS]} error={values[Counter.ERROR]}"
            )
        return " | ".join(parts)


__all__ = ["Counter", "OperationKind", "SyncSummary"]
