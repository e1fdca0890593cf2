from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from profilesync.common.sanitize import maskSecretsInObject
from profilesync.domain.models import SyncOutcome, UpdateQuery


def getNowIso() -> str:
    """Текущее время в ISO 8601 с timezone."""
    return datetime.now().astimezone().isoformat()


def getDurationMs(startMonotonic: float, endMonotonic: float) -> int:
    return int((endMonotonic - startMonotonic) * 1000)


@dataclass
class ReportMeta:
    """
    Назначение:
        Метаданные отчёта запуска команды.
    """

    run_id: str
    command: str
    started_at: str
    finished_at: str | None = None
    duration_ms: int | None = None
    csv_path: str | None = None
    csv_rows_total: int | None = None
    directory_members: int | None = None
    auth_user: str | None = None
    team: str | None = None
    notify: bool | None = None
    notify_self: bool | None = None
    log_file: str | None = None
    report_dir: str | None = None
    config_sources: list[str] = field(default_factory=list)


@dataclass
class ReportSummary:
    """
    Назначение:
        Сводные счётчики по строкам и по удалённым операциям.

    Поля:
        rows_total, updated, skipped, failed: int
        operations: счётчики SyncSummary (profileSet/postMessage -> try/skip/success/error)
    """

    rows_total: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    operations: dict[str, dict[str, int]] = field(default_factory=dict)


@dataclass
class Report:
    meta: ReportMeta
    summary: ReportSummary
    items: list[dict]


def createEmptyReport(runId: str, command: str, configSources: list[str]) -> Report:
    """
    Назначение:
        Создаёт пустой отчёт-скелет для команды.
    """
    meta = ReportMeta(
        run_id=runId,
        command=command,
        started_at=getNowIso(),
        config_sources=list(configSources or []),
    )
    return Report(meta=meta, summary=ReportSummary(), items=[])


def _query_item(query: UpdateQuery) -> dict[str, Any]:
    user = query.current_user_info or {}
    return {
        "line_no": query.csv_param.line_no,
        "email": query.csv_param.email,
        "user_id": user.get("id"),
        "user_name": user.get("name"),
        "skip_call_api": query.skip_call_api,
        "skip_reasons": [r.to_dict() for r in query.skip_reasons],
        "skipped_columns": [c.to_dict() for c in query.skipped_columns],
        "changes": dict(query.api_param.profile or {}),
    }


def addPlanItem(report: Report, query: UpdateQuery) -> None:
    report.summary.rows_total += 1
    if query.skip_call_api:
        report.summary.skipped += 1
        status = "skipped"
    else:
        status = "planned"
    item = _query_item(query)
    item["status"] = status
    report.items.append(item)


def addOutcomeItem(report: Report, outcome: SyncOutcome) -> None:
    """
    Назначение:
        Добавляет в отчёт итог обработки одной строки и обновляет счётчики строк.
    """
    report.summary.rows_total += 1
    if outcome.status == "updated":
        report.summary.updated += 1
    elif outcome.status == "failed":
        report.summary.failed += 1
    else:
        report.summary.skipped += 1

    item = _query_item(outcome.update_query)
    item["status"] = outcome.status
    item["errors"] = list(outcome.errors)
    item["api_response"] = (
        maskSecretsInObject(outcome.update_result.api_call_response) if outcome.update_result else None
    )
    item["notified"] = bool(outcome.notification and outcome.notification.sent)
    report.items.append(item)


def finalizeReport(report: Report, durationMs: int, logFile: str | None, reportDir: str) -> None:
    report.meta.finished_at = getNowIso()
    report.meta.duration_ms = durationMs
    report.meta.log_file = logFile
    report.meta.report_dir = reportDir


def writeReportJson(report: Report, reportDir: str, fileBaseName: str) -> str:
    """
    Назначение:
        Записывает отчёт в <reportDir>/<fileBaseName>.json (ensure_ascii=False).

    Выходные данные:
        str
            Полный путь к созданному файлу.
    """
    Path(reportDir).mkdir(parents=True, exist_ok=True)
    reportPath = str(Path(reportDir) / f"{fileBaseName}.json")

    data: dict[str, Any] = {
        "meta": asdict(report.meta),
        "summary": asdict(report.summary),
        "items": report.items,
    }

    with open(reportPath, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)

    return reportPath
