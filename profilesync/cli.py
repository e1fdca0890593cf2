from __future__ import annotations

import logging
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import typer

from profilesync.common.sanitize import maskSecret
from profilesync.config import Settings, loadSettings
from profilesync.domain.notification import NotificationTemplate
from profilesync.infra.csv_source import CsvFormatError
from profilesync.infra.slack_client import SlackApiError, createSlackClient
from profilesync.logging_setup import closeCommandLogger, createCommandLogger, logEvent
from profilesync.reporting import (
    addOutcomeItem,
    addPlanItem,
    createEmptyReport,
    finalizeReport,
    getDurationMs,
    writeReportJson,
)
from profilesync.usecases.sync_service import ProfileSyncService

app = typer.Typer(no_args_is_help=True, add_completion=False)


def ensureDir(path: str) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def requireCsv(csvPath: str | None) -> None:
    """
    Назначение:
        Проверка наличия CSV-файла желаемого состояния.

    Поведение:
        - Если csvPath не задан или файл не существует - завершает процесс с exit code 2.
    """
    if not csvPath:
        typer.echo("ERROR: --csv is required", err=True)
        raise typer.Exit(code=2)

    p = Path(csvPath)
    if not p.exists() or not p.is_file():
        typer.echo(f"ERROR: CSV file not found: {csvPath}", err=True)
        raise typer.Exit(code=2)


def requireToken(settings: Settings) -> None:
    if not settings.slack_token:
        typer.echo("ERROR: missing Slack token (--token, PROFILESYNC_SLACK_TOKEN or config)", err=True)
        raise typer.Exit(code=2)


def printRunHeader(runId: str, command: str, settings: Settings, sources: list[str]) -> None:
    """
    Печатает безопасную сводку параметров запуска (токен маскируется).
    """
    typer.echo(
        f"run_id={runId} command={command} api_base_url={settings.api_base_url} "
        f"slack_token={maskSecret(settings.slack_token)} sources={sources} log_level={settings.log_level}"
    )


def runWithReport(
    ctx: typer.Context,
    commandName: str,
    csvPath: str | None,
    requiresCsv: bool,
    runner,
) -> None:
    """
    Назначение:
        Общая обвязка команды: логгер, отчёт, проверки параметров, замер времени, exit code.

    Входные данные:
        runner: Callable[[logging.Logger, Report], int]
            Тело команды, возвращает exit code.

    Поведение:
        - Нет токена или CSV: ошибка в лог и exit code 2.
        - Отчёт пишется всегда, в том числе при ошибках.
    """
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]
    sources = ctx.obj["sources"]

    startMonotonic = time.monotonic()
    logger, logFilePath = createCommandLogger(
        commandName=commandName,
        logDir=settings.log_dir,
        runId=runId,
        logLevel=settings.log_level,
    )
    report = createEmptyReport(runId=runId, command=commandName, configSources=sources)
    report.meta.csv_path = csvPath

    exitCode: int | None = None
    try:
        logEvent(logger, logging.INFO, runId, "core", "Command started")
        printRunHeader(runId, commandName, settings, sources)

        try:
            requireToken(settings)
        except typer.Exit:
            logEvent(logger, logging.ERROR, runId, "config", "Missing Slack token")
            exitCode = 2
            return

        if requiresCsv:
            try:
                requireCsv(csvPath)
            except typer.Exit:
                logEvent(logger, logging.ERROR, runId, "csv", "CSV is missing or not accessible")
                exitCode = 2
                return

        exitCode = runner(logger, report)
    finally:
        durationMs = getDurationMs(startMonotonic, time.monotonic())
        finalizeReport(report=report, durationMs=durationMs, logFile=logFilePath, reportDir=settings.report_dir)
        reportPath = writeReportJson(report, settings.report_dir, f"report_{commandName}_{runId}")
        logEvent(logger, logging.INFO, runId, "report", f"Report written: {reportPath}")
        closeCommandLogger(logger)

        if exitCode is not None:
            raise typer.Exit(code=exitCode)


@contextmanager
def _openService(
    settings: Settings, logger: logging.Logger, runId: str, notifySelf: bool | None = None
) -> Iterator[ProfileSyncService]:
    """
    Назначение:
        Создаёт ProfileSyncService поверх SlackApiClient и закрывает HTTP-клиент по выходу из команды.
    """
    client = createSlackClient(settings)
    try:
        yield ProfileSyncService(
            slack_api=client,
            logger=logger,
            run_id=runId,
            template=NotificationTemplate.from_settings(settings),
            notify_self=settings.notify_self if notifySelf is None else notifySelf,
        )
    finally:
        client.close()


def runCheckApiCommand(ctx: typer.Context) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]

    def check(service: ProfileSyncService, logger, report) -> int:
        try:
            start = time.monotonic()
            auth = service.fetchAuthUser()
            latency_ms = int((time.monotonic() - start) * 1000)
        except SlackApiError as exc:
            logEvent(logger, logging.ERROR, runId, "api", f"API check failed: {exc}")
            typer.echo(f"ERROR: API check failed: {exc}", err=True)
            return 2
        report.meta.auth_user = auth.get("user")
        report.meta.team = auth.get("team")
        typer.echo(f"api ok team={auth.get('team')} user={auth.get('user')} latency_ms={latency_ms}")
        return 0

    def execute(logger, report) -> int:
        with _openService(settings, logger, runId) as service:
            return check(service, logger, report)

    runWithReport(ctx=ctx, commandName="check-api", csvPath=None, requiresCsv=False, runner=execute)


def runPlanCommand(ctx: typer.Context, csvPath: str | None) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]

    def planRows(service: ProfileSyncService, logger, report) -> int:
        try:
            members = service.fetchUserList().get("members") or []
            queries = service.planProfilesFromCsv(csvPath, members)
        except (CsvFormatError, OSError) as exc:
            logEvent(logger, logging.ERROR, runId, "csv", f"CSV read error: {exc}")
            typer.echo(f"ERROR: CSV read error: {exc}", err=True)
            return 2
        except SlackApiError as exc:
            logEvent(logger, logging.ERROR, runId, "api", f"users.list failed: {exc}")
            typer.echo(f"ERROR: users.list failed: {exc}", err=True)
            return 2

        report.meta.directory_members = len(members)
        report.meta.csv_rows_total = len(queries)
        for query in queries:
            addPlanItem(report, query)
            email = query.csv_param.email
            if query.skip_call_api:
                reasons = ",".join(r.reason.value for r in query.skip_reasons)
                typer.echo(f"line={query.csv_param.line_no} email={email} skip reasons={reasons}")
            else:
                fields = ",".join(query.api_param.profile or {})
                typer.echo(f"line={query.csv_param.line_no} email={email} update user={query.api_param.user} fields={fields}")
        typer.echo(f"planned={report.summary.rows_total - report.summary.skipped} skipped={report.summary.skipped}")
        return 0

    def execute(logger, report) -> int:
        with _openService(settings, logger, runId) as service:
            return planRows(service, logger, report)

    runWithReport(ctx=ctx, commandName="plan", csvPath=csvPath, requiresCsv=True, runner=execute)


def runApplyCommand(
    ctx: typer.Context,
    csvPath: str | None,
    notify: bool | None,
    notifySelf: bool | None,
) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]
    notify_enabled = notify if notify is not None else settings.notify
    notify_self = notifySelf if notifySelf is not None else settings.notify_self

    def applyRows(service: ProfileSyncService, logger, report) -> int:
        report.meta.notify = notify_enabled
        report.meta.notify_self = notify_self

        try:
            auth = service.fetchAuthUser()
            members = service.fetchUserList().get("members") or []
        except SlackApiError as exc:
            logEvent(logger, logging.ERROR, runId, "api", f"Slack API unavailable: {exc}")
            typer.echo(f"ERROR: Slack API unavailable: {exc}", err=True)
            return 2
        report.meta.auth_user = auth.get("user")
        report.meta.team = auth.get("team")
        report.meta.directory_members = len(members)

        try:
            outcomes = service.updateProfilesFromCsv(csvPath, members, notify=notify_enabled)
        except (CsvFormatError, OSError) as exc:
            logEvent(logger, logging.ERROR, runId, "csv", f"CSV read error: {exc}")
            typer.echo(f"ERROR: CSV read error: {exc}", err=True)
            return 2
        finally:
            report.summary.operations = service.summary.to_dict()

        report.meta.csv_rows_total = len(outcomes)
        for outcome in outcomes:
            addOutcomeItem(report, outcome)

        typer.echo(
            f"rows={report.summary.rows_total} updated={report.summary.updated} "
            f"skipped={report.summary.skipped} failed={report.summary.failed}"
        )
        typer.echo(service.summary.format_line())
        return 1 if any(o.errors for o in outcomes) else 0

    def execute(logger, report) -> int:
        with _openService(settings, logger, runId, notifySelf=notify_self) as service:
            return applyRows(service, logger, report)

    runWithReport(ctx=ctx, commandName="apply", csvPath=csvPath, requiresCsv=True, runner=execute)


@app.callback()
def main(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="Path to config.yml"),
    runId: str | None = typer.Option(None, "--run-id", help="Run identifier (UUID). If omitted, generated."),
    logLevel: str | None = typer.Option(None, "--log-level", help="Log level: ERROR|WARN|INFO|DEBUG"),
    logDir: str | None = typer.Option(None, "--log-dir", help="Directory for logs."),
    reportDir: str | None = typer.Option(None, "--report-dir", help="Directory for reports."),
    token: str | None = typer.Option(None, "--token", help="Slack API token (avoid; use env/file)"),
    tokenFile: str | None = typer.Option(None, "--token-file", help="Read Slack API token from file"),
    apiBaseUrl: str | None = typer.Option(None, "--api-base-url", help="Slack Web API base URL"),
    timeoutSeconds: float | None = typer.Option(None, "--timeout-seconds", help="API timeout in seconds"),
):
    """
    Назначение:
        Глобальная инициализация CLI:
        - генерирует/принимает run_id
        - загружает настройки (CLI > ENV > config > defaults)
        - создаёт каталоги log/report
        - сохраняет всё в ctx.obj для подкоманд
    """
    if tokenFile and not token:
        p = Path(tokenFile)
        if not p.exists() or not p.is_file():
            typer.echo(f"ERROR: token-file not found: {tokenFile}", err=True)
            raise typer.Exit(code=2)
        token = p.read_text(encoding="utf-8").strip()

    if not runId:
        runId = str(uuid.uuid4())

    cliOverrides = {
        "slack_token": token,
        "api_base_url": apiBaseUrl,
        "timeout_seconds": timeoutSeconds,
        "log_level": logLevel,
        "log_dir": logDir,
        "report_dir": reportDir,
    }
    try:
        loaded = loadSettings(config_path=config, cli_overrides=cliOverrides)
    except ValueError as exc:
        typer.echo(f"ERROR: invalid settings: {exc}", err=True)
        raise typer.Exit(code=2)

    ensureDir(loaded.settings.log_dir)
    ensureDir(loaded.settings.report_dir)

    ctx.obj = {
        "runId": runId,
        "settings": loaded.settings,
        "sources": loaded.sources_used,
        "configPath": config,
    }


@app.command("check-api")
def checkApi(ctx: typer.Context):
    """Проверка токена: auth.test."""
    runCheckApiCommand(ctx)


@app.command()
def plan(
    ctx: typer.Context,
    csv: str | None = typer.Option(None, "--csv", help="Path to desired-state CSV"),
):
    """Показать решения по строкам CSV без изменения профилей."""
    runPlanCommand(ctx, csv)


@app.command()
def apply(
    ctx: typer.Context,
    csv: str | None = typer.Option(None, "--csv", help="Path to desired-state CSV"),
    notify: bool | None = typer.Option(None, "--notify/--no-notify", help="Send change notifications"),
    notifySelf: bool | None = typer.Option(
        None, "--notify-self/--no-notify-self", help="Notify the token owner about own profile changes"
    ),
):
    """Обновить профили по CSV и уведомить пользователей."""
    runApplyCommand(ctx, csv, notify, notifySelf)


if __name__ == "__main__":
    app()
