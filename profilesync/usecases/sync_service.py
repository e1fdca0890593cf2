from __future__ import annotations

import logging
from typing import Any, Iterable

from profilesync.domain.matcher import findUserByEmail
from profilesync.domain.models import (
    DesiredProfile,
    NotificationResult,
    SyncOutcome,
    UpdateQuery,
    UpdateResult,
    UserRecord,
)
from profilesync.domain.notification import NotificationTemplate, composeNotification
from profilesync.domain.ports.slack_api import SlackApiProtocol
from profilesync.domain.profile_mapper import csvRowToProfileUpdateBody
from profilesync.domain.query_builder import buildUpdateQuery
from profilesync.domain.summary import Counter, OperationKind, SyncSummary
from profilesync.infra.csv_source import parseRows
from profilesync.infra.slack_client import SlackApiError
from profilesync.logging_setup import logEvent


def _error_item(operation: str, exc: SlackApiError) -> dict[str, Any]:
    return {
        "operation": operation,
        "code": exc.code,
        "slack_error": exc.slack_error,
        "status_code": exc.status_code,
        "message": exc.message,
    }


class ProfileSyncService:
    """
    Назначение/ответственность:
        Оркестратор синхронизации профилей Slack с CSV желаемого состояния:
        сопоставление, решение, вызов users.profile.set, уведомление, счётчики.

    Ограничения:
        - Строки обрабатываются строго последовательно.
        - Ошибка удалённого вызова по одной строке не прерывает пакет.
        - Повторных попыток нет.
    """

    def __init__(
        self,
        slack_api: SlackApiProtocol,
        logger: logging.Logger,
        run_id: str,
        template: NotificationTemplate | None = None,
        notify_self: bool = False,
    ):
        self.slack_api = slack_api
        self.logger = logger
        self.run_id = run_id
        self.template = template or NotificationTemplate()
        self.notify_self = notify_self
        self.summary = SyncSummary()
        self.auth_user: dict[str, Any] | None = None

    def _log(self, level: int, component: str, message: str) -> None:
        logEvent(self.logger, level, self.run_id, component, message)

    # --- auth context ---

    def fetchAuthUser(self) -> dict[str, Any]:
        """
        Назначение:
            Вызывает auth.test и запоминает учётную запись владельца токена.
        """
        response = self.slack_api.authTest()
        self.auth_user = response
        self._log(
            logging.INFO,
            "auth",
            f"auth user={response.get('user')} user_id={response.get('user_id')} team={response.get('team')}",
        )
        return response

    def isAuthUser(self, name: str | None) -> bool:
        """False, пока auth.test не вызывался; далее сравнение с полем user ответа."""
        if not self.auth_user:
            return False
        return name is not None and name == self.auth_user.get("user")

    # --- directory / desired state ---

    def fetchUserList(self) -> dict[str, Any]:
        response = self.slack_api.usersList()
        members = response.get("members") or []
        self._log(logging.INFO, "directory", f"users.list members={len(members)}")
        return response

    def findUserByEmail(self, email: str | None, members: Iterable[UserRecord]) -> UserRecord | None:
        return findUserByEmail(email, members)

    def csvRowToProfileUpdateBody(self, row: dict[str, str], line_no: int | None = None) -> DesiredProfile:
        return csvRowToProfileUpdateBody(row, line_no=line_no)

    def parseParamFromCsv(self, path: str) -> list[DesiredProfile]:
        return parseRows(path)

    def buildUpdateQuery(self, desired: DesiredProfile, members: list[UserRecord]) -> UpdateQuery:
        return buildUpdateQuery(desired, members)

    # --- remote mutations ---

    def applyUpdate(self, query: UpdateQuery) -> UpdateResult:
        """
        Назначение:
            Выполняет users.profile.set, если запрос не помечен как пропущенный.

        Контракт (вход/выход):
            - Вход: UpdateQuery.
            - Выход: UpdateResult (api_call_response is None при пропуске).

        Ошибки:
            SlackApiError пробрасывается вызывающему после учёта в счётчике error.
        """
        kind = OperationKind.PROFILE_SET
        if query.skip_call_api:
            self.summary.increment(kind, Counter.SKIP)
            return UpdateResult(api_call_response=None, update_query=query)

        self.summary.increment(kind, Counter.TRY)
        try:
            response = self.slack_api.usersProfileSet(query.api_param.user, query.api_param.profile)
        except SlackApiError:
            self.summary.increment(kind, Counter.ERROR)
            raise
        self.summary.increment(kind, Counter.SUCCESS)
        return UpdateResult(api_call_response=response, update_query=query)

    def notifyUpdatedUser(self, result: UpdateResult) -> NotificationResult:
        """
        Назначение:
            Отправляет пользователю личное сообщение с описанием изменений профиля.

        Поведение:
            - Пропущенные запросы не уведомляются (счётчик skip).
            - Владелец токена не уведомляется, если notify_self выключен (счётчик skip).

        Ошибки:
            SlackApiError пробрасывается после учёта в счётчике error.
        """
        kind = OperationKind.POST_MESSAGE
        query = result.update_query
        if query.skip_call_api:
            self.summary.increment(kind, Counter.SKIP)
            return NotificationResult(response=None)

        user_name = (query.current_user_info or {}).get("name")
        if not self.notify_self and self.isAuthUser(user_name):
            self.summary.increment(kind, Counter.SKIP)
            self._log(logging.INFO, "postMessage", f"skip self notification user={user_name}")
            return NotificationResult(response=None)

        message = composeNotification(result, self.template)
        self.summary.increment(kind, Counter.TRY)
        try:
            response = self.slack_api.chatPostMessage(message)
        except SlackApiError:
            self.summary.increment(kind, Counter.ERROR)
            raise
        self.summary.increment(kind, Counter.SUCCESS)
        return NotificationResult(response=response)

    # --- batch drivers ---

    def planProfilesFromCsv(self, path: str, members: list[UserRecord]) -> list[UpdateQuery]:
        """
        Строит UpdateQuery для каждой строки CSV без удалённых вызовов.
        """
        return [self.buildUpdateQuery(desired, members) for desired in self.parseParamFromCsv(path)]

    def updateProfilesFromCsv(self, path: str, members: list[UserRecord], notify: bool = True) -> list[SyncOutcome]:
        """
        Назначение:
            Пакетная синхронизация: для каждой строки CSV решение, обновление и уведомление.

        Контракт (вход/выход):
            - Вход: путь к CSV, снимок users.list, флаг отправки уведомлений.
            - Выход: список SyncOutcome в порядке строк CSV.

        Ошибки:
            SlackApiError по строке записывается в outcome.errors и в лог; обработка продолжается.
            Ошибки чтения CSV (OSError, CsvFormatError) пробрасываются.
        """
        outcomes: list[SyncOutcome] = []
        for desired in self.parseParamFromCsv(path):
            outcome = self._processRow(desired, members, notify)
            outcomes.append(outcome)
        self._log(logging.INFO, "sync", f"sync done rows={len(outcomes)} {self.summary.format_line()}")
        return outcomes

    def _processRow(self, desired: DesiredProfile, members: list[UserRecord], notify: bool) -> SyncOutcome:
        query = self.buildUpdateQuery(desired, members)
        outcome = SyncOutcome(update_query=query)
        row = f"line={desired.line_no} email={desired.email}"

        try:
            result = self.applyUpdate(query)
        except SlackApiError as exc:
            outcome.status = "failed"
            outcome.errors.append(_error_item(OperationKind.PROFILE_SET, exc))
            self._log(logging.ERROR, "profileSet", f"profile update failed {row}: {exc}")
            return outcome

        outcome.update_result = result
        if query.skip_call_api:
            reasons = ",".join(r.reason.value for r in query.skip_reasons)
            self._log(logging.INFO, "profileSet", f"skip {row} reasons={reasons}")
        else:
            outcome.status = "updated"
            self._log(
                logging.INFO,
                "profileSet",
                f"updated {row} user={query.api_param.user} fields={','.join(query.api_param.profile or {})}",
            )

        if not notify:
            self.summary.increment(OperationKind.POST_MESSAGE, Counter.SKIP)
            return outcome

        try:
            outcome.notification = self.notifyUpdatedUser(result)
        except SlackApiError as exc:
            outcome.errors.append(_error_item(OperationKind.POST_MESSAGE, exc))
            self._log(logging.ERROR, "postMessage", f"notification failed {row}: {exc}")
        return outcome


__all__ = ["ProfileSyncService"]
