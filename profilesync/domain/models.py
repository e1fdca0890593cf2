from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

UserRecord = dict[str, Any]


class ProfileField:
    """
    Назначение:
        Фиксированный allow-list полей профиля Slack, которые принимаются из CSV.

    Пояснения:
        EMAIL - ключ сопоставления, в users.profile.set не отправляется.
    """

    REAL_NAME = "real_name"
    DISPLAY_NAME = "display_name"
    STATUS_TEXT = "status_text"
    STATUS_EMOJI = "status_emoji"
    STATUS_EXPIRATION = "status_expiration"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    TITLE = "title"
    PHONE = "phone"
    PRONOUNS = "pronouns"
    EMAIL = "email"

    ALL: tuple[str, ...] = (
        REAL_NAME,
        DISPLAY_NAME,
        STATUS_TEXT,
        STATUS_EMOJI,
        STATUS_EXPIRATION,
        FIRST_NAME,
        LAST_NAME,
        TITLE,
        PHONE,
        PRONOUNS,
        EMAIL,
    )


USER_COLUMN = "user"


class SkipReasonCode(str, Enum):
    """
    Назначение:
        Причины, по которым вызов users.profile.set для строки не выполняется.
    """

    NO_USER_FOUND_FOR_EMAIL = "no_user_found_for_email"
    ADMIN_USER_CANNOT_BE_UPDATED = "admin_user_cannot_be_updated"
    ALL_FIELDS_ARE_UPDATED = "all_fields_are_updated"


SKIP_MESSAGES: dict[SkipReasonCode, str] = {
    SkipReasonCode.NO_USER_FOUND_FOR_EMAIL: "指定されたメールアドレスを持つSlackユーザーが見つかりませんでした",
    SkipReasonCode.ADMIN_USER_CANNOT_BE_UPDATED: "管理者ユーザーのプロフィールを更新することはできません",
    SkipReasonCode.ALL_FIELDS_ARE_UPDATED: "全ての項目が更新済みだったので、更新APIの呼び出しをスキップしました",
}

SAME_WITH_EXISTING = "same_with_exsiting"


@dataclass(frozen=True)
class DesiredProfile:
    """
    Назначение:
        Желаемое состояние профиля из одной строки CSV.

    Поля:
        user: значение колонки user (если была в CSV)
        profile: поля профиля из allow-list, включая email
        line_no: номер строки в CSV (для отчёта)
    """

    profile: dict[str, str]
    user: str | None = None
    line_no: int | None = None

    @property
    def email(self) -> str | None:
        return self.profile.get(ProfileField.EMAIL)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.user is not None:
            data[USER_COLUMN] = self.user
        data["profile"] = dict(self.profile)
        return data


@dataclass(frozen=True)
class SkippedColumn:
    field: str
    reason: str = SAME_WITH_EXISTING

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "reason": self.reason}


@dataclass(frozen=True)
class SkipReason:
    reason: SkipReasonCode
    message: str

    @classmethod
    def of(cls, code: SkipReasonCode) -> "SkipReason":
        return cls(reason=code, message=SKIP_MESSAGES[code])

    def to_dict(self) -> dict[str, str]:
        return {"reason": self.reason.value, "message": self.message}


@dataclass(frozen=True)
class ApiParam:
    """
    Назначение:
        Параметры вызова users.profile.set. При пропуске оба поля None.
    """

    user: str | None = None
    profile: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"user": self.user, "profile": dict(self.profile) if self.profile is not None else None}


@dataclass(frozen=True)
class UpdateQuery:
    """
    Назначение:
        Решение по одной строке CSV: вызывать ли API, с какими параметрами и почему что-то пропущено.

    Инварианты:
        skip_call_api == bool(skip_reasons) == (api_param.user is None and api_param.profile is None).
        skipped_columns может быть непустым и при skip_call_api == False.
    """

    skip_call_api: bool
    skip_reasons: list[SkipReason]
    skipped_columns: list[SkippedColumn]
    current_user_info: UserRecord | None
    csv_param: DesiredProfile
    api_param: ApiParam

    def to_dict(self) -> dict[str, Any]:
        return {
            "skipCallApi": self.skip_call_api,
            "skipReasons": [r.to_dict() for r in self.skip_reasons],
            "skippedColumns": [c.to_dict() for c in self.skipped_columns],
            "currentUserInfo": self.current_user_info,
            "csvParam": self.csv_param.to_dict(),
            "apiParam": self.api_param.to_dict(),
        }


@dataclass(frozen=True)
class UpdateResult:
    api_call_response: dict[str, Any] | None
    update_query: UpdateQuery

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiCallResponse": self.api_call_response,
            "updateQuery": self.update_query.to_dict(),
        }


@dataclass(frozen=True)
class NotificationResult:
    """
    Назначение:
        Ответ chat.postMessage. response is None, если уведомление не отправлялось.
    """

    response: dict[str, Any] | None

    @property
    def sent(self) -> bool:
        return self.response is not None

    def to_dict(self) -> dict[str, Any]:
        return {"notification": {"response": self.response}}


@dataclass
class SyncOutcome:
    """
    Назначение:
        Итог обработки одной строки пакетом: решение, результат вызовов и ошибка (если была).

    Поля:
        status: updated | skipped | failed
    """

    update_query: UpdateQuery
    update_result: UpdateResult | None = None
    notification: NotificationResult | None = None
    status: str = "skipped"
    errors: list[dict[str, Any]] = field(default_factory=list)


__all__ = [
    "ApiParam",
    "DesiredProfile",
    "NotificationResult",
    "ProfileField",
    "SAME_WITH_EXISTING",
    "SKIP_MESSAGES",
    "SkipReason",
    "SkipReasonCode",
    "SkippedColumn",
    "SyncOutcome",
    "UpdateQuery",
    "UpdateResult",
    "USER_COLUMN",
    "UserRecord",
]
