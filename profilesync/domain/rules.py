from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from profilesync.domain.models import SkippedColumn, SkipReasonCode, UserRecord

ELEVATED_FLAGS: tuple[str, ...] = ("is_admin", "is_owner", "is_primary_owner")


@dataclass(frozen=True)
class RuleContext:
    """
    Назначение:
        Входные данные для veto-правил: найденный пользователь и рассчитанный diff.
    """

    current_user_info: UserRecord | None
    changes: dict[str, Any] = field(default_factory=dict)
    skipped_columns: tuple[SkippedColumn, ...] = ()


VetoCheck = Callable[[RuleContext], bool]


@dataclass(frozen=True)
class VetoRule:
    """
    Назначение:
        Правило, запрещающее вызов users.profile.set для строки.

    Поля:
        code: причина пропуска, попадающая в skip_reasons
        check: предикат срабатывания
        keep_skipped_columns: сохранять ли skipped_columns при срабатывании
    """

    code: SkipReasonCode
    check: VetoCheck
    keep_skipped_columns: bool = False


def isElevatedUser(user: UserRecord) -> bool:
    """
    Назначение:
        Привилегированная учётная запись: is_admin OR is_owner OR is_primary_owner.

    Пояснения:
        is_restricted / is_ultra_restricted (гости) привилегией не считаются.
    """
    return any(bool(user.get(flag)) for flag in ELEVATED_FLAGS)


def _no_user_found(ctx: RuleContext) -> bool:
    return ctx.current_user_info is None


def _elevated_user(ctx: RuleContext) -> bool:
    return ctx.current_user_info is not None and isElevatedUser(ctx.current_user_info)


def _nothing_to_change(ctx: RuleContext) -> bool:
    return not ctx.changes


DEFAULT_VETO_RULES: tuple[VetoRule, ...] = (
    VetoRule(code=SkipReasonCode.NO_USER_FOUND_FOR_EMAIL, check=_no_user_found),
    VetoRule(code=SkipReasonCode.ADMIN_USER_CANNOT_BE_UPDATED, check=_elevated_user),
    VetoRule(code=SkipReasonCode.ALL_FIELDS_ARE_UPDATED, check=_nothing_to_change, keep_skipped_columns=True),
)


def firstVeto(ctx: RuleContext, rules: tuple[VetoRule, ...] = DEFAULT_VETO_RULES) -> VetoRule | None:
    """
    Возвращает первое сработавшее правило (порядок в rules задаёт приоритет) или None.
    """
    for rule in rules:
        if rule.check(ctx):
            return rule
    return None


__all__ = [
    "DEFAULT_VETO_RULES",
    "ELEVATED_FLAGS",
    "RuleContext",
    "VetoRule",
    "firstVeto",
    "isElevatedUser",
]
