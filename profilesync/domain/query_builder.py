from __future__ import annotations

from typing import Any, Iterable

from profilesync.domain.matcher import findUserByEmail
from profilesync.domain.models import (
    ApiParam,
    DesiredProfile,
    ProfileField,
    SkippedColumn,
    SkipReason,
    UpdateQuery,
    UserRecord,
)
from profilesync.domain.rules import DEFAULT_VETO_RULES, RuleContext, VetoRule, firstVeto


def _sameValue(current: Any, desired: str) -> bool:
    """Slack отдаёт часть полей числами (status_expiration), CSV всегда строки."""
    if current is None:
        return False
    if isinstance(current, (int, float)) and not isinstance(current, bool):
        return str(current) == desired
    return current == desired


def diffProfile(
    desired: DesiredProfile,
    current_user_info: UserRecord,
) -> tuple[dict[str, Any], list[SkippedColumn]]:
    """
    Назначение:
        Поле-за-полем сравнивает желаемый профиль с текущим.

    Контракт (вход/выход):
        - Вход: DesiredProfile и найденный участник справочника.
        - Выход: (changes, skipped_columns), где changes - поля для отправки
          в порядке CSV, skipped_columns - поля, совпавшие с текущими значениями.

    Ограничения:
        email - ключ сопоставления, не сравнивается и не отправляется.
    """
    current_profile = current_user_info.get("profile") or {}
    changes: dict[str, Any] = {}
    skipped: list[SkippedColumn] = []
    for field, value in desired.profile.items():
        if field == ProfileField.EMAIL:
            continue
        if _sameValue(current_profile.get(field), value):
            skipped.append(SkippedColumn(field=field))
        else:
            changes[field] = value
    return changes, skipped


def buildUpdateQuery(
    desired: DesiredProfile,
    directory: Iterable[UserRecord],
    rules: tuple[VetoRule, ...] = DEFAULT_VETO_RULES,
) -> UpdateQuery:
    """
    Назначение:
        Главный механизм решения: по строке CSV и справочнику строит UpdateQuery.

    Контракт (вход/выход):
        - Вход: DesiredProfile, снимок users.list, упорядоченные veto-правила.
        - Выход: UpdateQuery; csv_param прикладывается всегда,
          current_user_info равен None только если пользователь не найден.

    Алгоритм:
        1) Поиск пользователя по email.
        2) diff по всем полям, кроме email (если пользователь найден).
        3) Первое сработавшее veto-правило даёт skip; skipped_columns
           сохраняются только если правило это допускает.
        4) Иначе api_param = (id пользователя, изменённые поля).

    Ошибки:
        Не бросает: отсутствие пользователя и запреты - это пропуск, а не ошибка.
    """
    current_user_info = findUserByEmail(desired.email, directory)

    changes: dict[str, Any] = {}
    skipped_columns: list[SkippedColumn] = []
    if current_user_info is not None:
        changes, skipped_columns = diffProfile(desired, current_user_info)

    veto = firstVeto(
        RuleContext(
            current_user_info=current_user_info,
            changes=changes,
            skipped_columns=tuple(skipped_columns),
        ),
        rules,
    )
    if veto is not None:
        return UpdateQuery(
            skip_call_api=True,
            skip_reasons=[SkipReason.of(veto.code)],
            skipped_columns=skipped_columns if veto.keep_skipped_columns else [],
            current_user_info=current_user_info,
            csv_param=desired,
            api_param=ApiParam(user=None, profile=None),
        )

    return UpdateQuery(
        skip_call_api=False,
        skip_reasons=[],
        skipped_columns=skipped_columns,
        current_user_info=current_user_info,
        csv_param=desired,
        api_param=ApiParam(user=current_user_info["id"], profile=changes),
    )


__all__ = ["buildUpdateQuery", "diffProfile"]
