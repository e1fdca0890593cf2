from __future__ import annotations

from typing import Iterable

from profilesync.domain.models import ProfileField, UserRecord


def _member_email(member: UserRecord) -> str | None:
    profile = member.get("profile")
    if not isinstance(profile, dict):
        return None
    return profile.get(ProfileField.EMAIL)


def findUserByEmail(email: str | None, directory: Iterable[UserRecord]) -> UserRecord | None:
    """
    Назначение:
        Находит участника справочника по email профиля.

    Контракт (вход/выход):
        - Вход: email из строки CSV, список участников users.list.
        - Выход: первый участник с точным (регистрозависимым) совпадением email или None.

    Ограничения:
        Дубликаты email не выявляются: берётся первое совпадение.
        Пустой email никогда не совпадает.
    """
    if not email:
        return None
    for member in directory:
        if _member_email(member) == email:
            return member
    return None


__all__ = ["findUserByEmail"]
