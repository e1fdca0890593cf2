from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SlackApiProtocol(Protocol):
    """
    Назначение:
        Контракт удалённых вызовов Slack Web API, нужных синхронизации профилей.

    Контракт:
        - authTest() -> {"ok", "user", "user_id", "team", ...}
        - usersList() -> {"ok", "members": [...]} (все страницы)
        - usersProfileSet(user, profile) -> {"ok", ...}
        - chatPostMessage(message) -> {"ok", ...}
        Ошибки вызова пробрасываются как SlackApiError.
    """

    def authTest(self) -> dict[str, Any]: ...
    def usersList(self) -> dict[str, Any]: ...
    def usersProfileSet(self, user: str, profile: dict[str, Any]) -> dict[str, Any]: ...
    def chatPostMessage(self, message: dict[str, Any]) -> dict[str, Any]: ...


__all__ = ["SlackApiProtocol"]
