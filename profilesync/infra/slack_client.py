from __future__ import annotations

from typing import Any

import httpx

from profilesync.common.sanitize import maskSecretsInObject, truncateText
from profilesync.domain.error_codes import ErrorCode
from profilesync.errors import AppError

DEFAULT_BASE_URL = "https://slack.com/api"


class SlackApiError(AppError):
    def __init__(
        self,
        message: str,
        method: str | None = None,
        status_code: int | None = None,
        slack_error: str | None = None,
        body_snippet: str | None = None,
        code: str | None = None,
        retryable: bool = False,
        details: dict | None = None,
    ):
        """
        Назначение:
            Ошибка вызова Slack Web API (сеть, HTTP, невалидный JSON или ok=false).
        Контракт:
            - code: значение ErrorCode.
            - slack_error: поле "error" ответа Slack (например, "user_not_found").
        """
        super().__init__(
            category="api",
            code=code or ErrorCode.SLACK_API_ERROR.value,
            message=message,
            retryable=retryable,
            details=details or {},
        )
        self.method = method
        self.status_code = status_code
        self.slack_error = slack_error
        self.body_snippet = body_snippet


class SlackApiClient:
    def __init__(
        self,
        token: str,
        baseUrl: str = DEFAULT_BASE_URL,
        timeoutSeconds: float = 20.0,
        pageSize: int = 200,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Назначение:
            Клиент Slack Web API поверх httpx.
        Контракт:
            - token обязателен (bot/user token с правами users:read, users:read.email,
              users.profile:write, chat:write).
            - Повторных попыток нет: ошибки сразу уходят вызывающему как SlackApiError.
        """
        self.baseUrl = baseUrl.rstrip("/")
        self.token = token
        self.pageSize = pageSize
        self.calls_total = 0

        self.client = httpx.Client(
            base_url=self.baseUrl,
            timeout=timeoutSeconds,
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json; charset=utf-8",
            "Accept": "application/json",
        }

    def callMethod(
        self,
        method: str,
        httpMethod: str = "POST",
        params: dict[str, Any] | None = None,
        jsonBody: Any | None = None,
    ) -> dict[str, Any]:
        """
        Назначение:
            Вызов одного метода Web API (/api/<method>).

        Алгоритм:
            - Сетевые ошибки -> NETWORK_ERROR.
            - Статус != 200 -> код по статусу (401/403/429/HTTP_ERROR).
            - Тело не JSON-объект -> INVALID_JSON.
            - ok != true -> SLACK_API_ERROR со значением поля error.
        """
        self.calls_total += 1
        try:
            resp = self.client.request(
                httpMethod,
                f"/{method}",
                params=params,
                json=jsonBody,
                headers=self._headers(),
            )
        except httpx.HTTPError as exc:
            raise SlackApiError(
                f"Network error on {method}: {exc}",
                method=method,
                code=ErrorCode.NETWORK_ERROR.value,
                retryable=True,
            ) from exc

        body_snippet = truncateText(resp.text, 200) if resp.text else None
        if resp.status_code != 200:
            code = ErrorCode.from_status(resp.status_code)
            raise SlackApiError(
                f"HTTP {resp.status_code} on {method}",
                method=method,
                status_code=resp.status_code,
                body_snippet=body_snippet,
                code=code.value,
                retryable=code == ErrorCode.RATE_LIMITED or resp.status_code >= 500,
                details={"body_snippet": body_snippet},
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise SlackApiError(
                f"Invalid JSON response on {method}",
                method=method,
                status_code=resp.status_code,
                body_snippet=body_snippet,
                code=ErrorCode.INVALID_JSON.value,
            ) from exc
        if not isinstance(data, dict):
            raise SlackApiError(
                f"Unexpected response format on {method}",
                method=method,
                status_code=resp.status_code,
                body_snippet=body_snippet,
                code=ErrorCode.INVALID_JSON.value,
            )

        if not data.get("ok"):
            slack_error = data.get("error") or "unknown_error"
            raise SlackApiError(
                f"{method} failed: {slack_error}",
                method=method,
                status_code=resp.status_code,
                slack_error=slack_error,
                body_snippet=body_snippet,
                details=maskSecretsInObject(data),
            )
        return data

    def authTest(self) -> dict[str, Any]:
        return self.callMethod("auth.test")

    def usersList(self) -> dict[str, Any]:
        """
        Назначение:
            Полный список участников через постраничный users.list (cursor).
        """
        members: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            params: dict[str, Any] = {"limit": self.pageSize}
            if cursor:
                params["cursor"] = cursor
            data = self.callMethod("users.list", httpMethod="GET", params=params)
            members.extend(data.get("members") or [])
            cursor = (data.get("response_metadata") or {}).get("next_cursor") or None
            if not cursor:
                break
        return {"ok": True, "members": members}

    def usersProfileSet(self, user: str, profile: dict[str, Any]) -> dict[str, Any]:
        return self.callMethod("users.profile.set", jsonBody={"user": user, "profile": profile})

    def chatPostMessage(self, message: dict[str, Any]) -> dict[str, Any]:
        return self.callMethod("chat.postMessage", jsonBody=message)


def createSlackClient(settings, transport: httpx.BaseTransport | None = None) -> SlackApiClient:
    return SlackApiClient(
        token=settings.slack_token or "",
        baseUrl=settings.api_base_url,
        timeoutSeconds=settings.timeout_seconds,
        pageSize=settings.page_size,
        transport=transport,
    )


__all__ = ["SlackApiClient", "SlackApiError", "createSlackClient"]
