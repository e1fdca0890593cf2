from __future__ import annotations

SENSITIVE_KEYS: tuple[str, ...] = ("token", "authorization", "password", "secret", "client_secret")


def maskSecret(value: str | None) -> str | None:
    """
    Назначение:
        Маскирует токен Slack для вывода в stdout/логи.

    Выходные данные:
        str | None
            None, если значения нет; иначе префикс типа токена (xoxb-/xoxp-) и '***'.
    """
    if value is None:
        return None
    prefix, sep, _rest = value.partition("-")
    if sep and prefix.startswith("xox"):
        return f"{prefix}-***"
    return "***"


def truncateText(value: str | None, limit: int = 500) -> str | None:
    """
    Назначение:
        Ограничивает длину текста (тело ответа API) для логов и отчётов.
    """
    if value is None:
        return None
    if len(value) <= limit:
        return value
    suffix = "..." if limit > 3 else ""
    return value[: limit - len(suffix)] + suffix


def maskSecretsInObject(obj: object, sensitive_keys: tuple[str, ...] = SENSITIVE_KEYS) -> object:
    """
    Назначение:
        Рекурсивно заменяет значения чувствительных ключей в dict/list на маску.
    """
    sensitive = {key.lower() for key in sensitive_keys}
    if isinstance(obj, dict):
        masked: dict[str, object] = {}
        for k, v in obj.items():
            if isinstance(k, str) and k.lower() in sensitive:
                masked[k] = maskSecret(str(v)) if v is not None else None
            else:
                masked[k] = maskSecretsInObject(v, sensitive_keys)
        return masked
    if isinstance(obj, list):
        return [maskSecretsInObject(item, sensitive_keys) for item in obj]
    return obj
