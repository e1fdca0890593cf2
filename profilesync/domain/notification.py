from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from profilesync.domain.models import UpdateResult

DEFAULT_ICON_URL = (
    "https://slack-files2.s3-us-west-2.amazonaws.com/avatars/2016-04-18/35486615538_c9bc6670992704e477bd_88.png"
)
DEFAULT_COLOR = "#81C784"
DEFAULT_TEXT = "Slackのプロフィールが更新されました"
DEFAULT_NOTICE_TITLE = "Slackの運用改善に関する周知"
DEFAULT_NOTICE_LINK = "https://mediado.slack.com/archives/C03TWFV95/p1527578576000324"
DEFAULT_CONTACT_TITLE = "Slack運用に関する問い合わせ"


def staticAttachment(title: str, title_link: str | None = None) -> dict[str, Any]:
    attachment: dict[str, Any] = {"title": title}
    if title_link:
        attachment["title_link"] = title_link
    return attachment


@dataclass(frozen=True)
class NotificationTemplate:
    """
    Назначение:
        Статическая часть уведомления: отправитель, оформление и
        завершающие информационные вложения (в фиксированном порядке).
    """

    icon_url: str = DEFAULT_ICON_URL
    color: str = DEFAULT_COLOR
    text: str = DEFAULT_TEXT
    before_label: str = "変更前"
    after_label: str = "変更後"
    trailing_attachments: tuple[dict[str, Any], ...] = (
        staticAttachment(DEFAULT_NOTICE_TITLE, DEFAULT_NOTICE_LINK),
        staticAttachment(DEFAULT_CONTACT_TITLE),
    )

    @classmethod
    def from_settings(cls, settings) -> "NotificationTemplate":
        return cls(
            icon_url=settings.icon_url,
            color=settings.notify_color,
            trailing_attachments=(
                staticAttachment(settings.notice_title, settings.notice_link),
                staticAttachment(settings.contact_title, settings.contact_link),
            ),
        )


def _display(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def composeNotification(result: UpdateResult, template: NotificationTemplate | None = None) -> dict[str, Any]:
    """
    Назначение:
        Собирает payload chat.postMessage с описанием изменений профиля.

    Контракт (вход/выход):
        - Вход: UpdateResult с выполненным (не пропущенным) запросом.
        - Выход: словарь channel/as_user/icon_url/text/attachments.

    Алгоритм:
        - channel = id обновлённого пользователя (личное сообщение от бота).
        - Первое вложение: по одному полю на каждое реально изменённое поле api_param.profile;
          старое значение из current_user_info.profile (пусто, если нет).
        - Далее статические вложения шаблона.

    Ошибки:
        ValueError, если запрос был пропущен (уведомлять не о чем).
    """
    template = template or NotificationTemplate()
    query = result.update_query
    if query.skip_call_api or query.api_param.profile is None:
        raise ValueError("Cannot compose notification for a skipped update")

    current_profile = (query.current_user_info or {}).get("profile") or {}
    fields = []
    for name, new_value in query.api_param.profile.items():
        fields.append(
            {
                "short": False,
                "title": name,
                "value": (
                    f"{template.before_label}: {_display(current_profile.get(name))}\n"
                    f"{template.after_label}: {_display(new_value)}"
                ),
            }
        )

    attachments: list[dict[str, Any]] = [{"color": template.color, "fields": fields}]
    attachments.extend(dict(a) for a in template.trailing_attachments)

    return {
        "channel": query.api_param.user,
        "as_user": False,
        "icon_url": template.icon_url,
        "text": template.text,
        "attachments": attachments,
    }


__all__ = ["NotificationTemplate", "composeNotification", "staticAttachment"]
