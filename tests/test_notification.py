from __future__ import annotations

import pytest

from profilesync.domain.models import ApiParam, DesiredProfile, SkipReason, SkipReasonCode, UpdateQuery, UpdateResult
from profilesync.domain.notification import NotificationTemplate, composeNotification, staticAttachment

JIRO = {
    "id": "USERID2",
    "name": "jiro",
    "real_name": "田中 二郎",
    "profile": {
        "real_name": "田中 二郎",
        "display_name": "JIRO",
        "status_text": "",
        "status_emoji": "",
    },
    "is_admin": False,
    "is_owner": False,
    "is_primary_owner": False,
}


def _result(profile: dict, current: dict = JIRO) -> UpdateResult:
    query = UpdateQuery(
        skip_call_api=False,
        skip_reasons=[],
        skipped_columns=[],
        current_user_info=current,
        csv_param=DesiredProfile(profile={"email": "jiro@example.com", **profile}),
        api_param=ApiParam(user=current["id"], profile=profile),
    )
    return UpdateResult(api_call_response={"ok": True}, update_query=query)


def test_single_changed_field_message():
    message = composeNotification(_result({"status_emoji": ":sleepy:"}))

    assert message["channel"] == "USERID2"
    assert message["as_user"] is False
    assert message["icon_url"] == (
        "https://slack-files2.s3-us-west-2.amazonaws.com/avatars/2016-04-18/35486615538_c9bc6670992704e477bd_88.png"
    )
    assert len(message["attachments"]) == 3
    assert message["attachments"][0] == {
        "color": "#81C784",
        "fields": [
            {
                "short": False,
                "title": "status_emoji",
                "value": "変更前: \n変更後: :sleepy:",
            },
        ],
    }
    assert message["attachments"][1] == {
        "title": "Slackの運用改善に関する周知",
        "title_link": "https://mediado.slack.com/archives/C03TWFV95/p1527578576000324",
    }
    assert message["attachments"][2] == {"title": "Slack運用に関する問い合わせ"}


def test_fields_follow_payload_order_and_old_values():
    message = composeNotification(_result({"display_name": "JIRO-T", "title": "Engineer"}))

    fields = message["attachments"][0]["fields"]
    assert [f["title"] for f in fields] == ["display_name", "title"]
    assert fields[0]["value"] == "変更前: JIRO\n変更後: JIRO-T"
    assert fields[1]["value"] == "変更前: \n変更後: Engineer"


def test_trailing_attachments_come_from_template():
    template = NotificationTemplate(
        icon_url="https://example.com/bot.png",
        color="#000000",
        trailing_attachments=(staticAttachment("notice", "https://example.com/n"), staticAttachment("contact")),
    )

    message = composeNotification(_result({"status_emoji": ":sleepy:"}), template)

    assert message["icon_url"] == "https://example.com/bot.png"
    assert message["attachments"][0]["color"] == "#000000"
    assert message["attachments"][1:] == [
        {"title": "notice", "title_link": "https://example.com/n"},
        {"title": "contact"},
    ]


def test_skipped_update_cannot_be_composed():
    query = UpdateQuery(
        skip_call_api=True,
        skip_reasons=[SkipReason.of(SkipReasonCode.ALL_FIELDS_ARE_UPDATED)],
        skipped_columns=[],
        current_user_info=JIRO,
        csv_param=DesiredProfile(profile={"email": "jiro@example.com"}),
        api_param=ApiParam(),
    )

    with pytest.raises(ValueError):
        composeNotification(UpdateResult(api_call_response=None, update_query=query))
