from __future__ import annotations

import json
import shutil
from pathlib import Path

import httpx
from typer.testing import CliRunner

import profilesync.cli as cli
from profilesync.infra.slack_client import SlackApiClient

RESOURCES = Path(__file__).resolve().parent / "resources"

runner = CliRunner()


class SlackStub:
    def __init__(self, fail_profile_set: bool = False):
        self.requests: list[tuple[str, dict | None]] = []
        self.fail_profile_set = fail_profile_set

    def __call__(self, request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1]
        body = json.loads(request.content.decode("utf-8")) if request.content else None
        self.requests.append((method, body))
        if method == "auth.test":
            return httpx.Response(200, json={"ok": True, "user": "bot", "user_id": "BOTID1", "team": "XXXX Team"})
        if method == "users.list":
            return httpx.Response(200, json=json.loads((RESOURCES / "user-list.json").read_text(encoding="utf-8")))
        if method == "users.profile.set":
            if self.fail_profile_set:
                return httpx.Response(200, json={"ok": False, "error": "not_allowed_token_type"})
            return httpx.Response(200, json={"ok": True, "profile": body["profile"]})
        if method == "chat.postMessage":
            return httpx.Response(200, json={"ok": True, "channel": body["channel"], "ts": "1.0"})
        return httpx.Response(404, text="unknown method")

    def methods(self) -> list[str]:
        return [m for m, _ in self.requests]


def _patch_client(monkeypatch, stub: SlackStub) -> list[SlackApiClient]:
    created: list[SlackApiClient] = []

    def factory(settings, transport=None):
        client = SlackApiClient(token=settings.slack_token, baseUrl="https://slack.local/api", transport=httpx.MockTransport(stub))
        created.append(client)
        return client

    monkeypatch.setattr(cli, "createSlackClient", factory)
    return created


def _base_args(tmp_path: Path) -> list[str]:
    return [
        "--run-id", "run-1",
        "--log-dir", str(tmp_path / "logs"),
        "--report-dir", str(tmp_path / "reports"),
        "--token", "xoxb-test",
    ]


def _csv(tmp_path: Path) -> str:
    target = tmp_path / "update-profiles.csv"
    shutil.copy(RESOURCES / "update-profiles.csv", target)
    return str(target)


def test_apply_updates_and_notifies(tmp_path: Path, monkeypatch):
    stub = SlackStub()
    _patch_client(monkeypatch, stub)

    result = runner.invoke(cli.app, [*_base_args(tmp_path), "apply", "--csv", _csv(tmp_path)])

    assert result.exit_code == 0, result.output
    assert stub.methods() == ["auth.test", "users.list", "users.profile.set", "chat.postMessage"]
    assert stub.requests[2][1] == {"user": "USERID2", "profile": {"status_emoji": ":sleepy:"}}
    assert "rows=2 updated=1 skipped=1 failed=0" in result.output

    report = json.loads((tmp_path / "reports" / "report_apply_run-1.json").read_text(encoding="utf-8"))
    assert report["summary"]["operations"]["profileSet"] == {"try": 1, "skip": 1, "success": 1, "error": 0}
    assert report["items"][0]["skip_reasons"][0]["reason"] == "admin_user_cannot_be_updated"
    assert report["items"][1]["changes"] == {"status_emoji": ":sleepy:"}
    assert report["items"][1]["notified"] is True
    assert (tmp_path / "logs" / "apply_run-1.log").exists()


def test_apply_without_notifications(tmp_path: Path, monkeypatch):
    stub = SlackStub()
    _patch_client(monkeypatch, stub)

    result = runner.invoke(cli.app, [*_base_args(tmp_path), "apply", "--csv", _csv(tmp_path), "--no-notify"])

    assert result.exit_code == 0, result.output
    assert "chat.postMessage" not in stub.methods()


def test_apply_row_failure_exits_with_1(tmp_path: Path, monkeypatch):
    stub = SlackStub(fail_profile_set=True)
    _patch_client(monkeypatch, stub)

    result = runner.invoke(cli.app, [*_base_args(tmp_path), "apply", "--csv", _csv(tmp_path)])

    assert result.exit_code == 1
    assert "failed=1" in result.output
    report = json.loads((tmp_path / "reports" / "report_apply_run-1.json").read_text(encoding="utf-8"))
    assert report["items"][1]["status"] == "failed"
    assert report["items"][1]["errors"][0]["slack_error"] == "not_allowed_token_type"


def test_plan_makes_no_mutations(tmp_path: Path, monkeypatch):
    stub = SlackStub()
    _patch_client(monkeypatch, stub)

    result = runner.invoke(cli.app, [*_base_args(tmp_path), "plan", "--csv", _csv(tmp_path)])

    assert result.exit_code == 0, result.output
    assert stub.methods() == ["users.list"]
    assert "reasons=admin_user_cannot_be_updated" in result.output
    assert "update user=USERID2 fields=status_emoji" in result.output


def test_check_api_prints_team(tmp_path: Path, monkeypatch):
    stub = SlackStub()
    _patch_client(monkeypatch, stub)

    result = runner.invoke(cli.app, [*_base_args(tmp_path), "check-api"])

    assert result.exit_code == 0, result.output
    assert "api ok team=XXXX Team user=bot" in result.output


def test_http_client_is_closed_after_command(tmp_path: Path, monkeypatch):
    stub = SlackStub()
    created = _patch_client(monkeypatch, stub)

    result = runner.invoke(cli.app, [*_base_args(tmp_path), "apply", "--csv", _csv(tmp_path)])

    assert result.exit_code == 0, result.output
    assert len(created) == 1
    assert created[0].client.is_closed


def test_apply_rejects_short_row_without_mutations(tmp_path: Path, monkeypatch):
    stub = SlackStub()
    created = _patch_client(monkeypatch, stub)
    csv_path = tmp_path / "short.csv"
    csv_path.write_text("email,display_name,real_name\njiro@example.com,JIRO-T\n", encoding="utf-8")

    result = runner.invoke(cli.app, [*_base_args(tmp_path), "apply", "--csv", str(csv_path)])

    assert result.exit_code == 2
    assert "users.profile.set" not in stub.methods()
    assert "chat.postMessage" not in stub.methods()
    assert created[0].client.is_closed
