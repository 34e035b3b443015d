import asyncio
import sys

import httpx
import pytest

from task_notify.config import FeishuChannelConfig, SoundChannelConfig, TelegramChannelConfig
from task_notify.errors import SideEffectError
from task_notify.output.base import NotificationRequest
from task_notify.output.feishu import WebhookChannel
from task_notify.output.sound import SoundChannel, SoundCommands, SoundLaunch, commands_for, spawn_sound
from task_notify.output.telegram import TelegramChannel

from conftest import RecordingTransport

WEBHOOK = "https://open.feishu.cn/open-apis/bot/v2/hook/abc123"
REQUEST = NotificationRequest(message="build finished", project_name="demo")


def feishu(**overrides) -> FeishuChannelConfig:
    return FeishuChannelConfig(**{"enabled": True, "webhook_url": WEBHOOK, **overrides})


def test_request_title_puts_project_first():
    assert REQUEST.title == "demo: build finished"
    assert NotificationRequest(message="done").title == "done"


class TestWebhookChannel:
    @pytest.mark.asyncio
    async def test_success_code_zero(self, feishu_ok):
        async with feishu_ok.client() as http:
            result = await WebhookChannel(feishu(), http=http).deliver(REQUEST)

        assert result.success
        assert result.channel == "feishu"
        assert result.effect == "chat message"
        assert result.error is None

        sent = feishu_ok.sent_json()
        assert sent["msg_type"] == "post"
        assert sent["content"]["post"]["zh_cn"]["title"] == "demo: build finished"

    @pytest.mark.asyncio
    async def test_nonzero_code_is_failure_with_msg(self):
        transport = RecordingTransport(
            lambda request: httpx.Response(200, json={"code": 9499, "msg": "Bad Request"})
        )
        async with transport.client() as http:
            result = await WebhookChannel(feishu(), http=http).deliver(REQUEST)

        assert not result.success
        assert result.error == "Bad Request"
        assert not result.config_error

    @pytest.mark.asyncio
    async def test_non_json_response_is_failure(self):
        transport = RecordingTransport(lambda request: httpx.Response(200, text="not json"))
        async with transport.client() as http:
            result = await WebhookChannel(feishu(), http=http).deliver(REQUEST)

        assert not result.success
        assert "Malformed" in result.error

    @pytest.mark.asyncio
    async def test_network_error_is_failure(self):
        def boom(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        async with RecordingTransport(boom).client() as http:
            result = await WebhookChannel(feishu(), http=http).deliver(REQUEST)

        assert not result.success
        assert "timed out" in result.error

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url",
        ["", "https://open.feishu.cn/open-apis/bot/v2/hook/YOUR_WEBHOOK_URL_HERE"],
    )
    async def test_placeholder_url_never_hits_network(self, feishu_ok, url):
        async with feishu_ok.client() as http:
            result = await WebhookChannel(feishu(webhook_url=url), http=http).deliver(REQUEST)

        assert not result.success
        assert result.config_error
        assert feishu_ok.requests == []

    @pytest.mark.asyncio
    async def test_text_msg_type(self, feishu_ok):
        async with feishu_ok.client() as http:
            await WebhookChannel(feishu(msg_type="text"), http=http).deliver(REQUEST)

        sent = feishu_ok.sent_json()
        assert sent["msg_type"] == "text"
        assert sent["content"]["text"].startswith("demo: build finished\n")

    @pytest.mark.asyncio
    async def test_card_msg_type(self, feishu_ok):
        async with feishu_ok.client() as http:
            await WebhookChannel(feishu(msg_type="interactive", template_id="tpl"), http=http).deliver(REQUEST)

        data = feishu_ok.sent_json()["content"]["data"]
        assert data["template_id"] == "tpl"
        assert data["template_variable"]["title"] == "demo: build finished"


class FakeLauncher:
    def __init__(self, fail: set[str] = frozenset()):
        self.fail = fail
        self.calls: list[list[str]] = []

    async def __call__(self, argv: list[str]) -> SoundLaunch:
        self.calls.append(argv)
        if argv[0] in self.fail:
            raise SideEffectError(f"{argv[0]} exited with code 1")
        return SoundLaunch(argv=argv, pid=4242)


COMMANDS = SoundCommands(primary=["speak", "Task completed"], backup=["beep"])


class TestSoundChannel:
    @pytest.mark.asyncio
    async def test_primary_launch_succeeds(self):
        launcher = FakeLauncher()
        channel = SoundChannel(SoundChannelConfig(backup=True), commands=COMMANDS, launcher=launcher)

        result = await channel.deliver(REQUEST)

        assert result.success
        assert result.effect == "audible cue"
        assert launcher.calls == [COMMANDS.primary]
        assert [launch.argv for launch in channel.launches] == [COMMANDS.primary]

    @pytest.mark.asyncio
    async def test_backup_attempted_when_primary_fails(self):
        launcher = FakeLauncher(fail={"speak"})
        channel = SoundChannel(SoundChannelConfig(backup=True), commands=COMMANDS, launcher=launcher)

        result = await channel.deliver(REQUEST)

        assert result.success
        assert launcher.calls == [COMMANDS.primary, COMMANDS.backup]

    @pytest.mark.asyncio
    async def test_no_backup_when_disabled(self):
        launcher = FakeLauncher(fail={"speak"})
        channel = SoundChannel(SoundChannelConfig(backup=False), commands=COMMANDS, launcher=launcher)

        result = await channel.deliver(REQUEST)

        assert not result.success
        assert "speak exited" in result.error
        assert launcher.calls == [COMMANDS.primary]

    @pytest.mark.asyncio
    async def test_both_attempts_fail(self):
        launcher = FakeLauncher(fail={"speak", "beep"})
        channel = SoundChannel(SoundChannelConfig(backup=True), commands=COMMANDS, launcher=launcher)

        result = await channel.deliver(REQUEST)

        assert not result.success
        assert "fallback failed" in result.error
        assert channel.launches == []

    def test_commands_per_platform(self):
        assert commands_for("Windows").primary[0] == "powershell"
        assert commands_for("Darwin").primary[0] == "say"
        assert commands_for("Linux").backup[0] == "paplay"


class TestTelegramChannel:
    @pytest.mark.asyncio
    async def test_ok_response(self):
        transport = RecordingTransport(lambda request: httpx.Response(200, json={"ok": True, "result": {}}))
        config = TelegramChannelConfig(enabled=True, bot_token="123:abc", chat_id="42")
        async with transport.client() as http:
            result = await TelegramChannel(config, http=http).deliver(REQUEST)

        assert result.success
        request = transport.requests[0]
        assert request.url.path == "/bot123:abc/sendMessage"
        assert transport.sent_json()["chat_id"] == "42"

    @pytest.mark.asyncio
    async def test_api_error_is_failure(self):
        transport = RecordingTransport(
            lambda request: httpx.Response(400, json={"ok": False, "description": "chat not found"})
        )
        config = TelegramChannelConfig(enabled=True, bot_token="t", chat_id="c")
        async with transport.client() as http:
            result = await TelegramChannel(config, http=http).deliver(REQUEST)

        assert not result.success
        assert result.error == "chat not found"

    @pytest.mark.asyncio
    async def test_missing_credentials_is_config_error(self):
        result = await TelegramChannel(TelegramChannelConfig(enabled=True)).deliver(REQUEST)

        assert not result.success
        assert result.config_error


@pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX true/false/sleep")
class TestSpawnSound:
    @pytest.mark.asyncio
    async def test_nonzero_exit_raises(self):
        with pytest.raises(SideEffectError, match="exited with code 1"):
            await spawn_sound(["false"])

    @pytest.mark.asyncio
    async def test_missing_binary_raises(self):
        with pytest.raises(SideEffectError, match="Cannot start"):
            await spawn_sound(["task-notify-no-such-player"])

    @pytest.mark.asyncio
    async def test_still_running_after_watch_counts_as_launched(self):
        launch = await spawn_sound(["sleep", "0.5"], watch=0.1)

        assert launch.argv == ["sleep", "0.5"]
        assert launch.pid is not None
        # let the child exit before the loop closes
        await asyncio.sleep(0.6)

    @pytest.mark.asyncio
    async def test_channel_falls_back_with_real_launcher(self):
        commands = SoundCommands(primary=["false"], backup=["true"])
        channel = SoundChannel(SoundChannelConfig(backup=True), commands=commands)

        result = await channel.deliver(REQUEST)

        assert result.success
        assert [launch.argv for launch in channel.launches] == [["true"]]

    @pytest.mark.asyncio
    async def test_channel_without_backup_reports_real_failure(self):
        commands = SoundCommands(primary=["false"], backup=["true"])
        channel = SoundChannel(SoundChannelConfig(backup=False), commands=commands)

        result = await channel.deliver(REQUEST)

        assert not result.success
        assert "exited with code 1" in result.error
        assert channel.launches == []
