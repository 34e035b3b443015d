"""
Sound output: speak / beep on the local machine.

Playback is fire-and-forget. A launch counts as acknowledged once the
process has started and has not failed within a short watch window; the
channel never waits for the sound to finish.
"""

import asyncio
import platform
import subprocess
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from task_notify.config import SoundChannelConfig
from task_notify.errors import SideEffectError
from task_notify.output.base import Channel, ChannelResult, NotificationRequest

logger = structlog.get_logger()

SPOKEN_TEXT = "Task completed"
LAUNCH_WATCH_SECONDS = 1.0


@dataclass(frozen=True)
class SoundCommands:
    primary: list[str]
    backup: list[str]


@dataclass(frozen=True)
class SoundLaunch:
    argv: list[str]
    pid: int | None = None


Launcher = Callable[[list[str]], Awaitable[SoundLaunch]]


def commands_for(system: str | None = None) -> SoundCommands:
    """Pick primary/backup commands for the running OS."""
    system = (system or platform.system()).lower()

    if system == "windows":
        speech = (
            "Add-Type -AssemblyName System.Speech; "
            f"(New-Object System.Speech.Synthesis.SpeechSynthesizer).Speak('{SPOKEN_TEXT}'); "
            "[console]::Beep(800, 300)"
        )
        return SoundCommands(
            primary=["powershell", "-Command", speech],
            backup=["powershell", "-Command", "[console]::Beep(800, 500)"],
        )
    if system == "darwin":
        return SoundCommands(
            primary=["say", SPOKEN_TEXT],
            backup=["afplay", "/System/Library/Sounds/Glass.aiff"],
        )
    return SoundCommands(
        primary=["spd-say", SPOKEN_TEXT],
        backup=["paplay", "/usr/share/sounds/freedesktop/stereo/complete.oga"],
    )


async def spawn_sound(argv: list[str], watch: float = LAUNCH_WATCH_SECONDS) -> SoundLaunch:
    """Start ``argv`` detached and acknowledge the launch.

    Raises SideEffectError if the process cannot be spawned or exits
    non-zero inside the watch window. Still running after the window
    counts as launched.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        raise SideEffectError(f"Cannot start {argv[0]}: {e}") from e

    try:
        returncode = await asyncio.wait_for(proc.wait(), timeout=watch)
    except asyncio.TimeoutError:
        return SoundLaunch(argv=argv, pid=proc.pid)

    if returncode != 0:
        raise SideEffectError(f"{argv[0]} exited with code {returncode}")
    return SoundLaunch(argv=argv, pid=proc.pid)


class SoundChannel(Channel):
    name = "sound"
    effect = "audible cue"

    def __init__(
        self,
        config: SoundChannelConfig,
        commands: SoundCommands | None = None,
        launcher: Launcher | None = None,
    ):
        self.config = config
        self.commands = commands or commands_for()
        self._launch = launcher or spawn_sound
        self.launches: list[SoundLaunch] = []

    async def deliver(self, request: NotificationRequest) -> ChannelResult:
        log = logger.bind(command=self.commands.primary[0])
        try:
            self.launches.append(await self._launch(self.commands.primary))
            log.info("output.sound.launched")
            return self.success()
        except SideEffectError as e:
            if not self.config.backup:
                log.warning("output.sound.failed", error=str(e))
                return self.failure(str(e))
            primary_error = e

        log.info("output.sound.fallback", error=str(primary_error))
        try:
            self.launches.append(await self._launch(self.commands.backup))
        except SideEffectError as e:
            log.warning("output.sound.fallback_failed", error=str(e))
            return self.failure(f"{primary_error}; fallback failed: {e}")

        log.info("output.sound.launched", fallback=True)
        return self.success()
