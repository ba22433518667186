"""
UI module for selection2speech package.

Contains user notices, progress display, the playable audio handle and local
audio playback.
"""

import base64
import logging
import shutil
import subprocess
import sys
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from .model import AUDIO_MIME_TYPE

logger = logging.getLogger(__name__)

NOTICE_PREFIX = "[selection2speech]"


class ConsoleNotifier:
    """Transient notices printed to the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)

    def notify(self, message: str) -> None:
        self.console.print(f"{NOTICE_PREFIX} {message}", markup=False, highlight=False)


@contextmanager
def progress_context(console: Optional[Console] = None):
    """Spinner with elapsed time; yields the Progress instance."""
    with Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        TimeElapsedColumn(),
        transient=True,
        console=console or Console(stderr=True),
    ) as progress:
        yield progress


# ----------------------------
# Playable handle
# ----------------------------
@dataclass(frozen=True)
class PlaybackHandle:
    """Audio bytes packaged for a host UI to attach and start."""

    data: bytes
    mime_type: str = AUDIO_MIME_TYPE
    autoplay: bool = True
    controls: bool = True

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    def play(self) -> int:
        """Play the audio with a local player through a temporary file."""
        with tempfile.TemporaryDirectory(prefix="selection2speech_") as tmpdir:
            path = Path(tmpdir) / "selection.mp3"
            path.write_bytes(self.data)
            return play_audio_file(path)


def present(data: bytes) -> PlaybackHandle:
    return PlaybackHandle(data=data)


# ----------------------------
# Local playback
# ----------------------------
def _select_player_cmd(audio_path: Path):
    """Return a list suitable for subprocess to play audio on macOS/Linux, or None if not found."""
    platform = sys.platform

    if platform == "darwin" and shutil.which("afplay"):
        return ["afplay", str(audio_path)]
    if not (platform == "darwin" or platform.startswith("linux")):
        return None

    if shutil.which("ffplay"):
        return ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet", str(audio_path)]
    if shutil.which("mpv"):
        return ["mpv", "--no-video", "--really-quiet", str(audio_path)]
    if shutil.which("vlc"):
        return ["vlc", "--intf", "dummy", "--play-and-exit", "--quiet", str(audio_path)]
    if shutil.which("mpg123"):
        return ["mpg123", "-q", str(audio_path)]
    if shutil.which("mplayer"):
        return ["mplayer", "-really-quiet", str(audio_path)]
    if shutil.which("play"):
        return ["play", "-q", str(audio_path)]
    return None


EQ_FRAMES = [
    "▁▂▃▄▅▆▇▆▅▄▃▂",
    "▂▃▄▅▆▇▆▅▄▃▂▁",
    "▃▄▅▆▇▆▅▄▃▂▁▂",
    "▄▅▆▇▆▅▄▃▂▁▂▃",
    "▅▆▇▆▅▄▃▂▁▂▃▄",
    "▆▇▆▅▄▃▂▁▂▃▄▅",
    "▇▆▅▄▃▂▁▂▃▄▅▆",
    "▆▅▄▃▂▁▂▃▄▅▆▇",
]


def play_audio_file(audio_path: Path) -> int:
    """
    Play an audio file using available system players.

    Returns:
        Return code from the player (0 for success, 1 when no player was found)
    """
    cmd = _select_player_cmd(audio_path)
    if not cmd:
        logger.warning("No suitable audio player found, skipping playback")
        return 1

    logger.debug("Playing %s with %s", audio_path, cmd[0])
    with progress_context() as progress:
        task = progress.add_task("Playing audio…", total=None)
        proc = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        i = 0
        while proc.poll() is None:
            progress.update(task, description=f"Playing audio {EQ_FRAMES[i % len(EQ_FRAMES)]}")
            time.sleep(0.15)
            i += 1
        progress.stop_task(task)
    return proc.returncode or 0
