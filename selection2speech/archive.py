"""
Archive module for selection2speech package.

Persists synthesized audio into the content store under a name derived from
the moment of archiving.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

from .errors import ErrorOrigin, Result
from .host import ContentStore
from .model import AUDIO_MIME_TYPE

logger = logging.getLogger(__name__)

ARCHIVE_FOLDER = "eleven-labs-audio"
ARCHIVE_EXTENSION = ".mp3"


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class AudioArtifact:
    data: bytes
    created_at: int
    storage_path: str
    mime_type: str = AUDIO_MIME_TYPE


def storage_path_for(created_at: int, folder: str = ARCHIVE_FOLDER) -> str:
    return f"{folder}/{created_at}{ARCHIVE_EXTENSION}"


class AudioArchiver:
    def __init__(
        self,
        store: ContentStore,
        folder: str = ARCHIVE_FOLDER,
        clock: Callable[[], int] = epoch_millis,
    ):
        self.store = store
        self.folder = folder
        self.clock = clock

    def _ensure_folder(self) -> None:
        if self.store.exists(self.folder):
            return
        try:
            self.store.create_folder(self.folder)
        except FileExistsError:
            # created concurrently by another invocation
            pass

    def _write(self, data: bytes) -> AudioArtifact:
        self._ensure_folder()
        created_at = self.clock()
        artifact = AudioArtifact(data=data, created_at=created_at, storage_path=storage_path_for(created_at, self.folder))
        self.store.create_file(artifact.storage_path, data)
        return artifact

    async def archive(self, data: bytes) -> Result[AudioArtifact]:
        """Write the audio into the archive folder; failures are not retried."""
        try:
            artifact = await asyncio.to_thread(self._write, data)
        except OSError as exc:
            logger.error("Archiving audio failed: %s", exc)
            return Result.failure(ErrorOrigin.FILESYSTEM, f"Could not save audio: {exc}", exc)
        logger.info("Saved audio to %s", artifact.storage_path)
        return Result.success(artifact)
