import pathlib
import sys
import threading
from typing import Dict, List

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


class MemoryContentStore:
    """In-memory ContentStore; set fail_writes to simulate a full disk."""

    def __init__(self, folders=None, fail_writes: bool = False):
        self.folders = set(folders or [])
        self.files: Dict[str, bytes] = {}
        self.fail_writes = fail_writes
        self.created_folders: List[str] = []

    def exists(self, path: str) -> bool:
        return path in self.folders or path in self.files

    def create_folder(self, path: str) -> None:
        if path in self.folders:
            raise FileExistsError(path)
        self.folders.add(path)
        self.created_folders.append(path)

    def create_file(self, path: str, data: bytes) -> None:
        if self.fail_writes:
            raise OSError(28, "No space left on device")
        if path in self.files:
            raise FileExistsError(path)
        self.files[path] = data


class RecordingNotifier:
    def __init__(self):
        self.messages: List[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)


class DictStorage:
    """SettingsStorage keeping the persisted object in memory."""

    def __init__(self, data=None, error: Exception = None):
        self.data = data
        self.error = error

    def load_data(self):
        if self.error is not None:
            raise self.error
        return self.data

    def save_data(self, data):
        if self.error is not None:
            raise self.error
        self.data = dict(data)


@pytest.fixture
def content_store():
    return MemoryContentStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


def counter_clock(start: int = 1_700_000_000_000):
    """Millisecond clock that advances by one on every call."""
    state = {"now": start - 1}
    lock = threading.Lock()

    def clock() -> int:
        with lock:
            state["now"] += 1
            return state["now"]

    return clock
