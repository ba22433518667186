"""
Host collaborators for selection2speech package.

Contracts the core needs from its host (text selection, notices, settings
persistence, content storage) plus the local filesystem implementations used
by the CLI. Every collaborator is passed explicitly to the component using it.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Protocol

logger = logging.getLogger(__name__)


class SelectionSource(Protocol):
    def get_selection(self) -> str: ...


class Notifier(Protocol):
    def notify(self, message: str) -> None: ...


class SettingsStorage(Protocol):
    def load_data(self) -> Any: ...

    def save_data(self, data: Dict[str, Any]) -> None: ...


class ContentStore(Protocol):
    def exists(self, path: str) -> bool: ...

    def create_folder(self, path: str) -> None: ...

    def create_file(self, path: str, data: bytes) -> None: ...


class TextSelection:
    """A fixed block of selected text."""

    def __init__(self, text: str):
        self.text = text

    def get_selection(self) -> str:
        return self.text


class JsonSettingsStorage:
    """Keeps the settings object as a flat JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load_data(self) -> Any:
        if not self.path.exists():
            return None
        return json.loads(self.path.read_text(encoding="utf-8"))

    def save_data(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.debug("Saved settings to %s", self.path)


class VaultContentStore:
    """
    Hierarchical content store rooted at a directory (the vault).

    Paths are '/'-separated and relative to the root.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        return self.root.joinpath(*path.split("/"))

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def create_folder(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True)

    def create_file(self, path: str, data: bytes) -> None:
        # "xb" refuses to overwrite an existing entry
        with open(self._resolve(path), "xb") as fh:
            fh.write(data)
