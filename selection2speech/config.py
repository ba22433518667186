"""
Config module for selection2speech package.

Holds the Configuration record, its defaults and the store that merges
persisted values over those defaults.
"""

import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Mapping, Optional

from .errors import ErrorOrigin, Result
from .host import SettingsStorage

logger = logging.getLogger(__name__)

PLACEHOLDER_KEY = "default"

DEFAULT_PROMPT = (
    "Convert the following text to natural sounding spoken text, similar to a human voice."
)

# Environment variables that override persisted credentials for a single run.
ENV_OVERRIDES = {
    "synthesis_api_key": "ELEVENLABS_API_KEY",
    "rewrite_api_key": "OPENAI_API_KEY",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class Configuration:
    synthesis_api_key: str = PLACEHOLDER_KEY
    rewrite_api_key: str = PLACEHOLDER_KEY
    rewrite_enabled: bool = False
    rewrite_prompt: str = DEFAULT_PROMPT


DEFAULT_SETTINGS = Configuration()

FIELD_TYPES = {f.name: type(getattr(DEFAULT_SETTINGS, f.name)) for f in fields(Configuration)}


def is_placeholder(value: Optional[str]) -> bool:
    """True when a credential is missing or still the shipped placeholder."""
    return not value or not value.strip() or value.strip() == PLACEHOLDER_KEY


def is_header_safe(value: str) -> bool:
    """True when a credential can be sent in an HTTP header (printable ASCII)."""
    return value.isascii() and value.isprintable()


def merge_settings(persisted: Any) -> Configuration:
    """
    Merge a persisted key/value object over DEFAULT_SETTINGS.

    Non-mapping input is treated as empty; unknown keys are ignored and values
    of the wrong type fall back to the default for that field.
    """
    merged = asdict(DEFAULT_SETTINGS)
    if not isinstance(persisted, Mapping):
        if persisted is not None:
            logger.warning("Ignoring persisted settings of type %s", type(persisted).__name__)
        return Configuration(**merged)

    for name, expected in FIELD_TYPES.items():
        if name not in persisted:
            continue
        value = persisted[name]
        if type(value) is expected:
            merged[name] = value
        else:
            logger.warning("Ignoring persisted %s: expected %s", name, expected.__name__)
    return Configuration(**merged)


def parse_field_value(name: str, raw: str) -> Any:
    """Convert a textual settings value (e.g. from the command line) to the field's type."""
    if name not in FIELD_TYPES:
        raise KeyError(name)
    if FIELD_TYPES[name] is bool:
        lowered = raw.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"{name} expects a boolean (true/false), got {raw!r}")
    return raw


def with_environment(config: Configuration, environ: Mapping[str, str] = os.environ) -> Configuration:
    """Return a copy of config with credentials taken from the environment where set."""
    overrides = {}
    for name, var in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            overrides[name] = value
    return replace(config, **overrides) if overrides else config


class ConfigurationStore:
    def __init__(self, storage: SettingsStorage):
        self.storage = storage

    def load(self) -> Configuration:
        """Load the configuration; unreadable persisted data counts as absent."""
        try:
            persisted = self.storage.load_data()
        except (OSError, ValueError) as exc:
            logger.warning("Could not read persisted settings, using defaults: %s", exc)
            persisted = None
        return merge_settings(persisted)

    def save(self, config: Configuration) -> Result[None]:
        try:
            self.storage.save_data(asdict(config))
        except OSError as exc:
            logger.error("Saving settings failed: %s", exc)
            return Result.failure(ErrorOrigin.FILESYSTEM, f"Could not save settings: {exc}", exc)
        return Result.success(None)

    def update(self, config: Configuration, name: str, value: Any) -> Result[None]:
        """Set a single field and persist the whole configuration right away."""
        if name not in FIELD_TYPES:
            raise KeyError(name)
        if type(value) is not FIELD_TYPES[name]:
            raise TypeError(f"{name} expects {FIELD_TYPES[name].__name__}")
        setattr(config, name, value)
        return self.save(config)
