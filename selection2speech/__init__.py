"""
selection2speech - Speak selected text with ElevenLabs, optionally rewritten by OpenAI.

Rewrites a block of text into natural spoken phrasing (optional), synthesizes
it to MP3, archives the audio by creation time and hands back a playable handle.
"""

__version__ = "0.1.0"

from .archive import AudioArchiver, AudioArtifact
from .config import Configuration, ConfigurationStore, DEFAULT_SETTINGS
from .errors import ErrorOrigin, Result, ServiceError
from .model import SpeechSynthesizer, SynthesisRequest
from .orchestrator import InvocationReport, Orchestrator, Stage
from .rewrite import ChatMessage, TextRewriter
from .ui import PlaybackHandle, present
from .cli import main

__all__ = [
    "AudioArchiver", "AudioArtifact",
    "Configuration", "ConfigurationStore", "DEFAULT_SETTINGS",
    "ErrorOrigin", "Result", "ServiceError",
    "SpeechSynthesizer", "SynthesisRequest",
    "InvocationReport", "Orchestrator", "Stage",
    "ChatMessage", "TextRewriter",
    "PlaybackHandle", "present",
    "main",
]
