"""
Model module for selection2speech package.

Contains the voice catalog and speech synthesis against the ElevenLabs
text-to-speech API.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .config import is_header_safe
from .errors import ErrorOrigin, Result

logger = logging.getLogger(__name__)

# ----------------------------
# Constants and catalogs
# ----------------------------
SYNTHESIS_BASE_URL = "https://api.elevenlabs.io/v1/text-to-speech"

DEFAULT_VOICE_ID = "TxGEqnHWrfWFTfGW9XjX"

# Premade voices (availability may vary by account)
KNOWN_VOICES = {
    "Rachel": "21m00Tcm4TlvDq8ikWAM",
    "Domi": "AZnzlk1XvdvUeBnXmlld",
    "Bella": "EXAVITQu4vr4xnSDxMaL",
    "Antoni": "ErXwobaYiN019PkySvjV",
    "Elli": "MF3mGyEYCl7XYWbV9V6O",
    "Josh": "TxGEqnHWrfWFTfGW9XjX",
    "Arnold": "VR6AewLTigWG4xSOukaG",
    "Adam": "pNInz6obpgDQGcFmaJgB",
    "Sam": "yoZ06aMxZJJ28mfd3POQ",
}

AUDIO_MIME_TYPE = "audio/mpeg"


@dataclass(frozen=True)
class SynthesisRequest:
    text: str
    voice_id: str
    stability: float = 0.0
    similarity_boost: float = 0.0

    def __post_init__(self):
        for name in ("stability", "similarity_boost"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "voice_settings": {
                "stability": self.stability,
                "similarity_boost": self.similarity_boost,
            },
        }


def _detail_message(response: httpx.Response) -> str:
    """Pull a readable message out of an error response."""
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = None
    if isinstance(detail, dict) and detail.get("message"):
        return str(detail["message"])
    if isinstance(detail, str) and detail:
        return detail
    return f"HTTP {response.status_code} {response.reason_phrase}".strip()


# ----------------------------
# Audio synthesis
# ----------------------------
class SpeechSynthesizer:
    def __init__(
        self,
        base_url: str = SYNTHESIS_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client
        self.timeout = timeout

    async def _post(self, url: str, headers: Dict[str, str], payload: Dict[str, Any]) -> httpx.Response:
        if self.http_client is not None:
            return await self.http_client.post(url, headers=headers, json=payload)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, headers=headers, json=payload)

    async def synthesize(self, text: str, api_key: str, voice_id: str) -> Result[bytes]:
        """
        Synthesize text to speech with a single request (no retry).

        Args:
            text: Text to speak
            api_key: ElevenLabs API key
            voice_id: Voice to speak with

        Returns:
            Result holding the MP3 bytes, or the error that stopped synthesis
        """
        if not is_header_safe(api_key):
            return Result.failure(ErrorOrigin.CONFIGURATION, "ElevenLabs API key contains characters that are not printable ASCII")
        request = SynthesisRequest(text=text, voice_id=voice_id)
        url = f"{self.base_url}/{request.voice_id}"
        headers = {
            "xi-api-key": api_key,
            "Content-Type": "application/json",
            "accept": AUDIO_MIME_TYPE,
        }
        logger.info("Synthesizing %d characters with voice %s", len(text), voice_id)
        try:
            response = await self._post(url, headers, request.to_payload())
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return Result.failure(ErrorOrigin.NETWORK, f"Issue calling {url}: {exc}", exc)

        if response.status_code >= 400:
            return Result.failure(ErrorOrigin.SERVICE, _detail_message(response), response.text)

        content_type = response.headers.get("content-type", "")
        if content_type.startswith("application/json") or content_type.startswith("text/"):
            return Result.failure(
                ErrorOrigin.PARSE, f"Expected {AUDIO_MIME_TYPE} from {url}, got {content_type}", response.text
            )
        if not response.content:
            return Result.failure(ErrorOrigin.PARSE, f"Empty audio payload from {url}")
        return Result.success(response.content)
