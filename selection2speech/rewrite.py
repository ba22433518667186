"""
Rewrite module for selection2speech package.

Turns selected text into natural spoken phrasing through a chat-completion
service before it is synthesized.
"""

import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, List, Optional

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from .config import DEFAULT_PROMPT, is_header_safe
from .errors import ErrorOrigin, Result

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TEXT_MODEL = "gpt-3.5-turbo"
DEFAULT_MAX_TOKENS = 250

# Fixed generation parameters, kept low-variance so rewrites stay literal.
GENERATION_PARAMS = {
    "temperature": 0.3,
    "top_p": 1,
    "presence_penalty": 0.5,
    "frequency_penalty": 0.5,
    "stream": False,
    "stop": None,
    "n": 1,
}


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str


def build_messages(text: str, prompt: str) -> List[ChatMessage]:
    """System instruction first, then the user's raw text."""
    return [
        ChatMessage("system", prompt or DEFAULT_PROMPT),
        ChatMessage("user", text),
    ]


def _salvage_json(body: str) -> Any:
    """
    Find the first JSON object in an otherwise malformed body that carries
    either a completion or an error.
    """
    decoder = json.JSONDecoder()
    start = body.find("{")
    while start != -1:
        try:
            payload, end = decoder.raw_decode(body, start)
        except ValueError:
            start = body.find("{", start + 1)
            continue
        if isinstance(payload, dict) and ("choices" in payload or "error" in payload):
            return payload
        start = body.find("{", end)
    return None


def _completion_content(payload: Any) -> Optional[str]:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


def _error_message(error: Any) -> str:
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return json.dumps(error) if not isinstance(error, str) else error


def interpret_completion(body: str) -> Result[str]:
    """
    Interpret a chat-completion response body.

    A structured ``error`` field is a service error. A body that is not valid
    JSON is still accepted when a completion can be recovered from it.
    """
    try:
        payload = json.loads(body)
    except ValueError:
        payload = _salvage_json(body)
        if payload is None:
            return Result.failure(ErrorOrigin.PARSE, "Response from completion service is not JSON", body)
        logger.debug("Recovered completion from malformed response body")

    if isinstance(payload, dict) and payload.get("error"):
        return Result.failure(ErrorOrigin.SERVICE, _error_message(payload["error"]), payload["error"])

    content = _completion_content(payload)
    if content is None:
        return Result.failure(ErrorOrigin.PARSE, "Response from completion service has no completion", payload)
    return Result.success(content)


class TextRewriter:
    def __init__(
        self,
        model: str = DEFAULT_TEXT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.http_client = http_client

    @property
    def url(self) -> str:
        return f"{self.base_url}/chat/completions"

    @property
    def uses_default_endpoint(self) -> bool:
        return self.base_url == DEFAULT_BASE_URL

    def _network_failure(self, detail: str, raw: Any = None) -> Result[str]:
        if self.uses_default_endpoint:
            message = f"Issue calling OpenAI API at {self.url}: {detail}"
        else:
            message = f"Issue calling specified url: {self.url} ({detail})"
        return Result.failure(ErrorOrigin.NETWORK, message, raw)

    async def rewrite(self, text: str, api_key: str, prompt: str) -> Result[str]:
        """Rewrite text as natural spoken phrasing; the completion is returned verbatim."""
        if not is_header_safe(api_key):
            return Result.failure(ErrorOrigin.CONFIGURATION, "OpenAI API key contains characters that are not printable ASCII")
        messages = [asdict(m) for m in build_messages(text, prompt)]
        client = AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            max_retries=0,
            http_client=self.http_client,
        )
        logger.info("Requesting rewrite from %s (model %s)", self.url, self.model)
        try:
            raw = await client.chat.completions.with_raw_response.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                **GENERATION_PARAMS,
            )
            body = raw.http_response.text
        except APIStatusError as exc:
            outcome = interpret_completion(exc.response.text)
            if outcome.error is not None and outcome.error.origin is ErrorOrigin.SERVICE:
                return outcome
            return self._network_failure(f"HTTP {exc.status_code}", exc.response.text)
        except APIConnectionError as exc:
            return self._network_failure(str(exc.__cause__ or exc), exc)
        finally:
            if self.http_client is None:
                await client.close()

        return interpret_completion(body)
