"""
Read-aloud support for lesson text.

Lesson bodies contain LaTeX that a voice cannot say, and ElevenLabs caps the
text per request, so a lesson is cleaned, split into ordered chunks that end
on a sentence where possible, and synthesized one chunk at a time. Each
request carries the tail of the previous chunk and the head of the next one
so intonation carries across the seams.
"""

from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import httpx

from .errors import ConfigurationError, InputValidationError, UpstreamUnavailable
from .settings import settings

logger = logging.getLogger(__name__)

MAX_CHARS_PER_CHUNK = 3500
CONTEXT_CHARS = 500
SOFT_BREAK_RATIO = 0.8

_BLOCK_MATH = re.compile(r"\$\$[\s\S]+?\$\$")
_INLINE_MATH = re.compile(r"\$[^$]+\$")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class SpeechChunk:
    text: str
    order: int


def strip_math_for_speech(text: Optional[str]) -> str:
    if not text or not isinstance(text, str):
        return ""
    text = _BLOCK_MATH.sub(" ", text)
    text = _INLINE_MATH.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def chunk_text(text: Optional[str], max_len: int = MAX_CHARS_PER_CHUNK) -> List[SpeechChunk]:
    """
    Split cleaned lesson text into chunks of at most ``max_len`` characters.

    A chunk ends at the last period or newline inside the window when that
    lies past 80% of the window; otherwise it ends at the 80% mark.
    """
    if max_len < 1:
        raise InputValidationError("max_len must be positive")
    cleaned = strip_math_for_speech(text)
    if not cleaned:
        return []
    if len(cleaned) <= max_len:
        return [SpeechChunk(text=cleaned, order=0)]

    pieces: List[str] = []
    rest = cleaned
    soft_break = int(max_len * SOFT_BREAK_RATIO)
    while rest:
        if len(rest) <= max_len:
            pieces.append(rest)
            break
        window = rest[:max_len]
        break_at = max(window.rfind("."), window.rfind("\n"), soft_break)
        piece = window[: break_at + 1].strip() if break_at > 0 else window.strip()
        if not piece:
            piece = window
        pieces.append(piece)
        rest = rest[len(piece):].strip()
    return [SpeechChunk(text=p, order=i) for i, p in enumerate(p for p in pieces if p)]


def with_context(chunks: List[SpeechChunk]) -> Iterator[Tuple[SpeechChunk, str, str]]:
    """Yield each chunk with the previous chunk's tail and the next chunk's head."""
    for i, chunk in enumerate(chunks):
        previous_text = chunks[i - 1].text[-CONTEXT_CHARS:] if i > 0 else ""
        next_text = chunks[i + 1].text[:CONTEXT_CHARS] if i < len(chunks) - 1 else ""
        yield chunk, previous_text, next_text


class ElevenLabsClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        model_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key or settings.elevenlabs_api_key
        if not self.api_key:
            raise ConfigurationError("Missing ELEVENLABS_API_KEY")
        self.base_url = (base_url or settings.elevenlabs_base_url).rstrip("/")
        self.model_id = model_id or settings.elevenlabs_model_id
        self._client = httpx.AsyncClient(timeout=60, transport=transport)

    async def synthesize(self, voice_id: str, text: str, previous_text: str = "", next_text: str = "") -> str:
        """Return the MP3 for ``text`` as a base64 string."""
        body = {"text": text, "model_id": self.model_id}
        if previous_text:
            body["previous_text"] = previous_text[-CONTEXT_CHARS:]
        if next_text:
            body["next_text"] = next_text[:CONTEXT_CHARS]
        try:
            r = await self._client.post(
                f"{self.base_url}/text-to-speech/{voice_id}",
                headers={"xi-api-key": self.api_key},
                json=body,
            )
        except httpx.RequestError as net_err:
            raise UpstreamUnavailable(f"ElevenLabs TTS failed: {net_err}") from net_err
        if r.is_error:
            raise UpstreamUnavailable(f"ElevenLabs TTS failed: {r.status_code} {r.text}", r.status_code)
        return base64.b64encode(r.content).decode("ascii")

    async def aclose(self) -> None:
        await self._client.aclose()


async def synthesize_lesson(
    client: ElevenLabsClient,
    text: str,
    *,
    voice_id: Optional[str] = None,
    max_len: int = MAX_CHARS_PER_CHUNK,
) -> List[str]:
    if not text or not isinstance(text, str):
        raise InputValidationError("Request body must include a non-empty 'text' string.")
    chunks = chunk_text(text, max_len)
    voice = voice_id or settings.elevenlabs_voice_id
    audio: List[str] = []
    # Strictly in order; playback order and context hints depend on it
    for chunk, previous_text, next_text in with_context(chunks):
        audio.append(await client.synthesize(voice, chunk.text, previous_text, next_text))
    logger.info("Synthesized %d speech chunk(s)", len(audio))
    return audio
