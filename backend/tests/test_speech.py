"""
Unit tests for read-aloud chunking and synthesis.
"""
import asyncio
import base64
import json

import httpx
import pytest

from cramify.errors import ConfigurationError, InputValidationError, UpstreamUnavailable
from cramify.speech import (
    ElevenLabsClient,
    chunk_text,
    strip_math_for_speech,
    synthesize_lesson,
    with_context,
)


def _sentences(total, every=200):
    sentence = "a" * (every - 1) + "."
    return (sentence * (total // every + 1))[:total]


class TestStripMath:

    def test_block_and_inline_math(self):
        assert strip_math_for_speech("$$x^2$$ is squared. $y$ is y.") == "is squared. is y."

    def test_multiline_block(self):
        assert strip_math_for_speech("Start $$\\sum_i\n x_i$$ end") == "Start end"

    def test_whitespace_collapsed(self):
        assert strip_math_for_speech("  one\n\n two\tthree  ") == "one two three"

    @pytest.mark.parametrize("value", [None, "", 42])
    def test_not_text(self, value):
        assert strip_math_for_speech(value) == ""


class TestChunkText:

    def test_empty(self):
        assert chunk_text("") == []
        assert chunk_text("$x$ $$y$$") == []

    def test_short_text_single_chunk(self):
        chunks = chunk_text("$$x^2$$ is squared. $y$ is y.")
        assert [c.text for c in chunks] == ["is squared. is y."]
        assert chunks[0].order == 0

    def test_long_text_breaks_on_sentences(self):
        text = _sentences(9000)
        chunks = chunk_text(text, 3500)
        assert len(chunks) == 3
        assert [c.order for c in chunks] == [0, 1, 2]
        for c in chunks:
            assert 0 < len(c.text) <= 3500
        assert chunks[0].text.endswith(".")
        assert chunks[1].text.endswith(".")
        assert "".join(c.text for c in chunks) == text

    def test_soft_break_without_period(self):
        text = "word " * 300
        chunks = chunk_text(text, 100)
        cleaned = strip_math_for_speech(text)
        assert all(0 < len(c.text) <= 100 for c in chunks)
        assert "".join(c.text for c in chunks).replace(" ", "") == cleaned.replace(" ", "")

    def test_period_before_soft_break_is_ignored(self):
        text = "Early stop. " + "x" * 200
        chunks = chunk_text(text, 100)
        # The period sits before the 80% mark, so the cut lands at index 80
        assert len(chunks[0].text) == 81

    def test_rejects_bad_length(self):
        with pytest.raises(InputValidationError):
            chunk_text("abc", 0)


class TestWithContext:

    def test_neighbours(self):
        chunks = chunk_text(_sentences(9000), 3500)
        hints = list(with_context(chunks))
        first, middle, last = hints
        assert first[1] == ""
        assert first[2] == chunks[1].text[:500]
        assert middle[1] == chunks[0].text[-500:]
        assert middle[2] == chunks[2].text[:500]
        assert last[2] == ""
        assert len(middle[1]) == 500


class TestSynthesizeLesson:

    def test_chunks_synthesized_in_order(self, fake_tts):
        audio = asyncio.run(synthesize_lesson(fake_tts, _sentences(9000), voice_id="voice-1", max_len=3500))
        assert audio == ["audio-1", "audio-2", "audio-3"]
        assert [c["voice_id"] for c in fake_tts.calls] == ["voice-1"] * 3
        assert fake_tts.calls[0]["previous_text"] == ""
        assert fake_tts.calls[1]["previous_text"] == fake_tts.calls[0]["text"][-500:]
        assert fake_tts.calls[2]["next_text"] == ""

    def test_nothing_speakable(self, fake_tts):
        assert asyncio.run(synthesize_lesson(fake_tts, "$$x$$")) == []
        assert fake_tts.calls == []

    @pytest.mark.parametrize("text", [None, "", 12])
    def test_text_required(self, fake_tts, text):
        with pytest.raises(InputValidationError):
            asyncio.run(synthesize_lesson(fake_tts, text))


class TestElevenLabsClient:

    def test_request_shape_and_base64(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers["xi-api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=b"\x00mp3")

        async def go():
            client = ElevenLabsClient("el-key", base_url="https://tts.test/v1", transport=httpx.MockTransport(handler))
            try:
                return await client.synthesize("v1", "Hello.", previous_text="p" * 600, next_text="")
            finally:
                await client.aclose()

        audio = asyncio.run(go())
        assert base64.b64decode(audio) == b"\x00mp3"
        assert seen["url"] == "https://tts.test/v1/text-to-speech/v1"
        assert seen["key"] == "el-key"
        assert seen["body"]["text"] == "Hello."
        assert seen["body"]["model_id"] == "eleven_multilingual_v2"
        assert len(seen["body"]["previous_text"]) == 500
        assert "next_text" not in seen["body"]

    def test_error_status(self):
        async def go():
            client = ElevenLabsClient(
                "el-key", transport=httpx.MockTransport(lambda request: httpx.Response(401, text="bad key"))
            )
            try:
                await client.synthesize("v1", "Hello.")
            finally:
                await client.aclose()

        with pytest.raises(UpstreamUnavailable) as exc:
            asyncio.run(go())
        assert exc.value.status == 401
        assert "401" in exc.value.message

    def test_missing_key(self, monkeypatch):
        from cramify.settings import settings
        monkeypatch.setattr(settings, "elevenlabs_api_key", None)
        with pytest.raises(ConfigurationError):
            ElevenLabsClient()
