"""
Shared fixtures: a scripted stand-in for the Gemini client and a TestClient
with the HTTP clients swapped out.
"""
import pytest
from fastapi.testclient import TestClient

from cramify.deps import get_gemini_client, get_tts_client
from cramify.main import app


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGemini:
    """Replays canned responses; an Exception in the script is raised instead."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def generate(self, prompt, *, model=None, temperature=None, response_mime_type=None):
        self.calls.append(
            {"prompt": prompt, "model": model, "temperature": temperature, "response_mime_type": response_mime_type}
        )
        if not self.responses:
            raise AssertionError("unexpected Gemini call")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeTts:
    def __init__(self):
        self.calls = []

    async def synthesize(self, voice_id, text, previous_text="", next_text=""):
        self.calls.append({"voice_id": voice_id, "text": text, "previous_text": previous_text, "next_text": next_text})
        return f"audio-{len(self.calls)}"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_gemini():
    return FakeGemini()


@pytest.fixture
def fake_tts():
    return FakeTts()


@pytest.fixture
def client(fake_gemini, fake_tts):
    app.dependency_overrides[get_gemini_client] = lambda: fake_gemini
    app.dependency_overrides[get_tts_client] = lambda: fake_tts
    app.state.response_cache.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.response_cache.clear()
