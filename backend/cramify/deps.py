from __future__ import annotations
from fastapi import Request
from .gemini_client import GeminiClient
from .response_cache import ResponseCache
from .speech import ElevenLabsClient


async def get_gemini_client(request: Request):
	client = GeminiClient(selector=request.app.state.model_selector)
	try:
		yield client
	finally:
		await client.aclose()


async def get_tts_client():
	client = ElevenLabsClient()
	try:
		yield client
	finally:
		await client.aclose()


def get_response_cache(request: Request) -> ResponseCache:
	return request.app.state.response_cache
