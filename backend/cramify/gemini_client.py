from __future__ import annotations
import logging
import re
import httpx
from typing import Any, Dict, List, Optional
from .errors import ConfigurationError, UpstreamUnavailable
from .model_selector import ModelSelector, PREFERRED_MODELS
from .settings import settings

logger = logging.getLogger(__name__)

_MODEL_UNAVAILABLE = re.compile(r"not found|not supported for generateContent|supported methods", re.IGNORECASE)
_UNKNOWN_MIME_FIELD = re.compile(r'Unknown name "responseMimeType"', re.IGNORECASE)


def is_model_unavailable(message: str, status: Optional[int]) -> bool:
	if status == 404:
		return True
	return bool(_MODEL_UNAVAILABLE.search(message or ""))


def is_unknown_mime_type(err: UpstreamUnavailable) -> bool:
	return err.status == 400 and bool(_UNKNOWN_MIME_FIELD.search(err.message or ""))


def _error_message(response: httpx.Response, default: str) -> str:
	try:
		body = response.json()
	except ValueError:
		return default
	if isinstance(body, dict):
		error = body.get("error")
		if isinstance(error, dict) and error.get("message"):
			return str(error["message"])
	return default


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		selector: Optional[ModelSelector] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ConfigurationError("Missing GEMINI_API_KEY")
		self.base_url = (base_url or settings.gemini_base_url).rstrip("/")
		self.selector = selector
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds, transport=transport)

	async def list_models(self) -> List[Dict[str, Any]]:
		try:
			r = await self._client.get(f"{self.base_url}/models", params={"key": self.api_key})
		except httpx.RequestError as net_err:
			raise UpstreamUnavailable(f"List models failed: {net_err}") from net_err
		if r.is_error:
			raise UpstreamUnavailable(_error_message(r, f"List models failed: {r.status_code}"), r.status_code)
		data = r.json()
		return data.get("models") or []

	async def pick_model(self) -> str:
		if self.selector is None:
			return PREFERRED_MODELS[0]
		return await self.selector.get_model_name(self.list_models)

	async def generate_once(
		self,
		model: str,
		prompt: str,
		*,
		temperature: Optional[float] = None,
		response_mime_type: Optional[str] = None,
	) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": str(prompt or "")}]}]}
		generation_config: Dict[str, Any] = {}
		if temperature is not None:
			generation_config["temperature"] = float(temperature)
		if response_mime_type:
			generation_config["responseMimeType"] = str(response_mime_type)
		if generation_config:
			payload["generationConfig"] = generation_config
		try:
			r = await self._client.post(
				f"{self.base_url}/models/{model}:generateContent",
				params={"key": self.api_key},
				json=payload,
			)
		except httpx.RequestError as net_err:
			raise UpstreamUnavailable(f"Gemini request failed: {net_err}") from net_err
		if r.is_error:
			raise UpstreamUnavailable(_error_message(r, f"Gemini request failed: {r.status_code}"), r.status_code)
		try:
			data = r.json()
			return (data["candidates"][0]["content"]["parts"][0]["text"] or "").strip()
		except (ValueError, KeyError, IndexError, TypeError):
			# Blocked or empty candidates come back without parts
			return ""

	async def generate(
		self,
		prompt: str,
		*,
		model: Optional[str] = None,
		temperature: Optional[float] = None,
		response_mime_type: Optional[str] = None,
	) -> str:
		initial_model = model or await self.pick_model()
		try:
			return await self.generate_once(initial_model, prompt, temperature=temperature, response_mime_type=response_mime_type)
		except UpstreamUnavailable as err:
			# Some API versions reject responseMimeType; retry without it
			if response_mime_type and is_unknown_mime_type(err):
				return await self.generate(prompt, model=model, temperature=temperature)
			if not is_model_unavailable(err.message, err.status):
				raise
			# The cached choice may be the retired model; list again
			if self.selector is not None:
				self.selector.reset()
			fallback_model = await self.pick_model()
			if not fallback_model or fallback_model == initial_model:
				raise
			logger.warning("Model %s unavailable (%s), retrying with %s", initial_model, err.message, fallback_model)
		try:
			return await self.generate_once(fallback_model, prompt, temperature=temperature, response_mime_type=response_mime_type)
		except UpstreamUnavailable as fallback_err:
			if response_mime_type and is_unknown_mime_type(fallback_err):
				return await self.generate_once(fallback_model, prompt, temperature=temperature)
			raise

	async def aclose(self) -> None:
		await self._client.aclose()
