from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

# Best first. The first entry doubles as the fallback when listing fails.
PREFERRED_MODELS: List[str] = [
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-1.5-flash",
    "gemini-1.5-pro",
    "gemini-1.0-pro",
]

GENERATE_METHOD = "generateContent"

ListModels = Callable[[], Awaitable[List[Dict[str, Any]]]]


def normalize_model_name(name: Optional[str]) -> str:
    if not name:
        return ""
    name = str(name)
    return name[len("models/"):] if name.startswith("models/") else name


def pick_model_name(descriptors: Sequence[Dict[str, Any]], preferences: Sequence[str] = PREFERRED_MODELS) -> str:
    available = [
        d for d in descriptors
        if isinstance(d, dict)
        and isinstance(d.get("supportedGenerationMethods"), list)
        and GENERATE_METHOD in d["supportedGenerationMethods"]
    ]
    if not available:
        return preferences[0]
    names = [normalize_model_name(d.get("name")) for d in available]
    for preferred in preferences:
        if preferred in names:
            return preferred
    # Nothing preferred is served; any generateContent model beats a guaranteed 404
    return names[0] or preferences[0]


async def select_model(list_models: ListModels, preferences: Sequence[str] = PREFERRED_MODELS) -> str:
    try:
        descriptors = await list_models()
    except Exception as e:
        logger.warning("Unable to list models, using %s: %s", preferences[0], e)
        return preferences[0]
    return pick_model_name(descriptors, preferences)


class ModelSelector:
    """
    Remembers the last model choice for ``ttl_seconds``.

    One slot for the whole process; the clock is injectable so tests can move
    time forward.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600,
        *,
        preferences: Sequence[str] = PREFERRED_MODELS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.preferences = list(preferences)
        self._clock = clock
        self._model_name: Optional[str] = None
        self._selected_at: float = 0.0

    async def get_model_name(self, list_models: ListModels) -> str:
        if self._model_name and self._clock() - self._selected_at < self.ttl_seconds:
            return self._model_name
        model_name = await select_model(list_models, self.preferences)
        if model_name != self._model_name:
            logger.info("Selected Gemini model %s", model_name)
        self._model_name = model_name
        self._selected_at = self._clock()
        return model_name

    def reset(self) -> None:
        self._model_name = None
        self._selected_at = 0.0
