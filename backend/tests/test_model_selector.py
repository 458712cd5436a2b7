"""
Unit tests for Gemini model selection.
"""
import asyncio

from cramify.model_selector import (
    PREFERRED_MODELS,
    ModelSelector,
    normalize_model_name,
    pick_model_name,
    select_model,
)

GENERATE = ["generateContent"]


def _descriptor(name, methods=GENERATE):
    return {"name": name, "supportedGenerationMethods": methods}


def _lister(descriptors, calls=None):
    async def list_models():
        if calls is not None:
            calls.append(1)
        return descriptors
    return list_models


async def _failing_lister():
    raise RuntimeError("network down")


class TestPickModelName:

    def test_normalize(self):
        assert normalize_model_name("models/gemini-1.5-pro") == "gemini-1.5-pro"
        assert normalize_model_name("gemini-1.5-pro") == "gemini-1.5-pro"
        assert normalize_model_name(None) == ""

    def test_preference_matched_after_prefix_strip(self):
        descriptors = [_descriptor("models/gemini-1.0-pro"), _descriptor("models/gemini-custom")]
        assert pick_model_name(descriptors, ["gemini-1.5-flash", "gemini-1.0-pro"]) == "gemini-1.0-pro"

    def test_availability_beats_preference(self):
        assert pick_model_name([_descriptor("models/foo-only")], ["gemini-1.5-flash"]) == "foo-only"

    def test_preference_order_not_listing_order(self):
        descriptors = [_descriptor("models/gemini-1.5-pro"), _descriptor("models/gemini-2.0-flash")]
        assert pick_model_name(descriptors) == "gemini-2.0-flash"

    def test_only_generate_capable_models_count(self):
        descriptors = [
            _descriptor("models/gemini-2.5-flash", ["embedContent"]),
            _descriptor("models/text-embedding", None),
            _descriptor("models/gemini-1.5-pro"),
        ]
        assert pick_model_name(descriptors) == "gemini-1.5-pro"

    def test_nothing_available(self):
        assert pick_model_name([]) == PREFERRED_MODELS[0]
        assert pick_model_name([_descriptor("models/embed", ["embedContent"])]) == PREFERRED_MODELS[0]


class TestSelectModel:

    def test_listing_failure_returns_default(self):
        assert asyncio.run(select_model(_failing_lister)) == PREFERRED_MODELS[0]

    def test_listing_failure_uses_given_preferences(self):
        assert asyncio.run(select_model(_failing_lister, ["custom-first"])) == "custom-first"


class TestModelSelector:

    def test_choice_reused_within_ttl(self, clock):
        calls = []
        selector = ModelSelector(3600, clock=clock)
        lister = _lister([_descriptor("models/gemini-1.5-pro")], calls)

        assert asyncio.run(selector.get_model_name(lister)) == "gemini-1.5-pro"
        clock.advance(3599)
        assert asyncio.run(selector.get_model_name(lister)) == "gemini-1.5-pro"
        assert len(calls) == 1

    def test_choice_refreshed_after_ttl(self, clock):
        calls = []
        selector = ModelSelector(3600, clock=clock)
        asyncio.run(selector.get_model_name(_lister([_descriptor("models/gemini-1.5-pro")], calls)))
        clock.advance(3600)
        refreshed = asyncio.run(selector.get_model_name(_lister([_descriptor("models/gemini-2.5-flash")], calls)))
        assert refreshed == "gemini-2.5-flash"
        assert len(calls) == 2

    def test_reset(self, clock):
        calls = []
        selector = ModelSelector(3600, clock=clock)
        lister = _lister([_descriptor("models/gemini-1.5-pro")], calls)
        asyncio.run(selector.get_model_name(lister))
        selector.reset()
        asyncio.run(selector.get_model_name(lister))
        assert len(calls) == 2

    def test_never_raises(self, clock):
        selector = ModelSelector(3600, clock=clock)
        assert asyncio.run(selector.get_model_name(_failing_lister)) == PREFERRED_MODELS[0]
