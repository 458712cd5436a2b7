from __future__ import annotations

from typing import Optional


class CramifyError(Exception):
    """Base error; ``status_code`` is what the API answers with."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(CramifyError):
    status_code = 500


class UpstreamUnavailable(CramifyError):
    """A Gemini or ElevenLabs call failed (transport error or non-2xx)."""

    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class MalformedResponse(CramifyError):
    """Model text could not be turned into a JSON object."""

    status_code = 502


class IncompleteQuestionData(CramifyError):
    """Choices or correct index are not usable yet. Never leaves the MCQ normalizer."""

    status_code = 500


class InputValidationError(CramifyError):
    status_code = 400
