"""
Exam practice endpoints.

/api/exam/ingest turns an exam questions PDF and its solutions PDF into a
topic-tagged question bank. /api/exam/generate writes fresh multiple-choice
questions on the concepts the bank tests; every question is normalized so the
practice page always gets four choices and a valid correct index.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple, Union

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field

from ..deps import get_gemini_client
from ..errors import CramifyError, InputValidationError
from ..gemini_client import GeminiClient
from ..json_extract import extract_json
from ..mcq import RepairContext, normalize_question
from ..pdf_text import clamp_text, extract_text_from_pdf
from ..prompts import build_exam_generate_prompt, build_ingest_prompt
from ..settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/exam", tags=["exam"])

GENERATE_TEMPERATURE = 0.3
INGEST_TEMPERATURE = 0.2


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course: str = "Your course"
    level: Union[int, str] = "0"
    topic: str = ""
    examples: List[Dict[str, Any]] = []
    count: Any = 5
    focus_count: Any = Field(default=5, alias="focusCount")


def clamp_count(value: Any, default: int, low: int, high: int) -> int:
    try:
        number = float(value or default)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return min(max(math.floor(number), low), high)


def parse_topics(raw: Any) -> List[str]:
    if isinstance(raw, list):
        return [str(t).strip() for t in raw if str(t).strip()]
    return [t.strip() for t in re.split(r"[\n,]+", str(raw or "")) if t.strip()]


async def _read_ingest_request(request: Request) -> Tuple[str, str, List[str], str, str]:
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        body = await request.json()
        if not isinstance(body, dict):
            raise InputValidationError("Request body must be a JSON object.")
        return (
            str(body.get("course") or "Your course"),
            str(body.get("level") or "0"),
            parse_topics(body.get("topics")),
            str(body.get("questionsText") or ""),
            str(body.get("answersText") or ""),
        )

    form = await request.form()
    questions_pdf = form.get("questionsPdf")
    answers_pdf = form.get("answersPdf")
    if questions_pdf is None or not hasattr(questions_pdf, "read"):
        raise InputValidationError("Missing questionsPdf file.")
    if answers_pdf is None or not hasattr(answers_pdf, "read"):
        raise InputValidationError("Missing answersPdf file.")
    questions_text = await run_in_threadpool(extract_text_from_pdf, await questions_pdf.read())
    answers_text = await run_in_threadpool(extract_text_from_pdf, await answers_pdf.read())
    return (
        str(form.get("course") or "Your course"),
        str(form.get("level") or "0"),
        parse_topics(form.get("topics")),
        questions_text,
        answers_text,
    )


@router.post("/ingest")
async def ingest(request: Request, client: GeminiClient = Depends(get_gemini_client)):
    try:
        course, level, topics, questions_text, answers_text = await _read_ingest_request(request)
        prompt = build_ingest_prompt(
            course,
            level,
            topics,
            clamp_text(questions_text, settings.pdf_max_chars),
            clamp_text(answers_text, settings.pdf_max_chars),
        )
        text = await client.generate(
            prompt,
            model=settings.gemini_exam_ingest_model,
            temperature=INGEST_TEMPERATURE,
            response_mime_type="application/json",
        )
        data = extract_json(text)
        items = data.get("items") if isinstance(data.get("items"), list) else []
        return {
            "bank": {
                "course": course,
                "level": level,
                "topics": topics,
                "createdAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
                "items": items,
            }
        }
    except CramifyError:
        raise
    except Exception as e:
        logger.exception("Exam ingest failed")
        raise CramifyError(str(e) or "Exam ingest failed.") from e


@router.post("/generate")
async def generate(req: GenerateRequest, client: GeminiClient = Depends(get_gemini_client)):
    topic = req.topic.strip()
    if not topic:
        raise InputValidationError("Missing topic.")
    if not req.examples:
        raise InputValidationError("Missing exam examples.")
    count = clamp_count(req.count, 5, 1, 10)
    focus_count = clamp_count(req.focus_count, 5, 3, 10)

    try:
        model = settings.gemini_exam_generate_model
        prompt = build_exam_generate_prompt(req.course, req.level, topic, req.examples, count, focus_count)
        text = await client.generate(
            prompt,
            model=model,
            temperature=GENERATE_TEMPERATURE,
            response_mime_type="application/json",
        )
        data = extract_json(text)
        emphasized = data.get("emphasizedTopics") if isinstance(data.get("emphasizedTopics"), list) else []
        raw_questions = data.get("questions") if isinstance(data.get("questions"), list) else []

        context = RepairContext(course=req.course, level=str(req.level), topic=topic, model=model)
        questions = []
        for idx, raw in enumerate(raw_questions, start=1):
            question = await normalize_question(raw, context, client.generate, fallback_id=str(idx))
            questions.append(question.model_dump(by_alias=True))
        return {"emphasizedTopics": emphasized, "questions": questions}
    except CramifyError:
        raise
    except Exception as e:
        logger.exception("Exam question generation failed")
        raise CramifyError(str(e) or "Exam question generation failed.") from e
