"""
Study-plan endpoints.

These back the wizard's roadmap pages:
- /api/allocate: split the hours left before the exam across topics
- /api/learn: ordered learning steps for one topic
- /api/subtopic: explanations and sample Q&A for one learning step
- /api/learn-all: full module/step/question tree for every topic

Subtopic lessons and full learning paths are expensive and are memoized in
the process-wide response cache.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..deps import get_gemini_client, get_response_cache
from ..errors import CramifyError
from ..gemini_client import GeminiClient
from ..json_extract import extract_json
from ..mcq import normalize_lesson_question
from ..prompts import (
    build_allocation_prompt,
    build_learning_path_prompt,
    build_steps_prompt,
    build_subtopic_prompt,
)
from ..response_cache import ResponseCache, make_cache_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["learning"])


# ============================================================================
# REQUEST MODELS
# ============================================================================

class TopicRef(BaseModel):
    name: str


class AllocateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course: str = "Your course"
    level: Union[int, str] = 0
    hours_until: Union[float, str, None] = Field(default=None, alias="hoursUntil")
    hours_available: float = Field(alias="hoursAvailable")
    topics: List[TopicRef] = []


class LearnRequest(BaseModel):
    course: str = "Your course"
    level: Union[int, str] = 0
    topic: str


class SubtopicRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course: str = "Your course"
    level: Union[int, str] = 0
    topic: str
    step_title: str = Field(default="", alias="stepTitle")
    step_description: str = Field(default="", alias="stepDescription")


class LearnAllRequest(BaseModel):
    course: str = "Your course"
    level: Union[int, str] = 0
    topics: List[str] = []


# ============================================================================
# NORMALIZATION
# ============================================================================

def normalize_allocations(raw: Any) -> Dict[str, Dict[str, Any]]:
    """Keep entries with a finite ``hours``; coerce hours to float and reason to str."""
    if not isinstance(raw, dict):
        return {}
    allocations: Dict[str, Dict[str, Any]] = {}
    for name, entry in raw.items():
        if not isinstance(entry, dict):
            continue
        try:
            hours = float(entry.get("hours"))
        except (TypeError, ValueError):
            continue
        if not math.isfinite(hours):
            continue
        allocations[str(name)] = {"hours": hours, "reason": str(entry.get("reason") or "").strip()}
    return allocations


def normalize_learning_path(path: Any) -> Dict[str, Any]:
    if not isinstance(path, dict):
        return {}
    modules = path.get("modules") if isinstance(path.get("modules"), list) else []
    for module in modules:
        if not isinstance(module, dict) or not isinstance(module.get("steps"), list):
            continue
        for step in module["steps"]:
            if isinstance(step, dict) and isinstance(step.get("questions"), list):
                step["questions"] = [normalize_lesson_question(q) for q in step["questions"]]
    return path


def build_fallback_topic(topic: str) -> Dict[str, Any]:
    return {
        "title": topic,
        "overview": f"Quick roadmap for {topic}. Focus on core definitions, then guided practice, and finish with exam-style questions.",
        "totalHours": 1.5,
        "modules": [
            {
                "id": "1",
                "title": "Core concepts",
                "summary": "Learn the essential definitions and formulas.",
                "steps": [
                    {
                        "id": "1.1",
                        "title": "Key definitions",
                        "content": [
                            {
                                "title": "Definition focus",
                                "body": f"Review the core definitions for {topic} and how they connect.",
                            }
                        ],
                        "questions": [
                            {
                                "prompt": f"What is the key idea behind {topic}?",
                                "options": [
                                    "A fundamental definition or rule",
                                    "A historical anecdote",
                                    "A calculator shortcut",
                                    "A random fact",
                                ],
                                "correctIndex": 0,
                            }
                        ],
                    }
                ],
            },
            {
                "id": "2",
                "title": "Guided practice",
                "summary": "Work through representative problems.",
                "steps": [
                    {
                        "id": "2.1",
                        "title": "Practice problems",
                        "content": [
                            {
                                "title": "Worked examples",
                                "body": f"Solve 2-3 standard problems for {topic}, checking each step.",
                            }
                        ],
                        "questions": [
                            {
                                "prompt": f"Which step usually comes first in a {topic} problem?",
                                "options": [
                                    "Identify knowns and unknowns",
                                    "Jump to the final answer",
                                    "Skip units",
                                    "Ignore constraints",
                                ],
                                "correctIndex": 0,
                            }
                        ],
                    }
                ],
            },
        ],
    }


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


# ============================================================================
# API ENDPOINTS
# ============================================================================

@router.post("/allocate")
async def allocate(req: AllocateRequest, client: GeminiClient = Depends(get_gemini_client)):
    try:
        prompt = build_allocation_prompt(
            req.course, req.level, req.hours_until, req.hours_available, [t.name for t in req.topics]
        )
        data = extract_json(await client.generate(prompt))
        return {"allocations": normalize_allocations(data.get("allocations"))}
    except CramifyError:
        raise
    except Exception as e:
        logger.exception("AI allocation failed")
        raise CramifyError(str(e) or "Allocation failed.") from e


@router.post("/learn")
async def learn(req: LearnRequest, client: GeminiClient = Depends(get_gemini_client)):
    try:
        data = extract_json(await client.generate(build_steps_prompt(req.course, req.level, req.topic)))
        return {"steps": _as_list(data.get("steps"))}
    except CramifyError:
        raise
    except Exception as e:
        logger.exception("AI learning plan failed")
        raise CramifyError(str(e) or "Learning plan failed.") from e


@router.post("/subtopic")
async def subtopic(
    req: SubtopicRequest,
    client: GeminiClient = Depends(get_gemini_client),
    cache: ResponseCache = Depends(get_response_cache),
):
    key = make_cache_key(
        route="subtopic",
        course=req.course,
        level=req.level,
        topic=req.topic,
        stepTitle=req.step_title,
        stepDescription=req.step_description,
    )

    async def compute() -> Dict[str, Any]:
        prompt = build_subtopic_prompt(req.course, req.level, req.topic, req.step_title, req.step_description)
        data = extract_json(await client.generate(prompt))
        return {
            "explanations": _as_list(data.get("explanations")),
            "questions": _as_list(data.get("questions")),
        }

    try:
        return await cache.get_or_compute(key, compute)
    except CramifyError:
        raise
    except Exception as e:
        logger.exception("AI subtopic lesson failed")
        raise CramifyError(str(e) or "Subtopic fetch failed.") from e


@router.post("/learn-all")
async def learn_all(
    req: LearnAllRequest,
    client: GeminiClient = Depends(get_gemini_client),
    cache: ResponseCache = Depends(get_response_cache),
):
    key = make_cache_key(route="learn-all", course=req.course, level=req.level, topics=req.topics)

    async def compute() -> Dict[str, Any]:
        data = extract_json(await client.generate(build_learning_path_prompt(req.course, req.level, req.topics)))
        raw_topics = data.get("topics") if isinstance(data.get("topics"), dict) else {}
        topics_map = {str(name): normalize_learning_path(path) for name, path in raw_topics.items()}
        for topic in req.topics:
            # Model renamed, merged or dropped this topic
            if not topics_map.get(topic):
                topics_map[topic] = build_fallback_topic(topic)
        return {"topics": topics_map}

    try:
        return await cache.get_or_compute(key, compute)
    except CramifyError:
        raise
    except Exception as e:
        logger.exception("AI learning path batch failed")
        raise CramifyError(str(e) or "Learning path failed.") from e
