"""
Multiple-choice question normalization.

Gemini labels choices any way it likes ("A. ...", "b) ...", "- ...") and
encodes the answer as a 0-based index, a 1-based index, a letter or a
numeric string. Everything handed to the browser must have exactly four
choices and a 0-based ``correctChoiceIndex`` in 0..3, so a question goes
through these stages in order:

1. clean the supplied choices and decode the answer
2. if the choices are not four, read "A) ..." lines out of the question body
3. if still incomplete, one low-temperature repair request to Gemini
4. terminal fallback: pad with a generic distractor, default the index to 0

Stage 4 cannot fail, so the normalizer never returns a malformed question.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .errors import IncompleteQuestionData
from .json_extract import extract_json
from .prompts import build_mcq_repair_prompt

logger = logging.getLogger(__name__)

CHOICE_COUNT = 4
FALLBACK_DISTRACTOR = "None of the above"
REPAIR_TEMPERATURE = 0.2

_CHOICE_PREFIX = re.compile(r"^\s*([A-Da-d]|\d)\s*[\)\.:](?!\d)\s*")
_BULLET = re.compile(r"^\s*-\s*")
_CHOICE_LINE = re.compile(r"^([A-Da-d])\s*[\)\.:]\s*(.+)$")

Generate = Callable[..., Awaitable[str]]


class NormalizedQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    topic: str = ""
    difficulty: str = ""
    concept_tested: str = Field(default="", alias="conceptTested")
    choices: List[str] = Field(min_length=CHOICE_COUNT, max_length=CHOICE_COUNT)
    correct_choice_index: int = Field(alias="correctChoiceIndex", ge=0, le=CHOICE_COUNT - 1)
    solution_text: str = Field(default="", alias="solutionText")
    reasoning: str = ""
    same_concept_why: str = Field(default="", alias="sameConceptWhy")
    # Display fields the exam-practice page renders directly
    question: str = ""
    answer: str = ""


@dataclass
class RepairContext:
    course: str
    level: str
    topic: str
    model: Optional[str] = None


def strip_choice_prefix(choice: Any) -> str:
    text = _CHOICE_PREFIX.sub("", str(choice if choice is not None else ""), count=1)
    return _BULLET.sub("", text, count=1).strip()


def normalize_choices(raw_choices: Any) -> List[str]:
    if not isinstance(raw_choices, list):
        return []
    cleaned = [strip_choice_prefix(c) for c in raw_choices]
    return [c for c in cleaned if c][:CHOICE_COUNT]


def _index_from_number(value: float) -> Optional[int]:
    if not math.isfinite(value) or value != int(value):
        return None
    n = int(value)
    # 0-based wins when a value reads both ways
    if 0 <= n <= 3:
        return n
    if 1 <= n <= 4:
        return n - 1
    return None


def normalize_correct_choice_index(value: Any) -> Optional[int]:
    """
    Decode an answer key into a 0-based index.

    Accepts 0..3, 1..4, letters A-D in either case, and numeric strings.
    Returns None for anything else; defaulting happens only at the end.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _index_from_number(float(value))
    s = str(value if value is not None else "").strip()
    if not s:
        return None
    upper = s.upper()
    if upper in ("A", "B", "C", "D"):
        return ord(upper) - ord("A")
    try:
        return _index_from_number(float(s))
    except ValueError:
        return None


def parse_choices_from_question_text(text: Any) -> List[str]:
    lines = [line.strip() for line in str(text or "").split("\n")]
    extracted = [strip_choice_prefix(line) for line in lines if line and _CHOICE_LINE.match(line)]
    return extracted[:CHOICE_COUNT]


def require_complete(choices: List[str], index: Optional[int]) -> Tuple[List[str], int]:
    if len(choices) != CHOICE_COUNT:
        raise IncompleteQuestionData(f"expected {CHOICE_COUNT} choices, got {len(choices)}")
    if index is None or not 0 <= index < CHOICE_COUNT:
        raise IncompleteQuestionData("correct choice index missing or out of range")
    return choices, index


def finalize_choices(choices: List[str]) -> List[str]:
    padded = list(choices)
    while len(padded) < CHOICE_COUNT:
        padded.append(FALLBACK_DISTRACTOR)
    return padded[:CHOICE_COUNT]


def finalize_index(index: Optional[int]) -> int:
    if index is None or not 0 <= index < CHOICE_COUNT:
        return 0
    return index


async def repair_mcq(
    generate: Generate,
    context: RepairContext,
    question: str,
    solution_text: str = "",
    reasoning: str = "",
) -> Tuple[List[str], Optional[int]]:
    prompt = build_mcq_repair_prompt(context.course, context.level, context.topic, question, solution_text, reasoning)
    text = await generate(
        prompt,
        model=context.model,
        temperature=REPAIR_TEMPERATURE,
        response_mime_type="application/json",
    )
    parsed = extract_json(text)
    return normalize_choices(parsed.get("choices")), normalize_correct_choice_index(parsed.get("correctChoiceIndex"))


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _text(raw: Dict[str, Any], *keys: str) -> str:
    value = _first(raw, *keys)
    return str(value).strip() if value is not None else ""


async def normalize_question(
    raw: Any,
    context: RepairContext,
    generate: Generate,
    *,
    fallback_id: str = "1",
) -> NormalizedQuestion:
    raw = raw if isinstance(raw, dict) else {}
    body = _text(raw, "question", "problemStatement", "prompt")
    solution_text = _text(raw, "solutionText", "solutionCpp", "solution")
    reasoning = _text(raw, "reasoning")

    choices = normalize_choices(_first(raw, "choices", "options"))
    if len(choices) != CHOICE_COUNT:
        from_body = parse_choices_from_question_text(body)
        if len(from_body) == CHOICE_COUNT:
            choices = from_body
    index = normalize_correct_choice_index(
        _first(raw, "correctChoiceIndex", "correctIndex", "correct_index", "answerIndex", "answer_index")
    )

    try:
        choices, index = require_complete(choices, index)
    except IncompleteQuestionData as gap:
        logger.warning("Question %s incomplete (%s), requesting repair", raw.get("id") or fallback_id, gap)
        try:
            repaired_choices, repaired_index = await repair_mcq(generate, context, body, solution_text, reasoning)
        except Exception as e:
            logger.warning("MCQ repair failed, using fallback values: %s", e)
        else:
            if len(repaired_choices) == CHOICE_COUNT:
                choices = repaired_choices
            if repaired_index is not None:
                index = repaired_index

    choices = finalize_choices(choices)
    index = finalize_index(index)

    difficulty = _text(raw, "difficulty")
    concept_tested = _text(raw, "conceptTested")
    same_concept_why = _text(raw, "sameConceptWhy")
    return NormalizedQuestion(
        id=_text(raw, "id") or fallback_id,
        topic=_text(raw, "topic"),
        difficulty=difficulty,
        concept_tested=concept_tested,
        choices=choices,
        correct_choice_index=index,
        solution_text=solution_text,
        reasoning=reasoning,
        same_concept_why=same_concept_why,
        question=_display_question(difficulty, concept_tested, body),
        answer=_display_answer(choices[index], solution_text, reasoning, same_concept_why),
    )


def _display_question(difficulty: str, concept_tested: str, body: str) -> str:
    parts = [
        f"Difficulty: {difficulty}" if difficulty else "",
        f"Concept tested: {concept_tested}" if concept_tested else "",
        body,
    ]
    return "\n\n".join(p for p in parts if p).strip()


def _display_answer(correct_choice: str, solution_text: str, reasoning: str, same_concept_why: str) -> str:
    parts = [
        f"Correct choice: {correct_choice}" if correct_choice else "",
        f"Solution:\n{solution_text}" if solution_text else "",
        f"\nReasoning:\n{reasoning}" if reasoning else "",
        f"\nWhy same concept:\n{same_concept_why}" if same_concept_why else "",
    ]
    return "\n".join(p for p in parts if p).strip()


def normalize_lesson_question(raw: Any) -> Dict[str, Any]:
    """Learning-path questions get the same cleanup without a repair call."""
    raw = dict(raw) if isinstance(raw, dict) else {}
    choices = normalize_choices(raw.get("options"))
    index = normalize_correct_choice_index(raw.get("correctIndex"))
    raw["prompt"] = str(raw.get("prompt") or "").strip()
    raw["options"] = finalize_choices(choices)
    raw["correctIndex"] = finalize_index(index)
    return raw
