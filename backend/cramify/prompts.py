"""
Prompt templates sent to Gemini.

Every builder returns a plain string; callers never inspect the wording.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

LEVEL_LABELS: Dict[int, str] = {
    0: "Starting from zero",
    1: "Basic familiarity",
    2: "Intermediate",
    3: "Advanced / Review",
}


def level_label(level: Any) -> str:
    try:
        return LEVEL_LABELS.get(int(level), LEVEL_LABELS[0])
    except (TypeError, ValueError):
        return LEVEL_LABELS[0]


def build_allocation_prompt(course: str, level: Any, hours_until: Any, hours_available: Any, topic_names: List[str]) -> str:
    topic_lines = "\n".join(f"- {name}" for name in topic_names)
    return f"""
You are an expert exam strategist. Allocate study hours across topics to maximize expected grade improvement.
Constraints:
- Total allocated hours must equal {hours_available} hours (within +/- 0.1).
- Be realistic: allocate at least 0.5 hours per topic if any time is allocated.
- Base the allocation on domain knowledge: prerequisite chains, baseline understanding needs, and relative difficulty.
- Avoid giving identical allocations unless topics are truly comparable in difficulty and prerequisite importance.
- Reasons must explicitly mention the inferred difficulty or prerequisite role.

Return JSON only with this exact shape:
{{
  "allocations": {{
    "<topic name>": {{
      "hours": <hours number>,
      "reason": "<short explanation, 1 sentence>"
    }}
  }}
}}

Data:
Course: {course}
Level: {level}
Hours until exam: {hours_until}
Topics:
{topic_lines}
"""


def build_steps_prompt(course: str, level: Any, topic: str) -> str:
    return f"""
You are an expert tutor. Create a step-by-step learning guide to take a student from their current knowledge level to exam-ready for the given topic.

Student level: {level_label(level)}
Course: {course}
Topic: {topic}

Requirements:
- Use your own knowledge of the topic (no external sources).
- Steps must be ordered and actionable.
- If level is "Starting from zero", begin with core concepts and prerequisites.
- Include guided practice, short-answer drills, and exam-ready questions near the end.
- Provide 4-7 steps total.

Return JSON only with this exact shape:
{{
  "steps": [
    {{
      "id": "1",
      "title": "<short step title>",
      "description": "<1-2 sentence description>",
      "stage": "<core_concepts|guided_practice|short_answer|exam_ready>"
    }}
  ]
}}
"""


def build_subtopic_prompt(course: str, level: Any, topic: str, step_title: str, step_description: str) -> str:
    return f"""
You are an expert tutor. Teach the user this specific learning step, then provide sample questions with answers.

Course: {course}
Student level: {level_label(level)}
Topic: {topic}
Learning step: {step_title}
Step description: {step_description}

Requirements:
- Explain the concept clearly for the given student level.
- Provide 2-4 short explanation blocks with titles.
- Then provide 3-5 sample questions with short answers.
- Keep it concise and exam-focused.

Return JSON only with this exact shape:
{{
  "explanations": [
    {{ "title": "<short title>", "body": "<2-4 sentences>" }}
  ],
  "questions": [
    {{ "prompt": "<question>", "answer": "<short answer>" }}
  ]
}}
"""


def build_learning_path_prompt(course: str, level: Any, topics: List[str]) -> str:
    topic_lines = "\n".join(f"- {t}" for t in topics)
    return f"""
You are an expert tutor. Build a full learning path for each topic to take a student from their current knowledge level to exam-ready.

Student level: {level_label(level)}
Course: {course}
Topics:
{topic_lines}

Requirements (for each topic):
- Use your own knowledge of the topic (no external sources).
- Include a concise overview and total time estimate (hours).
- Break the learning path into 3-5 modules.
- Each module should include 2-4 steps with explanations and 6-8 sample questions per step.
- If level is "Starting from zero", start with core concepts and prerequisites.
- Include guided practice, short-answer drills, and exam-ready questions near the end.
- Render all math using LaTeX wrapped in $...$ (inline) or $$...$$ (block).
- Use the exact topic names as keys in the "topics" object. Do not rename or merge topics.
- Return valid JSON only. Escape backslashes as needed.

Return JSON only with this exact shape:
{{
  "topics": {{
    "<topic name>": {{
      "title": "<topic title>",
      "overview": "<2-4 sentence overview>",
      "totalHours": <number>,
      "modules": [
        {{
          "id": "1",
          "title": "<module title>",
          "summary": "<1-2 sentence summary>",
          "steps": [
            {{
              "id": "1.1",
              "title": "<short step title>",
              "content": [
                {{ "title": "<short title>", "body": "<2-4 sentences>" }}
              ],
              "questions": [
                {{
                  "prompt": "<question>",
                  "options": ["A", "B", "C", "D"],
                  "correctIndex": 0
                }}
              ]
            }}
          ]
        }}
      ]
    }}
  }}
}}
"""


def build_ingest_prompt(course: str, level: Any, topics: Iterable[str], questions_text: str, answers_text: str) -> str:
    topic_lines = "\n".join(f"- {t}" for t in topics if t)
    return f"""
You are helping build a study app from exam PDFs.

Goal:
- Convert the exam questions PDF + exam answers/solutions PDF into a structured JSON question bank.

Rules:
- Use ONLY the information in the PDFs below.
- If a solution is not found, still include the question but leave "answer" as an empty string.
- If you cannot perfectly match every question to its exact solution, do your best using question numbers, wording, and section headers.
- Assign each item to exactly ONE topic from the allowed topic list.
- If none fit well, choose the closest.

Return JSON only with this exact shape:
{{
  "items": [
    {{
      "id": "Q1",
      "topic": "<must be one of the allowed topics>",
      "question": "<question text>",
      "answer": "<answer/solution text (can be empty)>"
    }}
  ]
}}

Context:
Course: {course}
Student level: {level}
Allowed topics:
{topic_lines or "- (no topics provided)"}

Exam Questions PDF (text):
<<<
{questions_text}
>>>

Exam Answers/Solutions PDF (text):
<<<
{answers_text}
>>>
"""


def build_exam_generate_prompt(
    course: str,
    level: Any,
    topic: str,
    examples: List[Dict[str, Any]],
    count: int,
    focus_count: int,
) -> str:
    example_lines = "\n\n".join(
        f"Example {idx}:\nQ: {str(ex.get('question') or '').strip()}\nA: {str(ex.get('answer') or '').strip()}"
        for idx, ex in enumerate(examples[:20], start=1)
    )
    return f"""
You are an exam-preparation question designer.

You will be given practice exams with solutions, but you MUST NOT:
- copy question structure
- reuse function names
- reuse the same task framing
- ask for the same operation in disguise

Your goal is to generate new practice questions that test the SAME UNDERLYING CONCEPTS,
but through different problem formulations that require conceptual transfer rather than memorization.

Step 1 - Concept Extraction (internal)
From the practice exam, internally identify:
- core data structure or algorithmic concept being tested
- typical mistakes students make on that concept
- the skill being evaluated (e.g., pointer manipulation, asymptotic reasoning, traversal optimization)

Step 2 - Novel Question Design
For each extracted concept, generate 1-2 new questions that:
- introduce a new real-world or abstract framing
- add at least one new constraint (e.g., single traversal, limited memory, reverse traversal, early stopping)
- cannot be solved by minor edits to the original exam solution
The questions must feel unfamiliar even to someone who memorized the exam.

Step 3 - Difficulty Calibration
For each question:
- clearly label difficulty (Easy / Medium / Hard)
- explain in 1 sentence why it is testing the same concept

Step 4 - Answer Generation
For each question:
- provide a complete and correct worked solution (code where the course calls for it)
- briefly explain the reasoning, not just the final answer

Hard Constraint (VERY IMPORTANT)
If a generated question could be reasonably accused of being a modified version of an exam question, discard it and regenerate.

Validation (MANDATORY):
- Each question MUST include "choices" as an array of EXACTLY 4 strings.
- "correctChoiceIndex" MUST be an integer 0,1,2,or 3.
- If your draft fails validation, fix it before responding.

Return JSON only with this exact shape:
{{
  "emphasizedTopics": ["<concept/skill>", "..."],
  "questions": [
    {{
      "id": "1",
      "topic": "<one of emphasizedTopics>",
      "difficulty": "Easy",
      "conceptTested": "<concept/skill being tested>",
      "question": "<new multiple-choice question prompt>",
      "choices": ["A", "B", "C", "D"],
      "correctChoiceIndex": 0,
      "solutionText": "<complete solution (code if applicable, otherwise empty string)>",
      "reasoning": "<brief explanation of reasoning>",
      "sameConceptWhy": "<1 sentence why it tests the same concept>"
    }}
  ]
}}

Context:
Course: {course}
Student level: {level}
Requested topic page: {topic}
Generate exactly {focus_count} emphasizedTopics and exactly {count} questions.

Practice exam examples (questions + solutions):
{example_lines or "(none provided)"}
"""


def build_mcq_repair_prompt(
    course: str,
    level: Any,
    topic: str,
    question: str,
    solution_text: Optional[str],
    reasoning: Optional[str],
) -> str:
    return f"""
You are repairing a multiple-choice question JSON.

You will be given:
- a question prompt
- an (optional) solution and reasoning

Your job:
- produce EXACTLY 4 answer choices
- exactly ONE choice must be correct
- return correctChoiceIndex as an INTEGER 0..3
- choices must be short, plausible distractors

Return JSON only:
{{
  "choices": ["...", "...", "...", "..."],
  "correctChoiceIndex": 0
}}

Context:
Course: {course}
Level: {level}
Topic page: {topic}

Question:
<<<
{question or ""}
>>>

Solution, if provided:
<<<
{solution_text or ""}
>>>

Reasoning, if provided:
<<<
{reasoning or ""}
>>>
"""
