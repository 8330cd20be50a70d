"""Turn raw quiz text from the provider into validated questions.

Providers are asked for a JSON array but do not always comply, so the text is
tried as JSON first and then as the numbered layout::

    1. Question
    A. option
    B. option
    C. option
    D. option
    Answer: B
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from skillforge.models.quiz import QuizQuestion

logger = logging.getLogger(__name__)

QUESTION_LINE = re.compile(r"^\d+\.\s*(.*)")
OPTION_LINE = re.compile(r"^[A-Da-d]\.\s*(.*)")
ANSWER_LINE = re.compile(r"Answer\s*[:\-]?\s*([A-Da-d])")
FENCE = re.compile(r"^```[a-zA-Z]*\n?|```$")

# Question line, four options and the answer line
BLOCK_SIZE = 6


def strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = FENCE.sub("", text).strip()
        if text.endswith("```"):
            text = text[:-3].strip()
    return text


def _to_question(item: Any) -> Optional[QuizQuestion]:
    if not isinstance(item, dict):
        logger.warning(f"Skipping quiz item that is not an object: {item!r}")
        return None
    data: Dict[str, Any] = dict(item)
    if "answer" not in data and "answerIndex" in data:
        data["answer"] = data.pop("answerIndex")
    try:
        return QuizQuestion.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Skipping invalid quiz item: {e.errors()[0]['msg']}")
        return None


def parse_json_questions(text: str) -> List[QuizQuestion]:
    """Parse a JSON array of questions. Raises ``ValueError`` on malformed JSON."""
    items = json.loads(text)
    if not isinstance(items, list):
        logger.warning("Quiz JSON is not an array")
        return []
    return [q for q in (_to_question(item) for item in items) if q is not None]


def parse_text_questions(text: str) -> List[QuizQuestion]:
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    questions = []
    i = 0
    while i < len(lines):
        match = QUESTION_LINE.match(lines[i])
        if not match:
            i += 1
            continue

        options = []
        for line in lines[i + 1 : i + 5]:
            option = OPTION_LINE.match(line)
            if option:
                options.append(option.group(1))

        answer_line = lines[i + 5] if i + 5 < len(lines) else ""
        answer = ANSWER_LINE.search(answer_line)
        question = _to_question(
            {
                "question": match.group(1),
                "options": options,
                "answer": ord(answer.group(1).upper()) - ord("A") if answer else -1,
            }
        )
        if question:
            questions.append(question)
        i += BLOCK_SIZE
    return questions


def parse_questions(raw: str) -> List[QuizQuestion]:
    text = strip_code_fences(raw)
    try:
        return parse_json_questions(text)
    except ValueError:
        logger.info("Quiz response is not JSON, falling back to the text layout")
        return parse_text_questions(text)
