import logging
from typing import Dict, List

from openai import AsyncOpenAI

from skillforge.errors import ExternalServiceError, NotFoundError, ValidationFailedError
from skillforge.models.quiz import Quiz
from skillforge.prompts import PROMPTS
from skillforge.services.quiz.parser import parse_questions
from skillforge.services.storage.database import DatabaseClient

logger = logging.getLogger(__name__)


class QuizGenerator:
    """Asks the language model for a course quiz and validates the answer."""

    def __init__(
        self,
        db_client: DatabaseClient,
        api_key: str,
        model: str,
        question_count: int = 10,
    ):
        self.db = db_client
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.question_count = question_count

    async def _make_completion(self, messages: List[Dict[str, str]]) -> str:
        completion = await self.client.chat.completions.create(
            model=self.model,
            temperature=0.7,
            messages=messages,
        )
        return completion.choices[0].message.content or ""

    async def generate(self, course_id: str) -> Quiz:
        if not course_id:
            raise ValidationFailedError("courseId is required")
        course = await self.db.get_course(course_id)
        if course is None:
            raise NotFoundError("Course", course_id)

        topics = {t.id: t for t in await self.db.get_topics(course.topics)}
        titles = ", ".join(topics[t].title for t in course.topics if t in topics)
        messages = [
            {"role": "system", "content": PROMPTS["system"]["quiz"]["generate_quiz"]},
            {
                "role": "user",
                "content": PROMPTS["user"]["quiz"]["generate_quiz"].format(
                    count=self.question_count, topics=titles
                ),
            },
        ]

        try:
            raw = await self._make_completion(messages)
        except Exception as e:
            logger.error(f"Quiz provider call failed for course {course_id}: {str(e)}")
            raise ExternalServiceError(f"Quiz provider call failed: {str(e)}") from e

        questions = parse_questions(raw)
        if len(questions) != self.question_count:
            logger.error(
                f"Quiz provider returned {len(questions)} valid questions for course "
                f"{course_id}, expected {self.question_count}. Raw response: {raw!r}"
            )
            raise ExternalServiceError(
                f"Quiz provider did not return {self.question_count} valid questions",
                raw=raw,
                questions=[q.model_dump() for q in questions],
            )

        return Quiz(course_id=course.id, questions=questions)

    async def close(self):
        await self.client.close()
