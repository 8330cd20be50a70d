from typing import List

from pydantic import BaseModel, Field, field_validator


class QuizQuestion(BaseModel):
    question: str = Field(min_length=1)
    options: List[str] = Field(description="Exactly four answer options")
    answer: int = Field(ge=0, le=3, description="0-based index of the correct option")

    @field_validator("options")
    @classmethod
    def _four_options(cls, options: List[str]) -> List[str]:
        if len(options) != 4:
            raise ValueError("a question needs exactly 4 options")
        return options


class Quiz(BaseModel):
    course_id: str
    questions: List[QuizQuestion]
