from typing import Annotated

from fastapi import APIRouter, Depends

from skillforge.api.dependencies import get_identity, get_quiz_generator
from skillforge.models.quiz import Quiz
from skillforge.models.requests import QuizGenerateRequest
from skillforge.services.quiz.quiz_generator import QuizGenerator

router = APIRouter(prefix="/api/quiz", tags=["quiz"], dependencies=[Depends(get_identity)])


@router.post("/generate", response_model=Quiz)
async def generate_quiz(
    request: QuizGenerateRequest,
    generator: Annotated[QuizGenerator, Depends(get_quiz_generator)],
):
    """Generate a multiple-choice quiz over a course's topics."""
    return await generator.generate(request.course_id)
