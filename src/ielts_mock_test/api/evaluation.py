"""AI evaluation endpoints for writing and speaking answers."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ielts_mock_test.api.deps import get_current_user, get_services
from ielts_mock_test.assessment.llm_evaluator import IELTSEvaluator
from ielts_mock_test.container import ServiceContainer
from ielts_mock_test.errors import EvaluatorUnavailableError
from ielts_mock_test.models.evaluation import SpeakingAnswer
from ielts_mock_test.models.user import User

router = APIRouter(prefix="/api")


class WritingRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    task1_answer: str | None = None
    task2_answer: str | None = None
    task1_prompt: str = ""
    task2_prompt: str = ""


class SpeakingRequest(BaseModel):
    responses: list[SpeakingAnswer] = []


def _evaluator(services: ServiceContainer) -> IELTSEvaluator:
    if services.evaluator is None:
        raise EvaluatorUnavailableError()
    return services.evaluator


@router.post("/evaluate-writing")
async def evaluate_writing(
    body: WritingRequest,
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> dict:
    if not body.task1_answer and not body.task2_answer:
        raise HTTPException(status_code=400, detail="At least one task answer is required")
    evaluation = await _evaluator(services).evaluate_writing(
        task1_answer=body.task1_answer,
        task2_answer=body.task2_answer,
        task1_prompt=body.task1_prompt,
        task2_prompt=body.task2_prompt,
    )
    return evaluation.model_dump(mode="json")


@router.post("/evaluate-speaking")
async def evaluate_speaking(
    body: SpeakingRequest,
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> dict:
    if not body.responses:
        raise HTTPException(status_code=400, detail="Responses array is required")
    evaluation = await _evaluator(services).evaluate_speaking(body.responses)
    return {
        **evaluation.model_dump(mode="json"),
        "band_score": evaluation.band_score,
        "evaluated_at": datetime.now().isoformat(),
    }
