"""Qualification exam endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ielts_mock_test.api.deps import get_current_user, get_services
from ielts_mock_test.container import ServiceContainer
from ielts_mock_test.models.user import User

router = APIRouter(prefix="/api/qualification-exam")


class StartAttemptRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    exam_id: str


class SubmitAttemptRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    answers: dict[str, str | list[str]] = Field(default_factory=dict)
    time_spent: int = Field(default=0, ge=0)


@router.get("")
async def get_exam(
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> dict:
    """The active exam, without answers."""
    return services.qualification.get_active_exam().public_view()


@router.get("/status")
async def get_status(
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> dict:
    eligibility = services.qualification.can_take(user)
    return {
        "user_id": user.user_id,
        "subscription_tier": user.subscription_tier,
        **user.qualification.model_dump(mode="json"),
        "eligibility": eligibility.model_dump(mode="json"),
    }


@router.post("/attempts")
async def start_attempt(
    body: StartAttemptRequest,
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> dict:
    attempt = services.qualification.start_attempt(user, body.exam_id)
    return attempt.model_dump(mode="json")


@router.get("/attempts")
async def list_attempts(
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> list[dict]:
    return [a.model_dump(mode="json") for a in services.qualification.list_attempts(user)]


@router.post("/attempts/{attempt_id}/submit")
async def submit_attempt(
    attempt_id: str,
    body: SubmitAttemptRequest,
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> dict:
    attempt = services.qualification.submit(user, attempt_id, body.answers, body.time_spent)
    return attempt.model_dump(mode="json")
