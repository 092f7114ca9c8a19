"""REST API routes for mock tests and their sessions."""

from typing import Any

import structlog
from fastapi import APIRouter, Depends
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from ielts_mock_test.api.deps import get_current_user, get_services
from ielts_mock_test.container import ServiceContainer
from ielts_mock_test.errors import MissingFieldsError
from ielts_mock_test.models.mock_test import Section, SectionSubmission, parse_submission
from ielts_mock_test.models.user import User

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


class _RequestBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartRequest(_RequestBody):
    mock_test_id: str | None = None


class SaveSectionRequest(_RequestBody):
    session_id: str | None = None
    section: Section | None = None
    results: dict[str, Any] | None = None


class CompleteSectionRequest(_RequestBody):
    session_id: str | None = None
    results: dict[str, Any] | None = None


def _submission(section: Section, results: dict[str, Any]) -> SectionSubmission:
    try:
        return parse_submission(section, results)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False)) from e


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/mock-tests")
async def list_mock_tests(
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> list[dict]:
    """List mock tests with the caller's completion status."""
    summaries = services.controller.list_mock_tests(
        user.user_id, premium_access=user.is_premium
    )
    return [s.model_dump(mode="json") for s in summaries]


@router.post("/mock-tests/start")
async def start_mock_test(
    body: StartRequest,
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> dict:
    """Start a mock test, resuming the in-progress session if there is one."""
    if not body.mock_test_id:
        raise MissingFieldsError(["mock_test_id"])
    session, created = services.controller.start(
        user.user_id, body.mock_test_id, premium_access=user.is_premium
    )
    return {
        **session.model_dump(mode="json"),
        "resumed": not created,
    }


@router.post("/mock-tests/save-section")
async def save_section(
    body: SaveSectionRequest,
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> dict:
    """Record one section's results and advance the session."""
    missing = [
        name for name in ("session_id", "section", "results")
        if getattr(body, name) in (None, "")
    ]
    if missing:
        raise MissingFieldsError(missing)
    submission = _submission(body.section, body.results)
    outcome = services.controller.submit_section(body.session_id, user.user_id, submission)
    return {
        "band_score": outcome.band_score,
        "next_section": outcome.next_section,
    }


@router.get("/mock-tests/{mock_test_id}")
async def get_mock_test(
    mock_test_id: str,
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> dict:
    """Definition, the caller's session (or null) and each section's content."""
    bundle = services.controller.get_bundle(
        user.user_id, mock_test_id, premium_access=user.is_premium
    )
    return bundle.model_dump(mode="json")


@router.get("/mock-tests/{mock_test_id}/sections/{section}")
async def open_section(
    mock_test_id: str,
    section: Section,
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> dict:
    """What the section page should show: the test, a transition or a redirect."""
    view = services.runner.open(
        user.user_id, mock_test_id, section, premium_access=user.is_premium
    )
    return view.model_dump(mode="json")


@router.post("/mock-tests/{mock_test_id}/sections/{section}/complete")
async def complete_section(
    mock_test_id: str,
    section: Section,
    body: CompleteSectionRequest,
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> dict:
    """Submit a finished section and return the transition screen."""
    missing = [name for name in ("session_id", "results") if getattr(body, name) in (None, "")]
    if missing:
        raise MissingFieldsError(missing)
    submission = _submission(section, body.results)
    transition = services.runner.complete(
        user.user_id, mock_test_id, body.session_id, submission
    )
    return transition.model_dump(mode="json")


@router.get("/mock-test-sessions/{session_id}/results")
async def get_session_results(
    session_id: str,
    user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> dict:
    """Per-section and overall bands for a session owned by the caller."""
    results = services.controller.get_results(user.user_id, session_id)
    return results.model_dump(mode="json")
