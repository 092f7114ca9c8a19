"""Section runner: what each mock test section page shows, and the transition after it."""

from enum import StrEnum
from typing import Any

import structlog
from pydantic import BaseModel

from ielts_mock_test.errors import NotFoundError, StorageError
from ielts_mock_test.models.mock_test import MockTestDefinition, Section, SectionSubmission
from ielts_mock_test.workflow.controller import (
    MockTestController,
    SectionAction,
    derive_band_score,
)

logger = structlog.get_logger()

SAVE_FAILED_ALERT = "Failed to save your results. Please try again."


def section_path(mock_test_id: str, target: str) -> str:
    return f"/mock-test/{mock_test_id}/{target}"


class ViewKind(StrEnum):
    START = "start"
    TRANSITION = "transition"
    REDIRECT = "redirect"
    RESULTS = "results"
    TEST = "test"


class Transition(BaseModel):
    """Screen between sections; the optional break has no durable state."""

    mock_test_id: str
    completed_section: Section
    band_score: float | None = None
    score: int | None = None
    next_section: Section | None = None
    next_section_duration: int | None = None
    break_seconds: int = 0
    results_ready: bool = False
    continue_to: str
    alert: str | None = None


class SectionView(BaseModel):
    kind: ViewKind
    mock_test_id: str
    section: Section
    session_id: str | None = None
    redirect_to: str | None = None
    test: dict[str, Any] | None = None
    duration: int | None = None
    transition: Transition | None = None


class SectionRunner:
    """Drives the four section pages on top of :class:`MockTestController`.

    Args:
        controller: Session lifecycle controller.
        break_seconds: Optional break offered on the transition screen.
    """

    def __init__(self, controller: MockTestController, break_seconds: int = 120):
        self.controller = controller
        self.break_seconds = break_seconds

    def _definition(self, mock_test_id: str) -> MockTestDefinition:
        definition = self.controller.mock_tests.get(mock_test_id)
        if definition is None:
            raise NotFoundError("Mock test not found")
        return definition

    def _transition(
        self,
        definition: MockTestDefinition,
        section: Section,
        band_score: float | None,
        score: int | None,
        alert: str | None = None,
    ) -> Transition:
        next_section = section.next
        if next_section is None:
            return Transition(
                mock_test_id=definition.id,
                completed_section=section,
                band_score=band_score,
                score=score,
                results_ready=True,
                continue_to=section_path(definition.id, "results"),
                alert=alert,
            )
        return Transition(
            mock_test_id=definition.id,
            completed_section=section,
            band_score=band_score,
            score=score,
            next_section=next_section,
            next_section_duration=definition.sections.for_section(next_section).duration,
            break_seconds=self.break_seconds,
            continue_to=section_path(definition.id, next_section),
            alert=alert,
        )

    def open(
        self, user_id: str, mock_test_id: str, section: Section, premium_access: bool = False
    ) -> SectionView:
        definition = self._definition(mock_test_id)
        access = self.controller.load_session_for_section(
            user_id, mock_test_id, section, premium_access=premium_access
        )
        session_id = access.session.session_id if access.session else None

        if access.action == SectionAction.START:
            return SectionView(
                kind=ViewKind.START,
                mock_test_id=mock_test_id,
                section=section,
                redirect_to=section_path(mock_test_id, "start"),
            )
        if access.action == SectionAction.COMPLETED:
            result = access.section_result
            return SectionView(
                kind=ViewKind.TRANSITION,
                mock_test_id=mock_test_id,
                section=section,
                session_id=session_id,
                transition=self._transition(
                    definition, section, result.band_score, result.score
                ),
            )
        if access.action == SectionAction.RESULTS:
            return SectionView(
                kind=ViewKind.RESULTS,
                mock_test_id=mock_test_id,
                section=section,
                session_id=session_id,
                redirect_to=section_path(mock_test_id, "results"),
            )
        if access.action == SectionAction.REDIRECT:
            return SectionView(
                kind=ViewKind.REDIRECT,
                mock_test_id=mock_test_id,
                section=section,
                session_id=session_id,
                redirect_to=section_path(mock_test_id, access.redirect_section),
            )

        spec = definition.sections.for_section(section)
        return SectionView(
            kind=ViewKind.TEST,
            mock_test_id=mock_test_id,
            section=section,
            session_id=session_id,
            test=self.controller.content.get(section, spec.test_id),
            duration=spec.duration,
        )

    def complete(
        self,
        user_id: str,
        mock_test_id: str,
        session_id: str,
        submission: SectionSubmission,
    ) -> Transition:
        """Submit a finished section and build the transition screen.

        A storage failure does not trap the user mid-test: the transition is
        still returned, with the locally derived band score and an alert.
        """
        definition = self._definition(mock_test_id)
        section = Section(submission.section)
        score = getattr(submission, "score", None)
        try:
            outcome = self.controller.submit_section(
                session_id, user_id, submission, mock_test_id=mock_test_id
            )
        except StorageError:
            logger.exception("section_save_failed", session_id=session_id, section=section)
            return self._transition(
                definition, section, derive_band_score(submission), score, alert=SAVE_FAILED_ALERT
            )
        return self._transition(definition, section, outcome.band_score, score)
