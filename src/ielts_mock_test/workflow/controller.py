"""Mock test session lifecycle: start, section gating, submission, completion."""

from datetime import datetime
from enum import StrEnum
from typing import Any

import structlog
from pydantic import BaseModel

from ielts_mock_test.assessment.band_score import (
    calculate_overall_band_score,
    convert_listening_score_to_band,
    convert_reading_score_to_band,
    get_band_score_description,
    get_performance_level,
    get_study_recommendations,
)
from ielts_mock_test.errors import (
    ForbiddenError,
    NotFoundError,
    PremiumRequiredError,
    SectionOutOfOrderError,
    SessionCompletedError,
)
from ielts_mock_test.models.mock_test import (
    FIRST_SECTION,
    SECTION_ORDER,
    CompletionStatus,
    MockTestDefinition,
    MockTestSession,
    Section,
    SectionResult,
    SectionSubmission,
    SessionStatus,
)
from ielts_mock_test.storage.catalog import ContentRepository, MockTestRepository
from ielts_mock_test.storage.sessions import SessionRepository

logger = structlog.get_logger()


class SectionAction(StrEnum):
    """What a section page should do with the requested section."""

    START = "start"  # no session yet
    COMPLETED = "completed"  # section already recorded
    REDIRECT = "redirect"  # another section is current
    RESULTS = "results"  # session finished
    PROCEED = "proceed"  # administer the section


class SectionAccess(BaseModel):
    action: SectionAction
    section: Section
    session: MockTestSession | None = None
    redirect_section: Section | None = None
    section_result: SectionResult | None = None


class SectionOutcome(BaseModel):
    band_score: float | None
    next_section: Section | None
    session: MockTestSession


class MockTestSummary(BaseModel):
    mock_test: MockTestDefinition
    session: MockTestSession | None = None
    completion_status: CompletionStatus = CompletionStatus.NOT_STARTED
    locked: bool = False  # premium test, caller on the free tier


class MockTestBundle(BaseModel):
    mock_test: MockTestDefinition
    session: MockTestSession | None = None
    tests: dict[Section, dict[str, Any] | None]


class SectionScore(BaseModel):
    section: Section
    band_score: float | None = None
    description: str | None = None


class SessionResults(BaseModel):
    session_id: str
    mock_test_id: str
    status: SessionStatus
    sections: list[SectionScore]
    overall_band_score: float | None = None
    overall_description: str | None = None
    performance_level: str | None = None
    recommendations: list[str] = []


def derive_band_score(submission: SectionSubmission) -> float | None:
    """Band score for a submission.

    A band supplied by the caller (AI-evaluated writing/speaking) wins. Otherwise
    listening and reading convert their raw score when a question count is
    present. Anything else yields None, which still lets the session advance.
    """
    if submission.band_score is not None:
        return submission.band_score
    section = Section(submission.section)
    if not section.is_objective:
        return None
    if submission.score is None or not submission.total_questions:
        return None
    if section == Section.LISTENING:
        return convert_listening_score_to_band(submission.score)
    return convert_reading_score_to_band(submission.score, is_academic=True)


def build_section_result(
    submission: SectionSubmission,
    band_score: float | None,
    now: datetime,
) -> SectionResult:
    return SectionResult(
        test_id=submission.test_id,
        band_score=band_score,
        score=getattr(submission, "score", None),
        total_questions=getattr(submission, "total_questions", None),
        answers=getattr(submission, "answers", None),
        evaluation=getattr(submission, "evaluation", None),
        started_at=submission.started_at or now,
        completed_at=now,
    )


class MockTestController:
    """The only component that mutates mock test sessions.

    Args:
        sessions: Session persistence.
        mock_tests: Mock test definitions (read only).
        content: Section test content (read only).
    """

    def __init__(
        self,
        sessions: SessionRepository,
        mock_tests: MockTestRepository,
        content: ContentRepository,
    ):
        self.sessions = sessions
        self.mock_tests = mock_tests
        self.content = content

    def _require_definition(self, mock_test_id: str) -> MockTestDefinition:
        definition = self.mock_tests.get(mock_test_id)
        if definition is None:
            raise NotFoundError("Mock test not found")
        return definition

    def require_access(self, mock_test_id: str, premium_access: bool) -> MockTestDefinition:
        """Definition for ``mock_test_id`` if the caller's tier may open it.

        Raises:
            NotFoundError: unknown mock test.
            PremiumRequiredError: premium test and ``premium_access`` is false.
        """
        definition = self._require_definition(mock_test_id)
        if definition.is_premium and not premium_access:
            logger.info("premium_mock_test_locked", mock_test_id=mock_test_id)
            raise PremiumRequiredError(mock_test_id)
        return definition

    def _require_owned_session(
        self, session_id: str, user_id: str, mock_test_id: str | None = None
    ) -> MockTestSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if session.user_id != user_id:
            logger.warning("session_access_denied", session_id=session_id, user_id=user_id)
            raise ForbiddenError()
        if mock_test_id is not None and session.mock_test_id != mock_test_id:
            raise NotFoundError("Session not found for this mock test")
        return session

    def start(
        self, user_id: str, mock_test_id: str, premium_access: bool = False
    ) -> tuple[MockTestSession, bool]:
        """Resume the user's in-progress session or create a new one.

        Args:
            premium_access: Whether the caller is on the premium tier.

        Returns:
            (session, created)
        """
        definition = self.require_access(mock_test_id, premium_access)

        def _new_session() -> MockTestSession:
            return MockTestSession(
                user_id=user_id,
                mock_test_id=mock_test_id,
                current_section=FIRST_SECTION,
                is_premium=definition.is_premium,
            )

        session, created = self.sessions.get_or_create_in_progress(
            user_id, mock_test_id, _new_session
        )
        if created:
            logger.info(
                "mock_test_session_started",
                session_id=session.session_id,
                user_id=user_id,
                mock_test_id=mock_test_id,
            )
        else:
            logger.info("mock_test_session_resumed", session_id=session.session_id)
        return session, created

    def load_session_for_section(
        self, user_id: str, mock_test_id: str, section: Section, premium_access: bool = False
    ) -> SectionAccess:
        """Decide whether ``section`` may be administered right now."""
        self.require_access(mock_test_id, premium_access)
        session =self.sessions.find_latest(user_id, mock_test_id)
        if session is None:
            return SectionAccess(action=SectionAction.START, section=section)
        if section in session.section_results:
            return SectionAccess(
                action=SectionAction.COMPLETED,
                section=section,
                session=session,
                section_result=session.section_results[section],
            )
        if session.current_section is None:
            return SectionAccess(action=SectionAction.RESULTS, section=section, session=session)
        if session.current_section != section:
            return SectionAccess(
                action=SectionAction.REDIRECT,
                section=section,
                session=session,
                redirect_section=session.current_section,
            )
        return SectionAccess(action=SectionAction.PROCEED, section=section, session=session)

    def submit_section(
        self,
        session_id: str,
        user_id: str,
        submission: SectionSubmission,
        mock_test_id: str | None = None,
    ) -> SectionOutcome:
        """Record a section result and advance the session one step.

        When ``mock_test_id`` is given the session must belong to that mock test.

        Raises:
            NotFoundError: unknown session, or a session of another mock test.
            ForbiddenError: session owned by someone else (left untouched).
            SessionCompletedError: session already finished.
            SectionOutOfOrderError: ``submission`` is not for the current section.
            InvalidScoreError: raw score outside 0-40.
            StaleSessionError: the session changed since it was read.
        """
        session = self._require_owned_session(session_id, user_id, mock_test_id)
        if session.is_completed:
            raise SessionCompletedError(session_id)

        section = Section(submission.section)
        if section != session.current_section:
            raise SectionOutOfOrderError(section, session.current_section)

        band_score = derive_band_score(submission)
        if band_score is None:
            logger.warning("section_band_score_missing", session_id=session_id, section=section)

        now = datetime.now()
        section_results = {
            **session.section_results,
            section: build_section_result(submission, band_score, now),
        }
        next_section = section.next
        update: dict[str, Any] = {
            "section_results": section_results,
            "current_section": next_section,
        }

        if next_section is None:
            scores = [section_results[s].band_score if s in section_results else None
                      for s in SECTION_ORDER]
            if all(score is not None for score in scores):
                update["overall_band_score"] = calculate_overall_band_score(*scores)
            else:
                # Never block completion; leave the overall band unset
                logger.warning(
                    "mock_test_completed_with_missing_scores",
                    session_id=session_id,
                    scores=scores,
                )
            update["status"] = SessionStatus.COMPLETED
            update["completed_at"] = now

        saved = self.sessions.save(session.model_copy(update=update))
        logger.info(
            "section_submitted",
            session_id=session_id,
            section=section,
            band_score=band_score,
            next_section=next_section,
        )
        if saved.is_completed:
            logger.info(
                "mock_test_completed",
                session_id=session_id,
                overall_band_score=saved.overall_band_score,
            )
        return SectionOutcome(band_score=band_score, next_section=next_section, session=saved)

    def list_mock_tests(self, user_id: str, premium_access: bool = False) -> list[MockTestSummary]:
        """All definitions with the user's latest session for each.

        Premium tests stay listed for free-tier callers but are marked ``locked``.
        """
        latest: dict[str, MockTestSession] = {}
        for session in self.sessions.list_for_user(user_id):
            current = latest.get(session.mock_test_id)
            if current is None or current.is_completed:
                latest[session.mock_test_id] = session

        summaries = []
        for definition in self.mock_tests.list():
            session = latest.get(definition.id)
            status = (
                CompletionStatus(session.status.value)
                if session is not None
                else CompletionStatus.NOT_STARTED
            )
            summaries.append(
                MockTestSummary(
                    mock_test=definition,
                    session=session,
                    completion_status=status,
                    locked=definition.is_premium and not premium_access,
                )
            )
        return summaries

    def get_bundle(
        self, user_id: str, mock_test_id: str, premium_access: bool = False
    ) -> MockTestBundle:
        definition = self.require_access(mock_test_id, premium_access)
        tests = {
            section: self.content.get(section, definition.sections.for_section(section).test_id)
            for section in SECTION_ORDER
        }
        return MockTestBundle(
            mock_test=definition,
            session=self.sessions.find_latest(user_id, mock_test_id),
            tests=tests,
        )

    def get_results(self, user_id: str, session_id: str) -> SessionResults:
        session = self._require_owned_session(session_id, user_id)
        sections = [
            SectionScore(
                section=section,
                band_score=band,
                description=get_band_score_description(band) if band is not None else None,
            )
            for section, band in session.band_scores().items()
        ]
        overall = session.overall_band_score
        return SessionResults(
            session_id=session.session_id,
            mock_test_id=session.mock_test_id,
            status=session.status,
            sections=sections,
            overall_band_score=overall,
            overall_description=get_band_score_description(overall) if overall is not None else None,
            performance_level=get_performance_level(overall) if overall is not None else None,
            recommendations=get_study_recommendations(overall) if overall is not None else [],
        )
