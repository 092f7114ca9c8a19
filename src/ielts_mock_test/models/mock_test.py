"""Mock test definition, session and submission models."""

import uuid
from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class Section(StrEnum):
    """The four IELTS sections, in the order a mock test administers them."""

    LISTENING = "listening"
    READING = "reading"
    WRITING = "writing"
    SPEAKING = "speaking"

    @property
    def next(self) -> "Section | None":
        """Section that follows this one, None after speaking."""
        return _NEXT_SECTION[self]

    @property
    def is_objective(self) -> bool:
        """Listening and reading are marked by counting correct answers."""
        return self in (Section.LISTENING, Section.READING)


_NEXT_SECTION: dict[Section, Section | None] = {
    Section.LISTENING: Section.READING,
    Section.READING: Section.WRITING,
    Section.WRITING: Section.SPEAKING,
    Section.SPEAKING: None,
}

FIRST_SECTION = Section.LISTENING
SECTION_ORDER: tuple[Section, ...] = tuple(Section)


class SessionStatus(StrEnum):
    """Session lifecycle states."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CompletionStatus(StrEnum):
    """Per-definition progress shown in the mock test library."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class MockTestSectionSpec(BaseModel):
    test_id: str
    duration: int  # minutes
    order: int = Field(ge=1, le=4)


class MockTestSections(BaseModel):
    listening: MockTestSectionSpec
    reading: MockTestSectionSpec
    writing: MockTestSectionSpec
    speaking: MockTestSectionSpec

    def for_section(self, section: Section) -> MockTestSectionSpec:
        return getattr(self, section.value)


class MockTestDefinition(BaseModel):
    """Immutable content record bundling four section tests."""

    id: str
    title: str
    description: str = ""
    is_premium: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    sections: MockTestSections


class SectionResult(BaseModel):
    """Recorded outcome of one section within a session."""

    test_id: str | None = None
    band_score: float | None = None
    score: int | None = None
    total_questions: int | None = None
    answers: Any = None
    evaluation: dict[str, Any] | None = None
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: datetime = Field(default_factory=datetime.now)


class MockTestSession(BaseModel):
    """Mutable per-user attempt at a mock test."""

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    mock_test_id: str
    status: SessionStatus = SessionStatus.IN_PROGRESS
    current_section: Section | None = FIRST_SECTION
    section_results: dict[Section, SectionResult] = Field(default_factory=dict)
    overall_band_score: float | None = None
    is_premium: bool = False
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    def band_scores(self) -> dict[Section, float | None]:
        """Band score per section, None where missing or degraded."""
        return {
            section: (
                self.section_results[section].band_score
                if section in self.section_results
                else None
            )
            for section in SECTION_ORDER
        }

    def to_document(self) -> dict:
        """Serialize for the document store, omitting unset fields.

        ``current_section`` is always written: null marks a finished session.
        """
        data = self.model_dump(mode="json", exclude_none=True)
        data.setdefault("current_section", None)
        return data


# --- Submissions -----------------------------------------------------------


class _SubmissionBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    test_id: str | None = None
    band_score: float | None = Field(default=None, ge=0, le=9)
    started_at: datetime | None = None


class _ObjectiveResults(_SubmissionBase):
    score: int | None = Field(default=None, ge=0)
    total_questions: int | None = Field(default=None, ge=0)
    answers: Any = None


class _EvaluatedResults(_SubmissionBase):
    evaluation: dict[str, Any] | None = None


class ListeningResults(_ObjectiveResults):
    section: Literal["listening"] = "listening"


class ReadingResults(_ObjectiveResults):
    section: Literal["reading"] = "reading"


class WritingResults(_EvaluatedResults):
    section: Literal["writing"] = "writing"


class SpeakingResults(_EvaluatedResults):
    section: Literal["speaking"] = "speaking"


SectionSubmission = Annotated[
    ListeningResults | ReadingResults | WritingResults | SpeakingResults,
    Field(discriminator="section"),
]

_submission_adapter: TypeAdapter = TypeAdapter(SectionSubmission)


def parse_submission(section: Section | str, results: dict[str, Any]) -> SectionSubmission:
    """Validate raw client results as the submission type for ``section``."""
    return _submission_adapter.validate_python({**results, "section": str(section)})
