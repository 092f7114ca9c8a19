"""AI evaluation payloads for writing and speaking."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _LenientModel(BaseModel):
    """LLM output may use camelCase keys and add fields of its own."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class WritingTaskEvaluation(_LenientModel):
    """Band scores for one writing task (1-9 per criterion)."""

    task_achievement: float | None = None  # task 1
    task_response: float | None = None  # task 2
    coherence_cohesion: float = 5.0
    lexical_resource: float = 5.0
    grammatical_range: float = 5.0
    overall_band: float = Field(default=5.0, ge=0, le=9)
    word_count: int = 0
    detailed_feedback: dict[str, str] = Field(default_factory=dict)
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    advice: str = ""
    error: str | None = None


class WritingEvaluation(BaseModel):
    task1: WritingTaskEvaluation | None = None
    task2: WritingTaskEvaluation | None = None
    band_score: float | None = None
    evaluated_at: datetime = Field(default_factory=datetime.now)


class SpeakingAnswer(_LenientModel):
    question: str
    transcript: str = ""


class SpeakingResponseEvaluation(_LenientModel):
    question: str = ""
    fluency: float = 6.0
    coherence: float = 6.0
    lexical_resource: float = 6.0
    grammatical_range: float = 6.0
    pronunciation: float = 6.0
    overall_band: float = Field(default=6.0, ge=0, le=9)
    feedback: str = ""
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)


class SpeakingEvaluation(_LenientModel):
    overall_band: float = Field(default=6.0, ge=0, le=9)
    responses: list[SpeakingResponseEvaluation] = Field(default_factory=list)
    detailed_feedback: dict[str, str] = Field(default_factory=dict)
    overall_strengths: list[str] = Field(default_factory=list)
    overall_improvements: list[str] = Field(default_factory=list)
    advice: str = ""
    error: str | None = None
    evaluated_at: datetime = Field(default_factory=datetime.now)

    @property
    def band_score(self) -> float:
        return self.overall_band
