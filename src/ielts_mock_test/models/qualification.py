"""Qualification exam models."""

import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class QuestionType(StrEnum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    FILL_IN_BLANK = "fill-in-blank"


class QuestionCategory(StrEnum):
    GRAMMAR = "grammar"
    VOCABULARY = "vocabulary"
    READING_COMPREHENSION = "reading-comprehension"


class QualificationQuestion(BaseModel):
    id: str
    type: QuestionType
    category: QuestionCategory
    question: str
    options: list[str] | None = None
    correct_answer: str | list[str]
    points: int = Field(default=1, ge=0)
    explanation: str | None = None


class QualificationExam(BaseModel):
    id: str
    title: str
    description: str = ""
    duration: int = 30  # minutes
    questions: list[QualificationQuestion] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self.questions)

    def public_view(self) -> dict:
        """Exam as shown to candidates, without answers or explanations."""
        data = self.model_dump(mode="json")
        for question in data["questions"]:
            question.pop("correct_answer", None)
            question.pop("explanation", None)
        data["total_points"] = self.total_points
        return data


class ExamAttempt(BaseModel):
    attempt_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    exam_id: str
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: datetime | None = None
    answers: dict[str, str | list[str]] = Field(default_factory=dict)
    score: int = 0  # percentage
    total_points: int = 0
    earned_points: int = 0
    passed: bool = False
    time_spent: int = 0  # seconds
    premium_unlocked: bool = False


class Eligibility(BaseModel):
    can_take: bool
    reason: str | None = None
    next_attempt_at: datetime | None = None
