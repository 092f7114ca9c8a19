"""Promotional qualification exam: pass it to unlock premium access."""

import math
from datetime import datetime, timedelta

import structlog

from ielts_mock_test.errors import ForbiddenError, NotFoundError, QualificationError
from ielts_mock_test.models.qualification import (
    Eligibility,
    ExamAttempt,
    QualificationExam,
    QualificationQuestion,
)
from ielts_mock_test.models.user import SubscriptionTier, User
from ielts_mock_test.storage.qualification import QualificationRepository
from ielts_mock_test.storage.users import UserRepository

logger = structlog.get_logger()


def _normalize(answer: str | list[str]) -> list[str]:
    values = answer if isinstance(answer, list) else [answer]
    return [v.lower().strip() for v in values]


def is_correct(question: QualificationQuestion, answer: str | list[str] | None) -> bool:
    """Case and whitespace insensitive; multi-part answers must match as a set."""
    if not answer:
        return False
    expected = _normalize(question.correct_answer)
    given = _normalize(answer)
    return len(expected) == len(given) and all(a in given for a in expected)


def grade_exam(
    exam: QualificationExam, answers: dict[str, str | list[str]]
) -> tuple[int, int, int]:
    """Grade answers against ``exam``.

    Returns:
        (earned_points, total_points, score_percentage)
    """
    earned = 0
    total = 0
    for question in exam.questions:
        total += question.points
        if is_correct(question, answers.get(question.id)):
            earned += question.points
    # Halves round up: 62.5% scores 63
    percentage = math.floor(earned / total * 100 + 0.5) if total else 0
    return earned, total, percentage


class QualificationService:
    """Eligibility, attempts and grading for the qualification exam.

    Args:
        exams: Exam and attempt persistence.
        users: User records, updated when an attempt is graded.
        passing_score: Minimum percentage to pass.
        retry_cooldown_days: Wait after a failed attempt.
        promo_active: Whether the promotion is running at all.
    """

    def __init__(
        self,
        exams: QualificationRepository,
        users: UserRepository,
        passing_score: int = 50,
        retry_cooldown_days: int = 7,
        promo_active: bool = True,
    ):
        self.exams = exams
        self.users = users
        self.passing_score = passing_score
        self.retry_cooldown_days = retry_cooldown_days
        self.promo_active = promo_active

    def get_active_exam(self) -> QualificationExam:
        exam = self.exams.get_active_exam()
        if exam is None:
            raise NotFoundError("Qualification exam not found")
        return exam

    def can_take(self, user: User, now: datetime | None = None) -> Eligibility:
        now = now or datetime.now()
        if not self.promo_active:
            return Eligibility(can_take=False, reason="Promotional period has ended")
        status = user.qualification
        if status.has_passed:
            return Eligibility(
                can_take=False, reason="You have already passed the qualification exam"
            )
        if status.next_attempt_available_at and now < status.next_attempt_available_at:
            return Eligibility(
                can_take=False,
                reason="You can retry after the cooldown period",
                next_attempt_at=status.next_attempt_available_at,
            )
        return Eligibility(can_take=True)

    def start_attempt(self, user: User, exam_id: str) -> ExamAttempt:
        eligibility = self.can_take(user)
        if not eligibility.can_take:
            raise QualificationError(
                eligibility.reason,
                next_attempt_at=(
                    eligibility.next_attempt_at.isoformat()
                    if eligibility.next_attempt_at
                    else None
                ),
            )
        exam = self.exams.get_exam(exam_id)
        if exam is None:
            raise NotFoundError("Qualification exam not found")
        attempt = ExamAttempt(user_id=user.user_id, exam_id=exam.id, total_points=exam.total_points)
        self.exams.save_attempt(attempt)
        logger.info("qualification_attempt_started", attempt_id=attempt.attempt_id, user_id=user.user_id)
        return attempt

    def submit(
        self,
        user: User,
        attempt_id: str,
        answers: dict[str, str | list[str]],
        time_spent: int,
    ) -> ExamAttempt:
        attempt = self.exams.get_attempt(attempt_id)
        if attempt is None:
            raise NotFoundError("Attempt not found")
        if attempt.user_id != user.user_id:
            raise ForbiddenError("Unauthorized access to attempt")
        if attempt.completed_at is not None:
            raise QualificationError("Attempt has already been submitted")
        exam = self.exams.get_exam(attempt.exam_id)
        if exam is None:
            raise NotFoundError("Qualification exam not found")

        earned, total, percentage = grade_exam(exam, answers)
        passed = percentage >= self.passing_score
        now = datetime.now()
        graded = attempt.model_copy(
            update={
                "answers": answers,
                "completed_at": now,
                "time_spent": time_spent,
                "total_points": total,
                "earned_points": earned,
                "score": percentage,
                "passed": passed,
                "premium_unlocked": passed,
            }
        )
        self.exams.save_attempt(graded)

        def _record(record: User) -> None:
            status = record.qualification
            status.attempts += 1
            status.last_attempt_at = now
            if passed:
                status.has_passed = True
                status.passed_at = now
                status.premium_access_method = "exam"
                record.subscription_tier = SubscriptionTier.PREMIUM
            else:
                status.next_attempt_available_at = now + timedelta(days=self.retry_cooldown_days)

        self.users.update(user.user_id, _record)
        logger.info(
            "qualification_attempt_graded",
            attempt_id=attempt_id,
            user_id=user.user_id,
            score=percentage,
            passed=passed,
        )
        return graded

    def list_attempts(self, user: User) -> list[ExamAttempt]:
        return self.exams.list_attempts(user.user_id)
