"""Qualification exam and attempt persistence."""

from ielts_mock_test.models.qualification import ExamAttempt, QualificationExam
from ielts_mock_test.storage.documents import JsonDocumentStore

EXAMS = "qualification_exams"
ATTEMPTS = "exam_attempts"


class QualificationRepository:
    def __init__(self, store: JsonDocumentStore):
        self.store = store

    def get_active_exam(self) -> QualificationExam | None:
        docs = self.store.find(EXAMS, is_active=True)
        return QualificationExam.model_validate(docs[0]) if docs else None

    def get_exam(self, exam_id: str) -> QualificationExam | None:
        data = self.store.get(EXAMS, exam_id)
        return QualificationExam.model_validate(data) if data is not None else None

    def add_exam(self, exam: QualificationExam) -> None:
        self.store.put(EXAMS, exam.id, exam.model_dump(mode="json"))

    def get_attempt(self, attempt_id: str) -> ExamAttempt | None:
        data = self.store.get(ATTEMPTS, attempt_id)
        return ExamAttempt.model_validate(data) if data is not None else None

    def save_attempt(self, attempt: ExamAttempt) -> None:
        self.store.put(ATTEMPTS, attempt.attempt_id, attempt.model_dump(mode="json"))

    def list_attempts(self, user_id: str) -> list[ExamAttempt]:
        attempts = [
            ExamAttempt.model_validate(d) for d in self.store.find(ATTEMPTS, user_id=user_id)
        ]
        return sorted(attempts, key=lambda a: a.started_at, reverse=True)
