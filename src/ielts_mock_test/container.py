"""Explicit wiring of stores and services, built once per process."""

from dataclasses import dataclass
from pathlib import Path

from ielts_mock_test.assessment.llm_evaluator import IELTSEvaluator
from ielts_mock_test.config import Settings
from ielts_mock_test.qualification.exam import QualificationService
from ielts_mock_test.storage.catalog import ContentRepository, MockTestRepository
from ielts_mock_test.storage.documents import JsonDocumentStore
from ielts_mock_test.storage.qualification import QualificationRepository
from ielts_mock_test.storage.sessions import SessionRepository
from ielts_mock_test.storage.users import UserRepository
from ielts_mock_test.workflow.controller import MockTestController
from ielts_mock_test.workflow.runner import SectionRunner


@dataclass
class ServiceContainer:
    store: JsonDocumentStore
    users: UserRepository
    mock_tests: MockTestRepository
    content: ContentRepository
    sessions: SessionRepository
    controller: MockTestController
    runner: SectionRunner
    qualification: QualificationService
    evaluator: IELTSEvaluator | None = None

    @classmethod
    def build(
        cls,
        data_dir: Path,
        evaluator: IELTSEvaluator | None = None,
        break_seconds: int = 120,
        passing_score: int = 50,
        retry_cooldown_days: int = 7,
        promo_active: bool = True,
    ) -> "ServiceContainer":
        store = JsonDocumentStore(data_dir)
        users = UserRepository(store)
        mock_tests = MockTestRepository(store)
        content = ContentRepository(store)
        sessions = SessionRepository(store)
        controller = MockTestController(sessions, mock_tests, content)
        return cls(
            store=store,
            users=users,
            mock_tests=mock_tests,
            content=content,
            sessions=sessions,
            controller=controller,
            runner=SectionRunner(controller, break_seconds=break_seconds),
            qualification=QualificationService(
                QualificationRepository(store),
                users,
                passing_score=passing_score,
                retry_cooldown_days=retry_cooldown_days,
                promo_active=promo_active,
            ),
            evaluator=evaluator,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceContainer":
        evaluator = None
        if settings.openai_api_key:
            evaluator = IELTSEvaluator(
                api_key=settings.openai_api_key, model=settings.evaluation_model
            )
        return cls.build(
            settings.documents_dir,
            evaluator=evaluator,
            break_seconds=settings.break_seconds,
            passing_score=settings.qualification_passing_score,
            retry_cooldown_days=settings.qualification_retry_cooldown_days,
            promo_active=settings.qualification_promo_active,
        )
