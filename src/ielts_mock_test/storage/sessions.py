"""Mock test session persistence."""

from collections.abc import Callable
from datetime import datetime

import structlog

from ielts_mock_test.errors import StaleSessionError
from ielts_mock_test.models.mock_test import MockTestSession, SessionStatus
from ielts_mock_test.storage.documents import JsonDocumentStore

logger = structlog.get_logger()

SESSIONS = "mock_test_sessions"


class SessionRepository:
    """Sessions keyed by id, looked up by (user_id, mock_test_id)."""

    def __init__(self, store: JsonDocumentStore):
        self.store = store

    def get(self, session_id: str) -> MockTestSession | None:
        data = self.store.get(SESSIONS, session_id)
        return MockTestSession.model_validate(data) if data is not None else None

    def find_in_progress(self, user_id: str, mock_test_id: str) -> MockTestSession | None:
        docs = self.store.find(
            SESSIONS,
            user_id=user_id,
            mock_test_id=mock_test_id,
            status=SessionStatus.IN_PROGRESS.value,
        )
        return MockTestSession.model_validate(docs[0]) if docs else None

    def list_for_user(self, user_id: str) -> list[MockTestSession]:
        sessions = [
            MockTestSession.model_validate(d)
            for d in self.store.find(SESSIONS, user_id=user_id)
        ]
        return sorted(sessions, key=lambda s: s.started_at)

    def find_latest(self, user_id: str, mock_test_id: str) -> MockTestSession | None:
        """In-progress session if any, else the most recently started one."""
        sessions = [
            s for s in self.list_for_user(user_id) if s.mock_test_id == mock_test_id
        ]
        if not sessions:
            return None
        for session in sessions:
            if not session.is_completed:
                return session
        return sessions[-1]

    def get_or_create_in_progress(
        self,
        user_id: str,
        mock_test_id: str,
        factory: Callable[[], MockTestSession],
    ) -> tuple[MockTestSession, bool]:
        """Return the in-progress session, creating it if none exists.

        Lookup and insert happen under one collection lock, so concurrent
        callers cannot both create a session for the same pair.

        Returns:
            (session, created)
        """
        with self.store.transaction(SESSIONS) as sessions:
            existing = sessions.find(
                user_id=user_id,
                mock_test_id=mock_test_id,
                status=SessionStatus.IN_PROGRESS.value,
            )
            if existing:
                return MockTestSession.model_validate(existing[0]), False
            session = factory()
            sessions.put(session.session_id, session.to_document())
            return session, True

    def save(self, session: MockTestSession) -> MockTestSession:
        """Write ``session`` if nobody else wrote it since it was read.

        The stored version must equal ``session.version``; the written copy
        carries the next version.

        Raises:
            StaleSessionError: if the stored version moved on.
        """
        with self.store.transaction(SESSIONS) as sessions:
            current = sessions.get(session.session_id)
            stored_version = current.get("version", 0) if current is not None else 0
            if current is not None and stored_version != session.version:
                logger.warning(
                    "session_write_conflict",
                    session_id=session.session_id,
                    expected=session.version,
                    actual=stored_version,
                )
                raise StaleSessionError(session.session_id, session.version, stored_version)
            saved = session.model_copy(
                update={"version": session.version + 1, "updated_at": datetime.now()}
            )
            sessions.put(saved.session_id, saved.to_document())
            return saved
