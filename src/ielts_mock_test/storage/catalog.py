"""Read-only access to mock test definitions and section test content."""

from ielts_mock_test.models.mock_test import MockTestDefinition, Section
from ielts_mock_test.storage.documents import JsonDocumentStore

MOCK_TESTS = "mock_tests"

# Section content collections; speaking runs as a live AI voice session.
CONTENT_COLLECTIONS: dict[Section, str] = {
    Section.LISTENING: "listening_tests",
    Section.READING: "reading_tests",
    Section.WRITING: "writing_tests",
}


class MockTestRepository:
    def __init__(self, store: JsonDocumentStore):
        self.store = store

    def get(self, mock_test_id: str) -> MockTestDefinition | None:
        data = self.store.get(MOCK_TESTS, mock_test_id)
        return MockTestDefinition.model_validate(data) if data is not None else None

    def list(self) -> list[MockTestDefinition]:
        definitions = [MockTestDefinition.model_validate(d) for d in self.store.find(MOCK_TESTS)]
        return sorted(definitions, key=lambda d: d.created_at)

    def add(self, definition: MockTestDefinition) -> None:
        """Seed a definition (content administration, scripts and tests)."""
        self.store.put(MOCK_TESTS, definition.id, definition.model_dump(mode="json"))


class ContentRepository:
    """Listening, reading and writing test documents, read by id."""

    def __init__(self, store: JsonDocumentStore):
        self.store = store

    def get(self, section: Section, test_id: str) -> dict | None:
        collection = CONTENT_COLLECTIONS.get(section)
        if collection is None:
            return {"type": "ai-voice", "id": test_id}
        data = self.store.get(collection, test_id)
        if data is None:
            return None
        return {"id": test_id, **data}

    def add(self, section: Section, test_id: str, data: dict) -> None:
        self.store.put(CONTENT_COLLECTIONS[section], test_id, data)
