"""Shared fixtures: an on-disk document store seeded with one mock test."""

from datetime import datetime

import pytest

from ielts_mock_test.container import ServiceContainer
from ielts_mock_test.models.mock_test import (
    MockTestDefinition,
    MockTestSections,
    MockTestSectionSpec,
    Section,
)
from ielts_mock_test.models.user import SubscriptionTier, User

MOCK_TEST_ID = "mock-1"


def make_definition(mock_test_id: str = MOCK_TEST_ID, is_premium: bool = False) -> MockTestDefinition:
    return MockTestDefinition(
        id=mock_test_id,
        title="Academic Mock Test 1",
        description="Full four-section practice exam",
        is_premium=is_premium,
        created_at=datetime(2026, 1, 1, 9, 0, 0),
        sections=MockTestSections(
            listening=MockTestSectionSpec(test_id="listening-1", duration=30, order=1),
            reading=MockTestSectionSpec(test_id="reading-1", duration=60, order=2),
            writing=MockTestSectionSpec(test_id="writing-1", duration=60, order=3),
            speaking=MockTestSectionSpec(test_id="speaking-1", duration=15, order=4),
        ),
    )


@pytest.fixture
def services(tmp_path) -> ServiceContainer:
    container = ServiceContainer.build(tmp_path / "data", break_seconds=120)
    container.mock_tests.add(make_definition())
    container.content.add(Section.LISTENING, "listening-1", {"title": "Listening 1", "parts": []})
    container.content.add(Section.READING, "reading-1", {"title": "Reading 1", "passages": []})
    container.content.add(Section.WRITING, "writing-1", {"title": "Writing 1", "tasks": []})
    container.users.save(
        User(user_id="alice", email="alice@example.com", session_token="token-alice")
    )
    container.users.save(
        User(
            user_id="bob",
            email="bob@example.com",
            session_token="token-bob",
            subscription_tier=SubscriptionTier.PREMIUM,
        )
    )
    return container


@pytest.fixture
def controller(services):
    return services.controller
