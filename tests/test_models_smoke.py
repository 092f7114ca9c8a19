"""Smoke tests for pydantic models."""

import pytest
from pydantic import ValidationError

from ielts_mock_test.models.mock_test import (
    FIRST_SECTION,
    SECTION_ORDER,
    ListeningResults,
    MockTestSession,
    Section,
    SectionResult,
    SessionStatus,
    SpeakingResults,
    WritingResults,
    parse_submission,
)
from ielts_mock_test.models.user import SubscriptionTier, User


def test_section_order():
    assert FIRST_SECTION == Section.LISTENING
    assert SECTION_ORDER == (Section.LISTENING, Section.READING, Section.WRITING, Section.SPEAKING)
    assert Section.LISTENING.next == Section.READING
    assert Section.WRITING.next == Section.SPEAKING
    assert Section.SPEAKING.next is None
    assert Section.READING.is_objective
    assert not Section.SPEAKING.is_objective


def test_new_session_defaults():
    session = MockTestSession(user_id="u1", mock_test_id="m1")
    assert session.status == SessionStatus.IN_PROGRESS
    assert session.current_section == Section.LISTENING
    assert session.section_results == {}
    assert session.overall_band_score is None
    assert session.version == 0
    assert len(session.session_id) == 32


def test_session_document_omits_unset_fields():
    session = MockTestSession(user_id="u1", mock_test_id="m1")
    doc = session.to_document()
    assert "overall_band_score" not in doc
    assert "completed_at" not in doc
    assert MockTestSession.model_validate(doc).session_id == session.session_id


def test_finished_session_keeps_null_pointer():
    session = MockTestSession(
        user_id="u1",
        mock_test_id="m1",
        status=SessionStatus.COMPLETED,
        current_section=None,
    )
    doc = session.to_document()
    assert doc["current_section"] is None
    assert MockTestSession.model_validate(doc).current_section is None


def test_band_scores_marks_missing_sections():
    session = MockTestSession(
        user_id="u1",
        mock_test_id="m1",
        section_results={Section.LISTENING: SectionResult(band_score=7.0)},
    )
    assert session.band_scores() == {
        Section.LISTENING: 7.0,
        Section.READING: None,
        Section.WRITING: None,
        Section.SPEAKING: None,
    }


def test_parse_submission_accepts_camel_case():
    submission = parse_submission(
        "listening", {"testId": "l-1", "score": 30, "totalQuestions": 40, "unknown": 1}
    )
    assert isinstance(submission, ListeningResults)
    assert submission.test_id == "l-1"
    assert submission.total_questions == 40


def test_parse_submission_picks_section_type():
    assert isinstance(parse_submission(Section.WRITING, {"band_score": 6.0}), WritingResults)
    assert isinstance(parse_submission(Section.SPEAKING, {}), SpeakingResults)


def test_parse_submission_rejects_unknown_section():
    with pytest.raises(ValidationError):
        parse_submission("maths", {"score": 10})


def test_submission_band_score_bounds():
    with pytest.raises(ValidationError):
        WritingResults(band_score=9.5)
    with pytest.raises(ValidationError):
        ListeningResults(score=-1)


def test_user_premium_flag():
    assert not User(user_id="u1").is_premium
    assert User(user_id="u2", subscription_tier=SubscriptionTier.PREMIUM).is_premium
