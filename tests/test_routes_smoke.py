"""Smoke tests for API routes."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from ielts_mock_test.config import Settings
from ielts_mock_test.main import create_app
from ielts_mock_test.models.evaluation import SpeakingEvaluation, WritingEvaluation
from ielts_mock_test.models.user import SubscriptionTier

from conftest import MOCK_TEST_ID, make_definition

ALICE = {"Authorization": "Bearer token-alice"}
BOB = {"Authorization": "Bearer token-bob"}


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "data", app_secret=None, openai_api_key=None)


@pytest.fixture
def client(settings, services):
    app = create_app(settings, services=services)
    with TestClient(app) as c:
        yield c


def _start(client, headers=ALICE) -> dict:
    response = client.post("/api/mock-tests/start", json={"mock_test_id": MOCK_TEST_ID}, headers=headers)
    assert response.status_code == 200
    return response.json()


class TestHealthCheck:
    def test_health_returns_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestAuthentication:
    def test_missing_identity(self, client):
        response = client.get("/api/mock-tests")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_unknown_token(self, client):
        response = client.get("/api/mock-tests", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_session_cookie(self, client):
        client.cookies.set("session", "token-alice")
        response = client.get("/api/mock-tests")
        assert response.status_code == 200

    def test_app_secret_enforced(self, tmp_path, services):
        settings = Settings(data_dir=tmp_path / "data", app_secret="s3cret")
        with TestClient(create_app(settings, services=services)) as c:
            assert c.get("/api/mock-tests", headers=ALICE).status_code == 401
            headers = {**ALICE, "X-App-Secret": "s3cret"}
            assert c.get("/api/mock-tests", headers=headers).status_code == 200
            assert c.get("/api/health").status_code == 200


class TestMockTestRoutes:
    def test_list_mock_tests(self, client):
        response = client.get("/api/mock-tests", headers=ALICE)
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["mock_test"]["id"] == MOCK_TEST_ID
        assert data[0]["completion_status"] == "not_started"

    def test_start_and_resume(self, client):
        first = _start(client)
        assert first["status"] == "in_progress"
        assert first["current_section"] == "listening"
        assert first["section_results"] == {}
        assert first["is_premium"] is False
        assert first["resumed"] is False

        second = _start(client)
        assert second["session_id"] == first["session_id"]
        assert second["resumed"] is True

    def test_start_accepts_camel_case(self, client):
        response = client.post(
            "/api/mock-tests/start", json={"mockTestId": MOCK_TEST_ID}, headers=ALICE
        )
        assert response.status_code == 200

    def test_start_unknown_mock_test(self, client):
        response = client.post("/api/mock-tests/start", json={"mock_test_id": "nope"}, headers=ALICE)
        assert response.status_code == 404

    def test_start_missing_id(self, client):
        response = client.post("/api/mock-tests/start", json={}, headers=ALICE)
        assert response.status_code == 400

    def test_bundle(self, client):
        _start(client)
        response = client.get(f"/api/mock-tests/{MOCK_TEST_ID}", headers=ALICE)
        assert response.status_code == 200
        data = response.json()
        assert data["session"]["current_section"] == "listening"
        assert data["tests"]["reading"]["id"] == "reading-1"
        assert data["tests"]["speaking"]["type"] == "ai-voice"


class TestSaveSection:
    def test_listening_camel_case_payload(self, client):
        session = _start(client)
        response = client.post(
            "/api/mock-tests/save-section",
            json={
                "sessionId": session["session_id"],
                "section": "listening",
                "results": {"testId": "listening-1", "score": 32, "totalQuestions": 40},
            },
            headers=ALICE,
        )
        assert response.status_code == 200
        assert response.json() == {"band_score": 7.0, "next_section": "reading"}

    def test_missing_fields(self, client):
        response = client.post(
            "/api/mock-tests/save-section", json={"section": "listening"}, headers=ALICE
        )
        assert response.status_code == 400
        assert "session_id" in response.json()["error"]

    def test_other_users_session_forbidden(self, client):
        session = _start(client)
        response = client.post(
            "/api/mock-tests/save-section",
            json={
                "session_id": session["session_id"],
                "section": "listening",
                "results": {"score": 40, "total_questions": 40},
            },
            headers=BOB,
        )
        assert response.status_code == 403
        assert "listening" not in response.text

    def test_out_of_order(self, client):
        session = _start(client)
        response = client.post(
            "/api/mock-tests/save-section",
            json={
                "session_id": session["session_id"],
                "section": "writing",
                "results": {"band_score": 6.5},
            },
            headers=ALICE,
        )
        assert response.status_code == 409
        assert response.json()["current_section"] == "listening"

    def test_unknown_session(self, client):
        response = client.post(
            "/api/mock-tests/save-section",
            json={"session_id": "nope", "section": "listening", "results": {}},
            headers=ALICE,
        )
        assert response.status_code == 404

    def test_band_score_out_of_scale_rejected(self, client):
        session = _start(client)
        response = client.post(
            "/api/mock-tests/save-section",
            json={
                "session_id": session["session_id"],
                "section": "listening",
                "results": {"band_score": 12},
            },
            headers=ALICE,
        )
        assert response.status_code == 422

    def test_full_flow_and_results(self, client):
        sid = _start(client)["session_id"]
        payloads = [
            ("listening", {"score": 32, "total_questions": 40}),
            ("reading", {"score": 38, "total_questions": 40}),
            ("writing", {"band_score": 6.5, "evaluation": {"task2": {"overall_band": 6.5}}}),
            ("speaking", {"band_score": 6.5}),
        ]
        for section, results in payloads:
            response = client.post(
                "/api/mock-tests/save-section",
                json={"session_id": sid, "section": section, "results": results},
                headers=ALICE,
            )
            assert response.status_code == 200
        assert response.json()["next_section"] is None

        results = client.get(f"/api/mock-test-sessions/{sid}/results", headers=ALICE).json()
        assert results["status"] == "completed"
        assert results["overall_band_score"] == 7.0

        again = client.post(
            "/api/mock-tests/save-section",
            json={"session_id": sid, "section": "speaking", "results": {"band_score": 9}},
            headers=ALICE,
        )
        assert again.status_code == 409


class TestSectionPages:
    def test_open_before_start(self, client):
        response = client.get(f"/api/mock-tests/{MOCK_TEST_ID}/sections/reading", headers=ALICE)
        assert response.status_code == 200
        assert response.json()["kind"] == "start"

    def test_open_and_complete(self, client):
        sid = _start(client)["session_id"]
        view = client.get(f"/api/mock-tests/{MOCK_TEST_ID}/sections/listening", headers=ALICE)
        assert view.json()["kind"] == "test"

        response = client.post(
            f"/api/mock-tests/{MOCK_TEST_ID}/sections/listening/complete",
            json={"sessionId": sid, "results": {"score": 32, "totalQuestions": 40}},
            headers=ALICE,
        )
        assert response.status_code == 200
        transition = response.json()
        assert transition["band_score"] == 7.0
        assert transition["next_section"] == "reading"
        assert transition["break_seconds"] == 120

    def test_unknown_section(self, client):
        response = client.get(f"/api/mock-tests/{MOCK_TEST_ID}/sections/maths", headers=ALICE)
        assert response.status_code == 422


class TestEvaluationRoutes:
    def test_unavailable_without_api_key(self, client):
        response = client.post(
            "/api/evaluate-writing", json={"task2_answer": "An essay"}, headers=ALICE
        )
        assert response.status_code == 503

    def test_writing_requires_an_answer(self, client):
        response = client.post("/api/evaluate-writing", json={}, headers=ALICE)
        assert response.status_code == 400

    def test_writing_delegates_to_evaluator(self, client, services):
        evaluator = MagicMock()
        evaluator.evaluate_writing = AsyncMock(return_value=WritingEvaluation(band_score=6.5))
        services.evaluator = evaluator

        response = client.post(
            "/api/evaluate-writing",
            json={"task2Answer": "Some essay text", "task2Prompt": "Discuss."},
            headers=ALICE,
        )
        assert response.status_code == 200
        assert response.json()["band_score"] == 6.5
        kwargs = evaluator.evaluate_writing.call_args.kwargs
        assert kwargs["task2_answer"] == "Some essay text"
        assert kwargs["task2_prompt"] == "Discuss."

    def test_speaking_delegates_to_evaluator(self, client, services):
        evaluator = MagicMock()
        evaluator.evaluate_speaking = AsyncMock(return_value=SpeakingEvaluation(overall_band=7.0))
        services.evaluator = evaluator

        response = client.post(
            "/api/evaluate-speaking",
            json={"responses": [{"question": "Where do you live?", "transcript": "In Leeds."}]},
            headers=ALICE,
        )
        assert response.status_code == 200
        assert response.json()["band_score"] == 7.0

    def test_speaking_requires_responses(self, client):
        response = client.post("/api/evaluate-speaking", json={"responses": []}, headers=ALICE)
        assert response.status_code == 400


class TestPremiumRoutes:
    @pytest.fixture(autouse=True)
    def premium_definition(self, services):
        services.mock_tests.add(make_definition("premium-1", is_premium=True))

    def test_free_user_blocked(self, client):
        response = client.post(
            "/api/mock-tests/start", json={"mock_test_id": "premium-1"}, headers=ALICE
        )
        assert response.status_code == 403
        assert "premium" in response.json()["error"]
        assert client.get("/api/mock-tests/premium-1", headers=ALICE).status_code == 403
        page = client.get("/api/mock-tests/premium-1/sections/listening", headers=ALICE)
        assert page.status_code == 403

    def test_premium_user_allowed(self, client):
        response = client.post(
            "/api/mock-tests/start", json={"mock_test_id": "premium-1"}, headers=BOB
        )
        assert response.status_code == 200
        assert response.json()["is_premium"] is True

    def test_listing_flags_locked_tests(self, client):
        free = client.get("/api/mock-tests", headers=ALICE).json()
        premium = client.get("/api/mock-tests", headers=BOB).json()
        free = {s["mock_test"]["id"]: s["locked"] for s in free}
        premium = {s["mock_test"]["id"]: s["locked"] for s in premium}
        assert free["premium-1"] is True
        assert premium["premium-1"] is False

    def test_upgraded_user_can_start(self, client, services):
        services.users.update(
            "alice", lambda u: setattr(u, "subscription_tier", SubscriptionTier.PREMIUM)
        )
        response = client.post(
            "/api/mock-tests/start", json={"mock_test_id": "premium-1"}, headers=ALICE
        )
        assert response.status_code == 200


class TestSectionOwnership:
    def test_complete_through_other_mock_test_rejected(self, client, services):
        services.mock_tests.add(make_definition("mock-2"))
        sid = _start(client)["session_id"]
        response = client.post(
            "/api/mock-tests/mock-2/sections/listening/complete",
            json={"session_id": sid, "results": {"score": 32, "total_questions": 40}},
            headers=ALICE,
        )
        assert response.status_code == 404
        view = client.get(f"/api/mock-tests/{MOCK_TEST_ID}/sections/listening", headers=ALICE)
        assert view.json()["kind"] == "test"
