# tests/test_routes.py
import json

import pytest
from fastapi.testclient import TestClient

from testgenius.core.errors import ReportError
from testgenius.main import app
from testgenius.services.test_service import get_test_service


@pytest.fixture
def client(service):
    app.dependency_overrides[get_test_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def new_session(client):
    response = client.post("/api/sessions")
    assert response.status_code == 200
    return response.json()["sessionId"]


def start_topic_test(client, configuration=None):
    session_id = new_session(client)
    base = f"/api/sessions/{session_id}"
    assert client.post(f"{base}/method", json={"mode": "generate_from_topic"}).json()["step"] == "topic_input"
    assert client.post(f"{base}/topic", json={"topic": "Photosynthesis"}).json()["step"] == "topic_options"

    generated = client.post(f"{base}/options", json={"count": 5, "difficulty": "easy"}).json()
    assert generated["step"] == "configuration"
    assert len(generated["questions"]) == 5

    configured = client.post(f"{base}/configuration", json=configuration or {"isTimedTest": False})
    assert configured.json()["step"] == "preview"

    started = client.post(f"{base}/start").json()
    assert started["step"] == "taking_test"
    return session_id, started


def test_health(client):
    assert client.get("/api/health").json()["status"] == "healthy"


def test_topic_test_end_to_end(client):
    session_id, started = start_topic_test(client, {
        "isTimedTest": True,
        "durationSeconds": 600,
        "negativeMarkingEnabled": True,
        "negativeMarkPerWrong": 0.5,
    })
    base = f"/api/sessions/{session_id}"
    questions = started["questions"]

    assert started["remainingSeconds"] == 600
    client.post(f"{base}/answers", json={"questionId": questions[0]["id"], "answer": "Q1 A"})
    client.post(f"{base}/answers", json={"questionId": questions[1]["id"], "answer": "Q2 B"})
    navigated = client.post(f"{base}/navigate", json={"index": 4}).json()
    assert navigated["currentIndex"] == 4
    assert navigated["answeredCount"] == 2

    results = client.post(f"{base}/submit").json()
    assert results["step"] == "results"
    assert results["scoreSummary"]["score"] == 0.5
    assert results["historySaved"] is True

    pdf = client.get(f"{base}/results/pdf")
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"

    history = client.get("/api/history").json()
    assert history["count"] == 1
    entry_id = history["entries"][0]["id"]
    assert entry_id == results["historyEntryId"]

    entry = client.get(f"/api/history/{entry_id}").json()
    assert entry["scoreSummary"]["totalQuestions"] == 5
    assert entry["testConfiguration"]["negativeMarkPerWrong"] == 0.5

    assert client.get(f"/api/history/{entry_id}/pdf").status_code == 200

    retaken = client.post(f"/api/history/{entry_id}/retake").json()
    assert retaken["step"] == "configuration"
    assert retaken["sessionId"] != session_id


def test_document_test_scored_with_key(client):
    session_id = new_session(client)
    base = f"/api/sessions/{session_id}"
    client.post(f"{base}/method", json={"mode": "extract_from_document"})

    uploaded = client.post(f"{base}/document", files={"file": ("questions.txt", b"1. Question?", "text/plain")})
    assert uploaded.status_code == 200
    assert uploaded.json()["step"] == "configuration"
    assert uploaded.json()["sourceIdentifier"] == "questions.txt"

    client.post(f"{base}/configuration", json={"isTimedTest": False})
    client.post(f"{base}/start")
    assert client.post(f"{base}/submit").json()["step"] == "scoring_choice"

    short_key = json.dumps(["Q1 A", "Q2 A", "Q3 A"]).encode("utf-8")
    rejected = client.post(f"{base}/score/key", files={"file": ("key.json", short_key, "application/json")})
    assert rejected.status_code == 400
    assert "3" in rejected.json()["message"] and "5" in rejected.json()["message"]
    assert client.get(base).json()["step"] == "scoring_choice"

    key = json.dumps([f"Q{i} A" for i in range(1, 6)]).encode("utf-8")
    scored = client.post(f"{base}/score/key", files={"file": ("key.json", key, "application/json")})
    assert scored.status_code == 200
    assert scored.json()["step"] == "results"
    assert scored.json()["scoreSummary"]["unattemptedCount"] == 5


def test_syllabus_upload_then_options(client):
    session_id = new_session(client)
    base = f"/api/sessions/{session_id}"
    client.post(f"{base}/method", json={"mode": "generate_from_syllabus"})

    uploaded = client.post(f"{base}/syllabus", files={"file": ("syllabus.txt", b"Unit 1: Cells", "text/plain")})
    assert uploaded.json()["step"] == "syllabus_options"

    generated = client.post(f"{base}/options", json={"count": 5, "preferredLanguage": "en"})
    assert generated.json()["step"] == "configuration"


def test_invalid_answer_is_bad_request(client):
    session_id, started = start_topic_test(client)
    response = client.post(f"/api/sessions/{session_id}/answers",
                           json={"questionId": started["questions"][0]["id"], "answer": "Not an option"})
    assert response.status_code == 400
    assert response.json()["type"] == "validation_error"


def test_out_of_order_action_is_conflict(client):
    session_id = new_session(client)
    response = client.post(f"/api/sessions/{session_id}/start")
    assert response.status_code == 409
    assert response.json()["type"] == "illegal_transition"


def test_invalid_timer_is_bad_request(client):
    session_id = new_session(client)
    base = f"/api/sessions/{session_id}"
    client.post(f"{base}/method", json={"mode": "generate_from_topic"})
    client.post(f"{base}/topic", json={"topic": "Photosynthesis"})
    client.post(f"{base}/options", json={"count": 5})

    response = client.post(f"{base}/configuration", json={"isTimedTest": True, "durationSeconds": 0})
    assert response.status_code == 400
    assert client.get(base).json()["step"] == "configuration"


def test_back_from_history_retake_asks_for_new_topic(client):
    session_id, _ = start_topic_test(client)
    entry_id = client.post(f"/api/sessions/{session_id}/submit").json()["historyEntryId"]

    retaken = client.post(f"/api/history/{entry_id}/retake").json()
    base = f"/api/sessions/{retaken['sessionId']}"

    assert client.post(f"{base}/back").json()["step"] == "topic_input"
    assert client.post(f"{base}/options", json={"count": 5}).status_code == 409
    client.post(f"{base}/topic", json={"topic": "Respiration"})
    assert client.post(f"{base}/options", json={"count": 5}).json()["step"] == "configuration"


def test_unknown_session_and_history_entry(client):
    assert client.get("/api/sessions/00000000-0000-4000-8000-000000000000").status_code == 404
    assert client.get("/api/history/missing").status_code == 404


def test_delete_session(client):
    session_id = new_session(client)
    assert client.delete(f"/api/sessions/{session_id}").json()["deleted"] is True
    assert client.get(f"/api/sessions/{session_id}").status_code == 404


def test_report_failure_is_typed_server_error(client, service, monkeypatch):
    def broken_report(*args, **kwargs):
        raise ReportError("PDF generation failed: font missing")

    monkeypatch.setattr(service.pdf_service, "generate_results_report", broken_report)
    session_id, _ = start_topic_test(client)
    client.post(f"/api/sessions/{session_id}/submit")

    response = client.get(f"/api/sessions/{session_id}/results/pdf")

    assert response.status_code == 500
    assert response.json()["type"] == "report_error"
