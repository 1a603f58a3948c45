# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for Reports API endpoints."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from coursepulse.api import create_app
from coursepulse.core.config import Settings
from tests.helpers import RecordingStore, seed_scenario_a, seed_scenario_b

BASE = "/api/v1/reports/teachers/t-1"


@pytest.fixture
def seeded_store() -> RecordingStore:
    """Create a store holding both classroom scenarios for teacher t-1."""
    store = RecordingStore()
    seed_scenario_a(store)
    seed_scenario_b(store)
    return store


@pytest.fixture
def app(seeded_store: RecordingStore, settings: Settings) -> FastAPI:
    """Create test FastAPI app."""
    return create_app(store=seeded_store, settings=settings)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client."""
    return TestClient(app)


class TestReportsAPIRouting:
    """Tests for reports API routing."""

    def test_routes_registered(self, app: FastAPI) -> None:
        """Test that report routes are registered."""
        routes = [route.path for route in app.routes]

        assert "/health" in routes
        assert "/api/v1/reports/teachers/{teacher_id}/students" in routes
        assert "/api/v1/reports/teachers/{teacher_id}/courses" in routes
        assert "/api/v1/reports/teachers/{teacher_id}/lessons" in routes
        assert "/api/v1/reports/teachers/{teacher_id}/summary" in routes
        assert "/api/v1/reports/teachers/{teacher_id}/stream" in routes


class TestReportsAPIEndpoints:
    """Tests for the report endpoints."""

    def test_student_progress(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/students", params={"course_id": "c-1"})

        assert response.status_code == 200
        data = response.json()
        assert data["diagnostics"] == []
        x, y = data["items"]
        assert x["student_name"] == "Xavier"
        assert x["completion_rate"] == 1.0
        assert x["average_score"] == 85.0
        assert x["engagement_score"] == pytest.approx(94.0)
        assert x["recent_submissions"][0]["assignment_title"] == "Quadratics"
        assert y["student_name"] == "Yara"
        assert y["completion_rate"] == 0.5
        assert y["last_activity"].startswith("2024-09-04T10:00:00")

    def test_student_ids_repeatable(self, client: TestClient) -> None:
        response = client.get(
            f"{BASE}/students",
            params=[("student_ids", "s-y"), ("student_ids", "s-2")],
        )

        assert response.status_code == 200
        assert [p["student_id"] for p in response.json()["items"]] == ["s-y", "s-2"]

    def test_course_progress(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/courses")

        assert response.status_code == 200
        courses = {c["course_id"]: c for c in response.json()["items"]}
        algebra = courses["c-1"]
        assert algebra["average_grade"] == 67.5
        assert algebra["completion_rate"] == 0.75
        assert algebra["engagement_level"] == "Medium"
        assert [s["student_id"] for s in algebra["top_performers"]] == ["s-x", "s-y"]
        assert [a["type"] for a in algebra["assignment_stats"]] == ["quiz", "homework"]

    def test_assignment_type_filter(self, client: TestClient) -> None:
        response = client.get(
            f"{BASE}/courses",
            params={"course_id": "c-1", "assignment_types": "quiz"},
        )

        assert response.status_code == 200
        (course,) = response.json()["items"]
        assert [a["assignment_id"] for a in course["assignment_stats"]] == ["a-1"]
        assert course["completion_rate"] == 1.0

    def test_lesson_responses(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/lessons")

        assert response.status_code == 200
        (lesson,) = response.json()["items"]
        assert lesson["lesson_title"] == "Cells"
        assert lesson["completion_rate"] == pytest.approx(1 / 3)
        assert lesson["difficulty_rating"] == 3.0
        assert len(lesson["student_responses"]) == 3

    def test_summary(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/summary", params={"course_id": "c-1"})

        assert response.status_code == 200
        data = response.json()
        assert data["total_students"] == 2
        assert data["average_grade"] == 67.5
        assert data["top_course"] == "Algebra"
        assert data["most_engaged_student"] == "Xavier"
        assert [s["name"] for s in data["needs_attention"]] == ["Yara"]

    def test_unknown_teacher(self, client: TestClient) -> None:
        response = client.get("/api/v1/reports/teachers/t-404/summary")

        assert response.status_code == 200
        data = response.json()
        assert data["total_students"] == 0
        assert data["top_course"] == "N/A"
        assert data["most_engaged_student"] == "N/A"

    def test_date_range(self, client: TestClient) -> None:
        response = client.get(
            f"{BASE}/students",
            params={
                "course_id": "c-1",
                "start": "2024-09-05T00:00:00Z",
                "end": "2024-10-01T00:00:00Z",
            },
        )

        assert response.status_code == 200
        assert [p["total_assignments"] for p in response.json()["items"]] == [1, 1]


class TestReportsAPIErrors:
    """Tests for error responses of the report endpoints."""

    def test_inverted_date_range(self, client: TestClient) -> None:
        response = client.get(
            f"{BASE}/summary",
            params={"start": "2024-10-01T00:00:00Z", "end": "2024-09-01T00:00:00Z"},
        )

        assert response.status_code == 422
        assert "detail" in response.json()

    def test_single_bound(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/courses", params={"start": "2024-09-01T00:00:00Z"})

        assert response.status_code == 422

    def test_invalid_datetime(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/courses", params={"start": "soon", "end": "later"})

        assert response.status_code == 422

    def test_no_store_reads_on_invalid_filters(
        self, client: TestClient, seeded_store: RecordingStore,
    ) -> None:
        client.get(f"{BASE}/students", params={"course_id": " "})

        assert seeded_store.calls == []

    def test_store_unavailable(self, client: TestClient, seeded_store: RecordingStore) -> None:
        seeded_store.fail("list_courses_by_teacher", "t-1")

        response = client.get(f"{BASE}/students")

        assert response.status_code == 503
        assert response.json()["operation"] == "list_courses_by_teacher"

    def test_scoped_failure_reported_as_diagnostic(
        self, client: TestClient, seeded_store: RecordingStore,
    ) -> None:
        seeded_store.fail("list_students_by_course", "c-2")

        response = client.get(f"{BASE}/courses")

        assert response.status_code == 200
        data = response.json()
        assert [c["course_id"] for c in data["items"]] == ["c-1"]
        assert data["diagnostics"][0]["kind"] == "store_error"
        assert data["diagnostics"][0]["course_id"] == "c-2"


class TestHealthEndpoint:
    """Tests for the health endpoint."""

    def test_healthy(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "development"
        assert data["store"]["status"] == "healthy"

    def test_store_unhealthy(self, client: TestClient, seeded_store: RecordingStore) -> None:
        seeded_store.fail("list_courses_by_teacher", "__health__")

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["store"]["status"] == "unhealthy"


class TestReportStream:
    """Tests for the report summary WebSocket."""

    def test_initial_summary_and_ping(self, client: TestClient) -> None:
        with client.websocket_connect(f"{BASE}/stream?course_id=c-1") as websocket:
            message = websocket.receive_json()
            websocket.send_json({"type": "ping"})
            pong = websocket.receive_json()

        assert message["type"] == "summary"
        assert message["data"]["total_students"] == 2
        assert pong == {"type": "pong"}

    def test_change_pushes_new_summary(
        self, client: TestClient, seeded_store: RecordingStore,
    ) -> None:
        with client.websocket_connect(f"{BASE}/stream?course_id=c-1") as websocket:
            first = websocket.receive_json()
            seeded_store.put_submission({
                "id": "sub-4", "studentId": "s-y", "assignmentId": "a-2",
                "courseId": "c-1", "grade": 90,
            })
            second = websocket.receive_json()

        assert first["data"]["completion_rate"] == 0.75
        assert second["type"] == "summary"
        assert second["data"]["completion_rate"] == 1.0
        assert second["data"]["needs_attention"] == []

    def test_non_object_frames_ignored(self, client: TestClient) -> None:
        with client.websocket_connect(f"{BASE}/stream?course_id=c-1") as websocket:
            websocket.receive_json()
            websocket.send_json([])
            websocket.send_json("ping")
            websocket.send_json({"type": "ping"})
            pong = websocket.receive_json()

        assert pong == {"type": "pong"}

    def test_invalid_filters(self, client: TestClient) -> None:
        with client.websocket_connect(f"{BASE}/stream?start=2024-09-01T00:00:00Z") as websocket:
            message = websocket.receive_json()

        assert message["type"] == "error"
        assert message["code"] == "INVALID_FILTERS"

    def test_disconnect_releases_subscription(
        self, client: TestClient, seeded_store: RecordingStore,
    ) -> None:
        with client.websocket_connect(f"{BASE}/stream") as websocket:
            websocket.receive_json()

        assert seeded_store.bus.get_stats()["total_handlers"] == 0
