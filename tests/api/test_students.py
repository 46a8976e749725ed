from __future__ import annotations

from fastapi.testclient import TestClient


def test_register_student(client: TestClient) -> None:
    resp = client.post("/v1/students", json={"student_id": "ana", "display_name": "Ana"})
    assert resp.status_code == 201
    assert resp.json() == {"student_id": "ana", "display_name": "Ana", "xp": 0, "streak": 0}


def test_register_defaults_display_name(client: TestClient) -> None:
    resp = client.post("/v1/students", json={"student_id": "ana"})
    assert resp.json()["display_name"] == "Anonymous Student"


def test_register_duplicate_conflicts(client: TestClient) -> None:
    client.post("/v1/students", json={"student_id": "ana"})
    resp = client.post("/v1/students", json={"student_id": "ana"})
    assert resp.status_code == 409
    assert resp.json()["detail"]["reason"] == "student-exists"


def test_register_rejects_blank_id(client: TestClient) -> None:
    resp = client.post("/v1/students", json={"student_id": "  "})
    assert resp.status_code == 422
    assert resp.json()["detail"]["reason"] == "invalid-student-id"


def test_profile_unknown_student(client: TestClient) -> None:
    resp = client.get("/v1/students/ghost/profile")
    assert resp.status_code == 404


def test_profile_shows_level_and_courses(client: TestClient, seed_app_course) -> None:
    seed_app_course(course_id="bio-101")
    client.post("/v1/students", json={"student_id": "ana"})
    client.post("/v1/students/ana/courses/bio-101/enroll")
    client.post("/v1/students/ana/missions/login")

    resp = client.get("/v1/students/ana/profile")
    assert resp.status_code == 200
    body = resp.json()
    assert body["xp"] == 10
    assert body["streak"] == 1
    assert body["level"] == "Beginner"
    assert body["next_level"] == "Intermediate"
    assert body["level_progress"] == {"current": 10, "required": 100, "percentage": 10}
    assert body["courses"] == ["bio-101"]


def test_registration_shows_on_cached_leaderboard(client: TestClient) -> None:
    client.post("/v1/students", json={"student_id": "ana"})
    assert len(client.get("/v1/leaderboard").json()) == 1

    client.post("/v1/students", json={"student_id": "ben"})
    assert [e["student_id"] for e in client.get("/v1/leaderboard").json()] == ["ana", "ben"]
