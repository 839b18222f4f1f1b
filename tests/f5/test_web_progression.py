"""Tests for the progression Web API."""


def _complete_lesson_one(client):
    return client.post(
        "/api/progression/update-progress",
        json={
            "student_id": "student-1",
            "content_id": "lesson-1",
            "content_kind": "lesson",
            "status": "completed",
            "completion_percentage": 100,
        },
    )


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestCheckAccess:
    """Tests for POST /api/progression/check-access."""

    def test_open_lesson(self, client):
        response = client.post(
            "/api/progression/check-access",
            json={"student_id": "student-1", "content_id": "lesson-1", "content_kind": "lesson"},
        )

        assert response.status_code == 200
        assert response.json()["can_access"] is True

    def test_locked_lesson(self, client):
        response = client.post(
            "/api/progression/check-access",
            json={"student_id": "student-1", "content_id": "lesson-2", "content_kind": "lesson"},
        )

        data = response.json()
        assert data["can_access"] is False
        assert data["reason"] == "prerequisites_not_met"
        assert data["blocked_by"]["id"] == "quiz-1"

    def test_content_type_alias(self, client):
        response = client.post(
            "/api/progression/check-access",
            json={"student_id": "student-1", "content_id": "lesson-1", "content_type": "lesson"},
        )
        assert response.json()["can_access"] is True

    def test_invalid_kind(self, client):
        response = client.post(
            "/api/progression/check-access",
            json={"student_id": "student-1", "content_id": "lesson-1", "content_kind": "video"},
        )
        assert response.status_code == 422


class TestUpdateProgress:
    """Tests for POST /api/progression/update-progress."""

    def test_completion_reports_unlocks(self, client):
        response = _complete_lesson_one(client)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["unlocked_content"]["assessments"] == ["quiz-1"]
        assert data["progress"]["status"] == "completed"

    def test_rejected_update(self, client):
        response = client.post(
            "/api/progression/update-progress",
            json={
                "student_id": "student-1",
                "content_id": "lesson-2",
                "content_kind": "lesson",
                "status": "in_progress",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "prerequisites_not_met"

    def test_unknown_content_is_404(self, client):
        response = client.post(
            "/api/progression/update-progress",
            json={
                "student_id": "student-1",
                "content_id": "ghost",
                "content_kind": "lesson",
                "status": "in_progress",
            },
        )

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_percentage_validated(self, client):
        response = client.post(
            "/api/progression/update-progress",
            json={
                "student_id": "student-1",
                "content_id": "lesson-1",
                "content_kind": "lesson",
                "status": "in_progress",
                "completion_percentage": 140,
            },
        )
        assert response.status_code == 422


class TestSubmitAttempt:
    """Tests for POST /api/progression/submit-attempt."""

    def test_pass_unlocks_next_lesson(self, client):
        _complete_lesson_one(client)

        response = client.post(
            "/api/progression/submit-attempt",
            json={"student_id": "student-1", "assessment_id": "quiz-1", "score": 90},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["gate"]["passed"] is True
        assert data["unlocked_content"]["lessons"] == ["lesson-2"]

    def test_locked_assessment_is_403(self, client):
        response = client.post(
            "/api/progression/submit-attempt",
            json={"student_id": "student-1", "assessment_id": "quiz-2", "score": 90},
        )

        assert response.status_code == 403
        assert response.json()["code"] == "prerequisites_not_met"

    def test_exhausted_is_409(self, client):
        _complete_lesson_one(client)
        for score in (10, 20, 30, 40):
            response = client.post(
                "/api/progression/submit-attempt",
                json={"student_id": "student-1", "assessment_id": "quiz-1", "score": score},
            )

        assert response.status_code == 409
        assert response.json()["code"] == "assessment_attempts_exhausted"

        blocked = client.get("/api/progression/blocked-content/student-1").json()
        assert blocked["count"] == 1
        assert blocked["blocked"][0]["content_id"] == "quiz-1"


class TestOverrides:
    """Tests for override endpoints."""

    def test_grant_and_clear(self, client):
        granted = client.post(
            "/api/progression/override",
            json={
                "instructor_id": "instructor-1",
                "student_id": "student-1",
                "content_id": "lesson-3",
                "content_kind": "lesson",
                "action": "unlock",
                "reason": "transfer credit",
            },
        )
        assert granted.status_code == 200
        assert granted.json()["success"] is True
        assert granted.json()["override"]["action"] == "unlock"

        access = client.post(
            "/api/progression/check-access",
            json={"student_id": "student-1", "content_id": "lesson-3", "content_kind": "lesson"},
        ).json()
        assert access["reason"] == "instructor_unlock"

        cleared = client.post(
            "/api/progression/override/clear",
            json={"instructor_id": "instructor-1", "student_id": "student-1", "content_id": "lesson-3"},
        )
        assert cleared.status_code == 200
        assert cleared.json()["success"] is True
        assert cleared.json()["override"]["cleared_by"] == "instructor-1"

        history = client.get("/api/progression/overrides/student-1/history").json()
        assert [e["event_type"] for e in history["events"]] == [
            "override_granted",
            "override_cleared",
        ]

    def test_clear_without_override(self, client):
        response = client.post(
            "/api/progression/override/clear",
            json={"instructor_id": "instructor-1", "student_id": "student-1", "content_id": "lesson-2"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": False, "override": None}

    def test_reason_required(self, client):
        response = client.post(
            "/api/progression/override",
            json={
                "instructor_id": "instructor-1",
                "student_id": "student-1",
                "content_id": "lesson-3",
                "content_kind": "lesson",
                "action": "unlock",
                "reason": "",
            },
        )
        assert response.status_code == 422

    def test_blank_reason_is_400(self, client):
        response = client.post(
            "/api/progression/override",
            json={
                "instructor_id": "instructor-1",
                "student_id": "student-1",
                "content_id": "lesson-3",
                "content_kind": "lesson",
                "action": "block",
                "reason": "   ",
            },
        )
        assert response.status_code == 400


class TestReadOnlyViews:
    """Tests for overview and graph endpoints."""

    def test_course_overview(self, client):
        _complete_lesson_one(client)

        response = client.get(
            "/api/progression/course-overview/course-py", params={"student_id": "student-1"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["completed_lessons"] == 1
        assert data["total_lessons"] == 3

    def test_unknown_course_overview(self, client):
        response = client.get(
            "/api/progression/course-overview/ghost", params={"student_id": "student-1"}
        )
        assert response.status_code == 404

    def test_graph_check(self, client):
        response = client.get("/api/progression/courses/course-py/graph-check")

        assert response.status_code == 200
        assert response.json() == {"course_id": "course-py", "valid": True, "cycles": []}

    def test_cycle_is_409(self, client, catalog, enrollments):
        catalog.upsert_course("loop")
        catalog.upsert_lesson("a", "loop", order_index=1, prerequisites=["b"])
        catalog.upsert_lesson("b", "loop", order_index=2, prerequisites=["a"])
        enrollments.enroll("student-1", "loop")

        response = client.post(
            "/api/progression/check-access",
            json={"student_id": "student-1", "content_id": "a", "content_kind": "lesson"},
        )

        assert response.status_code == 409
        assert response.json()["cycle"] == ["lesson:a", "lesson:b", "lesson:a"]

        graph = client.get("/api/progression/courses/loop/graph-check").json()
        assert graph["valid"] is False
