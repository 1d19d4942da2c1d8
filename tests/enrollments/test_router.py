"""HTTP tests for /enrollments."""

from fastapi.testclient import TestClient

from coursehub.courses.models import CourseStatus
from tests.fakes import FakeStack, auth_headers, seed_course, seed_lesson, seed_user


class TestEnrollmentRoutes:
    def test_enroll_complete_lessons_and_list(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor, title="Git Essentials")
        lesson = seed_lesson(stack, course)
        headers = auth_headers(student)

        response = client.post("/enrollments", json={"course_id": str(course.id)}, headers=headers)
        assert response.status_code == 201
        enrollment_id = response.json()["id"]
        assert response.json()["progress"] == 0

        response = client.post(
            f"/enrollments/{enrollment_id}/lessons/{lesson.id}/complete", headers=headers
        )
        assert response.status_code == 200
        body = response.json()
        assert (body["completed_lessons"], body["total_lessons"]) == (1, 1)
        assert body["enrollment"]["completed"] is True
        assert body["enrollment"]["status"] == "COMPLETED"

        response = client.get("/enrollments/my", headers=headers)
        assert [e["course_title"] for e in response.json()] == ["Git Essentials"]

    def test_duplicate_is_409(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        body = {"course_id": str(course.id)}

        client.post("/enrollments", json=body, headers=auth_headers(student))
        response = client.post("/enrollments", json=body, headers=auth_headers(student))

        assert response.status_code == 409
        assert response.json()["error"] == "Already enrolled in this course"

    def test_full_course_is_400(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor, capacity=1)
        body = {"course_id": str(course.id)}
        client.post("/enrollments", json=body, headers=auth_headers(student))

        response = client.post(
            "/enrollments", json=body, headers=auth_headers(seed_user(stack))
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Course is full"

    def test_draft_course_is_400(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor, status=CourseStatus.DRAFT)

        response = client.post(
            "/enrollments", json={"course_id": str(course.id)}, headers=auth_headers(student)
        )

        assert response.status_code == 400

    def test_progress_validation(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        headers = auth_headers(student)
        enrollment_id = client.post(
            "/enrollments", json={"course_id": str(course.id)}, headers=headers
        ).json()["id"]

        bad = client.patch(
            f"/enrollments/{enrollment_id}/progress", json={"progress": 150}, headers=headers
        )
        good = client.patch(
            f"/enrollments/{enrollment_id}/progress", json={"progress": 60}, headers=headers
        )

        assert bad.status_code == 400
        assert good.status_code == 200
        assert good.json()["progress"] == 60

    def test_cancel_and_course_listing(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        headers = auth_headers(student)
        enrollment_id = client.post(
            "/enrollments", json={"course_id": str(course.id)}, headers=headers
        ).json()["id"]

        response = client.patch(f"/enrollments/{enrollment_id}/cancel", headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"

        response = client.get(
            f"/enrollments/course/{course.id}", headers=auth_headers(instructor)
        )
        assert [e["status"] for e in response.json()] == ["CANCELLED"]

    def test_students_cannot_list_course_enrollments(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)

        response = client.get(f"/enrollments/course/{course.id}", headers=auth_headers(student))

        assert response.status_code == 403

    def test_stranger_cannot_read_enrollment(
        self, client: TestClient, stack: FakeStack, instructor, student, other_student
    ) -> None:
        course = seed_course(stack, instructor)
        enrollment_id = client.post(
            "/enrollments", json={"course_id": str(course.id)}, headers=auth_headers(student)
        ).json()["id"]

        response = client.get(
            f"/enrollments/{enrollment_id}", headers=auth_headers(other_student)
        )

        assert response.status_code == 403

    def test_course_stats_and_analytics(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        lesson = seed_lesson(stack, course)
        headers = auth_headers(student)
        enrollment_id = client.post(
            "/enrollments", json={"course_id": str(course.id)}, headers=headers
        ).json()["id"]
        client.post(f"/enrollments/{enrollment_id}/lessons/{lesson.id}/complete", headers=headers)
        owner = auth_headers(instructor)

        response = client.get(f"/enrollments/course/{course.id}/stats", headers=owner)
        assert response.status_code == 200
        assert response.json() == {
            "total_enrollments": 1,
            "completed_enrollments": 1,
            "completion_rate": 100.0,
            "average_progress": 100.0,
        }

        response = client.get(f"/enrollments/course/{course.id}/analytics", headers=owner)
        assert response.status_code == 200
        body = response.json()
        assert body["lessons"][0]["completed_count"] == 1
        assert body["students"][0]["lessons_completed"] == 1

        response = client.get(f"/enrollments/course/{course.id}/stats", headers=headers)
        assert response.status_code == 403
