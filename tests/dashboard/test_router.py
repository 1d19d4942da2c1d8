"""HTTP tests for /dashboard."""

from fastapi.testclient import TestClient

from tests.fakes import FakeStack, auth_headers, seed_course


class TestDashboardRoutes:
    def test_student(self, client: TestClient, stack: FakeStack, instructor, student) -> None:
        course = seed_course(stack, instructor)
        client.post(
            "/enrollments", json={"course_id": str(course.id)}, headers=auth_headers(student)
        )

        response = client.get("/dashboard/student", headers=auth_headers(student))

        assert response.status_code == 200
        assert response.json()["enrollments"]["active"] == 1

    def test_instructor_requires_role(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        seed_course(stack, instructor)

        assert client.get("/dashboard/instructor", headers=auth_headers(student)).status_code == 403
        response = client.get("/dashboard/instructor", headers=auth_headers(instructor))

        assert response.status_code == 200
        assert response.json()["total_courses"] == 1

    def test_admin_requires_role(
        self, client: TestClient, stack: FakeStack, admin, instructor
    ) -> None:
        assert client.get("/dashboard/admin", headers=auth_headers(instructor)).status_code == 403

        response = client.get("/dashboard/admin", headers=auth_headers(admin))

        assert response.status_code == 200
        body = response.json()
        assert body["total_users"] == 2
        assert body["users_by_role"]["ADMIN"] == 1

    def test_requires_token(self, client: TestClient) -> None:
        assert client.get("/dashboard/student").status_code == 401
