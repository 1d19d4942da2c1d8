"""HTTP tests for /activity."""

from fastapi.testclient import TestClient

from tests.fakes import FakeStack, auth_headers, seed_course


class TestActivityRoutes:
    def test_my_activity(self, client: TestClient, stack: FakeStack, instructor, student) -> None:
        course = seed_course(stack, instructor)
        client.post(
            "/enrollments", json={"course_id": str(course.id)}, headers=auth_headers(student)
        )

        response = client.get("/activity/me", headers=auth_headers(student))

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["type"] == "ENROLLMENT_CREATED"
        assert body["items"][0]["course_id"] == str(course.id)

    def test_course_activity_for_owner(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        client.post(
            "/enrollments", json={"course_id": str(course.id)}, headers=auth_headers(student)
        )

        response = client.get(f"/activity/course/{course.id}", headers=auth_headers(instructor))

        assert response.status_code == 200
        assert [i["type"] for i in response.json()["items"]] == ["ENROLLMENT_CREATED"]

    def test_course_activity_hidden_from_other_instructor(
        self, client: TestClient, stack: FakeStack, instructor, other_instructor
    ) -> None:
        course = seed_course(stack, instructor)

        response = client.get(
            f"/activity/course/{course.id}", headers=auth_headers(other_instructor)
        )

        assert response.status_code == 403

    def test_course_activity_requires_staff(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)

        response = client.get(f"/activity/course/{course.id}", headers=auth_headers(student))

        assert response.status_code == 403

    def test_platform_feed_is_admin_only(
        self, client: TestClient, stack: FakeStack, admin, student
    ) -> None:
        assert client.get("/activity", headers=auth_headers(student)).status_code == 403

        response = client.get("/activity?limit=5", headers=auth_headers(admin))

        assert response.status_code == 200
        assert response.json()["total"] == len(response.json()["items"])

    def test_limit_bounds(self, client: TestClient, stack: FakeStack, admin) -> None:
        response = client.get("/activity?limit=500", headers=auth_headers(admin))

        assert response.status_code == 400
