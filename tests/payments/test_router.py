"""HTTP tests for /payments."""

from decimal import Decimal

from fastapi.testclient import TestClient

from tests.fakes import FakeStack, auth_headers, seed_course


class TestPaymentRoutes:
    def test_initiate_and_complete(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor, price=Decimal("15.00"))
        headers = auth_headers(student)

        response = client.post(
            "/payments/initiate",
            json={"course_id": str(course.id), "amount": "15.00", "provider": "stripe"},
            headers=headers,
        )
        assert response.status_code == 201
        body = response.json()
        payment_id = body["payment"]["id"]
        assert body["payment_url"] == f"/payments/{payment_id}/process"
        assert body["transaction_id"] == body["payment"]["transaction_id"]
        assert body["payment"]["provider"] == "stripe"
        assert body["payment"]["status"] == "PENDING"

        response = client.post(
            f"/payments/{payment_id}/process", json={"status": "COMPLETED"}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"
        assert response.json()["enrollment_id"] is not None

        mine = client.get("/payments/my", headers=headers).json()
        assert [p["id"] for p in mine] == [payment_id]

        enrollments = client.get("/enrollments/my", headers=headers).json()
        assert len(enrollments) == 1

    def test_amount_mismatch(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor, price=Decimal("15.00"))

        response = client.post(
            "/payments/initiate",
            json={"course_id": str(course.id), "amount": "10.00"},
            headers=auth_headers(student),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Payment amount does not match the course price"

    def test_pending_outcome_is_rejected_by_schema(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        headers = auth_headers(student)
        payment_id = client.post(
            "/payments/initiate",
            json={"course_id": str(course.id), "amount": str(course.price)},
            headers=headers,
        ).json()["payment"]["id"]

        response = client.post(
            f"/payments/{payment_id}/process", json={"status": "PENDING"}, headers=headers
        )

        assert response.status_code == 400

    def test_stats_require_staff(self, client: TestClient, student) -> None:
        assert client.get("/payments/stats", headers=auth_headers(student)).status_code == 403

    def test_instructor_stats(
        self, client: TestClient, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor, price=Decimal("20.00"))
        headers = auth_headers(student)
        payment_id = client.post(
            "/payments/initiate",
            json={"course_id": str(course.id), "amount": "20.00"},
            headers=headers,
        ).json()["payment"]["id"]
        client.post(
            f"/payments/{payment_id}/process", json={"status": "COMPLETED"}, headers=headers
        )

        response = client.get("/payments/stats", headers=auth_headers(instructor))

        assert response.status_code == 200
        assert Decimal(str(response.json()["total_revenue"])) == Decimal("20.00")
        assert response.json()["completed_payments"] == 1

        response = client.get(f"/payments/course/{course.id}", headers=auth_headers(instructor))
        assert [p["id"] for p in response.json()] == [payment_id]

    def test_stranger_cannot_view_payment(
        self, client: TestClient, stack: FakeStack, instructor, student, other_student
    ) -> None:
        course = seed_course(stack, instructor)
        payment_id = client.post(
            "/payments/initiate",
            json={"course_id": str(course.id), "amount": str(course.price)},
            headers=auth_headers(student),
        ).json()["payment"]["id"]

        response = client.get(f"/payments/{payment_id}", headers=auth_headers(other_student))
        owner_view = client.get(f"/payments/{payment_id}", headers=auth_headers(instructor))

        assert response.status_code == 403
        assert owner_view.status_code == 200
