"""HTTP tests for /auth and the shared error envelope."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from coursehub.auth import otp
from coursehub.auth.security import create_access_token
from tests.fakes import FakeStack, auth_headers


CODE = "246810"


@pytest.fixture(autouse=True)
def fixed_code(monkeypatch):
    monkeypatch.setattr(otp, "generate_otp_code", lambda: CODE)


def _register(client: TestClient, **overrides):
    body = {"email": "learner@example.com", "password": "SecurePass123", "name": "Learner"}
    body.update(overrides)
    return client.post("/auth/register", json=body)


class TestRegistrationFlow:
    def test_register_verify_me(self, client: TestClient) -> None:
        response = _register(client)
        assert response.status_code == 201
        assert response.json()["status"] == "PENDING"
        assert "access_token" not in response.json()

        response = client.post(
            "/auth/verify-otp", json={"email": "learner@example.com", "code": CODE}
        )
        assert response.status_code == 200
        token = response.json()["access_token"]
        assert response.json()["token_type"] == "bearer"

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["email"] == "learner@example.com"
        assert response.json()["status"] == "ACTIVE"

    def test_login_before_verification(self, client: TestClient) -> None:
        _register(client)

        response = client.post(
            "/auth/login",
            json={"email": "learner@example.com", "password": "SecurePass123"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Account is not verified"

    def test_duplicate_active_email(self, client: TestClient) -> None:
        _register(client)
        client.post("/auth/verify-otp", json={"email": "learner@example.com", "code": CODE})

        response = _register(client)

        assert response.status_code == 409

    def test_wrong_code(self, client: TestClient) -> None:
        _register(client)

        response = client.post(
            "/auth/verify-otp", json={"email": "learner@example.com", "code": "000000"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid verification code"

    def test_resend(self, client: TestClient) -> None:
        _register(client)

        response = client.post("/auth/resend-otp", json={"email": "learner@example.com"})

        assert response.status_code == 200
        assert response.json()["message"] == "New verification code sent"


class TestTokenErrors:
    def test_missing_token(self, client: TestClient) -> None:
        response = client.get("/auth/me")

        assert response.status_code == 401
        assert response.json()["error"] == "Authentication token missing"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_expired_token(self, client: TestClient, student) -> None:
        token = create_access_token(
            {"sub": str(student.id), "email": student.email, "role": student.role},
            expires_delta=timedelta(seconds=-1),
        )

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"] == "Authentication token expired"

    def test_invalid_token(self, client: TestClient) -> None:
        response = client.get("/auth/me", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid authentication token"

    def test_non_bearer_scheme(self, client: TestClient) -> None:
        response = client.get("/auth/me", headers={"Authorization": "Basic abc"})

        assert response.status_code == 401
        assert response.json()["error"] == "Authentication token missing"

    def test_role_guard(self, client: TestClient, student) -> None:
        response = client.get("/courses/pending", headers=auth_headers(student))

        assert response.status_code == 403
        assert response.json()["error"] == "Insufficient permissions"


class TestErrorEnvelope:
    def test_validation_error_is_400_with_fields(self, client: TestClient) -> None:
        response = _register(client, email="not-an-email", password="short")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation error"
        assert body["statusCode"] == 400
        fields = {d["field"] for d in body["details"]}
        assert "body.email" in fields
        assert "body.password" in fields

    def test_envelope_fields(self, client: TestClient, stack: FakeStack) -> None:
        response = client.post(
            "/auth/verify-otp",
            json={"email": "ghost@example.com", "code": CODE},
            headers={"X-Request-ID": "req-123"},
        )

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "User not found"
        assert body["statusCode"] == 404
        assert body["request_id"] == "req-123"
        assert "timestamp" in body
        # stack traces are only hidden in production
        assert "stack" in body
        assert response.headers["X-Request-ID"] == "req-123"

    def test_unknown_route(self, client: TestClient) -> None:
        response = client.get("/does-not-exist")

        assert response.status_code == 404
        assert response.json()["statusCode"] == 404


class TestUserRoutes:
    def test_update_profile(self, client: TestClient, stack: FakeStack, student) -> None:
        response = client.put(
            "/users/profile", json={"name": "  Sam Renamed "}, headers=auth_headers(student)
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Sam Renamed"
        assert stack.users.users[student.id].name == "Sam Renamed"

    def test_profile_name_is_validated(self, client: TestClient, student) -> None:
        response = client.put(
            "/users/profile", json={"name": "x"}, headers=auth_headers(student)
        )

        assert response.status_code == 400

    def test_instructor_status(self, client: TestClient, instructor, student) -> None:
        body = client.get("/users/instructor-status", headers=auth_headers(instructor)).json()
        assert body["is_instructor"] is True
        assert body["instructor_status"] == "approved"

        body = client.get("/users/instructor-status", headers=auth_headers(student)).json()
        assert body == {
            "is_instructor": False,
            "instructor_status": "not_applied",
            "applied_on": None,
        }

    def test_requires_authentication(self, client: TestClient) -> None:
        assert client.get("/users/instructor-status").status_code == 401


class TestAdminUserRoutes:
    def test_list_and_pending(self, client: TestClient, admin, student) -> None:
        _register(client, email="hopeful@example.com", requested_role="INSTRUCTOR")
        headers = auth_headers(admin)

        body = client.get("/admin/users", headers=headers).json()
        assert body["count"] == 3
        assert {u["email"] for u in body["users"]} >= {student.email, "hopeful@example.com"}

        body = client.get("/admin/users/pending", headers=headers).json()
        assert body["count"] == 1
        assert body["users"][0]["email"] == "hopeful@example.com"

        body = client.get(
            "/admin/users", params={"instructor_status": "pending"}, headers=headers
        ).json()
        assert [u["email"] for u in body["users"]] == ["hopeful@example.com"]

    def test_admin_only(self, client: TestClient, instructor) -> None:
        response = client.get("/admin/users", headers=auth_headers(instructor))

        assert response.status_code == 403
