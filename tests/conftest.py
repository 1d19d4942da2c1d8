"""Shared fixtures.

The environment is pinned before anything imports ``coursehub`` so the cached
settings (and the log directory created at app import) belong to the test run.
"""

import os
import tempfile

os.environ["ENVIRONMENT"] = "testing"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="coursehub-test-logs-")
os.environ["LOG_FORMAT"] = "json"
os.environ["LOG_REQUESTS"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from coursehub.auth.permissions import UserRole  # noqa: E402
from tests.fakes import FakeStack, seed_user  # noqa: E402


@pytest.fixture
def stack() -> FakeStack:
    return FakeStack()


@pytest.fixture
def client(stack: FakeStack) -> TestClient:
    """App client over the in-memory stack.

    Used without a context manager so the lifespan (Cassandra, Redis) never runs.
    """
    from coursehub.main import app

    stack.install()
    return TestClient(app)


@pytest.fixture
def admin(stack: FakeStack):
    return seed_user(stack, UserRole.ADMIN, name="Admin")


@pytest.fixture
def instructor(stack: FakeStack):
    return seed_user(stack, UserRole.INSTRUCTOR, name="Ada Instructor")


@pytest.fixture
def other_instructor(stack: FakeStack):
    return seed_user(stack, UserRole.INSTRUCTOR, name="Other Instructor")


@pytest.fixture
def student(stack: FakeStack):
    return seed_user(stack, UserRole.STUDENT, name="Sam Student")


@pytest.fixture
def other_student(stack: FakeStack):
    return seed_user(stack, UserRole.STUDENT, name="Other Student")
