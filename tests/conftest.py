"""
Shared fixtures

Each test gets its own SQLite database file and a freshly built application,
driven in-process through httpx's ASGI transport.
"""
import os

# Anything falling back to get_settings() reads these
os.environ.setdefault("JWT_SECRET", "test-only-secret-value-with-32-plus-chars")
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from coursehub import database
from coursehub.config import Settings
from coursehub.main import create_app
from coursehub.models import AuditEntry

TEST_SECRET = "test-only-secret-value-with-32-plus-chars"
ALLOWED_ORIGIN = "http://localhost:3000"
DEFAULT_PASSWORD = "correct-horse-42"


def make_settings(tmp_path, **overrides) -> Settings:
    """Settings pointing at a per-test SQLite file with the cheapest allowed bcrypt cost"""
    values = {
        "jwt_secret": TEST_SECRET,
        "allowed_origins": (ALLOWED_ORIGIN,),
        "bcrypt_rounds": 10,
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
async def app(settings):
    application = create_app(settings)
    await database.create_all()
    yield application
    await database.dispose_engine()


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register_user(client):
    """Register an account and return its token, public user and auth headers"""

    async def _register(email: str, role: str = "student", password: str = DEFAULT_PASSWORD):
        response = await client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "role": role},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return {
            "token": body["token"],
            "user": body["user"],
            "headers": auth_headers(body["token"]),
        }

    return _register


@pytest.fixture
async def instructor(register_user):
    return await register_user("owner@example.com", role="instructor")


@pytest.fixture
async def student(register_user):
    return await register_user("learner@example.com", role="student")


@pytest.fixture
def create_course(client):
    async def _create(headers: dict, title: str = "Intro to Testing", description: str = "Basics"):
        response = await client.post(
            "/api/courses",
            json={"title": title, "description": description},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()["course"]

    return _create


@pytest.fixture
def create_lesson(client):
    async def _create(headers: dict, course_id: int, title: str = "Lesson", order_index: int = 0):
        response = await client.post(
            f"/api/courses/{course_id}/lessons",
            json={"title": title, "content": "Lesson body", "order_index": order_index},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()["lesson"]

    return _create


@pytest.fixture
def audit_actions(app):
    """Read back audit entries as (action, user_id, resource_type, resource_id) tuples"""

    async def _read():
        async with database.get_session_factory()() as session:
            result = await session.execute(select(AuditEntry).order_by(AuditEntry.id))
            return [
                (entry.action, entry.user_id, entry.resource_type, entry.resource_id)
                for entry in result.scalars().all()
            ]

    return _read
