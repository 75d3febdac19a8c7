"""
Integration tests for the course API

Tests catalogue reads, owner-only mutation, the NotFound-before-Forbidden
ordering and cascading delete.
"""
import pytest
from sqlalchemy import func, select

from coursehub import database
from coursehub.models import Enrollment, Lesson, Progress

pytestmark = pytest.mark.integration


class TestCreateAndRead:
    async def test_instructor_creates_course(self, client, instructor, audit_actions):
        response = await client.post(
            "/api/courses",
            json={"title": "  Algebra  ", "description": "Linear equations"},
            headers=instructor["headers"],
        )

        assert response.status_code == 201
        course = response.json()["course"]
        assert course["title"] == "Algebra"
        assert course["instructor_id"] == instructor["user"]["id"]
        assert course["created_at"] and course["updated_at"]

        user_id = instructor["user"]["id"]
        assert ("COURSE_CREATED", user_id, "course", course["id"]) in await audit_actions()

    async def test_student_cannot_create(self, client, student, audit_actions):
        response = await client.post(
            "/api/courses",
            json={"title": "Nope", "description": "Nope"},
            headers=student["headers"],
        )

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Insufficient permissions"
        user_id = student["user"]["id"]
        assert ("ACCESS_DENIED", user_id, "request", None) in await audit_actions()

    async def test_role_check_precedes_body_validation(self, client, student):
        response = await client.post("/api/courses", json={"title": ""}, headers=student["headers"])

        assert response.status_code == 403

    @pytest.mark.parametrize(
        "payload",
        [
            {"title": "   ", "description": "desc"},
            {"title": "x" * 201, "description": "desc"},
            {"title": "ok", "description": "d" * 5001},
            {"title": "ok"},
        ],
    )
    async def test_invalid_course_body(self, client, instructor, payload):
        response = await client.post("/api/courses", json=payload, headers=instructor["headers"])

        assert response.status_code == 400

    async def test_list_newest_first_with_instructor_email(
        self, client, instructor, student, create_course
    ):
        first = await create_course(instructor["headers"], title="First")
        second = await create_course(instructor["headers"], title="Second")

        response = await client.get("/api/courses", headers=student["headers"])

        assert response.status_code == 200
        courses = response.json()["courses"]
        assert [c["id"] for c in courses] == [second["id"], first["id"]]
        assert courses[0]["instructor_email"] == "owner@example.com"

    async def test_list_pagination(self, client, instructor, create_course):
        for i in range(3):
            await create_course(instructor["headers"], title=f"Course {i}")

        page_one = await client.get("/api/courses?page=1&limit=2", headers=instructor["headers"])
        page_two = await client.get("/api/courses?page=2&limit=2", headers=instructor["headers"])

        assert len(page_one.json()["courses"]) == 2
        assert len(page_two.json()["courses"]) == 1

    @pytest.mark.parametrize("query", ["limit=0", "limit=101", "page=0", "page=abc"])
    async def test_list_pagination_bounds(self, client, instructor, query):
        response = await client.get(f"/api/courses?{query}", headers=instructor["headers"])

        assert response.status_code == 400

    async def test_get_course_with_ordered_lessons(
        self, client, instructor, student, create_course, create_lesson
    ):
        course = await create_course(instructor["headers"])
        late = await create_lesson(instructor["headers"], course["id"], title="Late", order_index=5)
        early = await create_lesson(instructor["headers"], course["id"], title="Early", order_index=1)

        response = await client.get(f"/api/courses/{course['id']}", headers=student["headers"])

        assert response.status_code == 200
        body = response.json()["course"]
        assert body["instructor_email"] == "owner@example.com"
        assert [lesson["id"] for lesson in body["lessons"]] == [early["id"], late["id"]]

    async def test_get_missing_course(self, client, student):
        response = await client.get("/api/courses/999", headers=student["headers"])

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_invalid_course_id(self, client, student):
        response = await client.get("/api/courses/0", headers=student["headers"])

        assert response.status_code == 400


class TestUpdate:
    async def test_partial_update_keeps_other_fields(self, client, instructor, create_course):
        course = await create_course(instructor["headers"], title="Old", description="Keep me")

        response = await client.put(
            f"/api/courses/{course['id']}",
            json={"title": "New"},
            headers=instructor["headers"],
        )

        assert response.status_code == 200
        updated = response.json()["course"]
        assert updated["title"] == "New"
        assert updated["description"] == "Keep me"

    async def test_empty_update_rejected(self, client, instructor, create_course, audit_actions):
        course = await create_course(instructor["headers"])

        response = await client.put(
            f"/api/courses/{course['id']}", json={}, headers=instructor["headers"]
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No fields to update"
        user_id = instructor["user"]["id"]
        assert ("COURSE_UPDATE_FAILED", user_id, "course", course["id"]) in await audit_actions()

    async def test_other_instructor_forbidden(
        self, client, instructor, register_user, create_course, audit_actions
    ):
        course = await create_course(instructor["headers"])
        rival = await register_user("rival@example.com", role="instructor")

        response = await client.put(
            f"/api/courses/{course['id']}", json={"title": "Mine"}, headers=rival["headers"]
        )

        assert response.status_code == 403
        rival_id = rival["user"]["id"]
        assert ("ACCESS_DENIED", rival_id, "course", course["id"]) in await audit_actions()

    async def test_missing_course_is_404_not_403(self, client, register_user, audit_actions):
        rival = await register_user("rival@example.com", role="instructor")

        response = await client.put(
            "/api/courses/999", json={"title": "Mine"}, headers=rival["headers"]
        )

        assert response.status_code == 404
        assert ("COURSE_UPDATE_FAILED", rival["user"]["id"], "course", 999) in await audit_actions()


class TestDelete:
    async def test_owner_delete_cascades(
        self, client, instructor, student, create_course, create_lesson, audit_actions
    ):
        course = await create_course(instructor["headers"])
        lesson = await create_lesson(instructor["headers"], course["id"])
        await client.post(
            "/api/enrollments", json={"course_id": course["id"]}, headers=student["headers"]
        )
        await client.post(
            "/api/progress",
            json={"lesson_id": lesson["id"], "completed": True},
            headers=student["headers"],
        )

        response = await client.delete(f"/api/courses/{course['id']}", headers=instructor["headers"])

        assert response.status_code == 204
        assert response.content == b""

        async with database.get_session_factory()() as session:
            for model in (Lesson, Enrollment, Progress):
                count = await session.scalar(select(func.count()).select_from(model))
                assert count == 0, model.__tablename__

        missing = await client.get(f"/api/courses/{course['id']}", headers=student["headers"])
        assert missing.status_code == 404

        user_id = instructor["user"]["id"]
        assert ("COURSE_DELETED", user_id, "course", course["id"]) in await audit_actions()

    async def test_non_owner_cannot_delete(self, client, instructor, register_user, create_course):
        course = await create_course(instructor["headers"])
        rival = await register_user("rival@example.com", role="instructor")

        response = await client.delete(f"/api/courses/{course['id']}", headers=rival["headers"])

        assert response.status_code == 403
        still_there = await client.get(f"/api/courses/{course['id']}", headers=rival["headers"])
        assert still_there.status_code == 200

    async def test_delete_missing_course_is_audited(self, client, instructor, audit_actions):
        response = await client.delete("/api/courses/999", headers=instructor["headers"])

        assert response.status_code == 404
        user_id = instructor["user"]["id"]
        assert ("COURSE_DELETE_FAILED", user_id, "course", 999) in await audit_actions()
