"""
Course Operations

Listing, reading and owner-only mutation of courses. Deleting a course relies
on the storage engine's ON DELETE CASCADE to remove its lessons, enrollments
and the progress rows tied to those lessons.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from coursehub.exceptions import NotFoundError, ValidationError
from coursehub.models import AuditAction, Course, Lesson, User
from coursehub.services.audit_trail import AuditTrail
from coursehub.services.authorization import AuthorizationPolicy
from coursehub.services.pagination import Page

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description")


def _course_with_instructor():
    return select(
        Course.id,
        Course.title,
        Course.description,
        Course.instructor_id,
        Course.created_at,
        Course.updated_at,
        User.email.label("instructor_email"),
    ).join(User, Course.instructor_id == User.id)


class CourseService:
    """Course queries and mutations for one request."""

    def __init__(
        self,
        db: AsyncSession,
        policy: AuthorizationPolicy,
        audit: AuditTrail,
        client_address: Optional[str],
    ):
        self.db = db
        self.policy = policy
        self.audit = audit
        self.client_address = client_address

    async def _load(self, course_id: int) -> Course:
        course = await self.db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course not found")
        return course

    async def _record_failure(self, subject: User, action: AuditAction, course_id: int) -> None:
        await self.audit.record(subject.id, action, "course", course_id, self.client_address)

    async def list_courses(self, page: Page) -> List[Dict[str, Any]]:
        """Newest courses first, with the instructor's email joined in."""
        stmt = (
            _course_with_instructor()
            .order_by(Course.created_at.desc(), Course.id.desc())
            .limit(page.limit)
            .offset(page.offset)
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def get_course(self, course_id: int) -> Dict[str, Any]:
        """
        Load a course with its lessons in order_index order.

        Raises:
            NotFoundError: If the course does not exist
        """
        result = await self.db.execute(_course_with_instructor().where(Course.id == course_id))
        row = result.mappings().first()
        if row is None:
            raise NotFoundError("Course not found")

        lessons = await self.db.execute(
            select(Lesson)
            .where(Lesson.course_id == course_id)
            .order_by(Lesson.order_index.asc(), Lesson.id.asc())
        )
        return {**dict(row), "lessons": list(lessons.scalars().all())}

    async def create_course(self, subject: User, title: str, description: str) -> Course:
        course = Course(title=title, description=description, instructor_id=subject.id)
        self.db.add(course)
        await self.db.commit()

        await self.audit.record(
            subject.id, AuditAction.COURSE_CREATED, "course", course.id, self.client_address
        )

        await self.db.refresh(course)
        return course

    async def update_course(self, subject: User, course_id: int, changes: Dict[str, Any]) -> Course:
        """
        Apply a partial update as the owning instructor.

        Raises:
            NotFoundError: Unknown course
            AuthorizationError: Subject does not own the course
            ValidationError: No updatable field supplied
        """
        try:
            course = await self._load(course_id)
            await self.policy.authorize_course(subject, course)

            fields = {
                name: value
                for name, value in changes.items()
                if name in UPDATABLE_FIELDS and value is not None
            }
            if not fields:
                raise ValidationError("No fields to update")
        except (NotFoundError, ValidationError):
            await self._record_failure(subject, AuditAction.COURSE_UPDATE_FAILED, course_id)
            raise

        for name, value in fields.items():
            setattr(course, name, value)
        course.updated_at = func.now()
        await self.db.commit()

        await self.audit.record(
            subject.id, AuditAction.COURSE_UPDATED, "course", course_id, self.client_address
        )

        await self.db.refresh(course)
        return course

    async def delete_course(self, subject: User, course_id: int) -> None:
        try:
            course = await self._load(course_id)
        except NotFoundError:
            await self._record_failure(subject, AuditAction.COURSE_DELETE_FAILED, course_id)
            raise
        await self.policy.authorize_course(subject, course)

        await self.db.execute(delete(Course).where(Course.id == course_id))
        await self.db.commit()
        logger.info(f"Course {course_id} deleted by user {subject.id}")

        await self.audit.record(
            subject.id, AuditAction.COURSE_DELETED, "course", course_id, self.client_address
        )
