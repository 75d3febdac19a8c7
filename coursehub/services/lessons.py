"""
Lesson Operations

Lessons inherit ownership from their course. order_index is stored as given:
no reordering, gap filling or duplicate rejection happens here.
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

UPDATABLE_FIELDS = ("title", "content", "order_index")


class LessonService:
    """Lesson queries and mutations for one request."""

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

    async def _load_course(self, course_id: int) -> Course:
        course = await self.db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course not found")
        return course

    async def _load(self, lesson_id: int) -> Lesson:
        lesson = await self.db.get(Lesson, lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson not found")
        return lesson

    async def _record_failure(self, subject: User, action: AuditAction, lesson_id: int) -> None:
        await self.audit.record(subject.id, action, "lesson", lesson_id, self.client_address)

    async def list_lessons(self, course_id: int, page: Page) -> List[Lesson]:
        await self._load_course(course_id)

        result = await self.db.execute(
            select(Lesson)
            .where(Lesson.course_id == course_id)
            .order_by(Lesson.order_index.asc(), Lesson.id.asc())
            .limit(page.limit)
            .offset(page.offset)
        )
        return list(result.scalars().all())

    async def get_lesson(self, lesson_id: int) -> Lesson:
        return await self._load(lesson_id)

    async def create_lesson(
        self,
        subject: User,
        course_id: int,
        title: str,
        content: str,
        order_index: int,
    ) -> Lesson:
        """
        Add a lesson to a course owned by the subject.

        Raises:
            NotFoundError: Unknown course
            AuthorizationError: Subject does not own the course
        """
        try:
            course = await self._load_course(course_id)
        except NotFoundError:
            await self.audit.record(
                subject.id,
                AuditAction.LESSON_CREATE_FAILED,
                "course",
                course_id,
                self.client_address,
            )
            raise
        await self.policy.authorize_course(subject, course)

        lesson = Lesson(
            course_id=course_id,
            title=title,
            content=content,
            order_index=order_index,
        )
        self.db.add(lesson)
        await self.db.commit()

        await self.audit.record(
            subject.id, AuditAction.LESSON_CREATED, "lesson", lesson.id, self.client_address
        )

        await self.db.refresh(lesson)
        return lesson

    async def update_lesson(self, subject: User, lesson_id: int, changes: Dict[str, Any]) -> Lesson:
        try:
            lesson = await self._load(lesson_id)
            await self.policy.authorize_lesson(subject, lesson)

            fields = {
                name: value
                for name, value in changes.items()
                if name in UPDATABLE_FIELDS and value is not None
            }
            if not fields:
                raise ValidationError("No fields to update")
        except (NotFoundError, ValidationError):
            await self._record_failure(subject, AuditAction.LESSON_UPDATE_FAILED, lesson_id)
            raise

        for name, value in fields.items():
            setattr(lesson, name, value)
        lesson.updated_at = func.now()
        await self.db.commit()

        await self.audit.record(
            subject.id, AuditAction.LESSON_UPDATED, "lesson", lesson_id, self.client_address
        )

        await self.db.refresh(lesson)
        return lesson

    async def delete_lesson(self, subject: User, lesson_id: int) -> None:
        try:
            lesson = await self._load(lesson_id)
        except NotFoundError:
            await self._record_failure(subject, AuditAction.LESSON_DELETE_FAILED, lesson_id)
            raise
        await self.policy.authorize_lesson(subject, lesson)

        await self.db.execute(delete(Lesson).where(Lesson.id == lesson_id))
        await self.db.commit()

        await self.audit.record(
            subject.id, AuditAction.LESSON_DELETED, "lesson", lesson_id, self.client_address
        )
