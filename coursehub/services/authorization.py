"""
Authorization Policy

Two gates, applied in order:

1. Role gate (route level): the subject's current role must be in the
   route's allowed set.
2. Resource gate (after the target is loaded): course and lesson mutations
   require ownership of the course; progress requires an enrollment in the
   lesson's course; enrollments belong to their student.

Callers must raise NotFoundError for a missing resource before asking this
policy anything, so a forbidden subject only ever sees 404 for ids that do
not exist. Every denial is written to the audit trail.
"""
import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursehub.exceptions import AuthorizationError, NotFoundError
from coursehub.models import AuditAction, Course, Enrollment, Lesson, User
from coursehub.services.audit_trail import AuditTrail

logger = logging.getLogger(__name__)


class AuthorizationPolicy:
    """Role, ownership and enrollment checks for one request."""

    def __init__(self, db: AsyncSession, audit: AuditTrail, client_address: Optional[str]):
        self.db = db
        self.audit = audit
        self.client_address = client_address

    async def _deny(
        self,
        subject_id: int,
        resource_type: str,
        resource_id: Optional[int],
        message: str,
    ) -> None:
        logger.warning(
            f"Access denied: user={subject_id} resource={resource_type}:{resource_id}"
        )
        await self.audit.record(
            subject_id,
            AuditAction.ACCESS_DENIED,
            resource_type,
            resource_id,
            self.client_address,
        )
        raise AuthorizationError(message)

    async def require_role(self, subject: User, allowed_roles: Iterable[str]) -> None:
        """Coarse gate: subject.role must be one of allowed_roles."""
        allowed = {getattr(role, "value", role) for role in allowed_roles}
        if subject.role not in allowed:
            await self._deny(subject.id, "request", None, "Insufficient permissions")

    async def authorize_course(self, subject: User, course: Course) -> None:
        """Only the owning instructor may mutate a course or add lessons to it."""
        if course.instructor_id != subject.id:
            await self._deny(
                subject.id, "course", course.id, "Not authorized to modify this course"
            )

    async def authorize_lesson(self, subject: User, lesson: Lesson) -> Course:
        """
        Lessons inherit ownership from their parent course.

        Returns:
            The parent course
        """
        course = await self.db.get(Course, lesson.course_id)
        if course is None:
            # Unreachable while the lessons.course_id foreign key holds
            raise NotFoundError("Course not found")

        if course.instructor_id != subject.id:
            await self._deny(
                subject.id, "lesson", lesson.id, "Not authorized to modify this lesson"
            )
        return course

    async def find_enrollment(self, student_id: int, course_id: int) -> Optional[Enrollment]:
        result = await self.db.execute(
            select(Enrollment).where(
                Enrollment.student_id == student_id,
                Enrollment.course_id == course_id,
            )
        )
        return result.scalar_one_or_none()

    async def authorize_enrolled(
        self,
        subject: User,
        course_id: int,
        resource_type: str = "progress",
        resource_id: Optional[int] = None,
    ) -> Enrollment:
        """
        Enrollment gate for lesson progress.

        Returns:
            The subject's enrollment in the course
        """
        enrollment = await self.find_enrollment(subject.id, course_id)
        if enrollment is None:
            await self._deny(
                subject.id,
                resource_type,
                resource_id,
                "Must be enrolled in course to track progress",
            )
        return enrollment

    async def authorize_enrollment(self, subject: User, enrollment: Enrollment) -> None:
        """Enrollments are exclusively owned by their student."""
        if enrollment.student_id != subject.id:
            await self._deny(
                subject.id,
                "enrollment",
                enrollment.id,
                "Not authorized to modify this enrollment",
            )
