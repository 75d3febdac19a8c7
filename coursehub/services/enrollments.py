"""
Enrollment Operations

The duplicate pre-check only exists to answer 409 cleanly in the common case.
Two concurrent requests for the same (student, course) can both pass it, so
an integrity error on insert is mapped to ConflictError, or to NotFoundError
when the course was deleted in between.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coursehub.exceptions import ConflictError, NotFoundError
from coursehub.models import AuditAction, Course, Enrollment, User
from coursehub.services.audit_trail import AuditTrail
from coursehub.services.authorization import AuthorizationPolicy
from coursehub.services.pagination import Page

logger = logging.getLogger(__name__)


class EnrollmentService:
    """Student enrollment management for one request."""

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

    async def _record_failure(self, student_id: int, action: AuditAction, course_id: int) -> None:
        await self.audit.record(student_id, action, "course", course_id, self.client_address)

    async def enroll(self, subject: User, course_id: int) -> Enrollment:
        """
        Enroll the subject in a course.

        Raises:
            NotFoundError: Unknown course
            ConflictError: Already enrolled
        """
        student_id = subject.id

        if await self.db.get(Course, course_id) is None:
            await self._record_failure(student_id, AuditAction.ENROLLMENT_FAILED, course_id)
            raise NotFoundError("Course not found")

        if await self.policy.find_enrollment(student_id, course_id) is not None:
            await self._record_failure(student_id, AuditAction.ENROLLMENT_CONFLICT, course_id)
            raise ConflictError("Already enrolled in this course")

        enrollment = Enrollment(student_id=student_id, course_id=course_id)
        self.db.add(enrollment)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            # Either a concurrent enrollment won or the course was deleted meanwhile
            if await self.db.get(Course, course_id) is None:
                logger.info(f"Course {course_id} deleted during enrollment of student {student_id}")
                await self._record_failure(student_id, AuditAction.ENROLLMENT_FAILED, course_id)
                raise NotFoundError("Course not found")

            logger.info(
                f"Concurrent enrollment for student {student_id} course {course_id} "
                f"rejected by unique constraint"
            )
            await self._record_failure(student_id, AuditAction.ENROLLMENT_CONFLICT, course_id)
            raise ConflictError("Already enrolled in this course")

        await self.audit.record(
            student_id,
            AuditAction.ENROLLMENT_CREATED,
            "enrollment",
            enrollment.id,
            self.client_address,
        )

        await self.db.refresh(enrollment)
        return enrollment

    async def list_enrollments(self, subject: User, page: Page) -> List[Dict[str, Any]]:
        """The subject's enrollments, newest first, with course title/description."""
        result = await self.db.execute(
            select(
                Enrollment.id,
                Enrollment.course_id,
                Enrollment.enrolled_at,
                Course.title,
                Course.description,
            )
            .join(Course, Enrollment.course_id == Course.id)
            .where(Enrollment.student_id == subject.id)
            .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
            .limit(page.limit)
            .offset(page.offset)
        )
        return [dict(row) for row in result.mappings().all()]

    async def unenroll(self, subject: User, enrollment_id: int) -> None:
        enrollment = await self.db.get(Enrollment, enrollment_id)
        if enrollment is None:
            await self.audit.record(
                subject.id,
                AuditAction.ENROLLMENT_DELETE_FAILED,
                "enrollment",
                enrollment_id,
                self.client_address,
            )
            raise NotFoundError("Enrollment not found")

        await self.policy.authorize_enrollment(subject, enrollment)

        await self.db.execute(delete(Enrollment).where(Enrollment.id == enrollment_id))
        await self.db.commit()

        await self.audit.record(
            subject.id,
            AuditAction.ENROLLMENT_DELETED,
            "enrollment",
            enrollment_id,
            self.client_address,
        )
