"""
Progress Operations

Progress is an idempotent upsert keyed by (student, lesson) with two states,
NotStarted and Completed. Marking complete stamps completed_at (an already
completed row keeps its stamp); marking incomplete clears it.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coursehub.exceptions import NotFoundError
from coursehub.models import AuditAction, Course, Lesson, Progress, User
from coursehub.services.audit_trail import AuditTrail
from coursehub.services.authorization import AuthorizationPolicy

logger = logging.getLogger(__name__)


def apply_completion(progress: Progress, completed: bool, now: datetime) -> None:
    """Move a progress row to the requested state."""
    if completed:
        if not progress.completed or progress.completed_at is None:
            progress.completed = True
            progress.completed_at = now
    else:
        progress.completed = False
        progress.completed_at = None


class ProgressService:
    """Lesson progress tracking for enrolled students."""

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

    async def _find(self, student_id: int, lesson_id: int) -> Optional[Progress]:
        result = await self.db.execute(
            select(Progress).where(
                Progress.student_id == student_id,
                Progress.lesson_id == lesson_id,
            )
        )
        return result.scalar_one_or_none()

    async def record_progress(self, subject: User, lesson_id: int, completed: bool) -> Progress:
        """
        Set the subject's completion state for a lesson.

        Raises:
            NotFoundError: Unknown lesson
            AuthorizationError: Subject is not enrolled in the lesson's course
        """
        student_id = subject.id

        lesson = await self.db.get(Lesson, lesson_id)
        if lesson is None:
            await self.audit.record(
                student_id,
                AuditAction.PROGRESS_UPDATE_FAILED,
                "lesson",
                lesson_id,
                self.client_address,
            )
            raise NotFoundError("Lesson not found")

        await self.policy.authorize_enrolled(subject, lesson.course_id, "lesson", lesson_id)

        now = datetime.now(timezone.utc)
        progress = await self._find(student_id, lesson_id)

        if progress is None:
            progress = Progress(student_id=student_id, lesson_id=lesson_id, completed=False)
            apply_completion(progress, completed, now)
            self.db.add(progress)
            try:
                await self.db.commit()
            except IntegrityError:
                # Lost the insert race; update the row the other request created
                await self.db.rollback()
                progress = await self._find(student_id, lesson_id)
                if progress is None:
                    raise
                apply_completion(progress, completed, now)
                await self.db.commit()
        else:
            apply_completion(progress, completed, now)
            await self.db.commit()

        await self.audit.record(
            student_id,
            AuditAction.PROGRESS_UPDATED,
            "progress",
            progress.id,
            self.client_address,
        )

        await self.db.refresh(progress)
        return progress

    async def course_progress(self, subject: User, course_id: int) -> List[Dict[str, Any]]:
        """
        The subject's progress rows for a course, in lesson order.

        Raises:
            NotFoundError: Unknown course
            AuthorizationError: Subject is not enrolled
        """
        if await self.db.get(Course, course_id) is None:
            raise NotFoundError("Course not found")

        await self.policy.authorize_enrolled(subject, course_id, "course", course_id)

        result = await self.db.execute(
            select(
                Progress.id,
                Progress.lesson_id,
                Progress.completed,
                Progress.completed_at,
                Lesson.title,
                Lesson.order_index,
            )
            .join(Lesson, Progress.lesson_id == Lesson.id)
            .where(Progress.student_id == subject.id, Lesson.course_id == course_id)
            .order_by(Lesson.order_index.asc(), Lesson.id.asc())
        )
        return [dict(row) for row in result.mappings().all()]
