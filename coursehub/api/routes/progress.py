"""
Progress API Endpoints

Enrolled students mark lessons complete or incomplete and read back their
progress through a course.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, ConfigDict, Field

from coursehub.api.auth import require_role
from coursehub.api.deps import ProgressServiceDep
from coursehub.models import Role, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["progress"])


class ProgressUpdate(BaseModel):
    """Request body for recording lesson progress"""
    lesson_id: int = Field(..., ge=1)
    completed: bool


class ProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    lesson_id: int
    completed: bool
    completed_at: Optional[datetime] = None


class LessonProgress(BaseModel):
    """Progress row joined with its lesson"""
    id: int
    lesson_id: int
    completed: bool
    completed_at: Optional[datetime] = None
    title: str
    order_index: int


class ProgressEnvelope(BaseModel):
    progress: ProgressResponse


class CourseProgressResponse(BaseModel):
    progress: List[LessonProgress]


@router.post("/progress", response_model=ProgressEnvelope)
async def record_progress(
    body: ProgressUpdate,
    progress: ProgressServiceDep,
    current_user: User = Depends(require_role(Role.STUDENT)),
):
    """
    Set completion for a lesson.

    Repeating the same request leaves the stored state unchanged. Returns 404
    for an unknown lesson and 403 when not enrolled in its course.
    """
    row = await progress.record_progress(current_user, body.lesson_id, body.completed)
    return {"progress": row}


@router.get("/courses/{course_id}/progress", response_model=CourseProgressResponse)
async def course_progress(
    progress: ProgressServiceDep,
    current_user: User = Depends(require_role(Role.STUDENT)),
    course_id: int = Path(..., ge=1, description="Course identifier"),
):
    return {"progress": await progress.course_progress(current_user, course_id)}
