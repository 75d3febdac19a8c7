"""
Lesson API Endpoints

Lessons are readable by any authenticated user; creation, update and delete
are reserved for the instructor who owns the parent course.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Response, status
from pydantic import BaseModel, ConfigDict, Field

from coursehub.api.auth import get_current_user, require_role
from coursehub.api.deps import LessonServiceDep, PageDep
from coursehub.models import Role, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["lessons"])


# Pydantic models for request/response validation


class LessonCreate(BaseModel):
    """Request body for a new lesson"""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=50000)
    order_index: int = Field(..., ge=0)


class LessonUpdate(BaseModel):
    """Partial lesson update; omitted fields are left unchanged"""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1, max_length=50000)
    order_index: Optional[int] = Field(None, ge=0)


class LessonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    title: str
    content: str
    order_index: int
    created_at: datetime
    updated_at: datetime


class LessonEnvelope(BaseModel):
    lesson: LessonResponse


class LessonListResponse(BaseModel):
    lessons: List[LessonResponse]


@router.get("/courses/{course_id}/lessons", response_model=LessonListResponse)
async def list_lessons(
    page: PageDep,
    lessons: LessonServiceDep,
    current_user: User = Depends(get_current_user),
    course_id: int = Path(..., ge=1, description="Course identifier"),
):
    """Lessons of a course ordered by order_index. 404 if the course is unknown."""
    return {"lessons": await lessons.list_lessons(course_id, page)}


@router.post(
    "/courses/{course_id}/lessons",
    response_model=LessonEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def create_lesson(
    body: LessonCreate,
    lessons: LessonServiceDep,
    current_user: User = Depends(require_role(Role.INSTRUCTOR)),
    course_id: int = Path(..., ge=1, description="Course identifier"),
):
    lesson = await lessons.create_lesson(
        current_user, course_id, body.title, body.content, body.order_index
    )
    return {"lesson": lesson}


@router.get("/lessons/{lesson_id}", response_model=LessonEnvelope)
async def get_lesson(
    lessons: LessonServiceDep,
    current_user: User = Depends(get_current_user),
    lesson_id: int = Path(..., ge=1, description="Lesson identifier"),
):
    return {"lesson": await lessons.get_lesson(lesson_id)}


@router.put("/lessons/{lesson_id}", response_model=LessonEnvelope)
async def update_lesson(
    body: LessonUpdate,
    lessons: LessonServiceDep,
    current_user: User = Depends(require_role(Role.INSTRUCTOR)),
    lesson_id: int = Path(..., ge=1, description="Lesson identifier"),
):
    """Partial update as the owning instructor; an empty update answers 400."""
    lesson = await lessons.update_lesson(
        current_user, lesson_id, body.model_dump(exclude_unset=True)
    )
    return {"lesson": lesson}


@router.delete("/lessons/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lesson(
    lessons: LessonServiceDep,
    current_user: User = Depends(require_role(Role.INSTRUCTOR)),
    lesson_id: int = Path(..., ge=1, description="Lesson identifier"),
):
    await lessons.delete_lesson(current_user, lesson_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
