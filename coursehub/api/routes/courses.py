"""
Course API Endpoints

Course catalogue reads for any authenticated user and owner-only mutation for
instructors. Deleting a course cascades to its lessons, enrollments and the
progress recorded against those lessons.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Response, status
from pydantic import BaseModel, ConfigDict, Field

from coursehub.api.auth import get_current_user, require_role
from coursehub.api.deps import CourseServiceDep, PageDep
from coursehub.api.routes.lessons import LessonResponse
from coursehub.models import Role, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/courses", tags=["courses"])


# Pydantic models for request/response validation


class CourseCreate(BaseModel):
    """Request body for a new course"""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)


class CourseUpdate(BaseModel):
    """Partial course update; omitted fields are left unchanged"""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    instructor_id: int
    created_at: datetime
    updated_at: datetime


class CourseSummary(CourseResponse):
    """Course row as listed in the catalogue"""
    instructor_email: str


class CourseDetail(CourseSummary):
    """Single course with its ordered lessons"""
    lessons: List[LessonResponse]


class CourseListResponse(BaseModel):
    courses: List[CourseSummary]


class CourseEnvelope(BaseModel):
    course: CourseResponse


class CourseDetailEnvelope(BaseModel):
    course: CourseDetail


@router.get("", response_model=CourseListResponse)
async def list_courses(
    page: PageDep,
    courses: CourseServiceDep,
    current_user: User = Depends(get_current_user),
):
    """List courses, newest first."""
    return {"courses": await courses.list_courses(page)}


@router.post("", response_model=CourseEnvelope, status_code=status.HTTP_201_CREATED)
async def create_course(
    body: CourseCreate,
    courses: CourseServiceDep,
    current_user: User = Depends(require_role(Role.INSTRUCTOR)),
):
    course = await courses.create_course(current_user, body.title, body.description)
    return {"course": course}


@router.get("/{course_id}", response_model=CourseDetailEnvelope)
async def get_course(
    courses: CourseServiceDep,
    current_user: User = Depends(get_current_user),
    course_id: int = Path(..., ge=1, description="Course identifier"),
):
    """
    Get a course with its lessons.

    Returns 404 if the course does not exist.
    """
    return {"course": await courses.get_course(course_id)}


@router.put("/{course_id}", response_model=CourseEnvelope)
async def update_course(
    body: CourseUpdate,
    courses: CourseServiceDep,
    current_user: User = Depends(require_role(Role.INSTRUCTOR)),
    course_id: int = Path(..., ge=1, description="Course identifier"),
):
    """Partial update as the owning instructor; an empty update answers 400."""
    course = await courses.update_course(
        current_user, course_id, body.model_dump(exclude_unset=True)
    )
    return {"course": course}


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    courses: CourseServiceDep,
    current_user: User = Depends(require_role(Role.INSTRUCTOR)),
    course_id: int = Path(..., ge=1, description="Course identifier"),
):
    await courses.delete_course(current_user, course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
