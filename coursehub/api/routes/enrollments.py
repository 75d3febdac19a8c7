"""
Enrollment API Endpoints

Students enroll themselves in courses, list their own enrollments and
withdraw. An enrollment is only ever visible to, and removable by, its
student.
"""
import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Path, Response, status
from pydantic import BaseModel, ConfigDict, Field

from coursehub.api.auth import require_role
from coursehub.api.deps import EnrollmentServiceDep, PageDep
from coursehub.models import Role, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])


class EnrollmentCreate(BaseModel):
    course_id: int = Field(..., ge=1)


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    course_id: int
    enrolled_at: datetime


class EnrolledCourse(BaseModel):
    """Enrollment joined with the course it refers to"""
    id: int
    course_id: int
    enrolled_at: datetime
    title: str
    description: str


class EnrollmentEnvelope(BaseModel):
    enrollment: EnrollmentResponse


class EnrollmentListResponse(BaseModel):
    enrollments: List[EnrolledCourse]


@router.post("", response_model=EnrollmentEnvelope, status_code=status.HTTP_201_CREATED)
async def enroll(
    body: EnrollmentCreate,
    enrollments: EnrollmentServiceDep,
    current_user: User = Depends(require_role(Role.STUDENT)),
):
    """
    Enroll the current student in a course.

    Returns 404 for an unknown course and 409 when already enrolled.
    """
    enrollment = await enrollments.enroll(current_user, body.course_id)
    return {"enrollment": enrollment}


@router.get("", response_model=EnrollmentListResponse)
async def list_enrollments(
    page: PageDep,
    enrollments: EnrollmentServiceDep,
    current_user: User = Depends(require_role(Role.STUDENT)),
):
    return {"enrollments": await enrollments.list_enrollments(current_user, page)}


@router.delete("/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unenroll(
    enrollments: EnrollmentServiceDep,
    current_user: User = Depends(require_role(Role.STUDENT)),
    enrollment_id: int = Path(..., ge=1, description="Enrollment identifier"),
):
    """Withdraw from a course. Only the enrolled student may do this."""
    await enrollments.unenroll(current_user, enrollment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
