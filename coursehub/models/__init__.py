"""SQLAlchemy ORM Models for the CourseHub Database Schema"""
from coursehub.models.user import User, Role
from coursehub.models.course import Course
from coursehub.models.lesson import Lesson
from coursehub.models.enrollment import Enrollment
from coursehub.models.progress import Progress
from coursehub.models.audit_entry import AuditEntry, AuditAction

__all__ = [
    "User",
    "Role",
    "Course",
    "Lesson",
    "Enrollment",
    "Progress",
    "AuditEntry",
    "AuditAction",
]
