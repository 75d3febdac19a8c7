"""Enrollment model - Links a student to a course"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func

from coursehub.database import Base


class Enrollment(Base):
    """Student enrollment; at most one row per (student, course)"""

    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
    )
    enrolled_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # The unique constraint is the authoritative duplicate guard
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_enrollments_student_course"),
        Index("idx_enrollments_student", "student_id"),
        Index("idx_enrollments_course", "course_id"),
    )

    def __repr__(self):
        return f"<Enrollment(id={self.id}, student={self.student_id}, course={self.course_id})>"
