"""Progress model - Current completion state of a lesson for a student"""
from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, Index

from coursehub.database import Base


class Progress(Base):
    """
    Lesson progress for one student.

    completed_at is set iff completed is true; history is not retained.
    """

    __tablename__ = "progress"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    lesson_id = Column(
        Integer,
        ForeignKey("lessons.id", ondelete="CASCADE"),
        nullable=False,
    )
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("student_id", "lesson_id", name="uq_progress_student_lesson"),
        Index("idx_progress_student", "student_id"),
        Index("idx_progress_lesson", "lesson_id"),
    )

    def __repr__(self):
        return (
            f"<Progress(id={self.id}, student={self.student_id}, "
            f"lesson={self.lesson_id}, completed={self.completed})>"
        )
