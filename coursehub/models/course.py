"""Course model - Owned and administered by a single instructor"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.sql import func

from coursehub.database import Base


class Course(Base):
    """Course with its owning instructor; deleting it cascades to lessons and enrollments"""

    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    instructor_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_courses_instructor", "instructor_id"),
    )

    def __repr__(self):
        return f"<Course(id={self.id}, title={self.title}, instructor={self.instructor_id})>"
