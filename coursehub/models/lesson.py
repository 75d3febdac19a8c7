"""Lesson model - Ordered content inside a course"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.sql import func

from coursehub.database import Base


class Lesson(Base):
    """
    Lesson belonging to a course.

    order_index is caller supplied and advisory: duplicates and gaps are
    allowed, listings sort by (order_index, id).
    """

    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
    )
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    order_index = Column(
        Integer,
        CheckConstraint("order_index >= 0", name="ck_lessons_order_index"),
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
        Index("idx_lessons_course", "course_id"),
    )

    def __repr__(self):
        return f"<Lesson(id={self.id}, course={self.course_id}, order={self.order_index})>"
