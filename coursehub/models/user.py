"""User model - Instructors and students with hashed credentials"""
import enum

from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from sqlalchemy.sql import func

from coursehub.database import Base


class Role(str, enum.Enum):
    """Roles a user may hold; fixed at registration"""

    INSTRUCTOR = "instructor"
    STUDENT = "student"


class User(Base):
    """Registered account with a bcrypt password hash"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        String(20),
        CheckConstraint("role IN ('instructor', 'student')", name="ck_users_role"),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
