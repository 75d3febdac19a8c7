"""AuditEntry model - Append-only record of security-relevant events"""
import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.sql import func

from coursehub.database import Base


class AuditAction(str, enum.Enum):
    """Action vocabulary written to the audit log"""

    USER_REGISTERED = "USER_REGISTERED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    ACCESS_DENIED = "ACCESS_DENIED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    COURSE_CREATED = "COURSE_CREATED"
    COURSE_UPDATED = "COURSE_UPDATED"
    COURSE_DELETED = "COURSE_DELETED"
    LESSON_CREATED = "LESSON_CREATED"
    LESSON_UPDATED = "LESSON_UPDATED"
    LESSON_DELETED = "LESSON_DELETED"
    ENROLLMENT_CREATED = "ENROLLMENT_CREATED"
    ENROLLMENT_DELETED = "ENROLLMENT_DELETED"
    PROGRESS_UPDATED = "PROGRESS_UPDATED"

    # Mutations rejected with 400, 404 or 409 (403s are ACCESS_DENIED)
    REGISTRATION_CONFLICT = "REGISTRATION_CONFLICT"
    COURSE_UPDATE_FAILED = "COURSE_UPDATE_FAILED"
    COURSE_DELETE_FAILED = "COURSE_DELETE_FAILED"
    LESSON_CREATE_FAILED = "LESSON_CREATE_FAILED"
    LESSON_UPDATE_FAILED = "LESSON_UPDATE_FAILED"
    LESSON_DELETE_FAILED = "LESSON_DELETE_FAILED"
    ENROLLMENT_FAILED = "ENROLLMENT_FAILED"
    ENROLLMENT_CONFLICT = "ENROLLMENT_CONFLICT"
    ENROLLMENT_DELETE_FAILED = "ENROLLMENT_DELETE_FAILED"
    PROGRESS_UPDATE_FAILED = "PROGRESS_UPDATE_FAILED"


class AuditEntry(Base):
    """
    One audit event.

    user_id is null for events raised before an identity is known
    (rate-limit rejections, bad tokens, logins for unknown emails).
    """

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), nullable=False)
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(Integer, nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    client_address = Column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_audit_log_user", "user_id"),
        Index("idx_audit_log_timestamp", "timestamp"),
    )

    def __repr__(self):
        return f"<AuditEntry(id={self.id}, action={self.action}, user={self.user_id})>"
