"""
Audit Trail

Append-only writer for security-relevant events. Each entry is written in its
own session and transaction, so a failed audit write never rolls back the
operation that triggered it and never raises into the caller.
"""
import logging
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from coursehub.database import get_session_factory
from coursehub.models.audit_entry import AuditAction, AuditEntry

logger = logging.getLogger(__name__)


class AuditTrail:
    """Best-effort audit log writer."""

    def __init__(self, session_factory: Optional[Callable[[], AsyncSession]] = None):
        # Resolved lazily so the writer follows the engine configured at startup
        self._session_factory = session_factory

    def _factory(self) -> Callable[[], AsyncSession]:
        return self._session_factory or get_session_factory()

    async def record(
        self,
        actor_id: Optional[int],
        action: AuditAction,
        resource_type: str,
        resource_id: Optional[int],
        client_address: Optional[str],
    ) -> None:
        """
        Append one audit entry.

        Args:
            actor_id: Authenticated user id, or None before identity is known
            action: Event type
            resource_type: "user", "course", "lesson", "enrollment", "progress" or "request"
            resource_id: Affected row id, if any
            client_address: Caller network address
        """
        try:
            async with self._factory()() as session:
                session.add(
                    AuditEntry(
                        user_id=actor_id,
                        action=action.value,
                        resource_type=resource_type,
                        resource_id=resource_id,
                        client_address=client_address,
                    )
                )
                await session.commit()
        except Exception as e:
            logger.error(
                f"Audit log write failed: action={action.value} "
                f"resource={resource_type}:{resource_id} error={e}"
            )
