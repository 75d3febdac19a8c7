"""
Account Service

Registration and login: both return a freshly issued bearer token together
with the public view of the user.
"""
import logging
from typing import Any, Dict, Optional

from coursehub.exceptions import AuthenticationError, ConflictError
from coursehub.models import AuditAction, User
from coursehub.services.audit_trail import AuditTrail
from coursehub.services.credential_store import CredentialStore
from coursehub.services.token_service import TokenService

logger = logging.getLogger(__name__)


def public_user(user: User) -> Dict[str, Any]:
    return {"id": user.id, "email": user.email, "role": user.role}


class AccountService:
    """Register and authenticate users."""

    def __init__(
        self,
        store: CredentialStore,
        tokens: TokenService,
        audit: AuditTrail,
        client_address: Optional[str],
    ):
        self.store = store
        self.tokens = tokens
        self.audit = audit
        self.client_address = client_address

    async def register(self, email: str, password: str, role: str) -> Dict[str, Any]:
        """
        Create an account and sign the new user in.

        Raises:
            ConflictError: If the email is already taken
        """
        try:
            user = await self.store.insert(email, password, role)
        except ConflictError:
            await self.audit.record(
                None, AuditAction.REGISTRATION_CONFLICT, "user", None, self.client_address
            )
            raise

        await self.audit.record(
            user.id, AuditAction.USER_REGISTERED, "user", user.id, self.client_address
        )

        return {
            "token": self.tokens.issue(user.id, user.role),
            "user": public_user(user),
        }

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Verify credentials and issue a token.

        Unknown email and wrong password produce the same error after the
        same amount of hashing work.

        Raises:
            AuthenticationError: On invalid credentials
        """
        user = await self.store.get_by_email(email)

        if user is None:
            # Spend the same bcrypt work as a real check
            await self.store.verify_unknown(password)
            await self.audit.record(
                None, AuditAction.LOGIN_FAILED, "user", None, self.client_address
            )
            raise AuthenticationError("Invalid credentials")

        if not await self.store.verify_password(user, password):
            logger.info(f"Failed login for user {user.id}")
            await self.audit.record(
                user.id, AuditAction.LOGIN_FAILED, "user", user.id, self.client_address
            )
            raise AuthenticationError("Invalid credentials")

        await self.audit.record(
            user.id, AuditAction.LOGIN_SUCCESS, "user", user.id, self.client_address
        )

        return {
            "token": self.tokens.issue(user.id, user.role),
            "user": public_user(user),
        }
