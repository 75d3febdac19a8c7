"""
Authentication Dependencies

Bearer token verification followed by a fresh user lookup. The role used for
every authorization decision is the one currently stored for the user, never
the role claim embedded in the token, so a role change takes effect on the
next request even for tokens issued earlier.
"""
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from coursehub.api.deps import (
    AuditTrailDep,
    ClientAddressDep,
    CredentialStoreDep,
    PolicyDep,
    TokenServiceDep,
)
from coursehub.exceptions import AuthenticationError
from coursehub.models import AuditAction, Role, User
from coursehub.services.token_service import TokenError

logger = logging.getLogger(__name__)

# Security scheme; a missing or non-Bearer header yields None
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    tokens: TokenServiceDep,
    store: CredentialStoreDep,
    audit: AuditTrailDep,
    client_address: ClientAddressDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> User:
    """
    Resolve the authenticated user for a request.

    Returns:
        User loaded from the credential store

    Raises:
        AuthenticationError: Missing token, bad token, or unknown subject
    """
    if credentials is None:
        await audit.record(None, AuditAction.AUTHENTICATION_FAILED, "request", None, client_address)
        raise AuthenticationError("Authentication required")

    try:
        claims = tokens.verify(credentials.credentials)
    except TokenError as e:
        logger.warning(f"Token rejected ({e.kind.value}) for path: {request.url.path}")
        await audit.record(None, AuditAction.AUTHENTICATION_FAILED, "request", None, client_address)
        raise AuthenticationError("Invalid token")

    user = await store.get_by_id(claims.subject_id)
    if user is None:
        logger.warning(f"Token subject {claims.subject_id} no longer exists")
        await audit.record(None, AuditAction.AUTHENTICATION_FAILED, "request", None, client_address)
        raise AuthenticationError("Invalid token")

    if user.role != claims.role:
        logger.info(
            f"Role for user {user.id} changed since token issue "
            f"({claims.role} -> {user.role}); using stored role"
        )

    request.state.user_id = user.id
    return user


def require_role(*roles: Role):
    """Build a dependency that admits only users whose stored role is in roles."""

    async def _dependency(
        policy: PolicyDep,
        current_user: User = Depends(get_current_user),
    ) -> User:
        await policy.require_role(current_user, roles)
        return current_user

    return _dependency
