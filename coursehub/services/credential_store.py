"""
Credential Store

Persists User rows and owns password hashing. Hashing uses bcrypt directly
and runs in the thread pool so the event loop keeps serving other requests.
"""
import functools
import logging
from typing import Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from coursehub.exceptions import ConflictError
from coursehub.models.user import User

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of input
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int) -> str:
    """Hash a password with bcrypt at the given work factor"""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    """Compare a plain password against a stored bcrypt hash"""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.error("Stored password hash is not a valid bcrypt hash")
        return False


@functools.lru_cache(maxsize=None)
def dummy_hash(rounds: int) -> str:
    """Throwaway hash at the given work factor, checked when an email is unknown"""
    return hash_password("coursehub-unknown-account", rounds)


def check_unknown(password: str, rounds: int) -> bool:
    check_password(password, dummy_hash(rounds))
    return False


class CredentialStore:
    """User lookup and insertion on a request-scoped session."""

    def __init__(self, db: AsyncSession, bcrypt_rounds: int):
        self.db = db
        self.bcrypt_rounds = bcrypt_rounds

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def verify_password(self, user: User, password: str) -> bool:
        return await run_in_threadpool(check_password, password, user.password_hash)

    async def verify_unknown(self, password: str) -> bool:
        """Run a full bcrypt comparison that always fails"""
        return await run_in_threadpool(check_unknown, password, self.bcrypt_rounds)

    async def insert(self, email: str, password: str, role: str) -> User:
        """
        Create a user with a freshly hashed password.

        Args:
            email: Login email (stored lower-cased)
            password: Plain text password
            role: "instructor" or "student"

        Returns:
            The committed User, reloaded from storage

        Raises:
            ConflictError: If the email is already registered
        """
        email = email.lower()
        if await self.get_by_email(email) is not None:
            raise ConflictError("User already exists")

        password_hash = await run_in_threadpool(hash_password, password, self.bcrypt_rounds)
        user = User(email=email, password_hash=password_hash, role=role)
        self.db.add(user)

        # A concurrent registration can pass the pre-check; the unique index decides
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("User already exists")

        await self.db.refresh(user)
        logger.info(f"Registered user {user.id} ({role})")
        return user
