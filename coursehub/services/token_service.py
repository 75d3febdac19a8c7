"""
Bearer Token Service

Issues and verifies HS256-signed JWTs carrying the subject id, the role at
issue time and an expiry. Verification fails closed: callers only learn that a
token is invalid, while the failure kind is kept for logging.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class TokenErrorKind(str, enum.Enum):
    MALFORMED = "malformed"
    EXPIRED = "expired"
    INVALID_SIGNATURE = "invalid_signature"


class TokenError(Exception):
    """Raised when a token cannot be verified."""

    def __init__(self, kind: TokenErrorKind):
        self.kind = kind
        super().__init__(f"Invalid token ({kind.value})")


@dataclass(frozen=True)
class TokenClaims:
    """Verified token contents"""
    subject_id: int
    role: str
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """
    Signs and verifies access tokens.

    The role claim is informational only; request authorization always uses
    the role freshly loaded from the credential store.
    """

    def __init__(
        self,
        secret: str,
        expire_minutes: int,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._secret = secret
        self.expire_delta = timedelta(minutes=expire_minutes)
        self._clock = clock or _utcnow

    def issue(self, subject_id: int, role: str) -> str:
        """
        Create a signed token for a subject.

        Args:
            subject_id: User id
            role: Role at issue time

        Returns:
            Encoded JWT string
        """
        issued_at = self._clock()
        claims = {
            "sub": str(subject_id),
            "role": role,
            "iat": issued_at,
            "exp": issued_at + self.expire_delta,
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify signature, expiry and payload shape.

        Args:
            token: Encoded JWT string

        Returns:
            TokenClaims for a valid token

        Raises:
            TokenError: With kind MALFORMED, EXPIRED or INVALID_SIGNATURE
        """
        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            raise TokenError(TokenErrorKind.MALFORMED)

        if header.get("alg") != ALGORITHM:
            raise TokenError(TokenErrorKind.MALFORMED)

        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise TokenError(TokenErrorKind.EXPIRED)
        except JWTClaimsError:
            raise TokenError(TokenErrorKind.MALFORMED)
        except JWTError:
            raise TokenError(TokenErrorKind.INVALID_SIGNATURE)

        subject = payload.get("sub")
        role = payload.get("role")
        expires = payload.get("exp")
        if not subject or not role or expires is None:
            raise TokenError(TokenErrorKind.MALFORMED)

        try:
            subject_id = int(subject)
        except (TypeError, ValueError):
            raise TokenError(TokenErrorKind.MALFORMED)

        return TokenClaims(
            subject_id=subject_id,
            role=role,
            expires_at=datetime.fromtimestamp(expires, tz=timezone.utc),
        )
