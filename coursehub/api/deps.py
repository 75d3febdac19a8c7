"""
Dependency injection for FastAPI routes.

Process-wide collaborators (settings, token service, rate limiter, audit
trail) live on app.state; services are built per request around the
request-scoped database session.
"""
from typing import Annotated

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from coursehub.config import Settings
from coursehub.database import get_db
from coursehub.services.accounts import AccountService
from coursehub.services.audit_trail import AuditTrail
from coursehub.services.authorization import AuthorizationPolicy
from coursehub.services.courses import CourseService
from coursehub.services.credential_store import CredentialStore
from coursehub.services.enrollments import EnrollmentService
from coursehub.services.lessons import LessonService
from coursehub.services.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT, MAX_PAGE, Page
from coursehub.services.progress import ProgressService
from coursehub.services.rate_limiter import RateLimiter
from coursehub.services.token_service import TokenService


def resolve_client_address(request: Request, trust_proxy: bool = False) -> str:
    """
    Client key used for rate limiting and audit entries.

    With trust_proxy the left-most X-Forwarded-For hop is used, matching a
    single trusted reverse proxy in front of the API.
    """
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_audit_trail(request: Request) -> AuditTrail:
    return request.app.state.audit_trail


def get_client_address(request: Request) -> str:
    return resolve_client_address(request, request.app.state.settings.trust_proxy)


def get_page(
    page: int = Query(DEFAULT_PAGE, ge=1, le=MAX_PAGE, description="1-based page number"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Page size (1-100)"),
) -> Page:
    return Page(page=page, limit=limit)


SettingsDep = Annotated[Settings, Depends(get_settings)]
TokenServiceDep = Annotated[TokenService, Depends(get_token_service)]
AuditTrailDep = Annotated[AuditTrail, Depends(get_audit_trail)]
ClientAddressDep = Annotated[str, Depends(get_client_address)]
DbDep = Annotated[AsyncSession, Depends(get_db)]
PageDep = Annotated[Page, Depends(get_page)]


def get_credential_store(db: DbDep, settings: SettingsDep) -> CredentialStore:
    return CredentialStore(db, settings.bcrypt_rounds)


def get_policy(db: DbDep, audit: AuditTrailDep, client_address: ClientAddressDep) -> AuthorizationPolicy:
    return AuthorizationPolicy(db, audit, client_address)


CredentialStoreDep = Annotated[CredentialStore, Depends(get_credential_store)]
PolicyDep = Annotated[AuthorizationPolicy, Depends(get_policy)]


def get_account_service(
    store: CredentialStoreDep,
    tokens: TokenServiceDep,
    audit: AuditTrailDep,
    client_address: ClientAddressDep,
) -> AccountService:
    return AccountService(store, tokens, audit, client_address)


def get_course_service(
    db: DbDep, policy: PolicyDep, audit: AuditTrailDep, client_address: ClientAddressDep
) -> CourseService:
    return CourseService(db, policy, audit, client_address)


def get_lesson_service(
    db: DbDep, policy: PolicyDep, audit: AuditTrailDep, client_address: ClientAddressDep
) -> LessonService:
    return LessonService(db, policy, audit, client_address)


def get_enrollment_service(
    db: DbDep, policy: PolicyDep, audit: AuditTrailDep, client_address: ClientAddressDep
) -> EnrollmentService:
    return EnrollmentService(db, policy, audit, client_address)


def get_progress_service(
    db: DbDep, policy: PolicyDep, audit: AuditTrailDep, client_address: ClientAddressDep
) -> ProgressService:
    return ProgressService(db, policy, audit, client_address)


# Type aliases for dependency injection
AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]
CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]
LessonServiceDep = Annotated[LessonService, Depends(get_lesson_service)]
EnrollmentServiceDep = Annotated[EnrollmentService, Depends(get_enrollment_service)]
ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]
