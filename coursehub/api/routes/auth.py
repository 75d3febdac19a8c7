"""
Account API Endpoints

Registration and login. Both answer with a bearer token and the public view
of the user; credentials never appear in a response.
"""
import logging

from fastapi import APIRouter, status
from pydantic import BaseModel, EmailStr, Field

from coursehub.api.deps import AccountServiceDep
from coursehub.models import Role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# Pydantic models for request/response validation


class RegisterRequest(BaseModel):
    """Request body for account registration"""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: Role


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    """Public view of a user"""
    id: int
    email: str
    role: Role


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, accounts: AccountServiceDep):
    """
    Create an account and return a token for it.

    Returns 409 when the email is already registered.
    """
    return await accounts.register(body.email.lower(), body.password, body.role.value)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, accounts: AccountServiceDep):
    """Exchange email and password for a token. Any mismatch answers 401."""
    return await accounts.login(body.email.lower(), body.password)
