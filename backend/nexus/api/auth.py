"""
Nexus PM - Authentication API
=============================

Registration, login and logout against the workspace session.
"""

from fastapi import APIRouter, status

from nexus.api.deps import CurrentUser, WorkspaceDep, create_access_token
from nexus.core.config import settings
from nexus.core.schemas import (
    MessageResponse,
    SessionUser,
    TokenResponse,
    UserCreate,
    UserLogin,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_response(user: SessionUser) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user.id),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=user,
    )


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    responses={
        201: {"description": "User created and signed in"},
        409: {"description": "Email already registered"},
        422: {"description": "Validation error"},
    },
)
async def register(data: UserCreate, workspace: WorkspaceDep) -> TokenResponse:
    """
    Register a new account and sign it in.

    The new user is also added to the team roster with the "General" skill.
    """
    user = await workspace.register(data.name, data.email, data.password, data.role)
    return _token_response(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login with email and password",
    responses={401: {"description": "Invalid credentials"}},
)
async def login(data: UserLogin, workspace: WorkspaceDep) -> TokenResponse:
    user = await workspace.login(data.email, data.password)
    return _token_response(user)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="End the session",
)
async def logout(current_user: CurrentUser, workspace: WorkspaceDep) -> MessageResponse:
    """Clear the session. Projects, team and notifications are kept."""
    await workspace.logout()
    return MessageResponse(message="Successfully logged out")


@router.get("/me", response_model=SessionUser, summary="Get current user")
async def get_me(current_user: CurrentUser) -> SessionUser:
    return current_user
