"""
Nexus PM - API Dependencies
===========================

Shared dependencies for FastAPI endpoints.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from nexus.core.config import settings
from nexus.core.planning.ai_generator import PlanGenerator
from nexus.core.planning.workspace import Workspace
from nexus.core.schemas import SessionUser


# ==========================================================================
# Security
# ==========================================================================

security = HTTPBearer(auto_error=False)


# ==========================================================================
# Token Utilities
# ==========================================================================

def create_access_token(
    user_id: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a new access token.

    Args:
        user_id: Session user's id
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    expire = datetime.now(timezone.utc) + expires_delta

    payload = {
        "sub": user_id,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": "access",
        "jti": secrets.token_hex(16),
    }

    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Decode and validate a JWT token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


# ==========================================================================
# Workspace Dependencies
# ==========================================================================

def get_workspace(request: Request) -> Workspace:
    return request.app.state.workspace


def get_generator(request: Request) -> PlanGenerator:
    return request.app.state.generator


WorkspaceDep = Annotated[Workspace, Depends(get_workspace)]
GeneratorDep = Annotated[PlanGenerator, Depends(get_generator)]


# ==========================================================================
# User Dependencies
# ==========================================================================

async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    workspace: WorkspaceDep,
) -> SessionUser:
    """
    Get the signed-in user.

    The token subject must match the workspace's current session, so a
    logout invalidates every token issued before it.

    Raises:
        HTTPException: If not authenticated or the session has ended
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = workspace.current_user
    if user is None or payload.get("sub") != user.id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has ended",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


# ==========================================================================
# Type Aliases for Dependency Injection
# ==========================================================================

CurrentUser = Annotated[SessionUser, Depends(get_current_user)]
