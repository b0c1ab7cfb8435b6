"""
Identity & Session Manager.

Accounts live in the key-value store under the users key; the signed-in
user is a separate session record that never carries the password hash.
member_for builds the roster entry a newly registered user joins the team as.
"""

from typing import Optional

import structlog
from passlib.hash import bcrypt
from pydantic import TypeAdapter

from nexus.core.config import settings
from nexus.core.exceptions import AuthenticationFailed, DuplicateEmail, ValidationFailed
from nexus.core.schemas import SessionUser, TeamMember, UserRecord, new_id
from nexus.core.storage import StateRepository, StorageKey

logger = structlog.get_logger()

USERS_ADAPTER: TypeAdapter[list[UserRecord]] = TypeAdapter(list[UserRecord])
TEAM_ADAPTER: TypeAdapter[list[TeamMember]] = TypeAdapter(list[TeamMember])
SESSION_ADAPTER: TypeAdapter[Optional[SessionUser]] = TypeAdapter(Optional[SessionUser])

DEFAULT_SKILL = "General"


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a hash."""
    try:
        return bcrypt.verify(password, password_hash)
    except ValueError:
        # Malformed stored hash
        return False


def avatar_for(seed: str) -> str:
    return settings.AVATAR_URL_TEMPLATE.format(seed=seed)


def member_for(user: SessionUser) -> TeamMember:
    """Team roster entry for a registered user; shares the user id."""
    return TeamMember(
        id=user.id,
        name=user.name,
        role=user.role,
        skills=[DEFAULT_SKILL],
        avatar=user.avatar or "",
    )


class IdentityManager:
    """Register, authenticate and track the current session."""

    def __init__(self, repository: StateRepository):
        self.repository = repository

    async def _users(self) -> list[UserRecord]:
        return await self.repository.load(StorageKey.USERS, USERS_ADAPTER, [])

    @staticmethod
    def _find(users: list[UserRecord], email: str) -> Optional[UserRecord]:
        wanted = email.strip().lower()
        return next((u for u in users if u.email.lower() == wanted), None)

    async def register(self, name: str, email: str, password: str, role: str) -> SessionUser:
        """
        Create an account and sign it in.

        Raises:
            ValidationFailed: missing name/email or password too short
            DuplicateEmail: an account already uses this email (any case)
        """
        name = name.strip()
        email = email.strip()
        if not name or not email:
            raise ValidationFailed("Name and email are required.")
        if len(password) < settings.PASSWORD_MIN_LENGTH:
            raise ValidationFailed(
                f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters."
            )

        users = await self._users()
        if self._find(users, email) is not None:
            raise DuplicateEmail("Account with this email already exists.")

        user = UserRecord(
            id=new_id(),
            name=name,
            email=email,
            role=role,
            avatar=avatar_for(name),
            password_hash=hash_password(password),
        )
        await self.repository.save(StorageKey.USERS, USERS_ADAPTER, [*users, user])

        logger.info("user_registered", user_id=user.id)
        return await self.login(email, password)

    async def login(self, email: str, password: str) -> SessionUser:
        """
        Authenticate and persist the session.

        Unknown email and wrong password fail the same way.
        """
        user = self._find(await self._users(), email)
        if user is None or not user.password_hash:
            raise AuthenticationFailed("Invalid email or password.")
        if not verify_password(password, user.password_hash):
            raise AuthenticationFailed("Invalid email or password.")

        session_user = user.to_session()
        await self.repository.save(StorageKey.SESSION, SESSION_ADAPTER, session_user)
        logger.info("user_logged_in", user_id=user.id)
        return session_user

    async def logout(self) -> None:
        """Clear the session only; projects, team and notifications stay."""
        await self.repository.remove(StorageKey.SESSION)

    async def get_current_user(self) -> Optional[SessionUser]:
        return await self.repository.load(StorageKey.SESSION, SESSION_ADAPTER, None)
