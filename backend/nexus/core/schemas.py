"""
Nexus PM - Pydantic Schemas
===========================

Domain records (persisted as JSON in the key-value store) and the
request/response schemas of the HTTP API.
"""

from datetime import date, datetime
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from nexus.core.models import (
    ChangeType,
    DeadlineStatus,
    NotificationKind,
    Priority,
    RiskSeverity,
    TaskStatus,
    ViewState,
)


def new_id() -> str:
    return str(uuid4())


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ==========================================================================
# Base Schemas
# ==========================================================================

class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# ==========================================================================
# Domain Records
# ==========================================================================

class TeamMember(BaseSchema):
    """Roster entry; embedded by value inside each project."""

    id: str = Field(default_factory=new_id)
    name: str
    role: str
    skills: list[str] = Field(default_factory=list)
    avatar: str = ""


class TaskHistory(BaseSchema):
    """Audit trail entry. Never edited once written."""

    id: str = Field(default_factory=new_id)
    change_type: ChangeType
    description: str
    timestamp: datetime
    actor_name: str = "System"

    @field_validator("actor_name", mode="before")
    @classmethod
    def default_actor(cls, v: Any) -> Any:
        return v or "System"


class Task(BaseSchema):
    """A unit of work inside a project. History is newest-first."""

    id: str = Field(default_factory=new_id)
    title: str
    description: str = ""
    assignee_id: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: Priority = Priority.MEDIUM
    deadline: Optional[date] = None
    reminder_at: Optional[str] = None  # ISO date-time, parsed leniently
    estimated_hours: float = Field(4, gt=0)
    history: list[TaskHistory] = Field(default_factory=list)

    @field_validator("assignee_id", "deadline", "reminder_at", mode="before")
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)


class Risk(BaseSchema):
    id: str = Field(default_factory=new_id)
    description: str
    severity: RiskSeverity = RiskSeverity.MEDIUM
    mitigation_strategy: str = ""


class Project(BaseSchema):
    """A project exclusively owns its tasks and risks."""

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    start_date: date
    end_date: date
    budget: float = Field(0, ge=0)
    tech_stack: list[str] = Field(default_factory=list)
    team: list[TeamMember] = Field(default_factory=list)
    risks: list[Risk] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    progress: int = Field(0, ge=0, le=100)


class SessionUser(BaseSchema):
    """User as exposed to the session. Never carries the password hash."""

    id: str
    name: str
    email: str
    role: str
    avatar: Optional[str] = None


class UserRecord(SessionUser):
    """Stored account, including the password hash."""

    password_hash: str

    def to_session(self) -> SessionUser:
        return SessionUser(**self.model_dump(exclude={"password_hash"}))


class AppNotification(BaseSchema):
    id: str = Field(default_factory=new_id)
    title: str
    message: str
    time: datetime
    type: NotificationKind = NotificationKind.INFO
    read: bool = False


class Selection(BaseSchema):
    """Navigation state of the workspace."""

    view: ViewState = ViewState.DASHBOARD
    selected_project_id: Optional[str] = None


class DeadlineInfo(BaseSchema):
    status: DeadlineStatus
    label: Optional[str] = None


# ==========================================================================
# Auth Schemas
# ==========================================================================

class UserCreate(BaseSchema):
    """Schema for user registration."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    role: str = Field("Team Member", max_length=120)


class UserLogin(BaseSchema):
    email: EmailStr
    password: str


class TokenResponse(BaseSchema):
    """Schema for authentication tokens."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until access token expires
    user: SessionUser


# ==========================================================================
# Project / Task Schemas
# ==========================================================================

class ProjectCreate(BaseSchema):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: float = Field(0, ge=0)
    tech_stack: list[str] = Field(default_factory=list)


class ProjectUpdate(BaseSchema):
    """Partial update of project details. Tasks and progress are not settable."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Optional[float] = Field(None, ge=0)
    tech_stack: Optional[list[str]] = None


class TaskDraft(BaseSchema):
    """New task input. Any status given here is ignored."""

    title: str = ""
    description: str = ""
    priority: Priority = Priority.MEDIUM
    estimated_hours: Optional[float] = Field(None, gt=0)
    assignee_id: Optional[str] = None
    deadline: Optional[date] = None
    reminder_at: Optional[str] = None
    status: Optional[TaskStatus] = None

    @field_validator("assignee_id", "deadline", "reminder_at", mode="before")
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)


class TaskEdit(BaseSchema):
    """
    Edited task fields. Only fields present in the payload are applied;
    an explicit null (or empty string) clears an optional field.
    """

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    priority: Optional[Priority] = None
    assignee_id: Optional[str] = None
    deadline: Optional[date] = None
    reminder_at: Optional[str] = None
    estimated_hours: Optional[float] = Field(None, gt=0)

    @field_validator("assignee_id", "deadline", "reminder_at", mode="before")
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)


class TaskMove(BaseSchema):
    status: TaskStatus


class CommitResponse(BaseSchema):
    """Outcome of a task-list mutation."""

    outcome: str  # committed, staged
    project: Project


class TaskDeadlineRow(BaseSchema):
    task_id: str
    title: str
    status: TaskStatus
    deadline: DeadlineInfo


# ==========================================================================
# Team Schemas
# ==========================================================================

class MemberCreate(BaseSchema):
    name: str = Field(min_length=1, max_length=255)
    role: str = Field(min_length=1, max_length=255)
    skills: list[str] = Field(default_factory=list)
    avatar: Optional[str] = None

    @field_validator("skills", mode="before")
    @classmethod
    def split_skills(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v


class MemberUpdate(MemberCreate):
    pass


# ==========================================================================
# Generation Schemas
# ==========================================================================

class BriefRequest(BaseSchema):
    text: str = Field(min_length=1)


class TranscribeRequest(BaseSchema):
    audio_base64: str = Field(min_length=1)
    language: str = "English"
    mime_type: str = "audio/webm"


class TextResponse(BaseSchema):
    text: str


# ==========================================================================
# Insight Schemas
# ==========================================================================

class StatusBucket(BaseSchema):
    name: str
    value: int


class ProjectHealth(BaseSchema):
    id: str
    name: str
    progress: int
    tasks: int


class DashboardStats(BaseSchema):
    total_projects: int
    active_projects: int
    total_tasks: int
    completed_tasks: int
    overall_progress: int
    total_budget: float
    task_distribution: list[StatusBucket]
    project_health: list[ProjectHealth]


class SearchHit(BaseSchema):
    type: str  # PROJECT, TEAM
    id: str
    title: str
    subtitle: str


class SearchResults(BaseSchema):
    projects: list[SearchHit]
    team: list[SearchHit]


# ==========================================================================
# Misc Schemas
# ==========================================================================

class NotificationList(BaseSchema):
    items: list[AppNotification]
    unread_count: int


class ThemePreference(BaseSchema):
    dark: bool


class MessageResponse(BaseSchema):
    """Simple message response."""

    message: str


class ErrorResponse(BaseSchema):
    """Schema for error responses."""

    error: str
    detail: Optional[str] = None
    code: Optional[str] = None


class HealthResponse(BaseSchema):
    """Schema for health check response."""

    status: str
    version: str
    environment: str
    database: str
    reminders: str
