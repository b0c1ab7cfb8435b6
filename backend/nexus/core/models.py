"""
Nexus PM - Enums and Database Models
====================================

Domain enums shared by the schemas and the planning engine, plus the
single SQLAlchemy table that backs the key-value store.
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from nexus.core.database import Base


# ==========================================================================
# Enums
# ==========================================================================

class TaskStatus(str, enum.Enum):
    """Lifecycle states of a task."""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    BLOCKED = "Blocked"


class Priority(str, enum.Enum):
    """Task priority levels."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class ChangeType(str, enum.Enum):
    """Category tag of a task history entry."""
    CREATED = "CREATED"
    STATUS = "STATUS"
    PRIORITY = "PRIORITY"
    ASSIGNEE = "ASSIGNEE"
    DEADLINE = "DEADLINE"
    INFO = "INFO"


class RiskSeverity(str, enum.Enum):
    """Severity of a project risk."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class NotificationKind(str, enum.Enum):
    """Type tag of a user-visible notification."""
    REMINDER = "reminder"
    WARNING = "warning"
    INFO = "info"


class DeadlineStatus(str, enum.Enum):
    """Urgency classification of a task deadline."""
    NONE = "none"
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    NORMAL = "normal"


class ViewState(str, enum.Enum):
    """Top-level navigation views."""
    DASHBOARD = "DASHBOARD"
    COMPLETED_PROJECTS = "COMPLETED_PROJECTS"
    PROJECT_DETAILS = "PROJECT_DETAILS"
    CREATE_PROJECT = "CREATE_PROJECT"
    TEAM_MANAGEMENT = "TEAM_MANAGEMENT"


# ==========================================================================
# Models
# ==========================================================================

class KeyValueEntry(Base):
    """
    One stored value of the key-value store.

    Values are JSON documents serialized by the state repository.
    """

    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
    )
    value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<KeyValueEntry {self.key}>"
