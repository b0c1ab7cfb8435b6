"""
Deadline evaluation.

Deadlines are calendar dates interpreted in local time. Everything here is
a pure function of the task and the supplied "now".
"""

from datetime import date, datetime, time, timezone
from typing import Optional

from nexus.core.config import settings
from nexus.core.models import DeadlineStatus, TaskStatus
from nexus.core.schemas import DeadlineInfo, Task

END_OF_DAY = time(23, 59, 59, 999000)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_today(now: datetime) -> date:
    """Local calendar day of `now` (naive values are already local)."""
    if now.tzinfo is None:
        return now.date()
    return now.astimezone().date()


def end_of_local_day(day: date) -> datetime:
    """Last instant (23:59:59.999) of `day` in local time, timezone-aware."""
    return datetime.combine(day, END_OF_DAY).astimezone()


def is_completed_late(task: Task, now: datetime) -> bool:
    """True when `now` is past the last instant of the task's deadline day."""
    if task.deadline is None:
        return False
    if now.tzinfo is None:
        now = now.astimezone()
    return now > end_of_local_day(task.deadline)


def parse_reminder(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a reminder timestamp into an aware datetime.

    Naive values are local wall-clock time. Returns None when unparseable.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def format_deadline(day: date) -> str:
    return f"{day.month}/{day.day}/{day.year}"


def classify_deadline(
    task: Task,
    now: datetime,
    due_soon_days: Optional[int] = None,
) -> DeadlineInfo:
    """
    Classify a task's deadline urgency.

    Completed tasks and tasks without a deadline are never flagged.
    A deadline before today is overdue, today through today + due_soon_days
    is due soon, anything later is normal.
    """
    if task.deadline is None or task.status == TaskStatus.COMPLETED:
        return DeadlineInfo(status=DeadlineStatus.NONE)

    if due_soon_days is None:
        due_soon_days = settings.DUE_SOON_DAYS

    diff_days = (task.deadline - local_today(now)).days
    if diff_days < 0:
        return DeadlineInfo(status=DeadlineStatus.OVERDUE, label="Overdue")
    if diff_days <= due_soon_days:
        return DeadlineInfo(status=DeadlineStatus.DUE_SOON, label="Due Soon")
    return DeadlineInfo(status=DeadlineStatus.NORMAL, label=format_deadline(task.deadline))
