"""
Task Lifecycle Engine - status transitions, progress and audit trail.

Every task-list mutation (create, edit, delete, move) funnels through
TaskLifecycleEngine.recompute_and_commit, which recomputes the project's
progress and holds back a first-time 100% until it is confirmed.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional

from nexus.core.exceptions import CompletionNotPending, TaskNotFound, ValidationFailed
from nexus.core.models import ChangeType, TaskStatus
from nexus.core.planning.deadlines import is_completed_late, parse_reminder, utcnow
from nexus.core.schemas import (
    Project,
    Task,
    TaskDraft,
    TaskEdit,
    TaskHistory,
    TeamMember,
)

logger = logging.getLogger(__name__)

ACTOR_USER = "You"
ACTOR_SYSTEM = "System"
DEFAULT_ESTIMATED_HOURS = 4.0
UNASSIGNED = "Unassigned"


class CommitOutcome(str, Enum):
    COMMITTED = "committed"
    STAGED = "staged"


@dataclass
class CommitResult:
    """Result of a task-list mutation."""
    outcome: CommitOutcome
    project: Project

    @property
    def staged(self) -> bool:
        return self.outcome == CommitOutcome.STAGED


# ==========================================================================
# Pure helpers
# ==========================================================================

def compute_progress(tasks: list[Task]) -> int:
    """Percentage of completed tasks, rounded half up. 0 for no tasks."""
    if not tasks:
        return 0
    completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
    return int(math.floor(completed * 100 / len(tasks) + 0.5))


def history_entry(
    change_type: ChangeType,
    description: str,
    actor: str,
    timestamp: datetime,
) -> TaskHistory:
    return TaskHistory(
        change_type=change_type,
        description=description,
        timestamp=timestamp,
        actor_name=actor,
    )


def _with_status(task: Task, status: TaskStatus, entry: TaskHistory) -> Task:
    return task.model_copy(update={"status": status, "history": [entry, *task.history]})


def apply_move(
    tasks: list[Task],
    task_id: str,
    new_status: TaskStatus,
    now: datetime,
) -> Optional[list[Task]]:
    """
    Move a task to `new_status`, returning the rebuilt task list.

    Returns None when the task does not exist. Completing a task on time
    starts the first Pending task in list order.
    """
    task = next((t for t in tasks if t.id == task_id), None)
    if task is None:
        return None

    entry = history_entry(
        ChangeType.STATUS,
        f"Status changed from {task.status.value} to {new_status.value}",
        ACTOR_USER,
        now,
    )
    updated = [_with_status(t, new_status, entry) if t.id == task_id else t for t in tasks]

    if new_status == TaskStatus.COMPLETED and not is_completed_late(task, now):
        next_pending = next((t for t in updated if t.status == TaskStatus.PENDING), None)
        if next_pending is not None:
            auto_entry = history_entry(
                ChangeType.STATUS,
                "Auto-started: Previous task completed on time",
                ACTOR_SYSTEM,
                now,
            )
            updated = [
                _with_status(t, TaskStatus.IN_PROGRESS, auto_entry) if t.id == next_pending.id else t
                for t in updated
            ]
            logger.info(f"Auto-started task {next_pending.id} after {task_id} completed on time")

    return updated


def build_task(draft: TaskDraft, now: datetime) -> Task:
    """Create a Pending task from a draft."""
    title = (draft.title or "").strip()
    if not title:
        raise ValidationFailed("Task title is required")

    return Task(
        title=title,
        description=draft.description,
        status=TaskStatus.PENDING,
        priority=draft.priority,
        estimated_hours=draft.estimated_hours or DEFAULT_ESTIMATED_HOURS,
        assignee_id=draft.assignee_id,
        deadline=draft.deadline,
        reminder_at=draft.reminder_at,
        history=[history_entry(ChangeType.CREATED, "Task created", ACTOR_USER, now)],
    )


def merge_edit(original: Task, edit: TaskEdit) -> Task:
    """Apply the fields present in `edit` onto `original`. History untouched."""
    fields = edit.model_fields_set
    update: dict = {}

    if "title" in fields:
        if not edit.title:
            raise ValidationFailed("Task title is required")
        update["title"] = edit.title
    if "description" in fields:
        update["description"] = edit.description or ""
    if "priority" in fields and edit.priority is not None:
        update["priority"] = edit.priority
    if "estimated_hours" in fields and edit.estimated_hours is not None:
        update["estimated_hours"] = edit.estimated_hours
    for name in ("assignee_id", "deadline", "reminder_at"):
        if name in fields:
            update[name] = getattr(edit, name)

    return original.model_copy(update=update)


def _member_name(roster: Iterable[TeamMember], member_id: Optional[str]) -> str:
    if not member_id:
        return UNASSIGNED
    return next((m.name for m in roster if m.id == member_id), UNASSIGNED)


def _format_reminder(value: str) -> str:
    parsed = parse_reminder(value)
    if parsed is None:
        return value
    return parsed.astimezone().strftime("%Y-%m-%d %H:%M")


def diff_changes(
    original: Task,
    edited: Task,
    roster: list[TeamMember],
    now: datetime,
) -> list[TaskHistory]:
    """One history entry per changed field, all sharing `now`."""
    changes: list[TaskHistory] = []

    def add(change_type: ChangeType, description: str) -> None:
        changes.append(history_entry(change_type, description, ACTOR_USER, now))

    if original.title != edited.title:
        add(ChangeType.INFO, f'Title updated to "{edited.title}"')

    if original.description != edited.description:
        add(ChangeType.INFO, "Description updated")

    if original.priority != edited.priority:
        add(
            ChangeType.PRIORITY,
            f"Priority changed from {original.priority.value} to {edited.priority.value}",
        )

    if original.assignee_id != edited.assignee_id:
        old_name = _member_name(roster, original.assignee_id)
        new_name = _member_name(roster, edited.assignee_id)
        add(ChangeType.ASSIGNEE, f"Assignee changed from {old_name} to {new_name}")

    if original.deadline != edited.deadline:
        if edited.deadline is not None:
            add(ChangeType.DEADLINE, f"Deadline updated to {edited.deadline.isoformat()}")
        else:
            add(ChangeType.DEADLINE, f"Deadline removed (was {original.deadline.isoformat()})")

    if original.reminder_at != edited.reminder_at:
        if edited.reminder_at:
            add(ChangeType.INFO, f"Reminder set for {_format_reminder(edited.reminder_at)}")
        else:
            add(ChangeType.INFO, "Reminder removed")

    return changes


# ==========================================================================
# Engine
# ==========================================================================

class TaskLifecycleEngine:
    """
    Applies task mutations to a project and commits the result.

    Completion gate: when a mutation takes a project from below 100% to
    100%, the updated project is staged instead of committed and waits for
    confirm_completion / decline_completion. A newer mutation of the same
    project replaces whatever was staged for it.
    """

    def __init__(
        self,
        commit: Callable[[Project], Awaitable[None]],
        clock: Callable[[], datetime] = utcnow,
    ):
        self._commit = commit
        self.clock = clock
        self._staged: dict[str, Project] = {}

    def pending_completion(self, project_id: str) -> Optional[Project]:
        return self._staged.get(project_id)

    def discard(self, project_id: str) -> None:
        self._staged.pop(project_id, None)

    async def recompute_and_commit(self, project: Project, tasks: list[Task]) -> CommitResult:
        progress = compute_progress(tasks)
        updated = project.model_copy(update={"tasks": tasks, "progress": progress})
        self._staged.pop(project.id, None)

        if progress == 100 and project.progress < 100:
            self._staged[project.id] = updated
            logger.info(f"Project {project.id} reached 100%, awaiting confirmation")
            return CommitResult(CommitOutcome.STAGED, updated)

        await self._commit(updated)
        return CommitResult(CommitOutcome.COMMITTED, updated)

    async def move(
        self,
        project: Project,
        task_id: str,
        new_status: TaskStatus,
    ) -> Optional[CommitResult]:
        """Change a task's status. Unknown task ids are a silent no-op."""
        tasks = apply_move(project.tasks, task_id, new_status, self.clock())
        if tasks is None:
            logger.debug(f"Ignoring move of unknown task {task_id} in project {project.id}")
            return None
        return await self.recompute_and_commit(project, tasks)

    async def create_task(self, project: Project, draft: TaskDraft) -> CommitResult:
        task = build_task(draft, self.clock())
        return await self.recompute_and_commit(project, [*project.tasks, task])

    async def update_task(
        self,
        project: Project,
        task_id: str,
        edit: TaskEdit,
        roster: list[TeamMember],
    ) -> CommitResult:
        original = next((t for t in project.tasks if t.id == task_id), None)
        if original is None:
            raise TaskNotFound(f"Task {task_id} not found")

        edited = merge_edit(original, edit)
        changes = diff_changes(original, edited, [*roster, *project.team], self.clock())
        edited = edited.model_copy(update={"history": [*changes, *original.history]})

        tasks = [edited if t.id == task_id else t for t in project.tasks]
        return await self.recompute_and_commit(project, tasks)

    async def delete_task(self, project: Project, task_id: str) -> CommitResult:
        if not any(t.id == task_id for t in project.tasks):
            raise TaskNotFound(f"Task {task_id} not found")
        tasks = [t for t in project.tasks if t.id != task_id]
        return await self.recompute_and_commit(project, tasks)

    async def confirm_completion(self, project: Project) -> CommitResult:
        """
        Commit the staged task list onto the current project.

        Only tasks and progress come from the staged copy; anything else
        changed since staging (details, team snapshot, risks) is kept.
        """
        staged = self._staged.pop(project.id, None)
        if staged is None:
            raise CompletionNotPending(f"No completion pending for project {project.id}")
        updated = project.model_copy(update={"tasks": staged.tasks, "progress": staged.progress})
        await self._commit(updated)
        logger.info(f"Project {project.id} completion confirmed")
        return CommitResult(CommitOutcome.COMMITTED, updated)

    def decline_completion(self, project_id: str) -> Project:
        staged = self._staged.pop(project_id, None)
        if staged is None:
            raise CompletionNotPending(f"No completion pending for project {project_id}")
        logger.info(f"Project {project_id} completion declined")
        return staged
