"""
Reminder scanning.

find_due_reminders is the pure scan; ReminderScheduler is the periodic
process owned by the signed-in session. It scans once on start and then
every REMINDER_SCAN_INTERVAL_SECONDS until stopped.
"""

import asyncio
import contextlib
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from nexus.core.config import settings
from nexus.core.models import NotificationKind, TaskStatus
from nexus.core.planning.deadlines import parse_reminder, utcnow
from nexus.core.planning.notifications import (
    DesktopNotifier,
    NotificationStore,
    build_notification,
)
from nexus.core.schemas import AppNotification, Project

logger = structlog.get_logger()


def find_due_reminders(
    projects: list[Project],
    now: datetime,
    window_seconds: Optional[float] = None,
) -> list[AppNotification]:
    """
    Reminders that became due within the last window (default one minute).

    Completed tasks and unparseable reminder times are skipped.
    """
    if now.tzinfo is None:
        now = now.astimezone()
    window = timedelta(
        seconds=window_seconds if window_seconds is not None else settings.REMINDER_WINDOW_SECONDS
    )

    due: list[AppNotification] = []
    for project in projects:
        for task in project.tasks:
            if task.status == TaskStatus.COMPLETED or not task.reminder_at:
                continue
            reminder_time = parse_reminder(task.reminder_at)
            if reminder_time is None:
                continue
            elapsed = now - reminder_time
            if timedelta(0) <= elapsed < window:
                due.append(build_notification(
                    title=f"Reminder: {task.title}",
                    message=f"Project: {project.name} - Task is due soon!",
                    time=now,
                    kind=NotificationKind.REMINDER,
                ))
    return due


class ReminderScheduler:
    """
    Cancellable periodic reminder scan.

    Reads the current projects through `projects_provider` on every tick so
    it always sees the latest state.
    """

    def __init__(
        self,
        projects_provider: Callable[[], list[Project]],
        store: NotificationStore,
        notifier: Optional[DesktopNotifier] = None,
        interval_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.projects_provider = projects_provider
        self.store = store
        self.notifier = notifier
        self.interval = (
            interval_seconds if interval_seconds is not None else settings.REMINDER_SCAN_INTERVAL_SECONDS
        )
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def scan_once(self) -> list[AppNotification]:
        """Run a single scan, returning the notifications actually added."""
        added: list[AppNotification] = []
        for notification in find_due_reminders(self.projects_provider(), self.clock()):
            if not await self.store.push(notification):
                continue
            added.append(notification)
            if self.notifier is not None:
                await self.notifier.notify(notification)
        return added

    async def _run(self) -> None:
        while True:
            try:
                await self.scan_once()
            except Exception:
                logger.exception("reminder_scan_failed")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start scanning. No-op when already running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="reminder-scan")
        logger.info("reminder_scheduler_started", interval=self.interval)

    async def stop(self) -> None:
        """Cancel the scan loop. Safe to call when not running."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("reminder_scheduler_stopped")
