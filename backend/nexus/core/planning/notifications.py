"""
Notifications - in-app notification store and desktop side channel.

The store is append-only (newest first) with de-duplication: a notification
is dropped when one with the same title already exists within the
de-duplication window. The desktop notifier is best-effort and never raises.
"""

from datetime import datetime, timedelta
from typing import Optional

import httpx
import structlog
from pydantic import TypeAdapter

from nexus.core.config import settings
from nexus.core.models import NotificationKind
from nexus.core.schemas import AppNotification
from nexus.core.storage import StateRepository, StorageKey

logger = structlog.get_logger()

NOTIFICATIONS_ADAPTER: TypeAdapter[list[AppNotification]] = TypeAdapter(list[AppNotification])


# ==========================================================================
# Notification Store
# ==========================================================================

class NotificationStore:
    """Persisted list of user-visible notifications."""

    def __init__(
        self,
        repository: StateRepository,
        window_seconds: Optional[float] = None,
    ):
        self.repository = repository
        self.window = timedelta(
            seconds=window_seconds if window_seconds is not None else settings.REMINDER_WINDOW_SECONDS
        )
        self.items: list[AppNotification] = []

    async def load(self) -> None:
        self.items = await self.repository.load(StorageKey.NOTIFICATIONS, NOTIFICATIONS_ADAPTER, [])

    async def _persist(self) -> None:
        await self.repository.save(StorageKey.NOTIFICATIONS, NOTIFICATIONS_ADAPTER, self.items)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.items if not n.read)

    def is_duplicate(self, notification: AppNotification) -> bool:
        return any(
            n.title == notification.title and abs(n.time - notification.time) < self.window
            for n in self.items
        )

    async def push(self, notification: AppNotification) -> bool:
        """Prepend unless it duplicates a recent one. Returns True if added."""
        if self.is_duplicate(notification):
            logger.debug("notification_suppressed", title=notification.title)
            return False
        self.items = [notification, *self.items]
        await self._persist()
        logger.info("notification_added", title=notification.title, type=notification.type.value)
        return True

    async def clear(self) -> None:
        self.items = []
        await self._persist()

    async def mark_all_read(self) -> None:
        self.items = [n.model_copy(update={"read": True}) for n in self.items]
        await self._persist()


def build_notification(
    title: str,
    message: str,
    time: datetime,
    kind: NotificationKind = NotificationKind.INFO,
) -> AppNotification:
    return AppNotification(title=title, message=message, time=time, type=kind, read=False)


# ==========================================================================
# Desktop Notifier
# ==========================================================================

class DesktopNotifier:
    """
    Best-effort OS-level alert.

    Posts to a local notification relay when one is configured, logs the
    alert otherwise. Permission is the DESKTOP_NOTIFICATIONS_ENABLED flag.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        enabled: Optional[bool] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url if url is not None else settings.DESKTOP_NOTIFY_URL
        self.api_key = api_key if api_key is not None else settings.DESKTOP_NOTIFY_API_KEY
        self.permitted = enabled if enabled is not None else settings.DESKTOP_NOTIFICATIONS_ENABLED
        self._client = client

    @property
    def enabled(self) -> bool:
        return self.permitted and bool(self.url)

    async def notify(self, notification: AppNotification) -> bool:
        """Send the alert. Returns False on any failure."""
        if not self.permitted:
            return False

        if not self.url:
            logger.info("desktop_notification_logged", title=notification.title, mode="logging_only")
            return True

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            if self._client is None:
                self._client = httpx.AsyncClient(timeout=5.0)
            response = await self._client.post(
                self.url,
                json={
                    "title": notification.title,
                    "body": notification.message,
                    "type": notification.type.value,
                    "timestamp": notification.time.isoformat(),
                },
                headers=headers,
            )
            if response.status_code >= 400:
                logger.warning(
                    "desktop_notification_failed",
                    title=notification.title,
                    status_code=response.status_code,
                )
                return False
            return True
        except Exception as e:
            logger.warning("desktop_notification_error", title=notification.title, error=str(e))
            return False

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
