"""
Nexus PM - Notifications API
============================

In-app notification list plus desktop notifier status.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from nexus.api.deps import CurrentUser, WorkspaceDep
from nexus.core.schemas import MessageResponse, NotificationList

router = APIRouter(prefix="/notifications", tags=["Notifications"])


class DesktopNotifierStatus(BaseModel):
    """Response model for the desktop notifier status endpoint."""
    permitted: bool
    mode: str  # "relay", "logging_only" or "disabled"
    url: str | None = None


@router.get("", response_model=NotificationList)
async def list_notifications(current_user: CurrentUser, workspace: WorkspaceDep) -> NotificationList:
    """Newest first."""
    store = workspace.notifications
    return NotificationList(items=store.items, unread_count=store.unread_count)


@router.delete("", response_model=MessageResponse)
async def clear_notifications(current_user: CurrentUser, workspace: WorkspaceDep) -> MessageResponse:
    await workspace.clear_notifications()
    return MessageResponse(message="Notifications cleared")


@router.post("/read", response_model=MessageResponse)
async def mark_all_read(current_user: CurrentUser, workspace: WorkspaceDep) -> MessageResponse:
    await workspace.mark_notifications_read()
    return MessageResponse(message="Notifications marked as read")


@router.get("/desktop", response_model=DesktopNotifierStatus)
async def desktop_status(current_user: CurrentUser, workspace: WorkspaceDep) -> DesktopNotifierStatus:
    notifier = workspace.notifier
    if not notifier.permitted:
        mode = "disabled"
    elif notifier.enabled:
        mode = "relay"
    else:
        mode = "logging_only"
    return DesktopNotifierStatus(permitted=notifier.permitted, mode=mode, url=notifier.url)
