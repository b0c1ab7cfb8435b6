"""
Nexus PM - Drafts API
=====================

Unsaved form contents, scoped by kind and entity ids
(e.g. new_task + project id, edit_task + project id + task id).
"""

from typing import Annotated, Any, Optional

from fastapi import APIRouter, Query

from nexus.api.deps import CurrentUser, WorkspaceDep
from nexus.core.schemas import MessageResponse
from nexus.core.storage import DraftKind

router = APIRouter(prefix="/drafts", tags=["Drafts"])

Scope = Annotated[list[str], Query(description="Entity ids the draft belongs to")]


@router.get("/{kind}", response_model=Optional[dict[str, Any]])
async def get_draft(
    kind: DraftKind,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
    scope: Scope = [],
) -> Optional[dict[str, Any]]:
    return await workspace.drafts.load(kind, tuple(scope))


@router.put("/{kind}", response_model=MessageResponse)
async def save_draft(
    kind: DraftKind,
    payload: dict[str, Any],
    current_user: CurrentUser,
    workspace: WorkspaceDep,
    scope: Scope = [],
) -> MessageResponse:
    saved = await workspace.drafts.save(kind, tuple(scope), payload)
    return MessageResponse(message="Draft saved" if saved else "Draft could not be saved")


@router.delete("/{kind}", response_model=MessageResponse)
async def clear_draft(
    kind: DraftKind,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
    scope: Scope = [],
) -> MessageResponse:
    await workspace.drafts.clear(kind, tuple(scope))
    return MessageResponse(message="Draft cleared")
