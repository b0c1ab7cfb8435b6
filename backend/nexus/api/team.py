"""
Nexus PM - Team API
===================

Roster management. Updates and deletions propagate into every project's
team snapshot.
"""

from fastapi import APIRouter, Response, status

from nexus.api.deps import CurrentUser, WorkspaceDep
from nexus.core.schemas import MemberCreate, MemberUpdate, TeamMember

router = APIRouter(prefix="/team", tags=["Team"])


@router.get("", response_model=list[TeamMember])
async def list_members(current_user: CurrentUser, workspace: WorkspaceDep) -> list[TeamMember]:
    return workspace.team


@router.post("", response_model=TeamMember, status_code=status.HTTP_201_CREATED)
async def add_member(data: MemberCreate, current_user: CurrentUser, workspace: WorkspaceDep) -> TeamMember:
    """Add a member. Existing projects keep their current team snapshot."""
    return await workspace.add_member(data)


@router.put("/{member_id}", response_model=TeamMember)
async def update_member(
    member_id: str,
    data: MemberUpdate,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
) -> TeamMember:
    return await workspace.update_member(member_id, data)


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_member(member_id: str, current_user: CurrentUser, workspace: WorkspaceDep) -> Response:
    await workspace.delete_member(member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
