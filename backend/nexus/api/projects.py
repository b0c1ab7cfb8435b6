"""
Nexus PM - Projects API
=======================

Project CRUD, task mutations, the completion gate and per-project AI actions.
"""

from enum import Enum
from typing import Optional

from fastapi import APIRouter, Query, Response, status

from nexus.api.deps import CurrentUser, GeneratorDep, WorkspaceDep
from nexus.core.planning.lifecycle import CommitResult
from nexus.core.schemas import (
    CommitResponse,
    Project,
    ProjectCreate,
    ProjectUpdate,
    TaskDeadlineRow,
    TaskDraft,
    TaskEdit,
    TaskMove,
    TextResponse,
)

router = APIRouter(prefix="/projects", tags=["Projects"])


class ProjectFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


def _commit_response(result: CommitResult) -> CommitResponse:
    return CommitResponse(outcome=result.outcome.value, project=result.project)


# ==========================================================================
# Projects
# ==========================================================================

@router.get("", response_model=list[Project])
async def list_projects(
    current_user: CurrentUser,
    workspace: WorkspaceDep,
    project_filter: ProjectFilter = Query(ProjectFilter.ALL, alias="status"),
) -> list[Project]:
    """List projects; `active` is below 100%, `completed` is exactly 100%."""
    if project_filter == ProjectFilter.ACTIVE:
        return workspace.active_projects()
    if project_filter == ProjectFilter.COMPLETED:
        return workspace.completed_projects()
    return workspace.projects


@router.post("", response_model=Project, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
) -> Project:
    return await workspace.create_project(data)


@router.get("/{project_id}", response_model=Project)
async def get_project(project_id: str, current_user: CurrentUser, workspace: WorkspaceDep) -> Project:
    return workspace.get_project(project_id)


@router.patch("/{project_id}", response_model=Project)
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
) -> Project:
    return await workspace.update_project_details(project_id, data)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(project_id: str, current_user: CurrentUser, workspace: WorkspaceDep) -> Response:
    await workspace.delete_project(project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==========================================================================
# Tasks
# ==========================================================================

@router.post(
    "/{project_id}/tasks",
    response_model=CommitResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    project_id: str,
    draft: TaskDraft,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
) -> CommitResponse:
    """
    Add a Pending task.

    `outcome` is `staged` when the change would complete the project; the
    project is then returned as it would be after confirmation.
    """
    return _commit_response(await workspace.create_task(project_id, draft))


@router.patch("/{project_id}/tasks/{task_id}", response_model=CommitResponse)
async def update_task(
    project_id: str,
    task_id: str,
    edit: TaskEdit,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
) -> CommitResponse:
    return _commit_response(await workspace.update_task(project_id, task_id, edit))


@router.delete("/{project_id}/tasks/{task_id}", response_model=CommitResponse)
async def delete_task(
    project_id: str,
    task_id: str,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
) -> CommitResponse:
    return _commit_response(await workspace.delete_task(project_id, task_id))


@router.post("/{project_id}/tasks/{task_id}/move", response_model=CommitResponse)
async def move_task(
    project_id: str,
    task_id: str,
    data: TaskMove,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
) -> CommitResponse:
    """Change a task's status. An unknown task id leaves the project unchanged."""
    result = await workspace.move_task(project_id, task_id, data.status)
    if result is None:
        return CommitResponse(outcome="unchanged", project=workspace.get_project(project_id))
    return _commit_response(result)


@router.get("/{project_id}/deadlines", response_model=list[TaskDeadlineRow])
async def deadline_board(
    project_id: str,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
) -> list[TaskDeadlineRow]:
    return workspace.deadline_board(project_id)


# ==========================================================================
# Completion Gate
# ==========================================================================

@router.get("/{project_id}/completion", response_model=Optional[Project])
async def pending_completion(
    project_id: str,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
) -> Optional[Project]:
    workspace.get_project(project_id)
    return workspace.pending_completion(project_id)


@router.post("/{project_id}/completion/confirm", response_model=CommitResponse)
async def confirm_completion(
    project_id: str,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
) -> CommitResponse:
    return _commit_response(await workspace.confirm_completion(project_id))


@router.post("/{project_id}/completion/decline", response_model=Project)
async def decline_completion(
    project_id: str,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
) -> Project:
    return workspace.decline_completion(project_id)


# ==========================================================================
# AI Actions
# ==========================================================================

@router.post("/{project_id}/risks/analyze", response_model=Project)
async def analyze_risks(
    project_id: str,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
    generator: GeneratorDep,
) -> Project:
    return await workspace.analyze_risks(project_id, generator)


@router.post("/{project_id}/report", response_model=TextResponse)
async def generate_report(
    project_id: str,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
    generator: GeneratorDep,
) -> TextResponse:
    return TextResponse(text=await workspace.generate_report(project_id, generator))
