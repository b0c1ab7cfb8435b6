"""
Nexus PM - Workspace API
========================

Dashboard, search, theme and navigation.
"""

from fastapi import APIRouter, Query

from nexus.api.deps import CurrentUser, WorkspaceDep
from nexus.core.planning.insights import dashboard_stats, search
from nexus.core.schemas import DashboardStats, SearchResults, Selection, ThemePreference

router = APIRouter(tags=["Workspace"])


@router.get("/dashboard", response_model=DashboardStats)
async def get_dashboard(current_user: CurrentUser, workspace: WorkspaceDep) -> DashboardStats:
    return dashboard_stats(workspace.projects)


@router.get("/search", response_model=SearchResults)
async def search_workspace(
    current_user: CurrentUser,
    workspace: WorkspaceDep,
    q: str = Query("", max_length=200),
) -> SearchResults:
    """Up to three projects and three team members matching `q`."""
    return search(workspace.projects, workspace.team, q)


@router.get("/preferences/theme", response_model=ThemePreference)
async def get_theme(current_user: CurrentUser, workspace: WorkspaceDep) -> ThemePreference:
    return ThemePreference(dark=workspace.dark_mode)


@router.put("/preferences/theme", response_model=ThemePreference)
async def set_theme(data: ThemePreference, current_user: CurrentUser, workspace: WorkspaceDep) -> ThemePreference:
    await workspace.set_theme(data.dark)
    return ThemePreference(dark=workspace.dark_mode)


@router.get("/navigation", response_model=Selection)
async def get_navigation(current_user: CurrentUser, workspace: WorkspaceDep) -> Selection:
    """Current view; a deleted selected project falls back to the dashboard."""
    return workspace.resolve_selection()


@router.put("/navigation", response_model=Selection)
async def set_navigation(data: Selection, current_user: CurrentUser, workspace: WorkspaceDep) -> Selection:
    if data.selected_project_id is not None:
        return workspace.select_project(data.selected_project_id)
    return workspace.navigate(data.view)
