"""
Read-only aggregates over the workspace: dashboard statistics and search.
"""

from nexus.core.models import TaskStatus
from nexus.core.planning.lifecycle import compute_progress
from nexus.core.schemas import (
    DashboardStats,
    Project,
    ProjectHealth,
    SearchHit,
    SearchResults,
    StatusBucket,
    TeamMember,
)

SEARCH_LIMIT = 3


def dashboard_stats(projects: list[Project]) -> DashboardStats:
    all_tasks = [t for p in projects for t in p.tasks]
    completed = sum(1 for t in all_tasks if t.status == TaskStatus.COMPLETED)

    distribution = [
        StatusBucket(name=status.value, value=sum(1 for t in all_tasks if t.status == status))
        for status in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.BLOCKED)
    ]

    return DashboardStats(
        total_projects=len(projects),
        active_projects=sum(1 for p in projects if p.progress < 100),
        total_tasks=len(all_tasks),
        completed_tasks=completed,
        overall_progress=compute_progress(all_tasks),
        total_budget=sum(p.budget for p in projects),
        task_distribution=[b for b in distribution if b.value > 0],
        project_health=[
            ProjectHealth(id=p.id, name=p.name, progress=p.progress, tasks=len(p.tasks))
            for p in projects
        ],
    )


def search(
    projects: list[Project],
    team: list[TeamMember],
    query: str,
    limit: int = SEARCH_LIMIT,
) -> SearchResults:
    """Case-insensitive substring match; an empty query matches nothing."""
    needle = query.strip().lower()
    if not needle:
        return SearchResults(projects=[], team=[])

    project_hits = [
        SearchHit(type="PROJECT", id=p.id, title=p.name, subtitle=f"{p.progress}% Complete")
        for p in projects
        if needle in p.name.lower() or needle in p.description.lower()
    ]
    member_hits = [
        SearchHit(type="TEAM", id=m.id, title=m.name, subtitle=m.role)
        for m in team
        if needle in m.name.lower() or needle in m.role.lower()
    ]
    return SearchResults(projects=project_hits[:limit], team=member_hits[:limit])
