"""
Workspace coordinator tests: loading, propagation, selection, session
lifecycle and AI-backed mutations.
"""

from datetime import date

import pytest

from nexus.core.exceptions import (
    CompletionNotPending,
    GenerationFailed,
    MemberNotFound,
    ProjectNotFound,
    StorageQuotaExceeded,
    ValidationFailed,
)
from nexus.core.models import TaskStatus, ViewState
from nexus.core.planning.notifications import DesktopNotifier
from nexus.core.planning.workspace import PROJECTS_ADAPTER, Workspace
from nexus.core.schemas import MemberCreate, MemberUpdate, ProjectCreate, ProjectUpdate, TaskDraft
from nexus.core.storage import MemoryKeyValueStore, StateRepository, StorageKey


class FlakyTeamStore(MemoryKeyValueStore):
    """Memory store whose team roster writes can be made to fail."""

    def __init__(self):
        super().__init__()
        self.fail_team_writes = False

    async def set(self, key: str, value: str) -> None:
        if self.fail_team_writes and key == StorageKey.TEAM:
            raise StorageQuotaExceeded("Team roster does not fit")
        await super().set(key, value)


async def reload(repository, clock) -> Workspace:
    ws = Workspace(repository, notifier=DesktopNotifier(enabled=False), clock=clock, seed_demo_data=False)
    await ws.load()
    return ws


# ==========================================================================
# Loading
# ==========================================================================

class TestLoad:

    async def test_seeds_demo_workspace_when_empty(self, repository, clock):
        ws = Workspace(repository, notifier=DesktopNotifier(enabled=False), clock=clock, seed_demo_data=True)
        await ws.load()

        assert [m.id for m in ws.team] == ["u1", "u2", "u3", "u4"]
        assert [p.name for p in ws.projects] == ["E-Commerce Revamp"]
        assert ws.projects[0].progress == 33
        assert await repository.exists(StorageKey.PROJECTS)
        assert ws.current_user is None
        assert not ws.scheduler.running

    async def test_empty_without_seed(self, workspace):
        assert workspace.projects == []
        assert workspace.team == []
        assert workspace.dark_mode is False

    async def test_saved_state_wins_over_seed(self, repository, clock):
        await repository.save(StorageKey.PROJECTS, PROJECTS_ADAPTER, [])
        ws = Workspace(repository, notifier=DesktopNotifier(enabled=False), clock=clock, seed_demo_data=True)
        await ws.load()

        assert ws.projects == []

    async def test_existing_session_starts_reminders(self, workspace, test_user, repository, clock):
        ws = await reload(repository, clock)
        try:
            assert ws.current_user == test_user
            assert ws.scheduler.running
        finally:
            await ws.shutdown()


# ==========================================================================
# Session
# ==========================================================================

class TestSession:

    async def test_register_adds_member_and_starts_scheduler(self, workspace, test_user):
        assert workspace.current_user == test_user
        assert [m.id for m in workspace.team] == [test_user.id]
        assert workspace.team[0].skills == ["General"]
        assert workspace.scheduler.running

    async def test_login_keeps_unsaved_roster(self, clock):
        store = FlakyTeamStore()
        ws = Workspace(
            StateRepository(store),
            notifier=DesktopNotifier(enabled=False),
            clock=clock,
            seed_demo_data=False,
            reminder_interval_seconds=3600,
        )
        await ws.load()
        try:
            await ws.register("Ann", "ann@example.com", "secret1", "Lead")
            await ws.logout()

            store.fail_team_writes = True
            await ws.add_member(MemberCreate(name="Eve", role="QA"))
            await ws.login("ann@example.com", "secret1")
            assert [m.name for m in ws.team] == ["Ann", "Eve"]

            await ws.register("Bob", "bob@example.com", "secret1", "Dev")
            assert [m.name for m in ws.team] == ["Ann", "Eve", "Bob"]
        finally:
            await ws.shutdown()

    async def test_logout_keeps_workspace_data(self, workspace, test_user):
        project = await workspace.create_project(ProjectCreate(name="Keep me"))
        workspace.select_project(project.id)

        await workspace.logout()

        assert workspace.current_user is None
        assert not workspace.scheduler.running
        assert workspace.selection.view == ViewState.DASHBOARD
        assert [p.id for p in workspace.projects] == [project.id]
        assert len(workspace.team) == 1


# ==========================================================================
# Projects
# ==========================================================================

class TestProjects:

    async def test_create_prepends_with_team_snapshot(self, workspace, test_user, repository, clock):
        first = await workspace.create_project(ProjectCreate(name="First"))
        second = await workspace.create_project(ProjectCreate(name="Second", budget=500))

        assert [p.id for p in workspace.projects] == [second.id, first.id]
        assert [m.id for m in second.team] == [test_user.id]
        assert second.start_date == date(2025, 6, 10)
        assert second.end_date == date(2025, 7, 10)

        ws = await reload(repository, clock)
        assert [p.id for p in ws.projects] == [second.id, first.id]
        await ws.shutdown()

    async def test_end_before_start_rejected(self, workspace):
        with pytest.raises(ValidationFailed):
            await workspace.create_project(ProjectCreate(
                name="Backwards", start_date=date(2025, 6, 10), end_date=date(2025, 6, 1),
            ))

    async def test_update_details(self, workspace):
        project = await workspace.create_project(ProjectCreate(name="Draft"))

        updated = await workspace.update_project_details(project.id, ProjectUpdate(name="Final", budget=10))

        assert updated.name == "Final"
        assert updated.budget == 10
        assert workspace.get_project(project.id).name == "Final"

    async def test_active_and_completed_lists(self, workspace):
        project = await workspace.create_project(ProjectCreate(name="Solo"))
        await workspace.create_task(project.id, TaskDraft(title="Only task"))
        task_id = workspace.get_project(project.id).tasks[0].id

        await workspace.move_task(project.id, task_id, TaskStatus.COMPLETED)
        assert workspace.completed_projects() == []

        await workspace.confirm_completion(project.id)
        assert [p.id for p in workspace.completed_projects()] == [project.id]
        assert workspace.active_projects() == []

    async def test_delete_selected_project_resets_selection(self, workspace):
        project = await workspace.create_project(ProjectCreate(name="Doomed"))
        workspace.select_project(project.id)

        await workspace.delete_project(project.id)

        assert workspace.selection.view == ViewState.DASHBOARD
        assert workspace.selection.selected_project_id is None
        with pytest.raises(ProjectNotFound):
            workspace.get_project(project.id)

    async def test_selecting_missing_project_falls_back_to_dashboard(self, workspace):
        selection = workspace.select_project("ghost")
        assert selection.view == ViewState.DASHBOARD

    async def test_decline_keeps_last_committed_state(self, workspace):
        project = await workspace.create_project(ProjectCreate(name="Gate"))
        await workspace.create_task(project.id, TaskDraft(title="Only task"))
        task_id = workspace.get_project(project.id).tasks[0].id

        result = await workspace.move_task(project.id, task_id, TaskStatus.COMPLETED)
        assert result.staged
        assert workspace.pending_completion(project.id) is not None

        kept = workspace.decline_completion(project.id)

        assert kept.progress == 0
        assert kept.tasks[0].status == TaskStatus.PENDING
        with pytest.raises(CompletionNotPending):
            await workspace.confirm_completion(project.id)

    async def test_failed_save_keeps_in_memory_state(self, clock):
        ws = Workspace(
            StateRepository(MemoryKeyValueStore(quota_bytes=10)),
            notifier=DesktopNotifier(enabled=False),
            clock=clock,
            seed_demo_data=False,
        )
        await ws.load()

        project = await ws.create_project(ProjectCreate(name="Too big to store"))

        assert ws.get_project(project.id) == project

    async def test_confirm_keeps_changes_made_after_staging(self, workspace, repository, clock):
        member = await workspace.add_member(MemberCreate(name="Eve", role="QA"))
        project = await workspace.create_project(ProjectCreate(name="Gate"))
        await workspace.create_task(project.id, TaskDraft(title="Only task"))
        task_id = workspace.get_project(project.id).tasks[0].id
        await workspace.move_task(project.id, task_id, TaskStatus.COMPLETED)

        await workspace.delete_member(member.id)
        await workspace.update_project_details(project.id, ProjectUpdate(name="Launch"))
        assert workspace.pending_completion(project.id).name == "Launch"

        await workspace.confirm_completion(project.id)

        confirmed = workspace.get_project(project.id)
        assert confirmed.team == []
        assert confirmed.name == "Launch"
        assert confirmed.progress == 100
        assert confirmed.tasks[0].status == TaskStatus.COMPLETED

        ws = await reload(repository, clock)
        assert ws.get_project(project.id).team == []
        await ws.shutdown()


# ==========================================================================
# Team
# ==========================================================================

class TestTeam:

    async def test_add_member_defaults_avatar(self, workspace):
        member = await workspace.add_member(MemberCreate(name="Eve", role="QA", skills="Testing, Automation"))

        assert member.skills == ["Testing", "Automation"]
        assert member.avatar.endswith("seed=Eve")
        assert workspace.team == [member]

    async def test_update_member_propagates_to_projects(self, workspace):
        member = await workspace.add_member(MemberCreate(name="Eve", role="QA"))
        project = await workspace.create_project(ProjectCreate(name="Shop"))

        await workspace.update_member(member.id, MemberUpdate(name="Eve Adams", role="QA Lead"))

        snapshot = workspace.get_project(project.id).team
        assert [(m.name, m.role) for m in snapshot] == [("Eve Adams", "QA Lead")]

    async def test_delete_member_removes_from_projects(self, workspace):
        member = await workspace.add_member(MemberCreate(name="Eve", role="QA"))
        project = await workspace.create_project(ProjectCreate(name="Shop"))

        await workspace.delete_member(member.id)

        assert workspace.team == []
        assert workspace.get_project(project.id).team == []

    async def test_unknown_member(self, workspace):
        with pytest.raises(MemberNotFound):
            await workspace.delete_member("ghost")


# ==========================================================================
# Preferences
# ==========================================================================

class TestPreferences:

    async def test_theme_persists(self, workspace, repository, clock):
        await workspace.set_theme(True)

        ws = await reload(repository, clock)
        assert ws.dark_mode is True
        await ws.shutdown()

    async def test_notifications_clear_and_read(self, workspace, clock):
        project = await workspace.create_project(ProjectCreate(name="Remind"))
        await workspace.create_task(project.id, TaskDraft(title="Ping", reminder_at=clock.now.isoformat()))
        await workspace.scheduler.scan_once()
        assert workspace.notifications.unread_count == 1

        await workspace.mark_notifications_read()
        assert workspace.notifications.unread_count == 0

        await workspace.clear_notifications()
        assert workspace.notifications.items == []


# ==========================================================================
# AI
# ==========================================================================

class TestGeneration:

    async def test_project_from_brief(self, workspace, generator):
        await workspace.add_member(MemberCreate(name="Eve", role="QA"))
        generator.plan.tasks[0].assignee_id = workspace.team[0].id
        generator.plan.tasks[1].assignee_id = "not-on-team"

        project = await workspace.create_project_from_brief("Build a mobile app", generator)

        assert workspace.projects[0].id == project.id
        assert project.name == "Mobile App"
        assert project.progress == 0
        assert [t.status for t in project.tasks] == [TaskStatus.PENDING, TaskStatus.PENDING]
        assert project.tasks[0].assignee_id == workspace.team[0].id
        assert project.tasks[1].assignee_id is None
        assert project.tasks[0].deadline == date(2025, 6, 20)
        assert project.tasks[1].deadline is None
        assert project.tasks[0].history[0].actor_name == "AI Agent"
        assert project.tasks[0].history[0].description == "Task created via AI"

    async def test_analyze_risks_appends(self, workspace, generator):
        project = await workspace.create_project(ProjectCreate(name="Risky"))

        await workspace.analyze_risks(project.id, generator)
        updated = await workspace.analyze_risks(project.id, generator)

        assert [r.description for r in updated.risks] == ["Store review delays", "Store review delays"]
        assert len({r.id for r in updated.risks}) == 2

    async def test_failure_leaves_state_unchanged(self, workspace, generator):
        project = await workspace.create_project(ProjectCreate(name="Stable"))
        generator.fail = True

        with pytest.raises(GenerationFailed):
            await workspace.create_project_from_brief("anything", generator)
        with pytest.raises(GenerationFailed):
            await workspace.analyze_risks(project.id, generator)

        assert [p.id for p in workspace.projects] == [project.id]
        assert workspace.get_project(project.id).risks == []
