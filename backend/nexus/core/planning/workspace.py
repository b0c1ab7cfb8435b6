"""
Workspace - the single owner of application state.

Holds projects, the team roster, notifications, theme, the signed-in user
and the navigation selection. Every mutation goes through a method here and
is written back through the StateRepository; task-list mutations are
delegated to the TaskLifecycleEngine.
"""

from datetime import date, datetime, timedelta
from typing import Callable, Optional

import structlog
from pydantic import TypeAdapter

from nexus.core.config import settings
from nexus.core.exceptions import MemberNotFound, ProjectNotFound, ValidationFailed
from nexus.core.models import TaskStatus, ViewState
from nexus.core.planning.ai_generator import PlanGenerator, build_project_from_plan
from nexus.core.planning.deadlines import classify_deadline, local_today, utcnow
from nexus.core.planning.identity import TEAM_ADAPTER, IdentityManager, avatar_for, member_for
from nexus.core.planning.lifecycle import CommitResult, TaskLifecycleEngine, compute_progress
from nexus.core.planning.notifications import DesktopNotifier, NotificationStore
from nexus.core.planning.reminders import ReminderScheduler
from nexus.core.planning.seed import initial_projects, initial_team
from nexus.core.schemas import (
    MemberCreate,
    MemberUpdate,
    Project,
    ProjectCreate,
    ProjectUpdate,
    Risk,
    Selection,
    SessionUser,
    TaskDeadlineRow,
    TaskDraft,
    TaskEdit,
    TeamMember,
)
from nexus.core.storage import DraftStore, StateRepository, StorageKey

logger = structlog.get_logger()

PROJECTS_ADAPTER: TypeAdapter[list[Project]] = TypeAdapter(list[Project])
THEME_ADAPTER: TypeAdapter[str] = TypeAdapter(str)

DEFAULT_PROJECT_DAYS = 30


class Workspace:
    """Application state plus every mutation entry point."""

    def __init__(
        self,
        repository: StateRepository,
        notifier: Optional[DesktopNotifier] = None,
        clock: Callable[[], datetime] = utcnow,
        seed_demo_data: Optional[bool] = None,
        reminder_interval_seconds: Optional[float] = None,
    ):
        self.repository = repository
        self.clock = clock
        self.seed_demo_data = settings.SEED_DEMO_DATA if seed_demo_data is None else seed_demo_data

        self.projects: list[Project] = []
        self.team: list[TeamMember] = []
        self.dark_mode = False
        self.current_user: Optional[SessionUser] = None
        self.selection = Selection()

        self.identity = IdentityManager(repository)
        self.notifications = NotificationStore(repository)
        self.drafts = DraftStore(repository)
        self.engine = TaskLifecycleEngine(self._commit_project, clock=clock)
        self.notifier = notifier if notifier is not None else DesktopNotifier()
        self.scheduler = ReminderScheduler(
            lambda: self.projects,
            self.notifications,
            self.notifier,
            interval_seconds=reminder_interval_seconds,
            clock=clock,
        )

    # ----------------------------------------------------------------------
    # Loading / persistence
    # ----------------------------------------------------------------------

    async def load(self) -> None:
        """Read saved state, seeding the demo workspace when nothing is saved."""
        seeded = False
        if await self.repository.exists(StorageKey.TEAM) or not self.seed_demo_data:
            self.team = await self.repository.load(StorageKey.TEAM, TEAM_ADAPTER, [])
        else:
            self.team = initial_team()
            await self._save_team()
            seeded = True

        if await self.repository.exists(StorageKey.PROJECTS) or not self.seed_demo_data:
            self.projects = await self.repository.load(StorageKey.PROJECTS, PROJECTS_ADAPTER, [])
        else:
            self.projects = initial_projects(self.team, local_today(self.clock()))
            await self._save_projects()
            seeded = True

        theme = await self.repository.load(StorageKey.THEME, THEME_ADAPTER, "light")
        self.dark_mode = theme == "dark"

        await self.notifications.load()
        self.current_user = await self.identity.get_current_user()

        logger.info(
            "workspace_loaded",
            projects=len(self.projects),
            team=len(self.team),
            seeded=seeded,
            signed_in=self.current_user is not None,
        )
        if self.current_user is not None:
            self.scheduler.start()

    async def shutdown(self) -> None:
        await self.scheduler.stop()
        await self.notifier.aclose()

    async def _save_projects(self) -> bool:
        return await self.repository.save(StorageKey.PROJECTS, PROJECTS_ADAPTER, self.projects)

    async def _save_team(self) -> bool:
        return await self.repository.save(StorageKey.TEAM, TEAM_ADAPTER, self.team)

    async def _commit_project(self, project: Project) -> None:
        self.projects = [project if p.id == project.id else p for p in self.projects]
        await self._save_projects()

    def _today(self) -> date:
        return local_today(self.clock())

    # ----------------------------------------------------------------------
    # Session
    # ----------------------------------------------------------------------

    def _start_session(self, user: SessionUser) -> SessionUser:
        self.current_user = user
        self.scheduler.start()
        return user

    async def register(self, name: str, email: str, password: str, role: str) -> SessionUser:
        """Create an account; the new user joins the in-memory roster."""
        user = await self.identity.register(name, email, password, role)
        self.team = [*self.team, member_for(user)]
        await self._save_team()
        return self._start_session(user)

    async def login(self, email: str, password: str) -> SessionUser:
        user = await self.identity.login(email, password)
        return self._start_session(user)

    async def logout(self) -> None:
        await self.scheduler.stop()
        await self.identity.logout()
        self.current_user = None
        self.selection = Selection()

    # ----------------------------------------------------------------------
    # Projects
    # ----------------------------------------------------------------------

    def get_project(self, project_id: str) -> Project:
        project = next((p for p in self.projects if p.id == project_id), None)
        if project is None:
            raise ProjectNotFound(f"Project {project_id} not found")
        return project

    def active_projects(self) -> list[Project]:
        return [p for p in self.projects if p.progress < 100]

    def completed_projects(self) -> list[Project]:
        return [p for p in self.projects if p.progress == 100]

    async def add_project(self, project: Project) -> Project:
        """Prepend a new project; its team is a snapshot of the current roster."""
        project = project.model_copy(update={
            "team": list(self.team),
            "progress": compute_progress(project.tasks),
        })
        self.projects = [project, *self.projects]
        await self._save_projects()
        self.selection = Selection()
        logger.info("project_created", project_id=project.id, tasks=len(project.tasks))
        return project

    async def create_project(self, data: ProjectCreate) -> Project:
        start_date = data.start_date or self._today()
        end_date = data.end_date or start_date + timedelta(days=DEFAULT_PROJECT_DAYS)
        if end_date < start_date:
            raise ValidationFailed("End date must not be before start date")
        return await self.add_project(Project(
            name=data.name,
            description=data.description,
            start_date=start_date,
            end_date=end_date,
            budget=data.budget,
            tech_stack=data.tech_stack,
        ))

    async def update_project_details(self, project_id: str, data: ProjectUpdate) -> Project:
        project = self.get_project(project_id)
        update = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        updated = project.model_copy(update=update)
        if updated.end_date < updated.start_date:
            raise ValidationFailed("End date must not be before start date")
        await self._commit_project(updated)
        return updated

    async def delete_project(self, project_id: str) -> None:
        self.get_project(project_id)
        self.projects = [p for p in self.projects if p.id != project_id]
        self.engine.discard(project_id)
        await self._save_projects()
        if self.selection.selected_project_id == project_id:
            self.selection = Selection()
        logger.info("project_deleted", project_id=project_id)

    # ----------------------------------------------------------------------
    # Tasks
    # ----------------------------------------------------------------------

    async def move_task(self, project_id: str, task_id: str, status: TaskStatus) -> Optional[CommitResult]:
        return await self.engine.move(self.get_project(project_id), task_id, status)

    async def create_task(self, project_id: str, draft: TaskDraft) -> CommitResult:
        return await self.engine.create_task(self.get_project(project_id), draft)

    async def update_task(self, project_id: str, task_id: str, edit: TaskEdit) -> CommitResult:
        return await self.engine.update_task(self.get_project(project_id), task_id, edit, self.team)

    async def delete_task(self, project_id: str, task_id: str) -> CommitResult:
        return await self.engine.delete_task(self.get_project(project_id), task_id)

    def pending_completion(self, project_id: str) -> Optional[Project]:
        """The project as it would look if the staged completion were confirmed."""
        staged = self.engine.pending_completion(project_id)
        if staged is None:
            return None
        return self.get_project(project_id).model_copy(
            update={"tasks": staged.tasks, "progress": staged.progress}
        )

    async def confirm_completion(self, project_id: str) -> CommitResult:
        return await self.engine.confirm_completion(self.get_project(project_id))

    def decline_completion(self, project_id: str) -> Project:
        """Drop the staged update; the last committed project stays."""
        project = self.get_project(project_id)
        self.engine.decline_completion(project_id)
        return project

    def deadline_board(self, project_id: str) -> list[TaskDeadlineRow]:
        now = self.clock()
        return [
            TaskDeadlineRow(
                task_id=t.id,
                title=t.title,
                status=t.status,
                deadline=classify_deadline(t, now),
            )
            for t in self.get_project(project_id).tasks
        ]

    # ----------------------------------------------------------------------
    # Team
    # ----------------------------------------------------------------------

    def get_member(self, member_id: str) -> TeamMember:
        member = next((m for m in self.team if m.id == member_id), None)
        if member is None:
            raise MemberNotFound(f"Team member {member_id} not found")
        return member

    async def add_member(self, data: MemberCreate) -> TeamMember:
        member = TeamMember(
            name=data.name,
            role=data.role,
            skills=data.skills,
            avatar=data.avatar or avatar_for(data.name),
        )
        self.team = [*self.team, member]
        await self._save_team()
        return member

    async def update_member(self, member_id: str, data: MemberUpdate) -> TeamMember:
        """Replace a member everywhere, including each project's snapshot."""
        self.get_member(member_id)
        member = TeamMember(
            id=member_id,
            name=data.name,
            role=data.role,
            skills=data.skills,
            avatar=data.avatar or avatar_for(data.name),
        )
        self.team = [member if m.id == member_id else m for m in self.team]
        self.projects = [
            p.model_copy(update={"team": [member if m.id == member_id else m for m in p.team]})
            for p in self.projects
        ]
        await self._save_team()
        await self._save_projects()
        return member

    async def delete_member(self, member_id: str) -> None:
        """Remove a member from the roster and every project snapshot."""
        self.get_member(member_id)
        self.team = [m for m in self.team if m.id != member_id]
        self.projects = [
            p.model_copy(update={"team": [m for m in p.team if m.id != member_id]})
            for p in self.projects
        ]
        await self._save_team()
        await self._save_projects()

    # ----------------------------------------------------------------------
    # Notifications / theme / navigation
    # ----------------------------------------------------------------------

    async def clear_notifications(self) -> None:
        await self.notifications.clear()

    async def mark_notifications_read(self) -> None:
        await self.notifications.mark_all_read()

    async def set_theme(self, dark: bool) -> None:
        self.dark_mode = dark
        await self.repository.save(StorageKey.THEME, THEME_ADAPTER, "dark" if dark else "light")

    def navigate(self, view: ViewState) -> Selection:
        self.selection = Selection(view=view)
        return self.selection

    def select_project(self, project_id: str) -> Selection:
        self.selection = Selection(view=ViewState.PROJECT_DETAILS, selected_project_id=project_id)
        return self.resolve_selection()

    def resolve_selection(self) -> Selection:
        """Fall back to the dashboard when the selected project is gone."""
        selected = self.selection.selected_project_id
        if self.selection.view == ViewState.PROJECT_DETAILS and (
            selected is None or not any(p.id == selected for p in self.projects)
        ):
            self.selection = Selection()
        return self.selection

    # ----------------------------------------------------------------------
    # AI
    # ----------------------------------------------------------------------

    async def analyze_risks(self, project_id: str, generator: PlanGenerator) -> Project:
        project = self.get_project(project_id)
        assessments = await generator.analyze_risks(project)
        new_risks = [
            Risk(
                description=r.description,
                severity=r.severity,
                mitigation_strategy=r.mitigation_strategy,
            )
            for r in assessments
        ]
        # Re-read: the project may have changed while the request was in flight
        current = self.get_project(project_id)
        updated = current.model_copy(update={"risks": [*current.risks, *new_risks]})
        await self._commit_project(updated)
        return updated

    async def generate_report(self, project_id: str, generator: PlanGenerator) -> str:
        return await generator.generate_report(self.get_project(project_id))

    async def create_project_from_brief(self, text: str, generator: PlanGenerator) -> Project:
        today = self._today()
        plan = await generator.parse_plan(text, self.team, today)
        project = build_project_from_plan(plan, self.team, today, self.clock())
        return await self.add_project(project)
