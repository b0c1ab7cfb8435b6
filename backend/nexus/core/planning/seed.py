"""
Demo workspace used on first start when nothing has been saved yet.

Dates are relative to the day of seeding so the sample always looks current.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from nexus.core.models import ChangeType, Priority, RiskSeverity, TaskStatus
from nexus.core.planning.identity import avatar_for
from nexus.core.planning.lifecycle import compute_progress
from nexus.core.schemas import Project, Risk, Task, TaskHistory, TeamMember


def initial_team() -> list[TeamMember]:
    members = [
        ("u1", "Alice Chen", "Frontend Lead", ["React", "TypeScript", "Tailwind"]),
        ("u2", "Bob Smith", "Backend Engineer", ["Node.js", "PostgreSQL", "Redis"]),
        ("u3", "Charlie Kim", "UI/UX Designer", ["Figma", "CSS", "User Research"]),
        ("u4", "Diana Prince", "Product Manager", ["Agile", "Strategy", "Roadmapping"]),
    ]
    return [
        TeamMember(id=id_, name=name, role=role, skills=skills, avatar=avatar_for(name.split()[0]))
        for id_, name, role, skills in members
    ]


def _stamp(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def initial_projects(team: list[TeamMember], today: Optional[date] = None) -> list[Project]:
    today = today or date.today()

    def rel(days: int) -> date:
        return today + timedelta(days=days)

    tasks = [
        Task(
            id="t1",
            title="Setup Repo & CI/CD",
            description="Initialize project structure and GitHub Actions.",
            status=TaskStatus.COMPLETED,
            priority=Priority.HIGH,
            estimated_hours=8,
            assignee_id="u2",
            deadline=rel(-5),
            history=[
                TaskHistory(id="h2", change_type=ChangeType.STATUS, description="Moved to Completed",
                            timestamp=_stamp(rel(-5)), actor_name="Bob Smith"),
                TaskHistory(id="h1", change_type=ChangeType.CREATED, description="Task created",
                            timestamp=_stamp(rel(-10))),
            ],
        ),
        Task(
            id="t2",
            title="Design Checkout Flow",
            description="Create high-fidelity mockups for checkout.",
            status=TaskStatus.IN_PROGRESS,
            priority=Priority.CRITICAL,
            estimated_hours=16,
            assignee_id="u3",
            deadline=rel(5),
            history=[
                TaskHistory(id="h3", change_type=ChangeType.CREATED, description="Task created",
                            timestamp=_stamp(rel(-9))),
            ],
        ),
        Task(
            id="t3",
            title="Stripe Integration",
            description="Implement payment intent and webhooks.",
            status=TaskStatus.PENDING,
            priority=Priority.HIGH,
            estimated_hours=24,
            assignee_id="u1",
            deadline=rel(15),
            history=[
                TaskHistory(id="h4", change_type=ChangeType.CREATED, description="Task created",
                            timestamp=_stamp(rel(-9))),
            ],
        ),
    ]

    return [
        Project(
            id="p1",
            name="E-Commerce Revamp",
            description="Modernizing the legacy shopping cart experience with Next.js and Stripe integration.",
            start_date=rel(-10),
            end_date=rel(45),
            budget=45000,
            tech_stack=["React", "Node.js", "Stripe"],
            team=list(team),
            risks=[Risk(id="r1", description="Third-party API limits", severity=RiskSeverity.MEDIUM,
                        mitigation_strategy="Implement caching layer")],
            tasks=tasks,
            progress=compute_progress(tasks),
        )
    ]
