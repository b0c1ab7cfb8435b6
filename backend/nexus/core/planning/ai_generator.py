"""
AI Plan/Report Generator.

Thin Gemini REST client plus the four generation contracts used by the
workspace: transcription, plan parsing, risk analysis and status reports.
Model output is validated into strict response types with explicit
fallbacks; anything unusable raises GenerationFailed.
"""

import json
from datetime import date, datetime, timedelta
from typing import Any, Optional

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nexus.core.config import settings
from nexus.core.exceptions import GenerationFailed
from nexus.core.models import ChangeType, Priority, RiskSeverity, TaskStatus
from nexus.core.planning.deadlines import utcnow
from nexus.core.schemas import Project, Task, TaskHistory, TeamMember

logger = structlog.get_logger()

DEFAULT_ESTIMATED_HOURS = 4.0
DEFAULT_PROJECT_DAYS = 30


# ==========================================================================
# Response Types
# ==========================================================================

class _ModelOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PlannedTask(_ModelOutput):
    title: str = Field(min_length=1)
    description: str = ""
    priority: Priority = Priority.MEDIUM
    estimated_hours: float = Field(DEFAULT_ESTIMATED_HOURS, alias="estimatedHours")
    deadline: Optional[str] = None
    assignee_id: Optional[str] = Field(None, alias="assigneeId")

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v: Any) -> Any:
        return v or ""

    @field_validator("priority", mode="before")
    @classmethod
    def known_priority(cls, v: Any) -> Any:
        return v if isinstance(v, str) and v in {p.value for p in Priority} else Priority.MEDIUM

    @field_validator("estimated_hours", mode="before")
    @classmethod
    def positive_hours(cls, v: Any) -> Any:
        try:
            hours = float(v)
        except (TypeError, ValueError):
            return DEFAULT_ESTIMATED_HOURS
        return hours if hours > 0 else DEFAULT_ESTIMATED_HOURS


class ProjectPlan(_ModelOutput):
    name: str = Field(min_length=1)
    description: str = ""
    start_date: Optional[str] = Field(None, alias="startDate")
    end_date: Optional[str] = Field(None, alias="endDate")
    budget: float = 0
    tech_stack: list[str] = Field(default_factory=list, alias="techStack")
    tasks: list[PlannedTask] = Field(default_factory=list)

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v: Any) -> Any:
        return v or ""

    @field_validator("budget", mode="before")
    @classmethod
    def non_negative_budget(cls, v: Any) -> Any:
        try:
            budget = float(v)
        except (TypeError, ValueError):
            return 0
        return max(budget, 0)

    @field_validator("tech_stack", "tasks", mode="before")
    @classmethod
    def default_list(cls, v: Any) -> Any:
        return v or []


class RiskAssessment(_ModelOutput):
    description: str = Field(min_length=1)
    severity: RiskSeverity = RiskSeverity.MEDIUM
    mitigation_strategy: str = Field("", alias="mitigationStrategy")

    @field_validator("severity", mode="before")
    @classmethod
    def known_severity(cls, v: Any) -> Any:
        return v if isinstance(v, str) and v in {s.value for s in RiskSeverity} else RiskSeverity.MEDIUM


# JSON schemas handed to the model
PROJECT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "name": {"type": "STRING"},
        "description": {"type": "STRING"},
        "startDate": {"type": "STRING", "description": "YYYY-MM-DD format"},
        "endDate": {"type": "STRING", "description": "YYYY-MM-DD format"},
        "budget": {"type": "NUMBER"},
        "techStack": {"type": "ARRAY", "items": {"type": "STRING"}},
        "tasks": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "title": {"type": "STRING"},
                    "description": {"type": "STRING"},
                    "priority": {"type": "STRING", "enum": [p.value for p in Priority]},
                    "estimatedHours": {"type": "NUMBER"},
                    "deadline": {
                        "type": "STRING",
                        "description": "YYYY-MM-DD format. Must be in the future relative to today.",
                    },
                    "assigneeId": {
                        "type": "STRING",
                        "description": "The ID of the team member assigned to this task, if applicable.",
                    },
                },
                "required": ["title", "priority", "estimatedHours"],
            },
        },
    },
    "required": ["name", "description", "tasks"],
}

RISK_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "description": {"type": "STRING"},
            "severity": {"type": "STRING", "enum": [s.value for s in RiskSeverity]},
            "mitigationStrategy": {"type": "STRING"},
        },
        "required": ["description", "severity", "mitigationStrategy"],
    },
}


# ==========================================================================
# Gemini Client
# ==========================================================================

class GeminiClient:
    """Minimal client for the generateContent endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.api_url = (api_url or settings.GEMINI_API_URL).rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=settings.GEMINI_TIMEOUT_SECONDS)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def generate(
        self,
        model: str,
        parts: list[dict],
        system_instruction: Optional[str] = None,
        response_schema: Optional[dict] = None,
    ) -> str:
        """Return the text of the first candidate."""
        if not self.enabled:
            raise GenerationFailed("AI generator is not configured")

        body: dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if response_schema is not None:
            body["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
            }

        try:
            response = await self._client.post(
                f"{self.api_url}/models/{model}:generateContent",
                json=body,
                headers={"x-goog-api-key": self.api_key},
            )
        except httpx.HTTPError as e:
            logger.error("generation_request_failed", model=model, error=str(e))
            raise GenerationFailed("Generation failed") from e

        if response.status_code != 200:
            logger.error("generation_rejected", model=model, status_code=response.status_code)
            raise GenerationFailed(f"Generation failed ({response.status_code})")

        try:
            candidates = response.json().get("candidates") or []
            parts_out = candidates[0]["content"]["parts"]
            text = "".join(p.get("text", "") for p in parts_out)
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise GenerationFailed("Generation returned no content") from e

        if not text.strip():
            raise GenerationFailed("Generation returned no content")
        return text

    async def aclose(self) -> None:
        await self._client.aclose()


# ==========================================================================
# Plan Generator
# ==========================================================================

class PlanGenerator:
    """The AI contracts used by the workspace."""

    def __init__(self, client: Optional[GeminiClient] = None):
        self.client = client or GeminiClient()
        self.fast_model = settings.GEMINI_FAST_MODEL
        self.pro_model = settings.GEMINI_PRO_MODEL

    async def transcribe(
        self,
        audio_base64: str,
        language: str = "English",
        mime_type: str = "audio/webm",
    ) -> str:
        parts = [
            {"inlineData": {"mimeType": mime_type, "data": audio_base64}},
            {"text": (
                f"Transcribe the audio exactly as spoken in {language}. "
                'If the audio is unclear, return "[Unclear Speech]". '
                "Do not add any other commentary."
            )},
        ]
        text = await self.client.generate(self.fast_model, parts)
        return text.strip()

    async def refine_text(self, text: str) -> str:
        """Grammar/clarity pass. Returns the input unchanged on failure."""
        prompt = (
            "Fix grammar, improve clarity, and fix potential typos in the following text. "
            "Do not remove key details or change the original intent. "
            "Keep it professional but natural.\n\n"
            f'Text: "{text}"'
        )
        try:
            return (await self.client.generate(self.fast_model, [{"text": prompt}])).strip()
        except GenerationFailed as e:
            logger.warning("refine_failed", error=e.message)
            return text

    async def parse_plan(
        self,
        text: str,
        team: list[TeamMember],
        today: Optional[date] = None,
    ) -> ProjectPlan:
        today = today or date.today()
        if team:
            roster = "\n".join(
                f"- Name: {m.name}, ID: {m.id}, Role: {m.role}, Skills: {', '.join(m.skills)}"
                for m in team
            )
            team_context = (
                "Available Team Members for assignment (use their exact IDs). "
                f"Prioritize assigning based on skills match:\n{roster}"
            )
        else:
            team_context = "No specific team members provided."

        system_instruction = (
            "You are a senior project manager. Analyze the request and create a structured project plan.\n\n"
            "CRITICAL RULES:\n"
            f"1. Current Date: {today.isoformat()}. Current Year: {today.year}.\n"
            f"2. All deadlines MUST be in the future relative to {today.isoformat()}. "
            f"Do not use dates from {today.year - 1} or earlier.\n"
            "3. If a deadline is not explicitly mentioned, generate a reasonable one within the project duration.\n"
            "4. Assign tasks to the available team members provided in the context if their role and "
            "skills match the task requirements. Use the 'assigneeId' field.\n\n"
            f"Context:\n{team_context}"
        )

        raw = await self.client.generate(
            self.pro_model,
            [{"text": text}],
            system_instruction=system_instruction,
            response_schema=PROJECT_SCHEMA,
        )
        try:
            return ProjectPlan.model_validate_json(raw)
        except ValidationError as e:
            logger.error("plan_invalid", errors=e.error_count())
            raise GenerationFailed("Generated plan was not usable") from e

    async def analyze_risks(self, project: Project) -> list[RiskAssessment]:
        prompt = (
            "Analyze this project plan for potential risks:\n"
            f"Project: {project.name}\n"
            f"Description: {project.description}\n"
            f"Tech Stack: {', '.join(project.tech_stack)}\n"
            f"Budget: {project.budget}\n"
            f"Timeline: {project.start_date.isoformat()} to {project.end_date.isoformat()}\n"
            f"Tasks: {', '.join(t.title for t in project.tasks)}\n\n"
            "Identify top 3-5 risks with severity and mitigation strategies."
        )
        raw = await self.client.generate(self.pro_model, [{"text": prompt}], response_schema=RISK_SCHEMA)
        try:
            return [RiskAssessment.model_validate(item) for item in _json_list(raw)]
        except ValidationError as e:
            logger.error("risks_invalid", errors=e.error_count())
            raise GenerationFailed("Generated risks were not usable") from e

    async def generate_report(self, project: Project) -> str:
        completed = sum(1 for t in project.tasks if t.status == TaskStatus.COMPLETED)
        prompt = (
            "Generate a professional status report for:\n"
            f"Project: {project.name}\n"
            f"Progress: {project.progress}%\n"
            f"Budget: {project.budget}\n"
            f"Completed Tasks: {completed} / {len(project.tasks)}\n\n"
            "Format as a clean, professional markdown report with Executive Summary, "
            "Progress Details, and Recommendations. Use bolding and lists for readability."
        )
        return await self.client.generate(self.pro_model, [{"text": prompt}])

    async def aclose(self) -> None:
        await self.client.aclose()


def _json_list(raw: str) -> list:
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise GenerationFailed("Generated risks were not valid JSON") from e
    if not isinstance(data, list):
        raise GenerationFailed("Generated risks were not a list")
    return data


# ==========================================================================
# Plan -> Project
# ==========================================================================

def parse_plan_date(value: Optional[str]) -> Optional[date]:
    """Lenient date parse; None when absent or invalid."""
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def build_project_from_plan(
    plan: ProjectPlan,
    team: list[TeamMember],
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Project:
    """
    Turn a generated plan into a new project.

    Invalid task deadlines and unknown assignees are dropped; a missing end
    date, or one before the start date, becomes 30 days after the start date
    (today when absent).
    """
    today = today or date.today()
    now = now or utcnow()
    team_ids = {m.id for m in team}

    start_date = parse_plan_date(plan.start_date) or today
    end_date = parse_plan_date(plan.end_date)
    if end_date is None or end_date < start_date:
        end_date = start_date + timedelta(days=DEFAULT_PROJECT_DAYS)

    tasks = [
        Task(
            title=t.title,
            description=t.description,
            status=TaskStatus.PENDING,
            priority=t.priority,
            estimated_hours=t.estimated_hours,
            deadline=parse_plan_date(t.deadline),
            assignee_id=t.assignee_id if t.assignee_id in team_ids else None,
            history=[TaskHistory(
                change_type=ChangeType.CREATED,
                description="Task created via AI",
                timestamp=now,
                actor_name="AI Agent",
            )],
        )
        for t in plan.tasks
    ]

    return Project(
        name=plan.name,
        description=plan.description,
        start_date=start_date,
        end_date=end_date,
        budget=plan.budget,
        tech_stack=plan.tech_stack,
        team=list(team),
        risks=[],
        tasks=tasks,
        progress=0,
    )
