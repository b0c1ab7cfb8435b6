"""
Nexus Planning - the project/task domain.

Components:
- TaskLifecycleEngine: status transitions, progress and the completion gate
- ReminderScheduler: periodic reminder scan feeding the NotificationStore
- IdentityManager: accounts and the current session
- PlanGenerator: AI transcription, plan parsing, risk analysis and reports
- Workspace: application state and every mutation entry point
"""

from nexus.core.planning.ai_generator import GeminiClient, PlanGenerator
from nexus.core.planning.identity import IdentityManager
from nexus.core.planning.lifecycle import TaskLifecycleEngine
from nexus.core.planning.notifications import DesktopNotifier, NotificationStore
from nexus.core.planning.reminders import ReminderScheduler
from nexus.core.planning.workspace import Workspace

__all__ = [
    "DesktopNotifier",
    "GeminiClient",
    "IdentityManager",
    "NotificationStore",
    "PlanGenerator",
    "ReminderScheduler",
    "TaskLifecycleEngine",
    "Workspace",
]
