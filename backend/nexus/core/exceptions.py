"""
Nexus PM - Domain Exceptions
============================

Errors raised by the core and mapped to HTTP responses by the API layer.
"""


class NexusError(Exception):
    """Base class for all Nexus PM errors."""

    code = "NEXUS_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


# ==========================================================================
# Validation / Authentication
# ==========================================================================

class ValidationFailed(NexusError):
    """User input rejected before anything is persisted."""

    code = "VALIDATION_FAILED"


class DuplicateEmail(ValidationFailed):
    """An account with this email already exists."""

    code = "DUPLICATE_EMAIL"


class AuthenticationFailed(NexusError):
    """Unknown email or wrong password."""

    code = "AUTHENTICATION_FAILED"


# ==========================================================================
# Lookup
# ==========================================================================

class NotFound(NexusError):
    """Referenced entity does not exist."""

    code = "NOT_FOUND"


class ProjectNotFound(NotFound):
    code = "PROJECT_NOT_FOUND"


class TaskNotFound(NotFound):
    code = "TASK_NOT_FOUND"


class MemberNotFound(NotFound):
    code = "MEMBER_NOT_FOUND"


class CompletionNotPending(NexusError):
    """Confirm/decline called while no project completion is staged."""

    code = "COMPLETION_NOT_PENDING"


# ==========================================================================
# Infrastructure
# ==========================================================================

class PersistenceError(NexusError):
    """The key-value store rejected a write."""

    code = "PERSISTENCE_ERROR"


class StorageQuotaExceeded(PersistenceError):
    code = "STORAGE_QUOTA_EXCEEDED"


class GenerationFailed(NexusError):
    """The remote AI generator failed or returned an unusable response."""

    code = "GENERATION_FAILED"
