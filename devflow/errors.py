"""
Error Taxonomy

Exceptions raised by the implementation workflow engine and its collaborators.

Only programmer/operator-facing problems are raised. Business outcomes such as a
failing lint, build or test run are recorded as phase data (the FAILED phase),
never as exceptions.
"""

from typing import Optional


# ============================================================================
# EXCEPTIONS
# ============================================================================

class DevflowError(Exception):
    """Base exception for devflow errors"""
    pass


class ConfigurationError(DevflowError):
    """Configuration is invalid"""
    pass


class ValidationError(DevflowError):
    """Caller supplied an id, name or request the engine cannot honour"""
    pass


class WorkflowNotFoundError(ValidationError):
    """No persisted context exists (or it is unreadable) for a workflow id"""

    def __init__(self, workflow_id: str, detail: Optional[str] = None):
        self.workflow_id = workflow_id
        self.detail = detail
        message = f"Workflow not found: {workflow_id}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class UnknownReviewerError(ValidationError):
    """Reviewer name is not registered"""

    def __init__(self, reviewer: str, available: Optional[list[str]] = None):
        self.reviewer = reviewer
        self.available = available or []
        message = f"Unknown reviewer: {reviewer}"
        if self.available:
            message += f". Available reviewers: {', '.join(self.available)}"
        super().__init__(message)


class WorkflowFinishedError(ValidationError):
    """Operation is not valid for the workflow's current (terminal) phase"""

    def __init__(self, workflow_id: str, phase: str, hint: str = ""):
        self.workflow_id = workflow_id
        self.phase = phase
        message = f"Workflow {workflow_id} is in phase '{phase}'"
        if hint:
            message = f"{message}: {hint}"
        super().__init__(message)


class ReviewerUnavailableError(DevflowError):
    """
    A requested reviewer cannot be reached when a workflow starts.

    The reason is scrubbed of file paths, host:port pairs and URL query
    strings before it is stored, since availability checks may echo local
    details back.
    """

    def __init__(
        self,
        reviewer: str,
        reason: Optional[str] = None,
        install_instructions: Optional[str] = None,
    ):
        from .sanitize import scrub_reason

        self.reviewer = reviewer
        self.reason = scrub_reason(reason) if reason else "unknown reason"
        self.install_instructions = install_instructions
        super().__init__(f"Reviewer '{reviewer}' is not available: {self.reason}")


class SpecReadError(DevflowError):
    """The spec file could not be read while leaving INITIALIZED"""

    def __init__(self, spec_path: str, cause: Exception):
        self.spec_path = spec_path
        self.cause = cause
        super().__init__(f"Failed to read spec file at {spec_path}: {cause}")


class UnexpectedPhaseError(DevflowError):
    """The step engine has no handler for a phase"""

    def __init__(self, phase: str):
        self.phase = phase
        super().__init__(f"Unexpected phase: {phase}")


class ConcurrentModificationError(DevflowError):
    """Persisted context changed between load and save"""

    def __init__(self, workflow_id: str, expected: int, found: int):
        self.workflow_id = workflow_id
        self.expected = expected
        self.found = found
        super().__init__(
            f"Workflow {workflow_id} was modified concurrently "
            f"(expected revision {expected}, found {found})"
        )
