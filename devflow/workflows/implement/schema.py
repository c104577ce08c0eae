"""
Implementation Workflow Schema Definitions using Pydantic

Runtime state persisted between engine calls, plus the inputs the driving
agent reports back after performing an action.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...reviewers.base import ReviewResult
from .phases import ImplementPhase


def _utc_now():
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


# ============================================================================
# Language Configuration
# ============================================================================

class LanguageCommands(BaseModel):
    """Commands for the verification phases."""
    lint: str
    build: str
    test: str
    type_check: Optional[str] = None
    format_check: Optional[str] = None


class LanguageConfig(BaseModel):
    """Language/toolchain configuration for one kind of project."""
    name: str
    commands: LanguageCommands
    test_file_patterns: list[str] = Field(default_factory=list)
    source_file_patterns: list[str] = Field(default_factory=list)
    specs_dir: str = "specs/"


# ============================================================================
# Step Inputs and Results
# ============================================================================

class StepResult(BaseModel):
    """Outcome of an action, reported by the driving agent."""
    success: Optional[bool] = None
    output: Optional[str] = None
    files_created: list[str] = Field(default_factory=list)
    files_modified: list[str] = Field(default_factory=list)

    @field_validator("files_created", "files_modified", mode="before")
    @classmethod
    def null_file_list_is_empty(cls, value):
        return [] if value is None else value


class CommandResult(BaseModel):
    """Recorded outcome of a verification command.

    Only the caller's success flag is trusted; exit_code is normalized to 0/1.
    """
    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def passed(self) -> bool:
        return self.exit_code == 0


class PhaseTransition(BaseModel):
    """One entry in a workflow's phase history."""
    from_phase: ImplementPhase
    to_phase: ImplementPhase
    at: datetime = Field(default_factory=_utc_now)


# ============================================================================
# Workflow Context
# ============================================================================

class WorkflowContext(BaseModel):
    """Complete persisted state of one implementation workflow."""
    workflow_id: str
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    # Configuration
    description: str
    project_path: str
    language_config: LanguageConfig

    # State
    phase: ImplementPhase = ImplementPhase.INITIALIZED
    revision: int = 0

    # Review queue. active_reviewers is fixed at start; pending and completed
    # partition it at every point.
    active_reviewers: list[str] = Field(default_factory=list)
    pending_reviewers: list[str] = Field(default_factory=list)
    completed_reviewers: list[str] = Field(default_factory=list)
    reviews: dict[str, ReviewResult] = Field(default_factory=dict)

    # Spec
    spec_path: Optional[str] = None
    spec_content: Optional[str] = None

    # Implementation artifacts
    test_files: list[str] = Field(default_factory=list)
    implementation_files: list[str] = Field(default_factory=list)

    # Verification results
    lint_result: Optional[CommandResult] = None
    build_result: Optional[CommandResult] = None
    test_result: Optional[CommandResult] = None

    # Error tracking
    last_error: Optional[str] = None
    failed_phase: Optional[ImplementPhase] = None

    history: list[PhaseTransition] = Field(default_factory=list)

    @property
    def current_reviewer(self) -> Optional[str]:
        """Head of the review queue."""
        return self.pending_reviewers[0] if self.pending_reviewers else None

    def update_timestamp(self):
        """Update the updated_at timestamp."""
        self.updated_at = datetime.now(timezone.utc)

    def record_transition(self, to_phase: ImplementPhase):
        """Move to a new phase and append it to the history."""
        self.history.append(PhaseTransition(from_phase=self.phase, to_phase=to_phase))
        self.phase = to_phase
