"""
Implementation workflow: spec -> review -> tests -> implementation -> verification.
"""

from .actions import (
    CompleteAction,
    CompletionSummary,
    CreateFileAction,
    CreateFilesAction,
    EditFileAction,
    FailedAction,
    InfoAction,
    ShellAction,
    StartResponse,
    StepResponse,
    WorkflowAction,
)
from .orchestrator import ImplementOrchestrator
from .phases import VALID_TRANSITIONS, ImplementPhase, can_transition
from .schema import (
    CommandResult,
    LanguageCommands,
    LanguageConfig,
    StepResult,
    WorkflowContext,
)
from .synthesis import synthesize_reviews

__all__ = [
    "CompleteAction",
    "CompletionSummary",
    "CreateFileAction",
    "CreateFilesAction",
    "EditFileAction",
    "FailedAction",
    "InfoAction",
    "ShellAction",
    "StartResponse",
    "StepResponse",
    "WorkflowAction",
    "ImplementOrchestrator",
    "VALID_TRANSITIONS",
    "ImplementPhase",
    "can_transition",
    "CommandResult",
    "LanguageCommands",
    "LanguageConfig",
    "StepResult",
    "WorkflowContext",
    "synthesize_reviews",
]
