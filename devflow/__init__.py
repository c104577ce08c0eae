"""
devflow - Spec-driven feature delivery workflows

Drives a feature through specify, review, implement and verify, one step at
a time, for an external agent that performs each returned action.
"""

__version__ = "0.3.0"

from .errors import (
    ConfigurationError,
    DevflowError,
    ReviewerUnavailableError,
    ValidationError,
    WorkflowNotFoundError,
)
from .reviewers import ReviewerRegistry
from .workflows import FileWorkflowStore, WorkflowStore
from .workflows.implement import (
    ImplementOrchestrator,
    ImplementPhase,
    LanguageConfig,
    StepResult,
    WorkflowContext,
)
