"""Workflow engines and their shared persistence."""

from .persistence import FileWorkflowStore, WorkflowStore

__all__ = ["FileWorkflowStore", "WorkflowStore"]
