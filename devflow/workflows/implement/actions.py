"""
Workflow actions returned to the driving agent.

Each action kind is its own frozen dataclass carrying only the fields that kind
needs; `WorkflowAction` is the union of all seven. Consumers dispatch with
`match`/`isinstance`, and `to_dict()` gives the JSON wire form (a `type` tag
plus camelCase fields).
"""

from dataclasses import dataclass
from typing import Optional, Union

from .phases import ImplementPhase


@dataclass(frozen=True)
class CreateFileAction:
    """Create a file with the given content."""
    path: str
    content: str
    instruction: str
    type = "create_file"

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "path": self.path,
            "content": self.content,
            "instruction": self.instruction,
        }


@dataclass(frozen=True)
class EditFileAction:
    """Edit an existing file as instructed."""
    path: str
    instruction: str
    type = "edit_file"

    def to_dict(self) -> dict:
        return {"type": self.type, "path": self.path, "instruction": self.instruction}


@dataclass(frozen=True)
class CreateFilesAction:
    """Create a set of files matching the suggested patterns."""
    instruction: str
    suggested_files: tuple[str, ...] = ()
    type = "create_files"

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "instruction": self.instruction,
            "suggestedFiles": list(self.suggested_files),
        }


@dataclass(frozen=True)
class ShellAction:
    """Run a shell command and report the result."""
    command: str
    instruction: str
    capture_output: Optional[bool] = None
    expect_success: Optional[bool] = None
    type = "shell"

    def to_dict(self) -> dict:
        data = {"type": self.type, "command": self.command, "instruction": self.instruction}
        if self.capture_output is not None:
            data["captureOutput"] = self.capture_output
        if self.expect_success is not None:
            data["expectSuccess"] = self.expect_success
        return data


@dataclass(frozen=True)
class InfoAction:
    """Nothing to execute; the instruction explains the next call."""
    instruction: str
    type = "info"

    def to_dict(self) -> dict:
        return {"type": self.type, "instruction": self.instruction}


@dataclass(frozen=True)
class CompletionSummary:
    description: str
    spec_path: Optional[str]
    test_files: tuple[str, ...] = ()
    implementation_files: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "specPath": self.spec_path,
            "testFiles": list(self.test_files),
            "implementationFiles": list(self.implementation_files),
        }


@dataclass(frozen=True)
class CompleteAction:
    """The workflow finished successfully."""
    instruction: str
    summary: CompletionSummary
    type = "complete"

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "instruction": self.instruction,
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class FailedAction:
    """A verification step failed."""
    instruction: str
    failed_step: str
    type = "failed"

    def to_dict(self) -> dict:
        return {"type": self.type, "instruction": self.instruction, "failedStep": self.failed_step}


WorkflowAction = Union[
    CreateFileAction,
    EditFileAction,
    CreateFilesAction,
    ShellAction,
    InfoAction,
    CompleteAction,
    FailedAction,
]

def action_to_dict(action: Optional[WorkflowAction]) -> Optional[dict]:
    """Wire form of an action (None stays None)."""
    if action is None:
        return None
    return action.to_dict()


@dataclass(frozen=True)
class StartResponse:
    """Result of starting a workflow."""
    workflow_id: str
    action: WorkflowAction

    def to_dict(self) -> dict:
        return {"workflowId": self.workflow_id, "action": self.action.to_dict()}


@dataclass(frozen=True)
class StepResponse:
    """Result of one step() call."""
    phase: ImplementPhase
    action: Optional[WorkflowAction] = None
    complete: bool = False

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "action": action_to_dict(self.action),
            "complete": self.complete,
        }
