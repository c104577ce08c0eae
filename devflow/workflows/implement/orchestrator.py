"""
Implementation Workflow Orchestrator

Drives a feature from spec through review, tests, implementation and
verification. The orchestrator never executes anything itself: every call
reloads the workflow context from the store, advances it by one phase,
saves it, and returns the action the driving agent should perform before
calling step() again.

Usage:
    orchestrator = ImplementOrchestrator(language_config, registry)
    started = orchestrator.start("Add dark mode toggle", "/path/to/project")
    response = orchestrator.step(started.workflow_id, {"success": True})
"""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ...errors import (
    ConfigurationError,
    ReviewerUnavailableError,
    SpecReadError,
    UnexpectedPhaseError,
    ValidationError,
    WorkflowFinishedError,
    WorkflowNotFoundError,
)
from ...reviewers.base import ReviewContext
from ...reviewers.registry import ReviewerRegistry
from ..persistence import FileWorkflowStore, WorkflowStore
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
from .phases import ARCHIVED_PHASES, ImplementPhase, can_transition
from .schema import CommandResult, LanguageConfig, StepResult, WorkflowContext
from .spec_template import generate_spec_template, get_spec_path
from .synthesis import synthesize_reviews

logger = logging.getLogger(__name__)

# Characters of captured output carried into a failure instruction
FAILURE_OUTPUT_TAIL = 2000

Phase = ImplementPhase


@dataclass(frozen=True)
class _Check:
    """One verification step: which command runs and where its result goes."""
    name: str
    label: str
    result_field: str
    passed_phase: ImplementPhase
    # Optional commands chained after the main one
    extras: tuple[str, ...] = ()

    def command(self, config: LanguageConfig) -> str:
        commands = [getattr(config.commands, self.name)]
        commands.extend(getattr(config.commands, extra) for extra in self.extras)
        return " && ".join(command for command in commands if command)


VERIFICATION_CHECKS: dict[ImplementPhase, _Check] = {
    Phase.LINT_PENDING: _Check(
        "lint", "Lint", "lint_result", Phase.LINT_PASSED, extras=("format_check", "type_check")
    ),
    Phase.BUILD_PENDING: _Check("build", "Build", "build_result", Phase.BUILD_PASSED),
    Phase.TESTS_RUN_PENDING: _Check("test", "Test", "test_result", Phase.TESTS_PASSED),
}

Handler = Callable[[WorkflowContext, StepResult], Optional[WorkflowAction]]


class ImplementOrchestrator:
    """
    Step engine for the implementation workflow.

    Collaborators are passed in explicitly: the language configuration that
    supplies verification commands, the reviewer registry, and the store that
    holds workflow contexts between calls. The language configuration is only
    needed by start(); running workflows carry their own copy.
    """

    def __init__(
        self,
        language_config: Optional[LanguageConfig],
        reviewer_registry: ReviewerRegistry,
        store: Optional[WorkflowStore] = None,
    ):
        self.language_config = language_config
        self.registry = reviewer_registry
        self.store = store or FileWorkflowStore("implement", WorkflowContext)

        self._handlers: dict[ImplementPhase, Handler] = {
            Phase.INITIALIZED: self._handle_initialized,
            Phase.SPEC_CREATED: self._handle_spec_created,
            Phase.REVIEWS_PENDING: self._handle_reviews_pending,
            Phase.REVIEWS_COMPLETE: self._handle_reviews_complete,
            Phase.SPEC_REFINED: self._handle_spec_refined,
            Phase.TESTS_PENDING: self._handle_tests_pending,
            Phase.TESTS_CREATED: self._handle_tests_created,
            Phase.IMPLEMENTATION_PENDING: self._handle_implementation_pending,
            Phase.IMPLEMENTATION_COMPLETE: self._handle_implementation_complete,
            Phase.LINT_PENDING: self._handle_verification,
            Phase.LINT_PASSED: self._handle_lint_passed,
            Phase.BUILD_PENDING: self._handle_verification,
            Phase.BUILD_PASSED: self._handle_build_passed,
            Phase.TESTS_RUN_PENDING: self._handle_verification,
            Phase.TESTS_PASSED: self._handle_tests_passed,
        }

    # ========================================================================
    # Public operations
    # ========================================================================

    def start(
        self,
        description: str,
        project_path: Union[str, Path],
        reviewers: Optional[list[str]] = None,
    ) -> StartResponse:
        """
        Start a new workflow.

        Every reviewer is checked for availability before anything is
        persisted; if any check fails no workflow is created.

        Raises:
            ConfigurationError: No language configuration was given
            UnknownReviewerError: A reviewer name is not registered
            ReviewerUnavailableError: A reviewer cannot be reached
        """
        if self.language_config is None:
            raise ConfigurationError("A language configuration is required to start a workflow")

        names = list(reviewers) if reviewers is not None else self.registry.active_reviewers
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValidationError(f"Reviewers listed more than once: {', '.join(duplicates)}")

        self._preflight_reviewers(names)

        workflow_id = f"impl-{uuid.uuid4().hex[:12]}"
        spec_path = get_spec_path(
            description,
            self.language_config.specs_dir,
            fallback=f"spec-{workflow_id}",
        )
        project = str(Path(project_path).resolve())

        context = WorkflowContext(
            workflow_id=workflow_id,
            description=description,
            project_path=project,
            language_config=self.language_config,
            active_reviewers=names,
            pending_reviewers=list(names),
            spec_path=spec_path,
        )
        self.store.save(workflow_id, context)
        logger.info(f"Started workflow {workflow_id} ({len(names)} reviewer(s)): {description}")

        template = generate_spec_template(description, project, self.language_config.name, names)
        action = CreateFileAction(
            path=spec_path,
            content=template,
            instruction=(
                f"Create the spec file at {spec_path} (relative to {project}) and fill in "
                f"the requirements and design. Then call step to continue."
            ),
        )
        return StartResponse(workflow_id=workflow_id, action=action)

    def step(
        self,
        workflow_id: str,
        step_result: Optional[Union[StepResult, dict]] = None,
    ) -> StepResponse:
        """
        Advance a workflow by one phase.

        Args:
            workflow_id: Id returned by start()
            step_result: Outcome of the previously returned action

        Raises:
            WorkflowNotFoundError: No active workflow with this id
            WorkflowFinishedError: The workflow has failed or ended
            SpecReadError: The spec file cannot be read
        """
        result = self._coerce_result(step_result)
        context = self._load(workflow_id)

        if context.phase == Phase.FAILED:
            raise WorkflowFinishedError(
                workflow_id, context.phase.value, "call retry to re-run the failed check, or abort"
            )
        if context.phase.is_terminal:
            raise WorkflowFinishedError(workflow_id, context.phase.value, "the workflow has ended")

        handler = self._handlers.get(context.phase)
        if handler is None:
            raise UnexpectedPhaseError(context.phase.value)

        loaded_revision = context.revision
        action = handler(context, result)
        self._save(context, loaded_revision)

        if context.phase in ARCHIVED_PHASES:
            self.store.archive(workflow_id)

        return StepResponse(
            phase=context.phase,
            action=action,
            complete=context.phase == Phase.COMPLETE,
        )

    def get_status(self, workflow_id: Optional[str] = None):
        """
        Read a workflow context without changing it.

        Returns the context (or None when there is no active workflow with
        that id); without an id, returns {"activeWorkflows": [...]}.
        """
        if workflow_id is None:
            return {"activeWorkflows": self.list_active()}
        return self.store.load(workflow_id)

    def list_active(self) -> list[str]:
        """Ids of all active (non-archived) workflows."""
        return self.store.list()

    def abort(self, workflow_id: str, reason: Optional[str] = None) -> None:
        """Force a workflow to ABORTED from any phase and archive it."""
        context = self._load(workflow_id)
        loaded_revision = context.revision

        self._move(context, Phase.ABORTED)
        context.last_error = reason or "User aborted"
        self._save(context, loaded_revision)
        self.store.archive(workflow_id)

    def retry(self, workflow_id: str) -> StepResponse:
        """
        Re-queue the check that failed.

        Raises:
            WorkflowFinishedError: The workflow is not in FAILED
        """
        context = self._load(workflow_id)
        if context.phase != Phase.FAILED:
            raise WorkflowFinishedError(workflow_id, context.phase.value, "only failed workflows can be retried")
        check = VERIFICATION_CHECKS.get(context.failed_phase) if context.failed_phase else None
        if check is None:
            raise WorkflowFinishedError(workflow_id, context.phase.value, "no failed check is recorded")

        loaded_revision = context.revision
        self._move(context, context.failed_phase)
        context.failed_phase = None
        context.last_error = None
        self._save(context, loaded_revision)

        return StepResponse(phase=context.phase, action=self._check_action(check, context))

    # ========================================================================
    # Load / save
    # ========================================================================

    def _load(self, workflow_id: str) -> WorkflowContext:
        context = self.store.load(workflow_id)
        if context is None:
            raise WorkflowNotFoundError(workflow_id)
        return context

    def _save(self, context: WorkflowContext, loaded_revision: int) -> None:
        context.revision = loaded_revision + 1
        context.update_timestamp()
        self.store.save(context.workflow_id, context, expected_revision=loaded_revision)

    @staticmethod
    def _coerce_result(step_result) -> StepResult:
        if step_result is None:
            return StepResult()
        if isinstance(step_result, StepResult):
            return step_result
        try:
            return StepResult.model_validate(step_result)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid step result: {e}") from e

    def _move(self, context: WorkflowContext, to_phase: ImplementPhase) -> None:
        logger.info(f"Workflow {context.workflow_id}: {context.phase.value} -> {to_phase.value}")
        context.record_transition(to_phase)

    def _advance(self, context: WorkflowContext, to_phase: ImplementPhase) -> None:
        """Move along an edge of the transition table."""
        if not can_transition(context.phase, to_phase):
            raise UnexpectedPhaseError(f"{context.phase.value} -> {to_phase.value}")
        self._move(context, to_phase)

    # ========================================================================
    # Reviewers
    # ========================================================================

    def _preflight_reviewers(self, names: list[str]) -> None:
        for name in names:
            adapter = self.registry.get(name)
            availability = adapter.check_availability()
            if not availability.available:
                logger.warning(f"Reviewer '{name}' unavailable, not starting workflow")
                raise ReviewerUnavailableError(
                    name,
                    reason=availability.reason,
                    install_instructions=availability.install_instructions,
                )
            logger.debug(f"Reviewer '{name}' available")

    def _review_action(self, context: WorkflowContext) -> ShellAction:
        """Review command for the head of the queue."""
        name = context.current_reviewer
        adapter = self.registry.get(name)
        review_context = ReviewContext(
            project_path=context.project_path,
            project_type=context.language_config.name,
        )
        position = len(context.completed_reviewers) + 1
        command = adapter.get_review_command(context.spec_content or "", review_context)
        return ShellAction(
            command=command,
            instruction=(
                f"Run the review for '{name}' ({position} of {len(context.active_reviewers)}) "
                f"and call step with its output."
            ),
            capture_output=True,
        )

    # ========================================================================
    # Phase handlers
    # ========================================================================

    def _handle_initialized(self, context: WorkflowContext, result: StepResult) -> None:
        spec_file = Path(context.project_path) / context.spec_path
        try:
            context.spec_content = spec_file.read_text(encoding="utf-8")
        except OSError as e:
            raise SpecReadError(str(spec_file), e) from e

        self._advance(context, Phase.SPEC_CREATED)
        return None

    def _handle_spec_created(self, context: WorkflowContext, result: StepResult) -> WorkflowAction:
        if not context.pending_reviewers:
            self._advance(context, Phase.SPEC_REFINED)
            return InfoAction(
                instruction="No reviewers configured, skipping review. Call step to start writing tests."
            )

        self._advance(context, Phase.REVIEWS_PENDING)
        return self._review_action(context)

    def _handle_reviews_pending(self, context: WorkflowContext, result: StepResult) -> WorkflowAction:
        name = context.current_reviewer
        if name is None:
            # Queue already drained
            self._advance(context, Phase.REVIEWS_COMPLETE)
            return InfoAction(instruction="All reviews collected. Call step to synthesize feedback.")

        if result.output:
            adapter = self.registry.get(name)
            context.reviews[name] = adapter.parse_review_output(result.output)
        else:
            logger.warning(f"Workflow {context.workflow_id}: no output for reviewer '{name}', skipping")

        context.pending_reviewers.pop(0)
        context.completed_reviewers.append(name)

        if context.pending_reviewers:
            self._advance(context, Phase.REVIEWS_PENDING)
            return self._review_action(context)

        self._advance(context, Phase.REVIEWS_COMPLETE)
        return InfoAction(instruction="All reviews collected. Call step to synthesize feedback.")

    def _handle_reviews_complete(self, context: WorkflowContext, result: StepResult) -> WorkflowAction:
        synthesis = synthesize_reviews(context.completed_reviewers, context.reviews)
        self._advance(context, Phase.SPEC_REFINED)

        if not synthesis:
            instruction = f"Finalize the spec at {context.spec_path}, then call step."
        else:
            instruction = (
                f"Update the spec at {context.spec_path} to address the reviewer feedback "
                f"below, then call step.\n\n{synthesis}"
            )
        return EditFileAction(path=context.spec_path, instruction=instruction)

    def _handle_spec_refined(self, context: WorkflowContext, result: StepResult) -> WorkflowAction:
        self._advance(context, Phase.TESTS_PENDING)
        return CreateFilesAction(
            instruction=(
                f"Write tests covering the spec at {context.spec_path}. "
                f"Call step with files_created listing the test files."
            ),
            suggested_files=tuple(context.language_config.test_file_patterns),
        )

    def _handle_tests_pending(self, context: WorkflowContext, result: StepResult) -> WorkflowAction:
        _record_files(context.test_files, result)
        self._advance(context, Phase.TESTS_CREATED)
        return InfoAction(
            instruction=f"Recorded {len(context.test_files)} test file(s). Call step to start the implementation."
        )

    def _handle_tests_created(self, context: WorkflowContext, result: StepResult) -> WorkflowAction:
        _record_files(context.test_files, result)
        self._advance(context, Phase.IMPLEMENTATION_PENDING)
        return CreateFilesAction(
            instruction=(
                f"Implement the feature so the tests pass. "
                f"Call step with files_created and files_modified."
            ),
            suggested_files=tuple(context.language_config.source_file_patterns),
        )

    def _handle_implementation_pending(self, context: WorkflowContext, result: StepResult) -> WorkflowAction:
        _record_files(context.implementation_files, result)
        self._advance(context, Phase.IMPLEMENTATION_COMPLETE)
        return InfoAction(
            instruction=(
                f"Recorded {len(context.implementation_files)} implementation file(s). "
                f"Call step to run lint."
            )
        )

    def _handle_implementation_complete(self, context: WorkflowContext, result: StepResult) -> WorkflowAction:
        _record_files(context.implementation_files, result)
        self._advance(context, Phase.LINT_PENDING)
        return self._check_action(VERIFICATION_CHECKS[Phase.LINT_PENDING], context)

    def _handle_verification(self, context: WorkflowContext, result: StepResult) -> WorkflowAction:
        pending_phase = context.phase
        check = VERIFICATION_CHECKS[pending_phase]
        command = check.command(context.language_config)
        succeeded = bool(result.success)

        setattr(context, check.result_field, CommandResult(
            command=command,
            exit_code=0 if succeeded else 1,
            stdout=result.output or "",
        ))

        if not succeeded:
            output_tail = (result.output or "")[-FAILURE_OUTPUT_TAIL:]
            context.failed_phase = pending_phase
            context.last_error = f"{check.label} failed"
            self._advance(context, Phase.FAILED)

            instruction = f"{check.label} failed. Fix the problems, then call retry to run `{command}` again."
            if output_tail:
                instruction += f"\n\nOutput:\n{output_tail}"
            return FailedAction(instruction=instruction, failed_step=check.name)

        self._advance(context, check.passed_phase)
        if check.passed_phase == Phase.TESTS_PASSED:
            return InfoAction(instruction="All checks passed. Call step to finish.")

        next_check = VERIFICATION_CHECKS[_NEXT_PENDING[check.passed_phase]]
        return ShellAction(
            command=next_check.command(context.language_config),
            instruction=(
                f"{check.label} passed. Call step to queue the {next_check.name} check, "
                f"then run the command it returns."
            ),
            capture_output=True,
            expect_success=True,
        )

    def _handle_lint_passed(self, context: WorkflowContext, result: StepResult) -> WorkflowAction:
        self._advance(context, Phase.BUILD_PENDING)
        return self._check_action(VERIFICATION_CHECKS[Phase.BUILD_PENDING], context)

    def _handle_build_passed(self, context: WorkflowContext, result: StepResult) -> WorkflowAction:
        self._advance(context, Phase.TESTS_RUN_PENDING)
        return self._check_action(VERIFICATION_CHECKS[Phase.TESTS_RUN_PENDING], context)

    def _handle_tests_passed(self, context: WorkflowContext, result: StepResult) -> WorkflowAction:
        self._advance(context, Phase.COMPLETE)
        summary = CompletionSummary(
            description=context.description,
            spec_path=context.spec_path,
            test_files=tuple(context.test_files),
            implementation_files=tuple(context.implementation_files),
        )
        return CompleteAction(
            instruction=f"Workflow complete: {context.description}",
            summary=summary,
        )

    def _check_action(self, check: _Check, context: WorkflowContext) -> ShellAction:
        return ShellAction(
            command=check.command(context.language_config),
            instruction=f"Run the {check.name} command and call step with success and output.",
            capture_output=True,
            expect_success=True,
        )


# Pending phase that follows each intermediate *_PASSED phase
_NEXT_PENDING = {
    Phase.LINT_PASSED: Phase.BUILD_PENDING,
    Phase.BUILD_PASSED: Phase.TESTS_RUN_PENDING,
}


def _record_files(target: list[str], result: StepResult) -> None:
    """Append reported files, keeping order and skipping ones already recorded."""
    for path in [*result.files_created, *result.files_modified]:
        if path not in target:
            target.append(path)
