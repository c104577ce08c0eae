#!/usr/bin/env python3
"""
devflow CLI - drive the implementation workflow one step at a time.

Every command prints JSON on stdout; logs go to stderr.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import resolve_language_config
from .errors import (
    DevflowError,
    ReviewerUnavailableError,
    WorkflowNotFoundError,
)
from .reviewers.config import find_config_root
from .reviewers.registry import ReviewerRegistry
from .workflows import FileWorkflowStore
from .workflows.implement import ImplementOrchestrator, StepResult, WorkflowContext

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def emit(data) -> None:
    """Print a JSON document to stdout."""
    print(json.dumps(data, indent=2, default=str))


# ============================================================================
# Collaborators
# ============================================================================

def load_registry(project_dir: Path, required: bool = True) -> ReviewerRegistry:
    """
    Build the reviewer registry for a project.

    With required=False a project without a `.devflow/` directory gets an
    empty registry, so workflows started without reviewers can still be
    driven.
    """
    if not required and find_config_root(project_dir) is None:
        logger.debug(f"No reviewer configuration found from {project_dir}")
        return ReviewerRegistry()
    return ReviewerRegistry.from_project(project_dir)


def stored_project_dir(store: FileWorkflowStore, workflow_id: Optional[str]) -> Optional[Path]:
    """Project directory recorded when the workflow was started."""
    if not workflow_id:
        return None
    context = store.load(workflow_id)
    if context is None:
        return None
    return Path(context.project_path)


def get_orchestrator(args, for_start: bool = False) -> ImplementOrchestrator:
    """
    Build an orchestrator for one command.

    Commands on an existing workflow load reviewers from the project it was
    started in, so they work from any directory.
    """
    store = FileWorkflowStore("implement", WorkflowContext)
    project_dir = Path(args.dir)
    language_config = None
    reviewers_required = False
    if for_start:
        language_config = resolve_language_config(project_dir, args.language)
        reviewers_required = not args.no_review
    else:
        project_dir = stored_project_dir(store, getattr(args, "workflow_id", None)) or project_dir
    registry = load_registry(project_dir, required=reviewers_required)
    return ImplementOrchestrator(language_config, registry, store)


def parse_reviewer_names(value: Optional[str]) -> Optional[list[str]]:
    if value is None:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def read_output(args) -> Optional[str]:
    """Captured output from --output or --output-file ('-' reads stdin)."""
    if args.output_file:
        if args.output_file == "-":
            return sys.stdin.read()
        return Path(args.output_file).read_text()
    return args.output


# ============================================================================
# Commands
# ============================================================================

def cmd_start(args):
    """Start a new workflow."""
    orchestrator = get_orchestrator(args, for_start=True)
    reviewers = [] if args.no_review else parse_reviewer_names(args.reviewers)
    response = orchestrator.start(args.description, Path(args.dir), reviewers)
    emit(response.to_dict())


def cmd_step(args):
    """Report the outcome of the last action and get the next one."""
    orchestrator = get_orchestrator(args)
    step_result = StepResult(
        success=args.success,
        output=read_output(args),
        files_created=args.files_created or [],
        files_modified=args.files_modified or [],
    )
    response = orchestrator.step(args.workflow_id, step_result)
    emit(response.to_dict())


def cmd_status(args):
    """Show a workflow's persisted context, or the active workflow ids."""
    orchestrator = get_orchestrator(args)
    status = orchestrator.get_status(args.workflow_id)
    if args.workflow_id is None:
        emit(status)
    elif status is None:
        emit(None)
    else:
        emit(status.model_dump(mode="json"))


def cmd_list(args):
    """List active (and optionally archived) workflows."""
    orchestrator = get_orchestrator(args)
    data = {"activeWorkflows": orchestrator.list_active()}
    if args.archived:
        data["archivedWorkflows"] = orchestrator.store.list_archived()
    emit(data)


def cmd_abort(args):
    """Abort a workflow."""
    orchestrator = get_orchestrator(args)
    orchestrator.abort(args.workflow_id, args.reason)
    emit({"success": True, "workflowId": args.workflow_id, "phase": "aborted"})


def cmd_retry(args):
    """Re-run the check that failed."""
    orchestrator = get_orchestrator(args)
    response = orchestrator.retry(args.workflow_id)
    emit(response.to_dict())


def cmd_reviewers(args):
    """List configured reviewers and whether each is available."""
    registry = load_registry(Path(args.dir))
    reviewers = []
    for name in registry.names():
        adapter = registry.get(name)
        availability = adapter.check_availability()
        reviewers.append({
            "name": name,
            "backendType": adapter.backend_type,
            "model": adapter.model,
            "active": name in registry.active_reviewers,
            "available": availability.available,
            "reason": availability.reason,
            "installInstructions": availability.install_instructions,
        })
    emit({"reviewers": reviewers})


# ============================================================================
# Error output
# ============================================================================

def error_payload(error: DevflowError, command: str) -> dict:
    """JSON error document for a failed command."""
    suggestions = []
    details = None
    recoverable = True

    if isinstance(error, ReviewerUnavailableError):
        code = "REVIEWER_UNAVAILABLE"
        details = {"reviewer": error.reviewer, "reason": error.reason}
        if error.install_instructions:
            suggestions.append(error.install_instructions)
        suggestions.append(f"Start without '{error.reviewer}' using --reviewers, or --no-review")
    elif isinstance(error, WorkflowNotFoundError):
        code = "WORKFLOW_NOT_FOUND"
        details = {"workflowId": error.workflow_id}
        suggestions.append("Run 'devflow list' to see active workflows")
        recoverable = False
    elif command == "start":
        code = "START_FAILED"
    else:
        code = "STEP_FAILED"

    body = {"code": code, "message": str(error), "suggestions": suggestions, "recoverable": recoverable}
    if details is not None:
        body["details"] = details
    return {"success": False, "error": body}


# ============================================================================
# Argument parsing
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devflow",
        description="Spec-driven feature workflow: specify, review, implement, verify",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  devflow start "Add dark mode toggle"
  devflow step impl-1a2b3c4d5e6f --success
  devflow step impl-1a2b3c4d5e6f --failure --output-file lint.log
  devflow status impl-1a2b3c4d5e6f
  devflow retry impl-1a2b3c4d5e6f
  devflow abort impl-1a2b3c4d5e6f --reason "Superseded"
        """,
    )
    parser.add_argument('--dir', '-d', default='.', help='Project directory (default: current)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Start command
    start_parser = subparsers.add_parser('start', help='Start a new workflow')
    start_parser.add_argument('description', help='Feature description')
    start_parser.add_argument('--reviewers', '-r', help='Comma-separated reviewer names (default: active reviewers)')
    start_parser.add_argument('--no-review', action='store_true', help='Start without any reviewers')
    start_parser.add_argument('--language', '-l', help='Language preset (default: detected)')
    start_parser.set_defaults(func=cmd_start)

    # Step command
    step_parser = subparsers.add_parser('step', help='Advance a workflow')
    step_parser.add_argument('workflow_id', help='Workflow ID')
    outcome = step_parser.add_mutually_exclusive_group()
    outcome.add_argument('--success', dest='success', action='store_true', default=None,
                         help='The last action succeeded')
    outcome.add_argument('--failure', dest='success', action='store_false',
                         help='The last action failed')
    step_parser.add_argument('--output', '-o', help='Captured output of the last action')
    step_parser.add_argument('--output-file', help="Read captured output from a file ('-' for stdin)")
    step_parser.add_argument('--files-created', nargs='*', help='Files created by the last action')
    step_parser.add_argument('--files-modified', nargs='*', help='Files modified by the last action')
    step_parser.set_defaults(func=cmd_step)

    # Status command
    status_parser = subparsers.add_parser('status', help='Show workflow state')
    status_parser.add_argument('workflow_id', nargs='?', help='Workflow ID (default: list active)')
    status_parser.set_defaults(func=cmd_status)

    # List command
    list_parser = subparsers.add_parser('list', help='List workflows')
    list_parser.add_argument('--archived', action='store_true', help='Include archived workflows')
    list_parser.set_defaults(func=cmd_list)

    # Abort command
    abort_parser = subparsers.add_parser('abort', help='Abort a workflow')
    abort_parser.add_argument('workflow_id', help='Workflow ID')
    abort_parser.add_argument('--reason', help='Why the workflow is aborted')
    abort_parser.set_defaults(func=cmd_abort)

    # Retry command
    retry_parser = subparsers.add_parser('retry', help='Retry the failed check')
    retry_parser.add_argument('workflow_id', help='Workflow ID')
    retry_parser.set_defaults(func=cmd_retry)

    # Reviewers command
    reviewers_parser = subparsers.add_parser('reviewers', help='List configured reviewers')
    reviewers_parser.set_defaults(func=cmd_reviewers)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(args.verbose)

    try:
        args.func(args)
    except DevflowError as e:
        logger.error(str(e))
        emit(error_payload(e, args.command))
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
