"""Shared fixtures: fake reviewer backends and an isolated workflow store."""

import json
from pathlib import Path

import pytest

from devflow.reviewers.base import ReviewContext, ReviewerAdapter, ReviewerAvailability
from devflow.reviewers.registry import ReviewerRegistry
from devflow.workflows.implement.orchestrator import ImplementOrchestrator
from devflow.workflows.implement.schema import LanguageCommands, LanguageConfig, WorkflowContext
from devflow.workflows.persistence import FileWorkflowStore


class FakeReviewer(ReviewerAdapter):
    """Reviewer that never leaves the process."""

    backend_type = "fake"

    def __init__(self, name, available=True, reason=None, model="fake-model"):
        super().__init__(name, model)
        self.available = available
        self.reason = reason
        self.availability_checks = 0
        self.commands = []

    def check_availability(self) -> ReviewerAvailability:
        self.availability_checks += 1
        if self.available:
            return ReviewerAvailability(available=True)
        return ReviewerAvailability(
            available=False,
            reason=self.reason or "fake backend is down",
            install_instructions="Start the fake backend",
        )

    def get_review_command(self, spec: str, context: ReviewContext) -> str:
        self.commands.append((spec, context))
        return f"fake-review --reviewer {self.name}"


def review_output(feedback, suggestions=(), concerns=(), approved=True) -> str:
    """Chat-completion style output as a backend would print it."""
    content = json.dumps({
        "approved": approved,
        "feedback": feedback,
        "suggestions": list(suggestions),
        "concerns": list(concerns),
    })
    return json.dumps({"choices": [{"message": {"role": "assistant", "content": content}}]})


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep workflow state out of the real home directory."""
    home = tmp_path / "devflow-home"
    monkeypatch.setenv("DEVFLOW_HOME", str(home))
    monkeypatch.delenv("ACTIVE_REVIEWERS", raising=False)
    return home


@pytest.fixture
def language_config():
    return LanguageConfig(
        name="python",
        commands=LanguageCommands(lint="ruff check .", build="pip install -e . -q", test="pytest"),
        test_file_patterns=["tests/test_*.py"],
        source_file_patterns=["src/**/*.py"],
    )


@pytest.fixture
def project_dir(tmp_path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def store(tmp_path):
    return FileWorkflowStore("implement", WorkflowContext, base_dir=tmp_path / "store")


@pytest.fixture
def make_orchestrator(language_config, store):
    """Build an orchestrator over the given fake reviewers."""

    def _make(*reviewers, active=None):
        registry = ReviewerRegistry(reviewers, active_reviewers=active)
        return ImplementOrchestrator(language_config, registry, store)

    return _make


@pytest.fixture
def start_workflow(project_dir):
    """Start a workflow and write its spec file to disk."""

    def _start(orchestrator, description="Add dark mode toggle", reviewers=None, spec_text="# Spec\n"):
        response = orchestrator.start(description, project_dir, reviewers)
        spec_file = project_dir / response.action.path
        spec_file.parent.mkdir(parents=True, exist_ok=True)
        spec_file.write_text(spec_text)
        return response.workflow_id

    return _start
