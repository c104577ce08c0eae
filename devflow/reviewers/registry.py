"""
Reviewer Registry

Maps reviewer names to adapter instances. Backend configuration records are
resolved to adapters once, when the registry is built; the registry is then
passed explicitly to whatever needs it (there is no module-level instance).
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from ..errors import ConfigurationError, UnknownReviewerError
from .base import ReviewerAdapter, ReviewerAvailability
from .config import (
    GeminiBackendConfig,
    GitHubModelsBackendConfig,
    OllamaBackendConfig,
    OpenRouterBackendConfig,
    ReviewerConfig,
    load_reviewer_config,
)
from .gemini import GeminiReviewer
from .github_models import GitHubModelsReviewer
from .ollama import OllamaReviewer
from .openrouter import OpenRouterReviewer

logger = logging.getLogger(__name__)


def create_adapter(name: str, backend) -> ReviewerAdapter:
    """
    Build the adapter for one tagged backend record.

    Raises:
        ConfigurationError: If the record's backend type is not supported
    """
    if isinstance(backend, OllamaBackendConfig):
        return OllamaReviewer(name, model=backend.model, base_url=backend.base_url)
    if isinstance(backend, OpenRouterBackendConfig):
        return OpenRouterReviewer(
            name, model=backend.model, endpoint=backend.endpoint, temperature=backend.temperature
        )
    if isinstance(backend, GitHubModelsBackendConfig):
        return GitHubModelsReviewer(
            name, model=backend.model, endpoint=backend.endpoint, temperature=backend.temperature
        )
    if isinstance(backend, GeminiBackendConfig):
        return GeminiReviewer(
            name, model=backend.model, runtime=backend.runtime, docker_image=backend.docker_image
        )
    raise ConfigurationError(f"Unsupported backend for reviewer '{name}': {backend!r}")


class ReviewerRegistry:
    """
    Registry of reviewer adapters plus the default active reviewer order.
    """

    def __init__(
        self,
        adapters: Optional[Iterable[ReviewerAdapter]] = None,
        active_reviewers: Optional[list[str]] = None,
    ):
        """
        Args:
            adapters: Adapter instances, keyed by their `name`
            active_reviewers: Default reviewer order for new workflows.
                Defaults to every adapter in registration order.
        """
        self._adapters: dict[str, ReviewerAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

        if active_reviewers is None:
            active_reviewers = list(self._adapters)
        for name in active_reviewers:
            if name not in self._adapters:
                raise ConfigurationError(f"Active reviewer '{name}' has no registered adapter")
        self._active_reviewers = list(active_reviewers)

    @classmethod
    def from_config(cls, config: ReviewerConfig) -> "ReviewerRegistry":
        """Build a registry from a validated reviewer configuration."""
        adapters = [create_adapter(name, backend) for name, backend in config.reviewers.items()]
        return cls(adapters, active_reviewers=config.active_reviewers)

    @classmethod
    def from_project(cls, project_path: Path = Path(".")) -> "ReviewerRegistry":
        """Load `.devflow/reviewers.yaml` for a project and build a registry."""
        return cls.from_config(load_reviewer_config(project_path))

    def register(self, adapter: ReviewerAdapter) -> None:
        """Add (or replace) an adapter under its name."""
        if adapter.name in self._adapters:
            logger.debug(f"Replacing reviewer adapter '{adapter.name}'")
        self._adapters[adapter.name] = adapter

    @property
    def active_reviewers(self) -> list[str]:
        """Default reviewer order for workflows started without an explicit list."""
        return list(self._active_reviewers)

    def names(self) -> list[str]:
        """All registered reviewer names."""
        return list(self._adapters)

    def __contains__(self, name: str) -> bool:
        return name in self._adapters

    def get(self, name: str) -> ReviewerAdapter:
        """
        Get the adapter for a reviewer.

        Raises:
            UnknownReviewerError: If no adapter is registered under name
        """
        adapter = self._adapters.get(name)
        if adapter is None:
            raise UnknownReviewerError(name, self.names())
        return adapter

    def check_availability(self, name: str) -> ReviewerAvailability:
        """Check whether a reviewer can be used right now."""
        return self.get(name).check_availability()
