"""
Reviewer adapters for spec review.

Each configured reviewer binds a user-chosen name to one backend (a local
Ollama runtime, the Gemini CLI or a hosted API). The workflow engine consumes
reviewers only through the ReviewerAdapter interface and a ReviewerRegistry passed to it.
"""

from .base import (
    ReviewContext,
    ReviewerAdapter,
    ReviewerAvailability,
    ReviewResult,
    parse_chat_completion_review,
)
from .config import ReviewerConfig, load_reviewer_config
from .gemini import GeminiReviewer
from .github_models import GitHubModelsReviewer
from .ollama import OllamaReviewer
from .openrouter import OpenRouterReviewer
from .registry import ReviewerRegistry, create_adapter

__all__ = [
    "ReviewContext",
    "ReviewerAdapter",
    "ReviewerAvailability",
    "ReviewResult",
    "parse_chat_completion_review",
    "ReviewerConfig",
    "load_reviewer_config",
    "GeminiReviewer",
    "GitHubModelsReviewer",
    "OllamaReviewer",
    "OpenRouterReviewer",
    "ReviewerRegistry",
    "create_adapter",
]
