"""
GitHub Models reviewer adapter.

Uses the GitHub Models inference endpoint with a GITHUB_TOKEN.
"""

import json
import os

from .base import ReviewContext, ReviewerAdapter, ReviewerAvailability

DEFAULT_ENDPOINT = "https://models.inference.ai.azure.com"
DEFAULT_MODEL = "Phi-4"
TOKEN_ENV = "GITHUB_TOKEN"


class GitHubModelsReviewer(ReviewerAdapter):
    """Reviewer backed by GitHub Models."""

    backend_type = "github-models"

    def __init__(
        self,
        name: str,
        model: str = DEFAULT_MODEL,
        endpoint: str = DEFAULT_ENDPOINT,
        temperature: float = 0.3,
    ):
        super().__init__(name, model)
        self.endpoint = endpoint.rstrip("/")
        self.temperature = temperature

    def check_availability(self) -> ReviewerAvailability:
        if not os.environ.get(TOKEN_ENV):
            return ReviewerAvailability(
                available=False,
                reason=f"{TOKEN_ENV} environment variable not found",
                install_instructions=(
                    "Create a token at https://github.com/settings/tokens "
                    "with access to GitHub Models\n"
                    f"Then set: export {TOKEN_ENV}=your_token_here"
                ),
            )
        return ReviewerAvailability(available=True)

    def get_review_command(self, spec: str, context: ReviewContext) -> str:
        payload = json.dumps({
            "model": self.model,
            "messages": [{"role": "user", "content": self.build_prompt(spec, context)}],
            "temperature": self.temperature,
        }, indent=2)

        return (
            f"curl -s -X POST {self.endpoint}/chat/completions \\\n"
            f"  -H \"Authorization: Bearer ${TOKEN_ENV}\" \\\n"
            f"  -H \"Content-Type: application/json\" \\\n"
            f"  -d @- <<'GITHUB_MODELS_JSON_EOF'\n"
            f"{payload}\n"
            f"GITHUB_MODELS_JSON_EOF"
        )
