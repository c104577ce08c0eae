"""
OpenRouter reviewer adapter.

Requires OPENROUTER_API_KEY in the environment of the process that runs the
review command. The key is referenced as a shell variable and never embedded
in the command text.
"""

import json
import os

from .base import ReviewContext, ReviewerAdapter, ReviewerAvailability

DEFAULT_ENDPOINT = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "allenai/olmo-3.1-32b-think"
API_KEY_ENV = "OPENROUTER_API_KEY"


class OpenRouterReviewer(ReviewerAdapter):
    """Reviewer backed by the OpenRouter API."""

    backend_type = "openrouter"

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
        if not os.environ.get(API_KEY_ENV):
            return ReviewerAvailability(
                available=False,
                reason=f"{API_KEY_ENV} environment variable not found",
                install_instructions=(
                    "Get an API key from https://openrouter.ai/keys\n"
                    f"Then set: export {API_KEY_ENV}=your_key_here"
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
            f"  -H \"Authorization: Bearer ${API_KEY_ENV}\" \\\n"
            f"  -H \"Content-Type: application/json\" \\\n"
            f"  -d @- <<'OPENROUTER_JSON_EOF'\n"
            f"{payload}\n"
            f"OPENROUTER_JSON_EOF"
        )
