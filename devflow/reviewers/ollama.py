"""
Ollama reviewer adapter.

Reviews run against a local Ollama runtime through its OpenAI-compatible
chat completions endpoint.
"""

import json
import logging

import httpx

from .base import ReviewContext, ReviewerAdapter, ReviewerAvailability

logger = logging.getLogger(__name__)

OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "olmo-3.1:32b-think"
AVAILABILITY_TIMEOUT = 5.0  # seconds

INSTALL_INSTRUCTIONS = (
    "Install Ollama: https://ollama.ai/download\n"
    "Then run: ollama serve"
)


class OllamaReviewer(ReviewerAdapter):
    """Reviewer backed by a local Ollama model."""

    backend_type = "ollama"

    def __init__(self, name: str, model: str = DEFAULT_MODEL, base_url: str = OLLAMA_BASE_URL):
        super().__init__(name, model)
        self.base_url = base_url.rstrip("/")

    def check_availability(self) -> ReviewerAvailability:
        """Ollama must answer on /api/tags and have the model pulled."""
        try:
            response = httpx.get(f"{self.base_url}/api/tags", timeout=AVAILABILITY_TIMEOUT)
        except httpx.HTTPError as e:
            logger.debug(f"Ollama health check failed for {self.name}: {e}")
            return ReviewerAvailability(
                available=False,
                reason=f"Ollama is not running at {self.base_url}",
                install_instructions=INSTALL_INSTRUCTIONS,
            )

        if response.status_code != 200:
            return ReviewerAvailability(
                available=False,
                reason=f"Ollama returned HTTP {response.status_code} from {self.base_url}",
                install_instructions=INSTALL_INSTRUCTIONS,
            )

        try:
            tags = response.json()
        except ValueError:
            tags = None
        if not isinstance(tags, dict):
            # Service is up but the tag list is unreadable; try anyway
            logger.debug(f"Could not parse Ollama tag list for {self.name}")
            return ReviewerAvailability(available=True)

        names = [m.get("name", "") for m in tags.get("models") or [] if isinstance(m, dict)]
        if not any(self.model in name or name in self.model for name in names if name):
            return ReviewerAvailability(
                available=False,
                reason=f"Model '{self.model}' not found in Ollama",
                install_instructions=f"Run: ollama pull {self.model}",
            )

        return ReviewerAvailability(available=True)

    def get_review_command(self, spec: str, context: ReviewContext) -> str:
        payload = json.dumps({
            "model": self.model,
            "messages": [{"role": "user", "content": self.build_prompt(spec, context)}],
            "temperature": 0.3,
        })

        # Quoted heredoc: the payload is passed verbatim, no shell escaping
        return (
            f"curl -s {self.base_url}/v1/chat/completions \\\n"
            f"  -H \"Content-Type: application/json\" \\\n"
            f"  -d @- <<'OLLAMA_JSON_EOF'\n"
            f"{payload}\n"
            f"OLLAMA_JSON_EOF"
        )
