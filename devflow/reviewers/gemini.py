"""
Gemini CLI reviewer adapter.

Runs the `gemini` command line tool, either installed locally or from its
Docker sandbox image. The Docker variant passes GOOGLE_API_KEY through from
the environment of the process that runs the review command.

The CLI prints a JSON envelope ({"response": "...", "stats": {...}}); the
review object is inside `response`.
"""

import json
import logging
import shlex
import shutil
import subprocess
from typing import Optional

from .base import ReviewContext, ReviewerAdapter, ReviewerAvailability, ReviewResult

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-lite"
DEFAULT_DOCKER_IMAGE = "us-docker.pkg.dev/gemini-code-dev/gemini-cli/sandbox:0.1.1"
API_KEY_ENV = "GOOGLE_API_KEY"
CLI_INSTALL = "Install Gemini CLI: npm install -g @google/gemini-cli"

# Availability check timeouts in seconds
LOCAL_CHECK_TIMEOUT = 15
DOCKER_CHECK_TIMEOUT = 10
DOCKER_PULL_TIMEOUT = 120


def _succeeds(args: list[str], timeout: int) -> bool:
    """Run a check command and report whether it exited with status 0."""
    try:
        result = subprocess.run(args, capture_output=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.debug(f"Check timed out after {timeout}s: {args[0]} {args[1]}")
        return False
    except OSError as e:
        logger.debug(f"Check could not run: {args[0]}: {e}")
        return False
    return result.returncode == 0


class GeminiReviewer(ReviewerAdapter):
    """Reviewer backed by the Gemini CLI (local install or Docker image)."""

    backend_type = "gemini"

    def __init__(
        self,
        name: str,
        model: str = DEFAULT_MODEL,
        runtime: str = "auto",
        docker_image: str = DEFAULT_DOCKER_IMAGE,
    ):
        """
        Args:
            runtime: "local", "docker", or "auto" (local CLI first, then Docker)
        """
        super().__init__(name, model)
        self.runtime = runtime
        self.docker_image = docker_image
        self._use_docker: Optional[bool] = None

    def _local_cli_works(self) -> bool:
        if shutil.which("gemini") is None:
            return False
        return _succeeds(["gemini", "test", "--model", self.model], LOCAL_CHECK_TIMEOUT)

    def _docker_image_ready(self) -> bool:
        if _succeeds(["docker", "image", "inspect", self.docker_image], DOCKER_CHECK_TIMEOUT):
            return True
        logger.info(f"Pulling Gemini CLI image {self.docker_image}")
        return _succeeds(["docker", "pull", self.docker_image], DOCKER_PULL_TIMEOUT)

    def check_availability(self) -> ReviewerAvailability:
        if self.runtime != "docker" and self._local_cli_works():
            self._use_docker = False
            return ReviewerAvailability(available=True)

        if self.runtime == "local":
            return ReviewerAvailability(
                available=False,
                reason="Gemini CLI is not installed or not working",
                install_instructions=CLI_INSTALL,
            )

        if not _succeeds(["docker", "info"], DOCKER_CHECK_TIMEOUT):
            reason = (
                "Docker is not available" if self.runtime == "docker"
                else "Neither local Gemini CLI nor Docker is available"
            )
            return ReviewerAvailability(
                available=False,
                reason=reason,
                install_instructions=(
                    f"{CLI_INSTALL}\n"
                    f"Or start Docker and run: docker pull {self.docker_image}"
                ),
            )

        if not self._docker_image_ready():
            return ReviewerAvailability(
                available=False,
                reason="Cannot pull Gemini CLI Docker image",
                install_instructions=f"Run: docker pull {self.docker_image}",
            )

        self._use_docker = True
        return ReviewerAvailability(available=True)

    def uses_docker(self) -> bool:
        """Whether review commands run the Docker image instead of a local CLI."""
        if self.runtime != "auto":
            return self.runtime == "docker"
        if self._use_docker is not None:
            return self._use_docker
        return shutil.which("gemini") is None

    def get_review_command(self, spec: str, context: ReviewContext) -> str:
        arguments = (
            f"--model {shlex.quote(self.model)} -o json 2>/dev/null <<'GEMINI_PROMPT_EOF'\n"
            f"{self.build_prompt(spec, context)}\n"
            f"GEMINI_PROMPT_EOF"
        )

        if self.uses_docker():
            return (
                f"docker run --rm -i \\\n"
                f"  -e {API_KEY_ENV}=\"${API_KEY_ENV}\" \\\n"
                f"  {self.docker_image} \\\n"
                f"  {arguments}"
            )
        return f"cd {shlex.quote(context.project_path)} && gemini {arguments}"

    def parse_review_output(self, output: str) -> ReviewResult:
        try:
            envelope = json.loads(output)
        except (json.JSONDecodeError, TypeError):
            envelope = None
        if isinstance(envelope, dict) and isinstance(envelope.get("response"), str):
            output = envelope["response"]
        return super().parse_review_output(output)
