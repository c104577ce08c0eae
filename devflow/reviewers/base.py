"""
Base reviewer adapter interface.

This module defines the abstract base class that every reviewer backend must
implement, the data it exchanges with the workflow engine, and the parsing of
OpenAI-compatible chat-completion output shared by all bundled backends.

Architecture:
- Backend type: the infrastructure provider (ollama, openrouter, github-models, gemini)
- Reviewer name: user-defined name for a configured reviewer (e.g. "olmo-local")
- Each reviewer config names the backend to use and its model settings
"""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


REVIEW_PROMPT = """You are reviewing an implementation specification. Analyze it for:
1. Completeness - Are all requirements clearly defined?
2. Feasibility - Is this technically achievable?
3. Edge cases - What scenarios might be missed?
4. Security - Any security concerns?
5. Testing - What tests should be written?

Respond in JSON format:
{{
  "approved": boolean,
  "feedback": "overall assessment",
  "suggestions": ["suggestion 1", "suggestion 2"],
  "concerns": ["concern 1", "concern 2"],
  "recommended_tests": ["test case 1", "test case 2"]
}}

SPECIFICATION:
{spec}"""

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ReviewResult(BaseModel):
    """Structured feedback from one reviewer."""
    reviewer: str
    backend_type: Optional[str] = None
    model: Optional[str] = None
    timestamp: str = Field(default_factory=_utc_now_iso)
    feedback: str = ""
    suggestions: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    approved: bool = False


@dataclass
class ReviewerAvailability:
    """Whether a reviewer can be used right now."""
    available: bool
    reason: Optional[str] = None
    install_instructions: Optional[str] = None


@dataclass
class ReviewContext:
    """Context passed along with the spec when building a review command."""
    project_path: str
    project_type: Optional[str] = None


class ReviewerAdapter(ABC):
    """
    Abstract base class for reviewer backends.

    The engine never runs a review itself: it asks the adapter for a shell
    command, hands that command to the driving agent, and later asks the
    adapter to parse whatever the command printed.
    """

    #: Backend type identifier, set by subclasses
    backend_type: str = ""

    def __init__(self, name: str, model: str):
        self.name = name
        self.model = model

    @abstractmethod
    def check_availability(self) -> ReviewerAvailability:
        """
        Check if the reviewer can be used (service running, API key set, ...).

        Returns:
            ReviewerAvailability describing the outcome
        """
        pass

    @abstractmethod
    def get_review_command(self, spec: str, context: ReviewContext) -> str:
        """
        Build the shell command the driving agent runs to obtain a review.

        Args:
            spec: Full text of the spec under review
            context: Project context for the review

        Returns:
            str: Shell command whose stdout is the review response
        """
        pass

    def parse_review_output(self, output: str) -> ReviewResult:
        """Parse the output of the review command into a ReviewResult."""
        return parse_chat_completion_review(
            output,
            reviewer=self.name,
            backend_type=self.backend_type,
            model=self.model,
        )

    def build_prompt(self, spec: str, context: Optional[ReviewContext] = None) -> str:
        """Render the review prompt for a spec, naming the project type when known."""
        prompt = REVIEW_PROMPT.format(spec=spec)
        if context is not None and context.project_type:
            prompt = f"Project type: {context.project_type}\n\n{prompt}"
        return prompt

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, model={self.model!r})"


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _as_text_list(value) -> list[str]:
    """A bare string is one item; anything that is not a list is dropped."""
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [_as_text(item) for item in value if item is not None]


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes")
    return False


def _review_from_data(data: dict, fallback_feedback: str, **stamp) -> ReviewResult:
    return ReviewResult(
        feedback=_as_text(data.get("feedback")) or fallback_feedback,
        suggestions=_as_text_list(data.get("suggestions")),
        concerns=_as_text_list(data.get("concerns")),
        approved=_as_bool(data.get("approved")),
        **stamp,
    )


def _load_json_object(text: str) -> Optional[dict]:
    """Decode text (or the first {...} block inside it) as a JSON object."""
    candidates = [text]
    match = _JSON_BLOCK.search(text)
    if match and match.group(0) != text:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except (json.JSONDecodeError, TypeError):
            continue
        if isinstance(data, dict):
            return data
    return None


def parse_chat_completion_review(
    output: str,
    reviewer: str,
    backend_type: Optional[str] = None,
    model: Optional[str] = None,
) -> ReviewResult:
    """
    Parse an OpenAI-compatible chat completion into a ReviewResult.

    The message content is expected to hold the JSON review object, possibly
    wrapped in prose. Anything unparseable becomes plain feedback text.
    """
    stamp = {"reviewer": reviewer, "backend_type": backend_type, "model": model}
    content = output

    try:
        response = json.loads(output)
    except (json.JSONDecodeError, TypeError):
        response = None

    if isinstance(response, dict):
        choices = response.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                content = message["content"] or output
        elif "feedback" in response:
            # Bare review object (no completion envelope)
            return _review_from_data(response, output, **stamp)

    data = _load_json_object(content)
    if data is not None:
        return _review_from_data(data, content, **stamp)

    return ReviewResult(feedback=content, **stamp)
