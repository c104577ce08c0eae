"""
Tests for the bundled reviewer backends.

No network access: httpx.get is patched for the Ollama health check, and
subprocess.run and shutil.which for the Gemini CLI checks.
"""

import json
import subprocess
from unittest.mock import Mock, patch

import httpx
import pytest

from devflow.reviewers.base import REVIEW_PROMPT, ReviewContext, parse_chat_completion_review
from devflow.reviewers.gemini import DEFAULT_DOCKER_IMAGE, GeminiReviewer
from devflow.reviewers.github_models import GitHubModelsReviewer
from devflow.reviewers.ollama import OllamaReviewer
from devflow.reviewers.openrouter import OpenRouterReviewer

CONTEXT = ReviewContext(project_path="/work/app", project_type="python")


def completion(content: str) -> str:
    return json.dumps({"choices": [{"message": {"role": "assistant", "content": content}}]})


def heredoc_payload(command: str, marker: str) -> dict:
    """Extract the JSON body passed to curl through a quoted heredoc."""
    body = command.split(f"<<'{marker}'\n", 1)[1]
    body = body.rsplit(f"\n{marker}", 1)[0]
    return json.loads(body)


class TestParseChatCompletionReview:
    """Tests for parse_chat_completion_review()."""

    def test_json_content(self):
        output = completion(json.dumps({
            "approved": True,
            "feedback": "Solid plan",
            "suggestions": ["Add retries"],
            "concerns": [],
        }))

        result = parse_chat_completion_review(output, "r1", "ollama", "olmo")

        assert result.reviewer == "r1"
        assert result.backend_type == "ollama"
        assert result.model == "olmo"
        assert result.feedback == "Solid plan"
        assert result.suggestions == ["Add retries"]
        assert result.concerns == []
        assert result.approved is True
        assert result.timestamp

    def test_json_wrapped_in_prose(self):
        content = 'Here is my review:\n```json\n{"feedback": "ok", "concerns": ["slow"]}\n```'

        result = parse_chat_completion_review(completion(content), "r1")

        assert result.feedback == "ok"
        assert result.concerns == ["slow"]
        assert result.approved is False

    def test_plain_text_content(self):
        result = parse_chat_completion_review(completion("Looks reasonable."), "r1")

        assert result.feedback == "Looks reasonable."
        assert result.suggestions == []
        assert result.concerns == []
        assert result.approved is False

    def test_bare_review_object(self):
        output = json.dumps({"feedback": "Direct", "approved": True})

        result = parse_chat_completion_review(output, "r1")

        assert result.feedback == "Direct"
        assert result.approved is True

    def test_not_json_at_all(self):
        result = parse_chat_completion_review("curl: (7) Failed to connect", "r1")

        assert result.feedback == "curl: (7) Failed to connect"

    def test_missing_feedback_falls_back_to_content(self):
        content = json.dumps({"approved": True, "suggestions": ["x"]})

        result = parse_chat_completion_review(completion(content), "r1")

        assert result.feedback == content
        assert result.suggestions == ["x"]

    @pytest.mark.parametrize("feedback,expected", [
        ({"text": "ok"}, '{"text": "ok"}'),
        (42, "42"),
        (["a", "b"], '["a", "b"]'),
    ])
    def test_non_string_feedback_is_stringified(self, feedback, expected):
        output = completion(json.dumps({"feedback": feedback, "approved": True}))

        result = parse_chat_completion_review(output, "r1")

        assert result.feedback == expected
        assert result.approved is True

    def test_string_lists_are_not_split_into_characters(self):
        content = json.dumps({"feedback": "ok", "suggestions": "add tests", "concerns": 7})

        result = parse_chat_completion_review(completion(content), "r1")

        assert result.suggestions == ["add tests"]
        assert result.concerns == []

    def test_list_items_are_stringified(self):
        content = json.dumps({"feedback": "ok", "concerns": [{"area": "auth"}, 3, None]})

        result = parse_chat_completion_review(completion(content), "r1")

        assert result.concerns == ['{"area": "auth"}', "3"]

    @pytest.mark.parametrize("approved,expected", [
        (True, True),
        (False, False),
        ("true", True),
        ("false", False),
        ("False", False),
        (1, False),
        (None, False),
    ])
    def test_approved_only_from_booleans(self, approved, expected):
        content = json.dumps({"feedback": "ok", "approved": approved})

        result = parse_chat_completion_review(completion(content), "r1")

        assert result.approved is expected

    @pytest.mark.parametrize("output", [
        json.dumps({"choices": {"0": "x"}}),
        json.dumps({"choices": [{"message": "not a mapping"}]}),
        json.dumps({"choices": [{"message": {"content": [{"type": "text"}]}}]}),
    ])
    def test_malformed_envelope_becomes_plain_feedback(self, output):
        result = parse_chat_completion_review(output, "r1")

        assert result.feedback == output
        assert result.approved is False


class TestOllamaReviewer:
    """Tests for OllamaReviewer."""

    def make_response(self, status_code=200, payload=None):
        response = Mock()
        response.status_code = status_code
        if isinstance(payload, Exception):
            response.json.side_effect = payload
        else:
            response.json.return_value = payload
        return response

    @patch("devflow.reviewers.ollama.httpx.get")
    def test_available_when_model_pulled(self, mock_get):
        mock_get.return_value = self.make_response(payload={"models": [{"name": "olmo-3.1:32b-think"}]})
        reviewer = OllamaReviewer("local", model="olmo-3.1:32b-think")

        assert reviewer.check_availability().available is True
        mock_get.assert_called_once_with("http://localhost:11434/api/tags", timeout=5.0)

    @patch("devflow.reviewers.ollama.httpx.get")
    def test_model_not_pulled(self, mock_get):
        mock_get.return_value = self.make_response(payload={"models": [{"name": "llama3:8b"}]})
        reviewer = OllamaReviewer("local", model="olmo-3.1:32b-think")

        availability = reviewer.check_availability()

        assert availability.available is False
        assert availability.install_instructions == "Run: ollama pull olmo-3.1:32b-think"

    @patch("devflow.reviewers.ollama.httpx.get")
    def test_connection_refused(self, mock_get):
        mock_get.side_effect = httpx.ConnectError("Connection refused")
        reviewer = OllamaReviewer("local")

        availability = reviewer.check_availability()

        assert availability.available is False
        assert "not running" in availability.reason
        assert "ollama serve" in availability.install_instructions

    @patch("devflow.reviewers.ollama.httpx.get")
    def test_http_error_status(self, mock_get):
        mock_get.return_value = self.make_response(status_code=500)

        availability = OllamaReviewer("local").check_availability()

        assert availability.available is False
        assert "500" in availability.reason

    @patch("devflow.reviewers.ollama.httpx.get")
    def test_unreadable_tag_list_is_tolerated(self, mock_get):
        mock_get.return_value = self.make_response(payload=ValueError("bad json"))

        assert OllamaReviewer("local").check_availability().available is True

    def test_review_command(self):
        reviewer = OllamaReviewer("local", model="olmo", base_url="http://gpu-box:11434/")
        spec = "Use 'single' and \"double\" quotes and $HOME"

        command = reviewer.get_review_command(spec, CONTEXT)

        assert command.startswith("curl -s http://gpu-box:11434/v1/chat/completions")
        payload = heredoc_payload(command, "OLLAMA_JSON_EOF")
        assert payload["model"] == "olmo"
        assert payload["messages"][0]["content"] == "Project type: python\n\n" + REVIEW_PROMPT.format(spec=spec)

    def test_parse_stamps_backend(self):
        result = OllamaReviewer("local", model="olmo").parse_review_output(completion("fine"))

        assert (result.reviewer, result.backend_type, result.model) == ("local", "ollama", "olmo")


class TestHostedReviewers:
    """Tests for the OpenRouter and GitHub Models backends."""

    @pytest.mark.parametrize("cls,env", [
        (OpenRouterReviewer, "OPENROUTER_API_KEY"),
        (GitHubModelsReviewer, "GITHUB_TOKEN"),
    ])
    def test_requires_credentials(self, cls, env, monkeypatch):
        monkeypatch.delenv(env, raising=False)
        reviewer = cls("cloud")

        availability = reviewer.check_availability()
        assert availability.available is False
        assert env in availability.reason
        assert env in availability.install_instructions

        monkeypatch.setenv(env, "secret-value")
        assert reviewer.check_availability().available is True

    @pytest.mark.parametrize("cls,env,marker", [
        (OpenRouterReviewer, "OPENROUTER_API_KEY", "OPENROUTER_JSON_EOF"),
        (GitHubModelsReviewer, "GITHUB_TOKEN", "GITHUB_MODELS_JSON_EOF"),
    ])
    def test_command_references_key_variable(self, cls, env, marker, monkeypatch):
        monkeypatch.setenv(env, "secret-value")
        reviewer = cls("cloud", model="some/model", temperature=0.7)

        command = reviewer.get_review_command("spec text", CONTEXT)

        assert f"${env}" in command
        assert "secret-value" not in command
        payload = heredoc_payload(command, marker)
        assert payload["model"] == "some/model"
        assert payload["temperature"] == 0.7

    def test_backend_types(self):
        assert OpenRouterReviewer("a").backend_type == "openrouter"
        assert GitHubModelsReviewer("b").backend_type == "github-models"
        assert GitHubModelsReviewer("b").model == "Phi-4"


def check_results(**outcomes):
    """subprocess.run stand-in: exit status per check, keyed by the command's first words."""
    def run(args, **kwargs):
        key = "_".join(args[:2]).replace("-", "_")
        outcome = outcomes.get(key, 1)
        if isinstance(outcome, Exception):
            raise outcome
        return Mock(returncode=outcome)
    return run


class TestGeminiReviewer:
    """Tests for the Gemini CLI backend."""

    @patch("devflow.reviewers.gemini.subprocess.run")
    @patch("devflow.reviewers.gemini.shutil.which", return_value="/usr/local/bin/gemini")
    def test_local_cli_available(self, mock_which, mock_run):
        mock_run.side_effect = check_results(gemini_test=0)
        reviewer = GeminiReviewer("gem")

        assert reviewer.check_availability().available is True
        assert reviewer.uses_docker() is False
        args = mock_run.call_args[0][0]
        assert args == ["gemini", "test", "--model", "gemini-2.5-flash-lite"]

    @patch("devflow.reviewers.gemini.subprocess.run")
    @patch("devflow.reviewers.gemini.shutil.which", return_value=None)
    def test_falls_back_to_docker_image(self, mock_which, mock_run):
        mock_run.side_effect = check_results(docker_info=0, docker_image=0)
        reviewer = GeminiReviewer("gem")

        assert reviewer.check_availability().available is True
        assert reviewer.uses_docker() is True

    @patch("devflow.reviewers.gemini.subprocess.run")
    @patch("devflow.reviewers.gemini.shutil.which", return_value="/usr/local/bin/gemini")
    def test_broken_local_cli_falls_back_to_docker(self, mock_which, mock_run):
        mock_run.side_effect = check_results(gemini_test=1, docker_info=0, docker_image=1, docker_pull=0)
        reviewer = GeminiReviewer("gem")

        assert reviewer.check_availability().available is True
        assert reviewer.uses_docker() is True
        commands = [call[0][0][:2] for call in mock_run.call_args_list]
        assert commands[-1] == ["docker", "pull"]

    @patch("devflow.reviewers.gemini.subprocess.run")
    @patch("devflow.reviewers.gemini.shutil.which", return_value=None)
    def test_neither_cli_nor_docker(self, mock_which, mock_run):
        mock_run.side_effect = check_results(docker_info=FileNotFoundError("docker"))

        availability = GeminiReviewer("gem").check_availability()

        assert availability.available is False
        assert availability.reason == "Neither local Gemini CLI nor Docker is available"
        assert "npm install -g @google/gemini-cli" in availability.install_instructions
        assert DEFAULT_DOCKER_IMAGE in availability.install_instructions

    @patch("devflow.reviewers.gemini.subprocess.run")
    @patch("devflow.reviewers.gemini.shutil.which", return_value=None)
    def test_image_cannot_be_pulled(self, mock_which, mock_run):
        mock_run.side_effect = check_results(
            docker_info=0,
            docker_image=1,
            docker_pull=subprocess.TimeoutExpired(["docker", "pull"], 120),
        )

        availability = GeminiReviewer("gem").check_availability()

        assert availability.available is False
        assert availability.reason == "Cannot pull Gemini CLI Docker image"

    @patch("devflow.reviewers.gemini.subprocess.run")
    @patch("devflow.reviewers.gemini.shutil.which", return_value=None)
    def test_local_runtime_never_checks_docker(self, mock_which, mock_run):
        availability = GeminiReviewer("gem", runtime="local").check_availability()

        assert availability.available is False
        assert availability.reason == "Gemini CLI is not installed or not working"
        mock_run.assert_not_called()

    @patch("devflow.reviewers.gemini.shutil.which", return_value="/usr/local/bin/gemini")
    def test_local_review_command(self, mock_which):
        spec = "Use 'single' and \"double\" quotes and $HOME"

        command = GeminiReviewer("gem").get_review_command(spec, CONTEXT)

        assert command.startswith("cd /work/app && gemini --model gemini-2.5-flash-lite -o json")
        body = command.split("<<'GEMINI_PROMPT_EOF'\n", 1)[1].rsplit("\nGEMINI_PROMPT_EOF", 1)[0]
        assert body == "Project type: python\n\n" + REVIEW_PROMPT.format(spec=spec)

    def test_docker_review_command(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "secret-value")

        command = GeminiReviewer("gem", runtime="docker").get_review_command("spec text", CONTEXT)

        assert command.startswith("docker run --rm -i")
        assert DEFAULT_DOCKER_IMAGE in command
        assert '"$GOOGLE_API_KEY"' in command
        assert "secret-value" not in command

    def test_parse_cli_envelope(self):
        review = json.dumps({"approved": True, "feedback": "Good", "suggestions": [], "concerns": []})
        output = json.dumps({"response": review, "stats": {}})

        result = GeminiReviewer("gem").parse_review_output(output)

        assert result.approved is True
        assert result.feedback == "Good"
        assert (result.reviewer, result.backend_type) == ("gem", "gemini")

    def test_parse_plain_text(self):
        result = GeminiReviewer("gem").parse_review_output("Not JSON")

        assert result.feedback == "Not JSON"
        assert result.approved is False
        assert result.suggestions == []
