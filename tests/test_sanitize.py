"""Tests for availability reason scrubbing."""

import pytest

from devflow.errors import ReviewerUnavailableError
from devflow.sanitize import ReasonScrubber, scrub_reason


class TestScrubReason:
    """Tests for scrub_reason()."""

    def test_url_query_string_removed(self):
        result = scrub_reason("GET https://api.example.com/v1/models?key=sk-secret failed")

        assert "sk-secret" not in result
        assert "https://api.example.com/v1/models" in result

    def test_url_host_port(self):
        result = scrub_reason("Ollama is not running at http://localhost:11434")

        assert result == "Ollama is not running at http://<host>"

    def test_ip_port(self):
        assert scrub_reason("refused by 10.0.0.5:8080") == "refused by <host>"

    def test_bare_host_port(self):
        assert scrub_reason("cannot reach ollama.internal:11434") == "cannot reach <host>"

    @pytest.mark.parametrize("reason", [
        "config at /home/alice/.config/devflow/reviewers.yaml is broken",
        "config at ~/.devflow/reviewers.yaml is broken",
        "config at C:\\Users\\alice\\devflow.yaml is broken",
    ])
    def test_paths(self, reason):
        assert scrub_reason(reason) == "config at <path> is broken"

    def test_file_url(self):
        result = scrub_reason("cannot open file:///home/alice/.ollama/models/manifest")

        assert result == "cannot open <path>"
        assert "alice" not in result

    @pytest.mark.parametrize("reason,expected", [
        ("no socket in /run", "no socket in <path>"),
        ("missing /var/run/ollama/", "missing <path>"),
    ])
    def test_short_posix_paths(self, reason, expected):
        assert scrub_reason(reason) == expected

    def test_url_paths_survive(self):
        result = scrub_reason("404 from https://openrouter.ai/api/v1/models")

        assert result == "404 from https://openrouter.ai/api/v1/models"

    def test_model_names_survive(self):
        reason = "Model 'olmo-3.1:32b-think' not found in Ollama"

        assert scrub_reason(reason) == reason

    def test_empty(self):
        assert scrub_reason("") == ""

    def test_custom_patterns(self):
        scrubber = ReasonScrubber(patterns=[(r"secret-\w+", "<redacted>")])

        assert scrubber.scrub("token secret-abc") == "token <redacted>"


class TestReviewerUnavailableError:
    """The exception stores only the scrubbed reason."""

    def test_reason_scrubbed_on_construction(self):
        error = ReviewerUnavailableError(
            "olmo-local",
            reason="Ollama is not running at http://192.168.0.3:11434/api/tags?x=1",
            install_instructions="Run: ollama serve",
        )

        assert "192.168.0.3" not in error.reason
        assert "x=1" not in str(error)
        assert str(error).startswith("Reviewer 'olmo-local' is not available: ")
        assert error.install_instructions == "Run: ollama serve"

    def test_missing_reason(self):
        error = ReviewerUnavailableError("r1")

        assert error.reason == "unknown reason"
