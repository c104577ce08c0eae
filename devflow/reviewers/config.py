"""
Reviewer configuration module.

Reviewers are configured in `.devflow/reviewers.yaml`, found by walking up
from the project path the way git finds `.git`. JSON is valid YAML, so a
`reviewers.json`-style document works as well.

There are no implicit defaults: a missing or invalid file is an error.

Example:
    active_reviewers:
      - olmo-local
    reviewers:
      olmo-local:
        type: ollama
        model: olmo-3.1:32b-think
      olmo-cloud:
        type: openrouter
        model: allenai/olmo-3.1-32b-think

Priority order for overrides:
1. ACTIVE_REVIEWERS environment variable (comma-separated names)
2. Config file (required)
"""

import logging
import os
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, model_validator

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".devflow"
CONFIG_FILE_NAME = "reviewers.yaml"
ACTIVE_REVIEWERS_ENV = "ACTIVE_REVIEWERS"


class OllamaBackendConfig(BaseModel):
    """Local Ollama runtime."""
    type: Literal["ollama"] = "ollama"
    model: str
    base_url: str = "http://localhost:11434"


class OpenRouterBackendConfig(BaseModel):
    """OpenRouter hosted API."""
    type: Literal["openrouter"] = "openrouter"
    model: str
    endpoint: str = "https://openrouter.ai/api/v1"
    temperature: float = 0.3


class GitHubModelsBackendConfig(BaseModel):
    """GitHub Models hosted API."""
    type: Literal["github-models"] = "github-models"
    model: str
    endpoint: str = "https://models.inference.ai.azure.com"
    temperature: float = 0.3


class GeminiBackendConfig(BaseModel):
    """Gemini CLI, installed locally or run from its Docker image."""
    type: Literal["gemini"] = "gemini"
    model: str = "gemini-2.5-flash-lite"
    runtime: Literal["auto", "local", "docker"] = "auto"
    docker_image: str = "us-docker.pkg.dev/gemini-code-dev/gemini-cli/sandbox:0.1.1"


ReviewerBackendConfig = Annotated[
    Union[
        OllamaBackendConfig,
        OpenRouterBackendConfig,
        GitHubModelsBackendConfig,
        GeminiBackendConfig,
    ],
    Field(discriminator="type"),
]


class ReviewerConfig(BaseModel):
    """Ordered active reviewer names plus the backend record for each name."""
    active_reviewers: list[str]
    reviewers: dict[str, ReviewerBackendConfig] = Field(default_factory=dict)

    @model_validator(mode="after")
    def active_reviewers_must_be_defined(self):
        missing = [name for name in self.active_reviewers if name not in self.reviewers]
        if missing:
            raise ValueError(
                f"Active reviewer(s) {', '.join(missing)} not defined in reviewers section. "
                f"Available reviewers: {', '.join(self.reviewers) or '(none)'}"
            )
        return self


def find_config_root(start_path: Path) -> Optional[Path]:
    """
    Find the directory containing `.devflow/` by searching up from start_path.

    Returns:
        The directory holding `.devflow/`, or None if the filesystem root is
        reached first.
    """
    current = Path(start_path).resolve()
    while True:
        if (current / CONFIG_DIR_NAME).is_dir():
            return current
        if current.parent == current:
            return None
        current = current.parent


def get_config_path(project_path: Path = Path(".")) -> Path:
    """
    Locate the reviewer config file for a project.

    Raises:
        ConfigurationError: If no `.devflow/reviewers.yaml` can be found
    """
    root = find_config_root(project_path)
    if root is None:
        raise ConfigurationError(
            f"Could not find {CONFIG_DIR_NAME} directory.\n"
            f"Searched from: {Path(project_path).resolve()}\n"
            f"Create {CONFIG_DIR_NAME}/{CONFIG_FILE_NAME} with your reviewer configuration."
        )

    config_path = root / CONFIG_DIR_NAME / CONFIG_FILE_NAME
    if not config_path.exists():
        raise ConfigurationError(
            f"Reviewer config file not found: {config_path}\n"
            f"Create this file with your reviewer configuration."
        )
    return config_path


def parse_reviewer_config(data: dict, source: str = "<config>") -> ReviewerConfig:
    """
    Validate raw config data.

    Raises:
        ConfigurationError: If required fields are missing or inconsistent
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid config: expected a mapping in {source}")
    try:
        return ReviewerConfig(**data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid reviewer config in {source}:\n{e}") from e


def apply_env_overrides(config: ReviewerConfig) -> ReviewerConfig:
    """Apply the ACTIVE_REVIEWERS override, validating every name."""
    override = os.environ.get(ACTIVE_REVIEWERS_ENV)
    if not override:
        return config

    names = [name.strip() for name in override.split(",") if name.strip()]
    for name in names:
        if name not in config.reviewers:
            raise ConfigurationError(
                f"Environment override error: {ACTIVE_REVIEWERS_ENV} contains '{name}' "
                f"which is not defined in the config file.\n"
                f"Available reviewers: {', '.join(config.reviewers)}"
            )

    logger.debug(f"Active reviewers overridden from environment: {names}")
    return config.model_copy(update={"active_reviewers": names})


def load_reviewer_config(project_path: Path = Path(".")) -> ReviewerConfig:
    """
    Load reviewer configuration for a project.

    Raises:
        ConfigurationError: If the config is missing or invalid, or if
            ACTIVE_REVIEWERS references undefined reviewers
    """
    config_path = get_config_path(project_path)

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse reviewer config at {config_path}: {e}") from e

    if data is None:
        raise ConfigurationError(f"Reviewer config is empty: {config_path}")

    config = parse_reviewer_config(data, source=str(config_path))
    return apply_env_overrides(config)
