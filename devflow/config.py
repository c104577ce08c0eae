"""
Configuration discovery for devflow.

Provides the language presets (lint/build/test commands and file patterns),
project type detection from indicator files, and the optional per-project
settings file `.devflow.yaml`.
"""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError
from .workflows.implement.schema import LanguageCommands, LanguageConfig

logger = logging.getLogger(__name__)

SETTINGS_FILE = ".devflow.yaml"


LANGUAGE_PRESETS: dict[str, LanguageConfig] = {
    "python": LanguageConfig(
        name="python",
        commands=LanguageCommands(
            lint="ruff check .",
            build="pip install -e . -q",
            test="pytest",
            type_check="mypy .",
            format_check="ruff format --check .",
        ),
        test_file_patterns=["tests/test_*.py"],
        source_file_patterns=["src/**/*.py", "*.py"],
    ),
    "node": LanguageConfig(
        name="node",
        commands=LanguageCommands(
            lint="npm run lint",
            build="npm run build",
            test="npm test",
            type_check="npx tsc --noEmit",
        ),
        test_file_patterns=["**/*.test.ts", "**/*.test.js"],
        source_file_patterns=["src/**/*.ts", "src/**/*.js"],
    ),
    "rust": LanguageConfig(
        name="rust",
        commands=LanguageCommands(
            lint="cargo clippy -- -D warnings",
            build="cargo build",
            test="cargo test",
            format_check="cargo fmt -- --check",
        ),
        test_file_patterns=["tests/*.rs"],
        source_file_patterns=["src/**/*.rs"],
    ),
    "go": LanguageConfig(
        name="go",
        commands=LanguageCommands(
            lint="go vet ./...",
            build="go build ./...",
            test="go test ./...",
            format_check="gofmt -l .",
        ),
        test_file_patterns=["**/*_test.go"],
        source_file_patterns=["**/*.go"],
    ),
    "android": LanguageConfig(
        name="android",
        commands=LanguageCommands(
            lint="./gradlew lint",
            build="./gradlew assembleDebug",
            test="./gradlew testDebugUnitTest",
        ),
        test_file_patterns=["app/src/test/**/*Test.kt"],
        source_file_patterns=["app/src/main/**/*.kt"],
    ),
}


# Project type detection priority
# Format: (indicator_file, language preset)
PROJECT_INDICATORS = [
    ("build.gradle.kts", "android"),
    ("build.gradle", "android"),
    ("package.json", "node"),
    ("Cargo.toml", "rust"),
    ("go.mod", "go"),
    ("pyproject.toml", "python"),
    ("setup.py", "python"),
    ("requirements.txt", "python"),
]


def get_language_preset(name: str) -> LanguageConfig:
    """
    Get a copy of a named language preset.

    Raises:
        ConfigurationError: If there is no preset with that name
    """
    preset = LANGUAGE_PRESETS.get(name.lower())
    if preset is None:
        raise ConfigurationError(
            f"Unknown language '{name}'. Available: {', '.join(sorted(LANGUAGE_PRESETS))}"
        )
    return preset.model_copy(deep=True)


def detect_project_type(working_dir: Optional[Path] = None) -> Optional[str]:
    """
    Detect the project type based on indicator files.

    Args:
        working_dir: Directory to check. Defaults to cwd.

    Returns:
        Preset name (e.g., "python", "node", "rust") or None if unknown.
    """
    if working_dir is None:
        working_dir = Path.cwd()
    else:
        working_dir = Path(working_dir)

    for indicator_file, project_type in PROJECT_INDICATORS:
        if (working_dir / indicator_file).exists():
            return project_type

    return None


def load_settings(working_dir: Optional[Path] = None) -> dict:
    """
    Load project settings from .devflow.yaml if present.

    Returns:
        Dict of settings, or empty dict if there is no file.

    Raises:
        ConfigurationError: If the file exists but is not a YAML mapping
    """
    if working_dir is None:
        working_dir = Path.cwd()
    else:
        working_dir = Path(working_dir)

    settings_file = working_dir / SETTINGS_FILE
    if not settings_file.exists():
        return {}

    try:
        settings = yaml.safe_load(settings_file.read_text())
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read {settings_file}: {e}") from e

    if settings is None:
        return {}
    if not isinstance(settings, dict):
        raise ConfigurationError(f"{settings_file} must contain a mapping")
    return settings


def resolve_language_config(
    project_path: Optional[Path] = None,
    language: Optional[str] = None,
) -> LanguageConfig:
    """
    Pick the language configuration for a project.

    Order: explicit language name, then `.devflow.yaml` (an inline
    `language_config` mapping or a `language` preset name), then detection
    from indicator files.

    Raises:
        ConfigurationError: If nothing matches or the settings are invalid
    """
    project_path = Path(project_path) if project_path else Path.cwd()

    if language:
        return get_language_preset(language)

    settings = load_settings(project_path)
    inline = settings.get("language_config")
    if inline is not None:
        try:
            return LanguageConfig.model_validate(inline)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid language_config in {SETTINGS_FILE}: {e}") from e
    if settings.get("language"):
        return get_language_preset(str(settings["language"]))

    detected = detect_project_type(project_path)
    if detected is None:
        raise ConfigurationError(
            f"Could not detect the project language in {project_path}. "
            f"Pass --language or set 'language' in {SETTINGS_FILE}."
        )
    logger.debug(f"Detected {detected} project in {project_path}")
    return get_language_preset(detected)
