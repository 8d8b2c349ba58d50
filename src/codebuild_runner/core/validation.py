"""Checks run on a :class:`BuildConfig` before any remote call is made."""

from __future__ import annotations

import re
from typing import Any

from codebuild_runner.core.config import BuildConfig
from codebuild_runner.core.constants import (
    MAX_BUILD_TIMEOUT_MINUTES,
    MIN_BUILD_TIMEOUT_MINUTES,
    RESTRICTED_ENV_PREFIX,
    ArtifactNamespace,
    ArtifactPackaging,
    ArtifactsType,
    SourceControlType,
)
from codebuild_runner.core.exceptions import ConfigurationError

CONFIGURED_IMPROPERLY_ERROR = "CodeBuild configured improperly in project settings"
PROJECT_REQUIRED_ERROR = "CodeBuild project name is required"
SOURCE_CONTROL_TYPE_ERROR = "Source control type is required and must be 'workspace' or 'project'"
WORKSPACE_REQUIRED_ERROR = "A workspace directory is required when source control type is 'workspace'"
INVALID_ARTIFACT_TYPE_ERROR = "Artifact type override must be one of 'NO_ARTIFACTS', 'S3', 'CODEPIPELINE', ''"
INVALID_ARTIFACT_PACKAGING_ERROR = "Artifact packaging override must be one of 'NONE', 'ZIP', ''"
INVALID_ARTIFACT_NAMESPACE_ERROR = "Artifact namespace override must be one of 'NONE', 'BUILD_ID', ''"
INVALID_TIMEOUT_ERROR = (
    f"Build timeout override must be a number between {MIN_BUILD_TIMEOUT_MINUTES} "
    f"and {MAX_BUILD_TIMEOUT_MINUTES} (minutes)"
)
ENV_VARIABLE_SYNTAX_ERROR = (
    "CodeBuild environment variable keys and values cannot be empty and the string "
    "must be of the form [{key, value}, {key2, value2}]"
)
ENV_VARIABLE_NAMESPACE_ERROR = "CodeBuild environment variable keys cannot start with CODEBUILD_"

_WHITESPACE = re.compile(r"\s+")


def parse_int(value: str | int | None) -> int | None:
    """Parse an optional integer setting; empty means unset.

    Raises:
        ValueError: If *value* is set but not an integer.
    """
    if value is None:
        return None
    if isinstance(value, int):
        return value
    value = value.strip()
    if not value:
        return None
    return int(value)


def parse_env_variables(text: str | None) -> list[dict[str, str]]:
    """Parse ``[{KEY, value}, {KEY2, value2}]`` into CodeBuild environment variables.

    Whitespace anywhere in *text* is ignored. An empty or missing string
    yields an empty list.

    Raises:
        ConfigurationError: If the string is not of the expected form or a
            key or value is empty.
    """
    if not text:
        return []

    compact = _WHITESPACE.sub("", text)
    if len(compact) < 4 or not (compact.startswith("[{") and compact.endswith("}]")):
        raise ConfigurationError(ENV_VARIABLE_SYNTAX_ERROR, code="ENV_SYNTAX")

    body = compact[2:-2]
    if "," not in body:
        raise ConfigurationError(ENV_VARIABLE_SYNTAX_ERROR, code="ENV_SYNTAX")

    variables: list[dict[str, str]] = []
    for pair in body.split("},{"):
        parts = pair.split(",")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ConfigurationError(ENV_VARIABLE_SYNTAX_ERROR, code="ENV_SYNTAX")
        variables.append({"name": parts[0], "value": parts[1], "type": "PLAINTEXT"})
    return variables


def _check_choice(value: str | None, choices: Any, message: str) -> None:
    if value and value not in {c.value for c in choices}:
        raise ConfigurationError(message, code="INVALID_OVERRIDE")


def validate_build_config(config: BuildConfig) -> list[dict[str, str]]:
    """Validate *config* and return its parsed environment variable overrides.

    Raises:
        ConfigurationError: On the first invalid setting found.
    """
    if not config.project_name.strip():
        raise ConfigurationError(PROJECT_REQUIRED_ERROR, code="PROJECT_REQUIRED")

    if config.source_control_type not in {t.value for t in SourceControlType}:
        raise ConfigurationError(SOURCE_CONTROL_TYPE_ERROR, code="SOURCE_CONTROL_TYPE")
    if config.uses_workspace_source and config.workspace is None:
        raise ConfigurationError(WORKSPACE_REQUIRED_ERROR, code="WORKSPACE_REQUIRED")

    _check_choice(config.artifact_type_override, ArtifactsType, INVALID_ARTIFACT_TYPE_ERROR)
    _check_choice(
        config.artifact_packaging_override, ArtifactPackaging, INVALID_ARTIFACT_PACKAGING_ERROR
    )
    _check_choice(
        config.artifact_namespace_override, ArtifactNamespace, INVALID_ARTIFACT_NAMESPACE_ERROR
    )

    try:
        timeout = parse_int(config.build_timeout_override)
    except ValueError:
        raise ConfigurationError(INVALID_TIMEOUT_ERROR, code="INVALID_TIMEOUT") from None
    if timeout is not None and not (
        MIN_BUILD_TIMEOUT_MINUTES <= timeout <= MAX_BUILD_TIMEOUT_MINUTES
    ):
        raise ConfigurationError(INVALID_TIMEOUT_ERROR, code="INVALID_TIMEOUT")

    env_variables = parse_env_variables(config.env_variables)
    if any(v["name"].startswith(RESTRICTED_ENV_PREFIX) for v in env_variables):
        raise ConfigurationError(ENV_VARIABLE_NAMESPACE_ERROR, code="ENV_NAMESPACE")
    return env_variables
