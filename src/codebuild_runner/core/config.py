from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from codebuild_runner.core.constants import SourceControlType


def _env(name: str) -> str | None:
    value = os.environ.get(name)
    return value or None


class ClientConfig(BaseModel):
    """Connection settings shared by every AWS client of one invocation.

    Values are kept as plain strings; :class:`~codebuild_runner.aws.clients.RemoteClientFactory`
    validates them so that a bad value surfaces as a readable configuration
    error on the build result instead of a model validation failure.
    """

    region: str = ""
    proxy_host: str | None = None
    proxy_port: str | int | None = None
    access_key: str | None = None
    secret_key: str | None = Field(default=None, repr=False)
    session_token: str | None = Field(default=None, repr=False)
    iam_role_arn: str | None = None
    external_id: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientConfig:
        """Create a :class:`ClientConfig` from ``CODEBUILD_RUNNER_*`` environment variables.

        Reads the following env vars (all optional):

        * ``CODEBUILD_RUNNER_REGION`` → ``region`` (falls back to ``AWS_REGION``,
          then ``AWS_DEFAULT_REGION``)
        * ``CODEBUILD_RUNNER_PROXY_HOST`` / ``CODEBUILD_RUNNER_PROXY_PORT``
        * ``CODEBUILD_RUNNER_ACCESS_KEY`` / ``CODEBUILD_RUNNER_SECRET_KEY`` /
          ``CODEBUILD_RUNNER_SESSION_TOKEN``
        * ``CODEBUILD_RUNNER_IAM_ROLE_ARN`` / ``CODEBUILD_RUNNER_EXTERNAL_ID``

        Any variable that is not set or is empty is left at its default value.
        Keyword *overrides* that are not ``None`` take precedence.
        """
        kwargs: dict[str, Any] = {}

        region = (
            _env("CODEBUILD_RUNNER_REGION")
            or _env("AWS_REGION")
            or _env("AWS_DEFAULT_REGION")
        )
        if region:
            kwargs["region"] = region

        for field, var in (
            ("proxy_host", "CODEBUILD_RUNNER_PROXY_HOST"),
            ("proxy_port", "CODEBUILD_RUNNER_PROXY_PORT"),
            ("access_key", "CODEBUILD_RUNNER_ACCESS_KEY"),
            ("secret_key", "CODEBUILD_RUNNER_SECRET_KEY"),
            ("session_token", "CODEBUILD_RUNNER_SESSION_TOKEN"),
            ("iam_role_arn", "CODEBUILD_RUNNER_IAM_ROLE_ARN"),
            ("external_id", "CODEBUILD_RUNNER_EXTERNAL_ID"),
        ):
            value = _env(var)
            if value:
                kwargs[field] = value

        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)


class BuildConfig(BaseModel):
    """Everything one invocation needs to run a remote build.

    Created once per invocation and never mutated.
    """

    project_name: str = ""
    source_control_type: str = SourceControlType.PROJECT
    source_version: str | None = None
    workspace: Path | None = None
    """Local directory uploaded as the build source in ``workspace`` mode."""

    artifact_type_override: str | None = None
    artifact_location_override: str | None = None
    artifact_name_override: str | None = None
    artifact_namespace_override: str | None = None
    artifact_packaging_override: str | None = None
    artifact_path_override: str | None = None

    env_variables: str | None = None
    """Environment variable overrides in the form ``[{KEY, value}, {KEY2, value2}]``."""
    buildspec_override: str | None = None
    build_timeout_override: str | int | None = None
    sse_algorithm: str | None = None
    """Set to request server-side encryption of the uploaded source archive."""
    artifact_download_dir: Path | None = None
    """When set, build artifacts are downloaded here after a successful build."""

    client: ClientConfig = Field(default_factory=ClientConfig)

    model_config = {"frozen": True}

    @property
    def uses_workspace_source(self) -> bool:
        return self.source_control_type == SourceControlType.WORKSPACE

    @classmethod
    def from_env(cls, **overrides: Any) -> BuildConfig:
        """Create a :class:`BuildConfig` from ``CODEBUILD_RUNNER_*`` environment variables.

        * ``CODEBUILD_RUNNER_PROJECT`` → ``project_name``
        * ``CODEBUILD_RUNNER_SOURCE_CONTROL_TYPE`` → ``source_control_type``
        * ``CODEBUILD_RUNNER_SOURCE_VERSION`` → ``source_version``
        * ``CODEBUILD_RUNNER_WORKSPACE`` → ``workspace``

        The nested ``client`` settings come from :meth:`ClientConfig.from_env`
        unless a ``client`` override is given.
        """
        kwargs: dict[str, Any] = {}

        for field, var in (
            ("project_name", "CODEBUILD_RUNNER_PROJECT"),
            ("source_control_type", "CODEBUILD_RUNNER_SOURCE_CONTROL_TYPE"),
            ("source_version", "CODEBUILD_RUNNER_SOURCE_VERSION"),
            ("workspace", "CODEBUILD_RUNNER_WORKSPACE"),
        ):
            value = _env(var)
            if value:
                kwargs[field] = value

        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        if "client" not in kwargs:
            kwargs["client"] = ClientConfig.from_env()
        return cls(**kwargs)
