from __future__ import annotations

from typing import Any


class CodeBuildRunnerError(Exception):
    """Base exception for all codebuild-runner errors.

    Attributes:
        code: Optional machine-readable error code (e.g. ``"NOT_VERSIONED"``).
        details: Arbitrary key/value context about the error.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConfigurationError(CodeBuildRunnerError):
    """Invalid credentials, proxy, region or build settings.

    Always raised before any remote call is made.
    """


class PreconditionError(CodeBuildRunnerError):
    """The remote resources are not in a state the build can use.

    Examples are a non-versioned source bucket or a project whose source is
    not S3 while uploading the local workspace.
    """


class RemoteCallError(CodeBuildRunnerError):
    """A remote call returned something the orchestrator cannot work with."""


class BuildInterruptedError(CodeBuildRunnerError):
    """The host asked to stop observing the build.

    The remote build keeps running; only local polling ends.
    """
