from __future__ import annotations

from enum import StrEnum


class BuildStatus(StrEnum):
    """Status of a remote build or of one of its phases."""

    IN_PROGRESS = "IN_PROGRESS"
    QUEUED = "QUEUED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    FAULT = "FAULT"
    TIMED_OUT = "TIMED_OUT"
    STOPPED = "STOPPED"
    CLIENT_ERROR = "CLIENT_ERROR"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_wire(cls, value: str | None) -> BuildStatus | None:
        """Resolve a wire status string to a :class:`BuildStatus`.

        Matching is case-insensitive and treats spaces and hyphens as
        underscores, so ``"in progress"`` resolves to :attr:`IN_PROGRESS`.
        Unrecognised strings resolve to :attr:`UNKNOWN`; ``None`` or an
        empty string stays ``None`` (an unset phase status).
        """
        if not value:
            return None
        normalized = value.strip().upper().replace(" ", "_").replace("-", "_")
        return _WIRE_STATUSES.get(normalized, cls.UNKNOWN)

    @property
    def is_terminal(self) -> bool:
        return self not in (BuildStatus.IN_PROGRESS, BuildStatus.QUEUED)


_WIRE_STATUSES: dict[str, BuildStatus] = {
    "IN_PROGRESS": BuildStatus.IN_PROGRESS,
    "QUEUED": BuildStatus.QUEUED,
    "SUCCEEDED": BuildStatus.SUCCEEDED,
    "SUCCESS": BuildStatus.SUCCEEDED,
    "FAILED": BuildStatus.FAILED,
    "FAULT": BuildStatus.FAULT,
    "TIMED_OUT": BuildStatus.TIMED_OUT,
    "STOPPED": BuildStatus.STOPPED,
    "CLIENT_ERROR": BuildStatus.CLIENT_ERROR,
}


class PhaseType(StrEnum):
    SUBMITTED = "SUBMITTED"
    QUEUED = "QUEUED"
    PROVISIONING = "PROVISIONING"
    DOWNLOAD_SOURCE = "DOWNLOAD_SOURCE"
    INSTALL = "INSTALL"
    PRE_BUILD = "PRE_BUILD"
    BUILD = "BUILD"
    POST_BUILD = "POST_BUILD"
    UPLOAD_ARTIFACTS = "UPLOAD_ARTIFACTS"
    FINALIZING = "FINALIZING"
    COMPLETED = "COMPLETED"


class ResultStatus(StrEnum):
    """Outcome of one invocation as reported to the host."""

    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    STOPPED = "STOPPED"


class OrchestratorState(StrEnum):
    NOT_STARTED = "not_started"
    UPLOADING = "uploading"
    STARTING = "starting"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    STOPPED = "stopped"


class SourceControlType(StrEnum):
    # Source is zipped from the local workspace and uploaded to the project's S3 source.
    WORKSPACE = "workspace"
    # Source is whatever the CodeBuild project is already configured with.
    PROJECT = "project"


class ArtifactsType(StrEnum):
    NO_ARTIFACTS = "NO_ARTIFACTS"
    S3 = "S3"
    CODEPIPELINE = "CODEPIPELINE"


class ArtifactPackaging(StrEnum):
    NONE = "NONE"
    ZIP = "ZIP"


class ArtifactNamespace(StrEnum):
    NONE = "NONE"
    BUILD_ID = "BUILD_ID"


# Source type a project must have for workspace uploads.
S3_SOURCE_TYPE = "S3"

POLL_INTERVAL_SECONDS = 5.0
LOG_WINDOW_SIZE = 15
MAX_LOG_LINE_LENGTH = 200
MIN_BUILD_TIMEOUT_MINUTES = 5
MAX_BUILD_TIMEOUT_MINUTES = 480
RESTRICTED_ENV_PREFIX = "CODEBUILD_"
VCS_DIRECTORIES = frozenset({".git", ".svn", ".hg", ".bzr", "CVS"})
