from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from codebuild_runner.core.constants import BuildStatus, PhaseType, ResultStatus


class PhaseContext(BaseModel):
    status_code: str | None = None
    message: str | None = None


class BuildPhase(BaseModel):
    """One named stage of a remote build (provisioning, build, upload, ...)."""

    phase_type: str
    phase_status: BuildStatus | None = None
    duration_in_seconds: int | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    contexts: list[PhaseContext] = Field(default_factory=list)

    @property
    def is_completion(self) -> bool:
        return self.phase_type == PhaseType.COMPLETED

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> BuildPhase:
        """Create from a CodeBuild ``phases`` entry with camelCase field names."""
        return cls(
            phase_type=data.get("phaseType", ""),
            phase_status=BuildStatus.from_wire(data.get("phaseStatus")),
            duration_in_seconds=data.get("durationInSeconds"),
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            contexts=[
                PhaseContext(
                    status_code=ctx.get("statusCode"),
                    message=ctx.get("message"),
                )
                for ctx in data.get("contexts") or []
            ],
        )


class LogsLocation(BaseModel):
    group_name: str | None = None
    stream_name: str | None = None
    deep_link: str | None = None

    @property
    def is_set(self) -> bool:
        return bool(self.group_name and self.stream_name)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> LogsLocation:
        return cls(
            group_name=data.get("groupName"),
            stream_name=data.get("streamName"),
            deep_link=data.get("deepLink"),
        )


class BuildArtifacts(BaseModel):
    location: str | None = None
    sha256sum: str | None = None
    md5sum: str | None = None
    artifact_identifier: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> BuildArtifacts:
        return cls(
            location=data.get("location"),
            sha256sum=data.get("sha256sum"),
            md5sum=data.get("md5sum"),
            artifact_identifier=data.get("artifactIdentifier"),
        )


class BuildSnapshot(BaseModel):
    """State of a remote build as returned by one ``batch_get_builds`` poll.

    A new snapshot replaces the previous one on every poll cycle; snapshots
    are never mutated.
    """

    id: str
    arn: str | None = None
    status: BuildStatus = BuildStatus.UNKNOWN
    current_phase: str | None = None
    phases: list[BuildPhase] = Field(default_factory=list)
    logs: LogsLocation | None = None
    artifacts: BuildArtifacts | None = None
    secondary_artifacts: list[BuildArtifacts] = Field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None
    source_version: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> BuildSnapshot:
        """Create from a CodeBuild ``Build`` structure."""
        logs = data.get("logs")
        artifacts = data.get("artifacts")
        return cls(
            id=data["id"],
            arn=data.get("arn"),
            status=BuildStatus.from_wire(data.get("buildStatus")) or BuildStatus.UNKNOWN,
            current_phase=data.get("currentPhase"),
            phases=[BuildPhase.from_api(p) for p in data.get("phases") or []],
            logs=LogsLocation.from_api(logs) if logs else None,
            artifacts=BuildArtifacts.from_api(artifacts) if artifacts else None,
            secondary_artifacts=[
                BuildArtifacts.from_api(a) for a in data.get("secondaryArtifacts") or []
            ],
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            source_version=data.get("sourceVersion"),
        )


class ProjectInfo(BaseModel):
    """The parts of a CodeBuild project definition the orchestrator needs."""

    name: str
    source_type: str | None = None
    source_location: str | None = None
    artifacts_type: str | None = None
    artifacts_location: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> ProjectInfo:
        source = data.get("source") or {}
        artifacts = data.get("artifacts") or {}
        return cls(
            name=data.get("name", ""),
            source_type=source.get("type"),
            source_location=source.get("location"),
            artifacts_type=artifacts.get("type"),
            artifacts_location=artifacts.get("location"),
        )


class UploadResult(BaseModel):
    location: str
    """``bucket/key`` of the uploaded source archive."""
    version_id: str
    """S3 object version the build will consume."""

    model_config = {"frozen": True}


class BuildResult(BaseModel):
    """Per-invocation outcome handed back to the host."""

    status: ResultStatus = ResultStatus.IN_PROGRESS
    error_message: str | None = None
    build_id: str | None = None
    build_arn: str | None = None
    artifacts_location: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    def set_build_information(self, build_id: str, build_arn: str | None) -> None:
        self.build_id = build_id
        self.build_arn = build_arn

    def set_success(self) -> None:
        self.status = ResultStatus.SUCCESS
        self.error_message = None

    def set_failure(self, primary: str, secondary: str | None = None) -> None:
        self.status = ResultStatus.FAILURE
        self.error_message = join_messages(primary, secondary)

    def set_stopped(self, message: str | None = None) -> None:
        self.status = ResultStatus.STOPPED
        self.error_message = message


def join_messages(primary: str, secondary: str | None = None) -> str:
    """Join a primary and an optional secondary message the way the console shows them."""
    if not secondary:
        return primary
    return f"{primary}\n\t> {secondary}"
