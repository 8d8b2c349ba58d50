"""Shared test fixtures."""
from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from codebuild_runner.aws.mock import MockClientFactory
from codebuild_runner.utils.console import BuildConsole

BUILD_ID = "my-project:0f4c2b6e-1234"
BUILD_ARN = "arn:aws:codebuild:us-east-1:123456789012:build/" + BUILD_ID


@pytest.fixture
def mock_factory() -> MockClientFactory:
    return MockClientFactory(region="us-east-1")


@pytest.fixture
def console_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def console(console_stream: io.StringIO) -> BuildConsole:
    return BuildConsole(stream=console_stream)


@pytest.fixture
def make_build() -> Callable[..., dict[str, Any]]:
    """Return a builder for CodeBuild ``Build`` dicts as boto3 returns them."""

    def _make_build(status: str = "IN_PROGRESS", **overrides: Any) -> dict[str, Any]:
        build: dict[str, Any] = {
            "id": BUILD_ID,
            "arn": BUILD_ARN,
            "buildStatus": status,
            "currentPhase": "BUILD",
            "startTime": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            "phases": [
                {"phaseType": "SUBMITTED", "phaseStatus": "SUCCEEDED", "durationInSeconds": 0},
                {"phaseType": "BUILD"},
            ],
            "logs": {
                "groupName": "/aws/codebuild/my-project",
                "streamName": "0f4c2b6e-1234",
                "deepLink": "https://console.aws.amazon.com/cloudwatch/home#logEvent",
            },
            "artifacts": {"location": "arn:aws:s3:::artifact-bucket/my-project"},
        }
        build.update(overrides)
        return build

    return _make_build


@pytest.fixture
def make_project() -> Callable[..., dict[str, Any]]:
    """Return a builder for CodeBuild ``Project`` dicts."""

    def _make_project(
        source_type: str = "S3",
        source_location: str = "source-bucket/source.zip",
        artifacts_type: str = "S3",
        artifacts_location: str = "artifact-bucket",
    ) -> dict[str, Any]:
        return {
            "name": "my-project",
            "source": {"type": source_type, "location": source_location},
            "artifacts": {"type": artifacts_type, "location": artifacts_location},
        }

    return _make_project
