"""Tests for utils/s3.py."""
from __future__ import annotations

import pytest

from codebuild_runner.utils.s3 import (
    artifact_console_url,
    bucket_from_object_arn,
    build_console_url,
    format_with_ellipsis,
    key_from_object_arn,
)


@pytest.mark.parametrize(
    "location",
    [
        "arn:aws:s3:::my_corporate_bucket/exampleobject.png",
        "arn:aws-cn:s3:::my_corporate_bucket/exampleobject.png",
        "my_corporate_bucket/exampleobject.png",
        "my_corporate_bucket",
    ],
)
def test_bucket_from_object_arn(location: str) -> None:
    assert bucket_from_object_arn(location) == "my_corporate_bucket"


def test_bucket_from_empty_location_rejected() -> None:
    with pytest.raises(ValueError):
        bucket_from_object_arn("")


def test_key_from_object_arn() -> None:
    assert key_from_object_arn("arn:aws:s3:::my_corporate_bucket/exampleobject.png") == "exampleobject.png"
    assert key_from_object_arn("bucket/dir/file.zip") == "dir/file.zip"
    assert key_from_object_arn("bucket") == ""


def test_format_with_ellipsis() -> None:
    assert format_with_ellipsis("short", 10) == "short"
    assert format_with_ellipsis("abcdefghijkl", 10) == "abcdefg..."
    assert len(format_with_ellipsis("z" * 250, 200)) == 200


def test_artifact_console_url() -> None:
    assert artifact_console_url("my-bucket/out dir", "S3", "eu-west-1") == (
        "https://s3.console.aws.amazon.com/s3/buckets/my-bucket%2Fout+dir?region=eu-west-1"
    )


@pytest.mark.parametrize(
    "location, artifacts_type",
    [("", "S3"), (None, "S3"), ("bucket", "NO_ARTIFACTS"), ("bucket", None)],
)
def test_artifact_console_url_empty(location: str | None, artifacts_type: str | None) -> None:
    assert artifact_console_url(location, artifacts_type, "us-east-1") == ""


def test_build_console_url() -> None:
    assert build_console_url("p:1", "us-west-2") == (
        "https://us-west-2.console.aws.amazon.com/codebuild/home"
        "?region=us-west-2#builds/p:1/view/new"
    )
