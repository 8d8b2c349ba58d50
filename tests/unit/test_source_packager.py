"""Tests for SourcePackager."""
from __future__ import annotations

import io
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

from codebuild_runner.aws.mock import MockServiceClient
from codebuild_runner.core.exceptions import ConfigurationError, PreconditionError
from codebuild_runner.packaging.uploader import NOT_VERSIONED_BUCKET_ERROR, SourcePackager
from codebuild_runner.utils.console import BuildConsole


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "ws"
    root.mkdir()
    (root / "main.c").write_text("int main(void) { return 0; }\n")
    return root


@pytest.fixture
def s3() -> MockServiceClient:
    client = MockServiceClient("s3")
    client.register("get_bucket_versioning", {"Status": "Enabled"})
    client.register("put_object", {"VersionId": "3HL4kqtJlcpXroDTDmJ+rmSpXd3dIbrHY"})
    return client


def _packager(s3: MockServiceClient, **kwargs: object) -> SourcePackager:
    return SourcePackager(
        s3, "source-bucket", "app/source.zip", console=BuildConsole(io.StringIO()), **kwargs
    )


def test_upload_returns_location_and_version(s3: MockServiceClient, workspace: Path) -> None:
    result = _packager(s3).upload(workspace)

    assert result.location == "source-bucket/app/source.zip"
    assert result.version_id == "3HL4kqtJlcpXroDTDmJ+rmSpXd3dIbrHY"


def test_upload_sends_digest_and_length(s3: MockServiceClient, workspace: Path) -> None:
    _packager(s3).upload(workspace)

    put = s3.last_call("put_object")
    assert put["Bucket"] == "source-bucket"
    assert put["Key"] == "app/source.zip"
    assert put["ContentLength"] > 0
    assert put["ContentMD5"].endswith("==")
    assert "ServerSideEncryption" not in put


def test_upload_requests_encryption(s3: MockServiceClient, workspace: Path) -> None:
    _packager(s3, sse_algorithm="AES256").upload(workspace)

    assert s3.last_call("put_object")["ServerSideEncryption"] == "AES256"


def test_versioning_checked_before_upload(s3: MockServiceClient, workspace: Path) -> None:
    _packager(s3).upload(workspace)

    assert [name for name, _ in s3.calls] == ["get_bucket_versioning", "put_object"]
    assert s3.last_call("get_bucket_versioning") == {"Bucket": "source-bucket"}


@pytest.mark.parametrize("response", [{}, {"Status": "Suspended"}])
def test_non_versioned_bucket_rejected(
    s3: MockServiceClient, workspace: Path, response: dict[str, str]
) -> None:
    s3.register("get_bucket_versioning", response)

    with pytest.raises(PreconditionError, match=NOT_VERSIONED_BUCKET_ERROR):
        _packager(s3).upload(workspace)
    s3.assert_not_called("put_object")


def test_missing_version_id_is_fatal(s3: MockServiceClient, workspace: Path) -> None:
    s3.register("put_object", {"ETag": '"abc"'})

    with pytest.raises(PreconditionError):
        _packager(s3).upload(workspace)


def test_network_errors_propagate(s3: MockServiceClient, workspace: Path) -> None:
    s3.register(
        "put_object",
        ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "PutObject"),
    )

    with pytest.raises(ClientError):
        _packager(s3).upload(workspace)


def test_missing_workspace_is_configuration_error(s3: MockServiceClient, tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        _packager(s3).upload(tmp_path / "missing")
    s3.assert_not_called("put_object")
