"""Tests for ArtifactDownloader."""
from __future__ import annotations

import io
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

from codebuild_runner.aws.mock import MockServiceClient
from codebuild_runner.core.exceptions import ConfigurationError
from codebuild_runner.core.types import BuildArtifacts, BuildSnapshot
from codebuild_runner.packaging.downloader import ArtifactDownloader
from codebuild_runner.utils.console import BuildConsole


def _snapshot(
    artifacts: BuildArtifacts | None = None,
    secondary: list[BuildArtifacts] | None = None,
) -> BuildSnapshot:
    return BuildSnapshot(
        id="p:1", artifacts=artifacts, secondary_artifacts=secondary or []
    )


@pytest.fixture
def stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def s3() -> MockServiceClient:
    client = MockServiceClient("s3")
    client.register("download_file", {})
    return client


def test_packaged_artifact_downloaded_as_single_object(
    s3: MockServiceClient, stream: io.StringIO, tmp_path: Path
) -> None:
    artifacts = BuildArtifacts(location="arn:aws:s3:::bucket/out/app.zip", sha256sum="ab12")
    downloader = ArtifactDownloader(s3, console=BuildConsole(stream))

    written = downloader.download_build_artifacts(_snapshot(artifacts), tmp_path)

    assert written == [tmp_path / "out" / "app.zip"]
    assert (tmp_path / "out").is_dir()
    assert s3.last_call("download_file") == {
        "Bucket": "bucket",
        "Key": "out/app.zip",
        "Filename": str(tmp_path / "out" / "app.zip"),
    }


def test_unpackaged_artifact_downloads_prefix(
    s3: MockServiceClient, stream: io.StringIO, tmp_path: Path
) -> None:
    s3.register_pages(
        "list_objects_v2",
        [
            {"Contents": [{"Key": "out/a.txt"}, {"Key": "out/dir/"}]},
            {"Contents": [{"Key": "out/dir/b.txt"}]},
        ],
    )
    artifacts = BuildArtifacts(location="arn:aws:s3:::bucket/out")
    downloader = ArtifactDownloader(s3, console=BuildConsole(stream))

    written = downloader.download_build_artifacts(_snapshot(artifacts), tmp_path)

    assert written == [tmp_path / "a.txt", tmp_path / "dir" / "b.txt"]
    assert s3.last_call("list_objects_v2") == {"Bucket": "bucket", "Prefix": "out/"}
    assert s3.call_count("download_file") == 2


def test_sibling_keys_outside_prefix_are_skipped(
    s3: MockServiceClient, stream: io.StringIO, tmp_path: Path
) -> None:
    s3.register_pages(
        "list_objects_v2",
        [{"Contents": [{"Key": "my-project-old/a.txt"}, {"Key": "my-project/b.txt"}]}],
    )
    artifacts = BuildArtifacts(location="arn:aws:s3:::bkt/my-project")
    downloader = ArtifactDownloader(s3, console=BuildConsole(stream))

    written = downloader.download_build_artifacts(_snapshot(artifacts), tmp_path)

    assert written == [tmp_path / "b.txt"]
    assert s3.last_call("list_objects_v2") == {"Bucket": "bkt", "Prefix": "my-project/"}
    assert s3.last_call("download_file")["Key"] == "my-project/b.txt"
    assert "Download failed" not in stream.getvalue()


def test_bucket_root_artifact_lists_whole_bucket(
    s3: MockServiceClient, stream: io.StringIO, tmp_path: Path
) -> None:
    s3.register_pages("list_objects_v2", [{"Contents": [{"Key": "a.txt"}]}])
    downloader = ArtifactDownloader(s3, console=BuildConsole(stream))

    written = downloader.download_build_artifacts(
        _snapshot(BuildArtifacts(location="bkt")), tmp_path
    )

    assert written == [tmp_path / "a.txt"]
    assert s3.last_call("list_objects_v2") == {"Bucket": "bkt", "Prefix": ""}


def test_primary_then_secondary(
    s3: MockServiceClient, stream: io.StringIO, tmp_path: Path
) -> None:
    primary = BuildArtifacts(location="bucket/primary.zip", sha256sum="1")
    secondary = BuildArtifacts(location="bucket/secondary.zip", sha256sum="2")
    downloader = ArtifactDownloader(s3, console=BuildConsole(stream))

    downloader.download_build_artifacts(_snapshot(primary, [secondary]), tmp_path)

    keys = [kwargs["Key"] for name, kwargs in s3.calls if name == "download_file"]
    assert keys == ["primary.zip", "secondary.zip"]


def test_missing_location_or_root_is_skipped(
    s3: MockServiceClient, stream: io.StringIO, tmp_path: Path
) -> None:
    downloader = ArtifactDownloader(s3, console=BuildConsole(stream))

    assert downloader.download_build_artifacts(_snapshot(BuildArtifacts()), tmp_path) == []
    assert downloader.download_build_artifacts(
        _snapshot(BuildArtifacts(location="bucket/x.zip", sha256sum="1")), None
    ) == []
    assert s3.calls == []


def test_download_failure_reported_on_console(
    s3: MockServiceClient, stream: io.StringIO, tmp_path: Path
) -> None:
    s3.register(
        "download_file",
        ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject"),
    )
    downloader = ArtifactDownloader(s3, console=BuildConsole(stream))

    written = downloader.download_build_artifacts(
        _snapshot(BuildArtifacts(location="bucket/x.zip", sha256sum="1")), tmp_path
    )

    assert written == []
    assert "Download failed:" in stream.getvalue()


def test_snapshot_required(s3: MockServiceClient, tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        ArtifactDownloader(s3).download_build_artifacts(None, tmp_path)
