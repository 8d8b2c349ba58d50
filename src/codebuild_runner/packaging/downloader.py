from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from codebuild_runner.core.exceptions import ConfigurationError
from codebuild_runner.core.types import BuildArtifacts, BuildSnapshot
from codebuild_runner.packaging.archiver import trim_prefix
from codebuild_runner.utils.console import BuildConsole
from codebuild_runner.utils.s3 import bucket_from_object_arn, key_from_object_arn

logger = structlog.get_logger(__name__)

BUILD_REQUIRED_ERROR = "A build is required to download its artifacts"


class ArtifactDownloader:
    """Copies a finished build's S3 artifacts to a local directory.

    Download problems are reported on the console and never fail the build.
    """

    def __init__(self, s3_client: Any, *, console: BuildConsole | None = None) -> None:
        self._s3 = s3_client
        self._console = console or BuildConsole()

    def download_build_artifacts(
        self, build: BuildSnapshot | None, artifact_root: str | Path | None
    ) -> list[Path]:
        """Download primary then secondary artifacts of *build* below *artifact_root*.

        Returns:
            The local paths written.
        """
        if build is None:
            raise ConfigurationError(BUILD_REQUIRED_ERROR, code="BUILD_REQUIRED")

        written: list[Path] = []
        for artifacts in [build.artifacts, *build.secondary_artifacts]:
            written.extend(self._download(artifacts, artifact_root))
        return written

    def _download(
        self, artifacts: BuildArtifacts | None, artifact_root: str | Path | None
    ) -> list[Path]:
        if artifacts is None or not artifacts.location or artifact_root is None:
            return []

        root = Path(artifact_root)
        try:
            bucket = bucket_from_object_arn(artifacts.location)
            key = key_from_object_arn(artifacts.location)
            if artifacts.sha256sum:
                # A checksum means a single packaged (zip) object.
                target = root / key
                self._console.log(
                    f"Downloading artifact from location '{artifacts.location}' "
                    f"to path: {target.resolve()}"
                )
                target.parent.mkdir(parents=True, exist_ok=True)
                self._s3.download_file(Bucket=bucket, Key=key, Filename=str(target))
                return [target]

            self._console.log(
                f"Downloading artifact from location '{artifacts.location}' "
                f"to path: {root.resolve()}"
            )
            return self._download_prefix(bucket, key, root)
        except (ClientError, BotoCoreError, OSError, ValueError, ConfigurationError) as exc:
            logger.warning("artifact_download_failed", location=artifacts.location, error=str(exc))
            self._console.log(f"Download failed: {exc}")
            return []

    def _download_prefix(self, bucket: str, prefix: str, root: Path) -> list[Path]:
        written: list[Path] = []
        prefix = prefix.rstrip("/")
        # List as a folder so sibling keys such as "<prefix>-old/..." stay out.
        list_prefix = f"{prefix}/" if prefix else ""
        paginator = self._s3.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=bucket, Prefix=list_prefix):
            for obj in page.get("Contents") or []:
                object_key = obj["Key"]
                if object_key.endswith("/") or not object_key.startswith(list_prefix):
                    continue
                relative = trim_prefix(object_key, prefix) if prefix else object_key
                target = root / relative
                target.parent.mkdir(parents=True, exist_ok=True)
                self._s3.download_file(Bucket=bucket, Key=object_key, Filename=str(target))
                written.append(target)
        return written
