from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

from codebuild_runner.core.exceptions import PreconditionError
from codebuild_runner.core.types import UploadResult
from codebuild_runner.packaging.archiver import package_source
from codebuild_runner.utils.console import BuildConsole

logger = structlog.get_logger(__name__)

NOT_VERSIONED_BUCKET_ERROR = "A versioned S3 bucket is required."


class SourcePackager:
    """Uploads a zipped workspace to a project's versioned S3 source location.

    Args:
        s3_client: A boto3 S3 client.
        bucket: Source bucket of the CodeBuild project.
        key: Object key of the project's source archive.
        sse_algorithm: When set, the object is stored with ``AES256``
            server-side encryption.
        console: Host console for progress messages.
    """

    def __init__(
        self,
        s3_client: Any,
        bucket: str,
        key: str,
        *,
        sse_algorithm: str | None = None,
        console: BuildConsole | None = None,
    ) -> None:
        self._s3 = s3_client
        self.bucket = bucket
        self.key = key
        self._sse_algorithm = sse_algorithm
        self._console = console or BuildConsole()

    def ensure_versioned(self) -> None:
        """Raise :class:`PreconditionError` unless the bucket has versioning enabled."""
        response = self._s3.get_bucket_versioning(Bucket=self.bucket)
        if response.get("Status") != "Enabled":
            raise PreconditionError(
                NOT_VERSIONED_BUCKET_ERROR,
                code="NOT_VERSIONED",
                details={"bucket": self.bucket},
            )

    def upload(self, workspace: str | Path) -> UploadResult:
        """Zip *workspace*, upload it, and return the new object version.

        Versioning is checked before anything is zipped or uploaded.

        Raises:
            PreconditionError: If the bucket is not versioned, or S3 returns
                no version id for the new object.
            ConfigurationError: If *workspace* is not a directory.
        """
        self.ensure_versioned()

        archive_path, md5 = package_source(workspace)
        location = f"{self.bucket}/{self.key}"
        try:
            params: dict[str, Any] = {
                "Bucket": self.bucket,
                "Key": self.key,
                "ContentMD5": md5,
                "ContentLength": archive_path.stat().st_size,
            }
            if self._sse_algorithm:
                params["ServerSideEncryption"] = "AES256"
            self._console.log(
                f"Uploading code to S3 at location {location}. MD5 checksum is {md5}"
            )
            with open(archive_path, "rb") as body:
                response = self._s3.put_object(Body=body, **params)
        finally:
            archive_path.unlink(missing_ok=True)

        version_id = response.get("VersionId")
        if not version_id:
            raise PreconditionError(
                NOT_VERSIONED_BUCKET_ERROR,
                code="NOT_VERSIONED",
                details={"bucket": self.bucket},
            )
        logger.info("source_uploaded", location=location, version_id=version_id)
        return UploadResult(location=location, version_id=version_id)
