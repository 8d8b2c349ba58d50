"""Source archives up to S3 and build artifacts back down."""

from codebuild_runner.packaging.archiver import package_source, trim_prefix, zip_source
from codebuild_runner.packaging.downloader import ArtifactDownloader
from codebuild_runner.packaging.uploader import SourcePackager

__all__ = [
    "ArtifactDownloader",
    "SourcePackager",
    "package_source",
    "trim_prefix",
    "zip_source",
]
