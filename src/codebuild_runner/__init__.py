"""Run AWS CodeBuild builds from a CI pipeline and report the result."""

from codebuild_runner.__version__ import __version__
from codebuild_runner.aws.clients import RemoteClientFactory
from codebuild_runner.build.orchestrator import BuildOrchestrator, run_build
from codebuild_runner.core.config import BuildConfig, ClientConfig
from codebuild_runner.core.constants import (
    BuildStatus,
    OrchestratorState,
    ResultStatus,
    SourceControlType,
)
from codebuild_runner.core.exceptions import (
    BuildInterruptedError,
    CodeBuildRunnerError,
    ConfigurationError,
    PreconditionError,
    RemoteCallError,
)
from codebuild_runner.core.types import BuildResult, BuildSnapshot, UploadResult
from codebuild_runner.monitoring.dashboard import ResultView
from codebuild_runner.monitoring.logs import LogAggregator
from codebuild_runner.packaging.uploader import SourcePackager
from codebuild_runner.utils.logging import configure_logging

__all__ = [
    "__version__",
    "BuildConfig",
    "BuildInterruptedError",
    "BuildOrchestrator",
    "BuildResult",
    "BuildSnapshot",
    "BuildStatus",
    "ClientConfig",
    "CodeBuildRunnerError",
    "ConfigurationError",
    "LogAggregator",
    "OrchestratorState",
    "PreconditionError",
    "RemoteCallError",
    "RemoteClientFactory",
    "ResultStatus",
    "ResultView",
    "SourceControlType",
    "SourcePackager",
    "UploadResult",
    "configure_logging",
    "run_build",
]
