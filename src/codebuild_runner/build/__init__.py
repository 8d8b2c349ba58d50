"""Build lifecycle: start, poll and report one CodeBuild build."""

from codebuild_runner.build.orchestrator import BuildOrchestrator, run_build

__all__ = [
    "BuildOrchestrator",
    "run_build",
]
