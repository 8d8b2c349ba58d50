"""Build progress: latest log window and the live result view."""

from codebuild_runner.monitoring.dashboard import ResultView
from codebuild_runner.monitoring.logs import NO_LOGS_MESSAGE, LogAggregator

__all__ = [
    "LogAggregator",
    "NO_LOGS_MESSAGE",
    "ResultView",
]
