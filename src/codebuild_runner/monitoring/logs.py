"""Latest-window CloudWatch Logs reader for a running build."""

from __future__ import annotations

import re
from typing import Any

import structlog

from codebuild_runner.core.constants import LOG_WINDOW_SIZE, MAX_LOG_LINE_LENGTH
from codebuild_runner.core.types import LogsLocation
from codebuild_runner.utils.s3 import format_with_ellipsis

logger = structlog.get_logger(__name__)

NO_LOGS_MESSAGE = "No CloudWatch logs found for this build."

_BRACKETED_PREFIX = re.compile(r"^\[[^\]]*\]\s?")


def format_log_line(message: str) -> str:
    """Prepare one log event message for display.

    ``"[Container] entry 1\\n"`` → ``"entry 1"``. Lines longer than
    :data:`MAX_LOG_LINE_LENGTH` are cut and end in ``...``.
    """
    line = _BRACKETED_PREFIX.sub("", message, count=1).rstrip("\r\n")
    return format_with_ellipsis(line, MAX_LOG_LINE_LENGTH)


class LogAggregator:
    """Fetches the most recent log events of a build's log stream.

    Each :meth:`poll` replaces :attr:`latest_logs` with the newest window of
    at most :data:`LOG_WINDOW_SIZE` lines, in the order CloudWatch returns
    them. Log fetching is best-effort: failures become a one-line message
    and :meth:`poll` never raises.

    Usage::

        aggregator = LogAggregator(factory.logs_client())
        aggregator.logs_location = snapshot.logs
        lines = aggregator.poll()
    """

    def __init__(self, logs_client: Any, *, window_size: int = LOG_WINDOW_SIZE) -> None:
        self._client = logs_client
        self._window_size = window_size
        self._logs_location: LogsLocation | None = None
        self._latest_logs: list[str] = [NO_LOGS_MESSAGE]

    @property
    def logs_location(self) -> LogsLocation | None:
        return self._logs_location

    @logs_location.setter
    def logs_location(self, location: LogsLocation | None) -> None:
        self._logs_location = location

    @property
    def latest_logs(self) -> list[str]:
        return list(self._latest_logs)

    def poll(self) -> list[str]:
        """Fetch the latest window and return it (also kept in :attr:`latest_logs`)."""
        location = self._logs_location
        if location is None or not location.is_set:
            self._latest_logs = [NO_LOGS_MESSAGE]
            return self.latest_logs

        try:
            response = self._client.get_log_events(
                logGroupName=location.group_name,
                logStreamName=location.stream_name,
                limit=self._window_size,
                startFromHead=False,
            )
        except Exception as exc:
            logger.warning(
                "log_fetch_failed",
                group=location.group_name,
                stream=location.stream_name,
                error=str(exc),
            )
            self._latest_logs = [str(exc)]
            return self.latest_logs

        lines = [format_log_line(event.get("message", "")) for event in response.get("events") or []]
        for line in lines:
            logger.debug("build_log", line=line)
        self._latest_logs = lines
        return self.latest_logs
