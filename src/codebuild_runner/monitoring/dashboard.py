"""Live projection of one build's progress for the host to render."""

from __future__ import annotations

from datetime import datetime

import structlog

from codebuild_runner.core.constants import BuildStatus, PhaseType, ResultStatus
from codebuild_runner.core.types import BuildPhase
from codebuild_runner.monitoring.logs import NO_LOGS_MESSAGE
from codebuild_runner.utils.s3 import format_with_ellipsis

logger = structlog.get_logger(__name__)

MAX_DASHBOARD_NAME_LENGTH = 15

_ERROR_PHASE_STATUSES = frozenset(
    {BuildStatus.FAILED, BuildStatus.FAULT, BuildStatus.CLIENT_ERROR}
)


class ResultView:
    """Append-style view of a build's status, phases, logs and links.

    Owned by a single invocation. The orchestrator writes to it through the
    ``initialize``/``update_*``/``append_*``/``mark_*`` methods; everything
    else is read-only for the host.

    Usage::

        view = ResultView()
        result = run_build(config, view=view)
        print(view.build_status, view.logs[-1])
    """

    def __init__(self) -> None:
        self._initialized = False
        self.build_id: str = ""
        self.build_arn: str | None = None
        self.start_time: datetime | None = None
        self.artifact_url: str = ""
        self.dashboard_url: str = ""
        self.artifact_bucket: str | None = None

        self._status: BuildStatus | None = None
        self._phases: list[BuildPhase] = []
        self._logs: list[str] = [NO_LOGS_MESSAGE]
        self._log_url: str | None = None
        self._outcome: ResultStatus = ResultStatus.IN_PROGRESS

    # ------------------------------------------------------------------ #
    # Writers
    # ------------------------------------------------------------------ #

    def initialize(
        self,
        build_id: str,
        *,
        build_arn: str | None = None,
        start_time: datetime | None = None,
        artifact_url: str = "",
        dashboard_url: str = "",
        artifact_bucket: str | None = None,
    ) -> None:
        """Record the static build metadata. May only be called once."""
        if self._initialized:
            raise RuntimeError(f"ResultView for build {self.build_id} is already initialized")
        self._initialized = True
        self.build_id = build_id
        self.build_arn = build_arn
        self.start_time = start_time
        self.artifact_url = artifact_url
        self.dashboard_url = dashboard_url
        self.artifact_bucket = artifact_bucket
        logger.debug("result_view_initialized", build_id=build_id)

    def update_status(self, status: BuildStatus) -> None:
        self._status = status

    def replace_phases(self, phases: list[BuildPhase]) -> None:
        self._phases = list(phases)

    def append_logs(self, new_logs: list[str]) -> None:
        """Merge a freshly fetched log window into the accumulated log.

        While the only accumulated line is the "no logs" placeholder, a window
        that starts with a real line replaces it and any other window is
        ignored. Otherwise the whole window is appended, repeats included.
        """
        if self._logs == [NO_LOGS_MESSAGE]:
            if not new_logs or new_logs[0] == NO_LOGS_MESSAGE:
                return
            self._logs = []
        self._logs.extend(new_logs)

    def set_log_url(self, url: str | None) -> None:
        """Record the CloudWatch deep link; the first non-empty link wins."""
        if url and self._log_url is None:
            self._log_url = url

    def mark_succeeded(self) -> None:
        self._outcome = ResultStatus.SUCCESS

    def mark_failed(self) -> None:
        self._outcome = ResultStatus.FAILURE

    def mark_stopped(self) -> None:
        self._outcome = ResultStatus.STOPPED

    # ------------------------------------------------------------------ #
    # Readers
    # ------------------------------------------------------------------ #

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def status(self) -> BuildStatus | None:
        return self._status

    @property
    def build_status(self) -> str:
        """Status text for display; ``IN_PROGRESS`` reads as ``IN PROGRESS``."""
        if self._status is None:
            return ""
        if self._status == BuildStatus.IN_PROGRESS:
            return "IN PROGRESS"
        return str(self._status)

    @property
    def logs(self) -> tuple[str, ...]:
        return tuple(self._logs)

    @property
    def log_url(self) -> str | None:
        return self._log_url

    @property
    def phases(self) -> tuple[BuildPhase, ...]:
        return tuple(self._phases)

    def display_phases(self) -> list[BuildPhase]:
        """Return copies of the phases with the latest one shown as running.

        The last phase is shown with a zero duration. If it has no status
        yet it reads ``SUCCEEDED`` when it is the completion phase and
        ``IN_PROGRESS`` otherwise. Stored phases are left untouched.
        """
        phases = [p.model_copy(deep=True) for p in self._phases]
        if not phases:
            return phases
        latest = phases[-1]
        update: dict[str, object] = {"duration_in_seconds": 0}
        if latest.phase_status is None:
            update["phase_status"] = (
                BuildStatus.SUCCEEDED if latest.is_completion else BuildStatus.IN_PROGRESS
            )
        phases[-1] = latest.model_copy(update=update)
        return phases

    @property
    def current_phase(self) -> str:
        return self._phases[-1].phase_type if self._phases else "-"

    @property
    def finish_time(self) -> str:
        if self._phases and self._phases[-1].phase_type == PhaseType.COMPLETED:
            start = self._phases[-1].start_time
            return str(start) if start is not None else "-"
        return "-"

    def _error_phase(self) -> BuildPhase | None:
        for phase in self._phases:
            if phase.phase_status in _ERROR_PHASE_STATUSES:
                return phase
        return None

    @property
    def phase_error_message(self) -> str:
        """First failing phase's message and status code, or ``""``."""
        phase = self._error_phase()
        if phase is None or not phase.contexts:
            return ""
        context = phase.contexts[0]
        message = (context.message or "").replace("'", "").replace("\n", "")
        return f"{message} (status code: {context.status_code})"

    @property
    def error_phase_type(self) -> str:
        phase = self._error_phase()
        return phase.phase_type if phase is not None else ""

    @property
    def display_name(self) -> str:
        return "CodeBuild: " + format_with_ellipsis(self.build_id, MAX_DASHBOARD_NAME_LENGTH)

    @property
    def url_name(self) -> str:
        """The build id without its ``project:`` part."""
        return self.build_id.partition(":")[2] or self.build_id

    @property
    def outcome(self) -> ResultStatus:
        return self._outcome

    @property
    def succeeded(self) -> bool | None:
        """``True``/``False`` once the build finished, ``None`` while it runs."""
        if self._outcome == ResultStatus.IN_PROGRESS:
            return None
        return self._outcome == ResultStatus.SUCCESS
