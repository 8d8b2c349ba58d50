"""BuildOrchestrator — upload, start and poll one CodeBuild build to completion."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable

import structlog
from botocore.exceptions import BotoCoreError

from codebuild_runner.aws.clients import (
    DEFAULT_CREDENTIALS_WARNING,
    ClientFactoryProtocol,
    RemoteClientFactory,
)
from codebuild_runner.core.config import BuildConfig, ClientConfig
from codebuild_runner.core.constants import (
    POLL_INTERVAL_SECONDS,
    S3_SOURCE_TYPE,
    BuildStatus,
    OrchestratorState,
)
from codebuild_runner.core.exceptions import (
    BuildInterruptedError,
    ConfigurationError,
    PreconditionError,
    RemoteCallError,
)
from codebuild_runner.core.types import BuildResult, BuildSnapshot, ProjectInfo
from codebuild_runner.core.validation import (
    CONFIGURED_IMPROPERLY_ERROR,
    parse_int,
    validate_build_config,
)
from codebuild_runner.monitoring.dashboard import ResultView
from codebuild_runner.monitoring.logs import NO_LOGS_MESSAGE, LogAggregator
from codebuild_runner.packaging.downloader import ArtifactDownloader
from codebuild_runner.packaging.uploader import SourcePackager
from codebuild_runner.utils.console import BuildConsole
from codebuild_runner.utils.s3 import (
    artifact_console_url,
    bucket_from_object_arn,
    build_console_url,
    key_from_object_arn,
)

logger = structlog.get_logger(__name__)

INVALID_PROJECT_ERROR = "Please select a project with S3 source type."
BUILD_CARDINALITY_ERROR = "Multiple builds mapped to this build id."

FactoryLike = ClientFactoryProtocol | Callable[[ClientConfig], ClientFactoryProtocol]


class BuildOrchestrator:
    """Runs a single CodeBuild build from start to a terminal status.

    One orchestrator serves exactly one invocation. It validates the
    configuration, optionally uploads the workspace as the build source,
    starts the build and polls it every *poll_interval* seconds, merging
    status, phases and the latest log window into a :class:`ResultView`.

    Args:
        config: The invocation's :class:`BuildConfig`.
        factory: A client factory instance, or a callable building one from
            a :class:`ClientConfig` (default :class:`RemoteClientFactory`).
        view: The :class:`ResultView` to update. A fresh one is created when
            omitted.
        console: Host console for human-readable progress lines.
        sleep: Blocking sleep used between polls. It may raise
            :class:`KeyboardInterrupt` or :class:`BuildInterruptedError` to
            abort the run.
        poll_interval: Seconds between two ``batch_get_builds`` calls.

    Example::

        orchestrator = BuildOrchestrator(BuildConfig.from_env(project_name="api"))
        result = orchestrator.run()
        print(result.status, result.error_message)
    """

    def __init__(
        self,
        config: BuildConfig,
        *,
        factory: FactoryLike = RemoteClientFactory,
        view: ResultView | None = None,
        console: BuildConsole | None = None,
        sleep: Callable[[float], None] = time.sleep,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self._config = config
        self._factory_source = factory
        self._view: ResultView | None = view if view is not None else ResultView()
        self._console = console or BuildConsole()
        self._sleep = sleep
        self._poll_interval = poll_interval
        self._state = OrchestratorState.NOT_STARTED

        self._result = BuildResult()
        self._build_id: str | None = None
        # Per-run collaborators, released when run() returns.
        self._factory: ClientFactoryProtocol | None = None
        self._codebuild: Any = None
        self._log_aggregator: LogAggregator | None = None
        self._packager: SourcePackager | None = None

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def view(self) -> ResultView | None:
        return self._view

    @property
    def result(self) -> BuildResult:
        return self._result

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #

    def run(self) -> BuildResult:
        """Run the build and return its :class:`BuildResult`.

        Failures are folded into the result and never leave it
        ``IN_PROGRESS``. Interruption marks the result stopped and is
        re-raised; the remote build keeps running.
        """
        if self._state != OrchestratorState.NOT_STARTED:
            raise RuntimeError("BuildOrchestrator.run() may only be called once")

        result = self._result
        try:
            self._run()
        except (KeyboardInterrupt, BuildInterruptedError):
            self._interrupted()
            raise
        finally:
            self._release()
        return result

    def _run(self) -> None:
        try:
            env_variables = validate_build_config(self._config)
            self._factory = self._create_factory()
        except ConfigurationError as exc:
            self._console.log(CONFIGURED_IMPROPERLY_ERROR, str(exc))
            self._result.set_failure(CONFIGURED_IMPROPERLY_ERROR, str(exc))
            self._fail()
            logger.warning("build_configuration_invalid", error=str(exc), code=exc.code)
            return

        if self._factory.uses_default_credentials:
            self._console.log(DEFAULT_CREDENTIALS_WARNING)
        self._console.log(self._factory.credentials_descriptor)

        try:
            self._codebuild = self._factory.codebuild_client()
            project = self._fetch_project()

            source_version = self._config.source_version or ""
            if self._config.uses_workspace_source:
                self._state = OrchestratorState.UPLOADING
                source_version = self._upload_source(project)

            self._state = OrchestratorState.STARTING
            self._build_id = self._start_build(source_version, env_variables)

            self._state = OrchestratorState.POLLING
            snapshot = self._poll(project)
        except (KeyboardInterrupt, BuildInterruptedError):
            raise
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.error(
                "build_error",
                state=str(self._state),
                build_id=self._build_id,
                error=message,
            )
            self._console.log(message)
            self._result.set_failure(message)
            self._fail()
            return

        self._finish(snapshot)

    # ------------------------------------------------------------------ #
    # Phases
    # ------------------------------------------------------------------ #

    def _create_factory(self) -> ClientFactoryProtocol:
        source = self._factory_source
        # A factory class also satisfies the Protocol's attribute check.
        if not isinstance(source, type) and isinstance(source, ClientFactoryProtocol):
            return source
        return source(self._config.client)

    def _fetch_project(self) -> ProjectInfo:
        name = self._config.project_name
        response = self._codebuild.batch_get_projects(names=[name])
        projects = response.get("projects") or []
        if not projects:
            raise RemoteCallError(
                f"Project {name} does not exist.", code="PROJECT_NOT_FOUND"
            )
        return ProjectInfo.from_api(projects[0])

    def _upload_source(self, project: ProjectInfo) -> str:
        if project.source_type != S3_SOURCE_TYPE or not project.source_location:
            raise PreconditionError(
                INVALID_PROJECT_ERROR,
                code="INVALID_SOURCE_TYPE",
                details={"source_type": project.source_type},
            )

        assert self._factory is not None
        self._packager = SourcePackager(
            self._factory.s3_client(),
            bucket_from_object_arn(project.source_location),
            key_from_object_arn(project.source_location),
            sse_algorithm=self._config.sse_algorithm,
            console=self._console,
        )
        upload = self._packager.upload(self._config.workspace)
        self._console.log(
            f"S3 object version id for uploaded source is {upload.version_id}"
        )
        return upload.version_id

    def _start_build(self, source_version: str, env_variables: list[dict[str, str]]) -> str:
        config = self._config
        params: dict[str, Any] = {"projectName": config.project_name}
        if source_version:
            params["sourceVersion"] = source_version
        artifacts_override = self._artifacts_override()
        if artifacts_override:
            params["artifactsOverride"] = artifacts_override
        if env_variables:
            params["environmentVariablesOverride"] = env_variables
        if config.buildspec_override:
            params["buildspecOverride"] = config.buildspec_override
        timeout = parse_int(config.build_timeout_override)
        if timeout is not None:
            params["timeoutInMinutesOverride"] = timeout

        self._console.log(self._start_message(source_version))
        response = self._codebuild.start_build(**params)
        build_id = (response.get("build") or {}).get("id")
        if not build_id:
            raise RemoteCallError("CodeBuild did not return a build id.", code="NO_BUILD_ID")

        self._console.log(f"Build Id: {build_id}")
        logger.info("build_started", project=config.project_name, build_id=build_id)
        return build_id

    def _poll(self, project: ProjectInfo) -> BuildSnapshot:
        assert self._factory is not None and self._build_id is not None
        self._log_aggregator = LogAggregator(self._factory.logs_client())

        while True:
            snapshot = self._fetch_build(self._build_id)
            if not self._view.initialized:
                self._initialize_view(snapshot, project)
            self._update_view(snapshot)
            logger.debug(
                "build_polled",
                build_id=snapshot.id,
                status=str(snapshot.status),
                phase=snapshot.current_phase,
            )
            if snapshot.status.is_terminal:
                return snapshot
            self._sleep(self._poll_interval)

    def _finish(self, snapshot: BuildSnapshot) -> None:
        status = snapshot.status
        if status == BuildStatus.SUCCEEDED:
            self._state = OrchestratorState.SUCCEEDED
            self._view.mark_succeeded()
            self._result.set_success()
            logger.info("build_succeeded", build_id=snapshot.id)
            if self._config.artifact_download_dir is not None:
                self._download_artifacts(snapshot, self._config.artifact_download_dir)
        elif status == BuildStatus.STOPPED:
            self._state = OrchestratorState.STOPPED
            self._view.mark_stopped()
            message = f"Build {snapshot.id} was stopped"
            self._console.log(message)
            self._result.set_stopped(message)
            logger.info("build_stopped", build_id=snapshot.id)
        else:
            primary = f"Build {snapshot.id} failed"
            secondary = self._view.phase_error_message
            self._console.log(primary, secondary)
            self._result.set_failure(primary, secondary)
            self._fail()
            logger.warning("build_failed", build_id=snapshot.id, status=str(status))

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _fetch_build(self, build_id: str) -> BuildSnapshot:
        response = self._codebuild.batch_get_builds(ids=[build_id])
        builds = response.get("builds") or []
        if len(builds) != 1:
            raise RemoteCallError(
                BUILD_CARDINALITY_ERROR,
                code="BUILD_CARDINALITY",
                details={"build_id": build_id, "count": len(builds)},
            )
        return BuildSnapshot.from_api(builds[0])

    def _download_artifacts(self, snapshot: BuildSnapshot, root: Path) -> None:
        try:
            s3 = self._factory.s3_client()
        except BotoCoreError as exc:
            logger.warning("artifact_download_failed", build_id=snapshot.id, error=str(exc))
            self._console.log(f"Download failed: {exc}")
            return
        ArtifactDownloader(s3, console=self._console).download_build_artifacts(snapshot, root)

    def _initialize_view(self, snapshot: BuildSnapshot, project: ProjectInfo) -> None:
        region = self._factory.region
        self._result.set_build_information(snapshot.id, snapshot.arn)
        self._result.artifacts_location = (
            snapshot.artifacts.location if snapshot.artifacts is not None else None
        )
        self._view.initialize(
            snapshot.id,
            build_arn=snapshot.arn,
            start_time=snapshot.start_time,
            artifact_url=artifact_console_url(
                project.artifacts_location, project.artifacts_type, region
            ),
            dashboard_url=build_console_url(snapshot.id, region),
            artifact_bucket=project.artifacts_location,
        )

    def _update_view(self, snapshot: BuildSnapshot) -> None:
        view = self._view
        aggregator = self._log_aggregator
        view.update_status(snapshot.status)
        aggregator.logs_location = snapshot.logs
        lines = aggregator.poll()
        view.append_logs(lines)
        for line in lines:
            if line != NO_LOGS_MESSAGE:
                self._console.log(line)
        view.replace_phases(snapshot.phases)
        if snapshot.logs is not None and view.log_url is None and snapshot.logs.deep_link:
            view.set_log_url(snapshot.logs.deep_link)
            self._console.log(f"Logs url: {snapshot.logs.deep_link}")

    def _artifacts_override(self) -> dict[str, str]:
        config = self._config
        override: dict[str, str] = {}
        for key, value in (
            ("type", config.artifact_type_override),
            ("location", config.artifact_location_override),
            ("name", config.artifact_name_override),
            ("namespaceType", config.artifact_namespace_override),
            ("packaging", config.artifact_packaging_override),
            ("path", config.artifact_path_override),
        ):
            if value:
                override[key] = value
        return override

    def _start_message(self, source_version: str) -> str:
        config = self._config
        lines = [f"Starting build with\n\t> project name {config.project_name}"]
        for label, value in (
            ("source version", source_version),
            ("artifact type", config.artifact_type_override),
            ("artifact location", config.artifact_location_override),
            ("artifact name", config.artifact_name_override),
            ("artifact namespace", config.artifact_namespace_override),
            ("artifact packaging", config.artifact_packaging_override),
            ("artifact path", config.artifact_path_override),
            ("build spec", config.buildspec_override),
            ("environment variables", config.env_variables),
            ("build timeout", config.build_timeout_override),
        ):
            if value not in (None, ""):
                lines.append(f"\t> {label} {value}")
        return "\n".join(lines)

    def _fail(self) -> None:
        self._state = OrchestratorState.FAILED
        if self._view is not None:
            self._view.mark_failed()

    def _interrupted(self) -> None:
        self._state = OrchestratorState.STOPPED
        if self._view is not None:
            self._view.mark_stopped()
        if self._build_id:
            message = f"Build interrupted. CodeBuild build {self._build_id} was not stopped."
        else:
            message = "Build interrupted before a CodeBuild build was started."
        self._result.set_stopped(message)
        self._console.log(message)
        logger.warning("build_interrupted", build_id=self._build_id)

    def _release(self) -> None:
        self._factory = None
        self._codebuild = None
        self._log_aggregator = None
        self._packager = None
        self._view = None


def run_build(
    config: BuildConfig,
    *,
    factory: FactoryLike = RemoteClientFactory,
    view: ResultView | None = None,
    console: BuildConsole | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> BuildResult:
    """Run one build with a fresh :class:`BuildOrchestrator`.

    Nothing is shared between calls: every invocation builds its own
    clients, log aggregator and view.

    Args:
        config: What to build and how to reach AWS.
        factory: Client factory (or a callable building one from
            ``config.client``).
        view: Optional :class:`ResultView` the host keeps a reference to.
        console: Host console; defaults to stdout.
        sleep: Blocking sleep between polls.

    Returns:
        The :class:`BuildResult` of the invocation.
    """
    orchestrator = BuildOrchestrator(
        config, factory=factory, view=view, console=console, sleep=sleep
    )
    return orchestrator.run()
