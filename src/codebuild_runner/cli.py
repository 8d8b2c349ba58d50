"""CLI entrypoint implementing `codebuild-runner run`."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click

from codebuild_runner.build.orchestrator import run_build
from codebuild_runner.core.config import BuildConfig, ClientConfig
from codebuild_runner.core.constants import ArtifactsType, SourceControlType
from codebuild_runner.utils.logging import configure_logging


@click.group()
@click.version_option(package_name="codebuild-runner")
def main() -> None:
    """Run AWS CodeBuild builds from a CI pipeline."""


@main.command("run")
@click.option("--project", "project_name", type=str, default=None, help="CodeBuild project name.")
@click.option("--region", type=str, default=None, help="AWS region of the project.")
@click.option(
    "--source-control-type",
    type=click.Choice([t.value for t in SourceControlType]),
    default=None,
    help="Upload the workspace ('workspace') or use the project's own source ('project').",
)
@click.option("--source-version", type=str, default=None, help="Source version to build.")
@click.option(
    "--workspace",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory uploaded as the build source in workspace mode.",
)
@click.option("--proxy-host", type=str, default=None)
@click.option("--proxy-port", type=str, default=None)
@click.option("--iam-role-arn", type=str, default=None, help="IAM role to assume for all calls.")
@click.option("--external-id", type=str, default=None, help="External id for the assumed role.")
@click.option(
    "--env-variables",
    type=str,
    default=None,
    help="Environment variable overrides, e.g. '[{KEY, value}, {KEY2, value2}]'.",
)
@click.option("--buildspec", "buildspec_override", type=str, default=None)
@click.option("--timeout", "build_timeout_override", type=str, default=None, help="Minutes (5-480).")
@click.option(
    "--artifact-type",
    "artifact_type_override",
    type=click.Choice([t.value for t in ArtifactsType]),
    default=None,
)
@click.option("--artifact-location", "artifact_location_override", type=str, default=None)
@click.option("--artifact-name", "artifact_name_override", type=str, default=None)
@click.option("--artifact-namespace", "artifact_namespace_override", type=str, default=None)
@click.option("--artifact-packaging", "artifact_packaging_override", type=str, default=None)
@click.option("--artifact-path", "artifact_path_override", type=str, default=None)
@click.option("--sse/--no-sse", default=False, help="Encrypt the uploaded source with AES256.")
@click.option(
    "--download-dir",
    "artifact_download_dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Download build artifacts here after a successful build.",
)
@click.option("--log-level", type=str, default="INFO", show_default=True)
@click.option("--json-logs/--text-logs", default=False, show_default=True)
def run_command(
    region: str | None,
    proxy_host: str | None,
    proxy_port: str | None,
    iam_role_arn: str | None,
    external_id: str | None,
    log_level: str,
    json_logs: bool,
    sse: bool,
    **build_options: Any,
) -> None:
    """Start a CodeBuild build and wait for it to finish."""
    configure_logging(level=log_level, json=json_logs)

    client = ClientConfig.from_env(
        region=region,
        proxy_host=proxy_host,
        proxy_port=proxy_port,
        iam_role_arn=iam_role_arn,
        external_id=external_id,
    )
    config = BuildConfig.from_env(
        client=client,
        sse_algorithm="AES256" if sse else None,
        **build_options,
    )
    result = run_build(config)

    click.echo(f"Build Id: {result.build_id or '-'}")
    click.echo(f"Status: {result.status}")
    if result.error_message:
        click.echo(f"Message: {result.error_message}")

    if not result.succeeded:
        raise SystemExit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
