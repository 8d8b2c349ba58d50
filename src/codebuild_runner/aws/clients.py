from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import boto3
import botocore.session
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError

from codebuild_runner.__version__ import __version__
from codebuild_runner.aws.credentials import (
    AssumeRoleCredentialProvider,
    AssumeRoleCredentialSource,
)
from codebuild_runner.aws.retry import ThrottlingRetryPolicy
from codebuild_runner.core.config import ClientConfig
from codebuild_runner.core.exceptions import ConfigurationError
from codebuild_runner.core.validation import parse_int

logger = structlog.get_logger(__name__)

INVALID_REGION_ERROR = "Enter a valid AWS region"
INVALID_PROXY_ERROR = "Enter a valid proxy host and port (greater than zero)"
INVALID_SECRET_KEY_ERROR = "An AWS secret key is required when an access key is given"
INVALID_ACCESS_KEY_ERROR = "An AWS access key is required when a secret key is given"
INVALID_DEFAULT_CREDENTIALS_ERROR = "AWS credentials couldn't be loaded from the default provider chain"
DEFAULT_CREDENTIALS_WARNING = (
    "AWS access and secret keys were not provided. "
    "Using credentials provided by the default credential provider chain."
)

BASIC_CREDENTIALS_DESCRIPTOR = "Using given AWS access and secret key for authorization"
DEFAULT_CHAIN_DESCRIPTOR = "Using credentials provided by the default credential provider chain for authorization"
ROLE_CREDENTIALS_DESCRIPTOR = "Authorizing with the IAM role "

# Built-in retries are off; ThrottlingRetryPolicy decides instead.
RETRY_CONFIG = {"mode": "standard", "total_max_attempts": 1}


@runtime_checkable
class ClientFactoryProtocol(Protocol):
    """Structural type for anything that hands out the three service clients.

    The orchestrator accepts this Protocol so tests can pass
    :class:`~codebuild_runner.aws.mock.MockClientFactory`.
    """

    region: str

    @property
    def uses_default_credentials(self) -> bool: ...

    @property
    def credentials_descriptor(self) -> str: ...

    def codebuild_client(self) -> Any: ...

    def s3_client(self) -> Any: ...

    def logs_client(self) -> Any: ...


class RemoteClientFactory:
    """Builds region-scoped CodeBuild, S3 and CloudWatch Logs clients.

    All clients share one boto3 session (credentials) and one botocore
    :class:`~botocore.config.Config` (proxy, user agent, retry mode).
    Configuration is validated eagerly: an instance only exists when its
    settings are usable.

    Usage::

        factory = RemoteClientFactory(ClientConfig(region="us-west-2"))
        codebuild = factory.codebuild_client()

    Raises:
        ConfigurationError: On a missing region, a bad proxy port, a partial
            key pair, when the default credential chain has nothing, or when
            botocore cannot build the session (unknown profile, bad region).
    """

    def __init__(self, config: ClientConfig) -> None:
        self._config = config
        self.region = (config.region or "").strip()
        if not self.region:
            raise ConfigurationError(INVALID_REGION_ERROR, code="INVALID_REGION")

        self.proxy_host = (config.proxy_host or "").strip() or None
        self.proxy_port = self._validate_proxy(self.proxy_host, config.proxy_port)

        access_key = (config.access_key or "").strip()
        secret_key = (config.secret_key or "").strip()
        if access_key and not secret_key:
            raise ConfigurationError(INVALID_SECRET_KEY_ERROR, code="INVALID_CREDENTIALS")
        if secret_key and not access_key:
            raise ConfigurationError(INVALID_ACCESS_KEY_ERROR, code="INVALID_CREDENTIALS")
        self._access_key = access_key
        self._secret_key = secret_key
        self._session_token = (config.session_token or "").strip()
        self._role_arn = (config.iam_role_arn or "").strip()

        self._client_config = Config(
            region_name=self.region,
            proxies=self._proxies(),
            user_agent_extra=f"codebuild-runner/{__version__}",
            retries=dict(RETRY_CONFIG),
        )
        self._retry_policy = ThrottlingRetryPolicy()
        self._role_provider: AssumeRoleCredentialProvider | None = None
        try:
            self._session = self._build_session()
        except BotoCoreError as exc:
            raise ConfigurationError(str(exc), code="AWS_SESSION_ERROR") from exc

    # ------------------------------------------------------------------ #
    # Validation helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_proxy(host: str | None, port: str | int | None) -> int | None:
        if not host:
            return None
        try:
            parsed = parse_int(port)
        except ValueError:
            raise ConfigurationError(INVALID_PROXY_ERROR, code="INVALID_PROXY") from None
        if parsed is not None and parsed < 0:
            raise ConfigurationError(INVALID_PROXY_ERROR, code="INVALID_PROXY")
        return parsed

    def _proxies(self) -> dict[str, str] | None:
        if not self.proxy_host:
            return None
        url = f"http://{self.proxy_host}"
        if self.proxy_port is not None:
            url = f"{url}:{self.proxy_port}"
        return {"http": url, "https": url}

    # ------------------------------------------------------------------ #
    # Session construction
    # ------------------------------------------------------------------ #

    def _base_session(self) -> boto3.session.Session:
        if self._access_key:
            return boto3.session.Session(
                aws_access_key_id=self._access_key,
                aws_secret_access_key=self._secret_key,
                aws_session_token=self._session_token or None,
                region_name=self.region,
            )
        session = boto3.session.Session(region_name=self.region)
        if session.get_credentials() is None:
            raise ConfigurationError(
                INVALID_DEFAULT_CREDENTIALS_ERROR, code="NO_DEFAULT_CREDENTIALS"
            )
        return session

    def _build_session(self) -> boto3.session.Session:
        base = self._base_session()
        if not self._role_arn:
            return base

        sts = self._retry_policy.install(base.client("sts", config=self._client_config))
        self._role_provider = AssumeRoleCredentialProvider(
            sts, self._role_arn, self._config.external_id
        )
        core_session = botocore.session.get_session()
        resolver = core_session.get_component("credential_provider")
        resolver.insert_before("env", AssumeRoleCredentialSource(self._role_provider))
        logger.debug("role_credentials_configured", role_arn=self._role_arn)
        return boto3.session.Session(botocore_session=core_session, region_name=self.region)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    @property
    def client_config(self) -> Config:
        return self._client_config

    @property
    def retry_policy(self) -> ThrottlingRetryPolicy:
        return self._retry_policy

    @property
    def uses_default_credentials(self) -> bool:
        return not self._access_key

    @property
    def credentials_descriptor(self) -> str:
        if self._role_arn:
            return ROLE_CREDENTIALS_DESCRIPTOR + self._role_arn
        if self._access_key:
            return BASIC_CREDENTIALS_DESCRIPTOR
        return DEFAULT_CHAIN_DESCRIPTOR

    def codebuild_client(self) -> Any:
        return self._client("codebuild")

    def s3_client(self) -> Any:
        return self._client("s3")

    def logs_client(self) -> Any:
        return self._client("logs")

    def _client(self, service: str) -> Any:
        return self._retry_policy.install(
            self._session.client(service, config=self._client_config)
        )
