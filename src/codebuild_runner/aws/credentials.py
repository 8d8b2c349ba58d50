"""Credential providers handed to :class:`~codebuild_runner.aws.clients.RemoteClientFactory`."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import structlog
from botocore.credentials import CredentialProvider, RefreshableCredentials
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)

ROLE_SESSION_NAME = "codebuild-runner"
ROLE_SESSION_DURATION_SECONDS = 3600
MIN_VALIDITY = timedelta(minutes=3)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TemporaryCredentials(BaseModel):
    access_key: str
    secret_key: str = Field(repr=False)
    session_token: str = Field(repr=False)
    valid_until: datetime

    model_config = {"frozen": True}

    def to_metadata(self) -> dict[str, str]:
        """Return the dict shape botocore's ``RefreshableCredentials`` expects."""
        return {
            "access_key": self.access_key,
            "secret_key": self.secret_key,
            "token": self.session_token,
            "expiry_time": self.valid_until.isoformat(),
        }


class AssumeRoleCredentialProvider:
    """Temporary credentials for a delegated IAM role, refreshed lazily.

    The cached credentials are reused until ``now + min_validity`` reaches
    their ``valid_until`` timestamp; the next :meth:`credentials` call then
    assumes the role again.

    Args:
        sts_client: A boto3 STS client built from the base credentials.
        role_arn: The role to assume.
        external_id: Optional external id required by the role's trust policy.
        duration_seconds: Requested session duration.
        min_validity: Safety margin before expiry at which to refresh.
        clock: Returns the current UTC time (injectable for tests).
    """

    def __init__(
        self,
        sts_client: Any,
        role_arn: str,
        external_id: str | None = None,
        *,
        duration_seconds: int = ROLE_SESSION_DURATION_SECONDS,
        min_validity: timedelta = MIN_VALIDITY,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._sts = sts_client
        self._role_arn = role_arn
        self._external_id = external_id
        self._duration_seconds = duration_seconds
        self._min_validity = min_validity
        self._clock = clock
        self._cached: TemporaryCredentials | None = None

    @property
    def role_arn(self) -> str:
        return self._role_arn

    @property
    def valid_until(self) -> datetime | None:
        return self._cached.valid_until if self._cached is not None else None

    def needs_refresh(self) -> bool:
        if self._cached is None:
            return True
        return self._cached.valid_until <= self._clock() + self._min_validity

    def credentials(self) -> TemporaryCredentials:
        if self.needs_refresh():
            self._cached = self._assume_role()
        assert self._cached is not None  # noqa: S101
        return self._cached

    def metadata(self) -> dict[str, str]:
        return self.credentials().to_metadata()

    def _assume_role(self) -> TemporaryCredentials:
        params: dict[str, Any] = {
            "RoleArn": self._role_arn,
            "RoleSessionName": ROLE_SESSION_NAME,
            "DurationSeconds": self._duration_seconds,
        }
        if self._external_id:
            params["ExternalId"] = self._external_id
        response = self._sts.assume_role(**params)
        creds = response["Credentials"]
        expiration = creds["Expiration"]
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)
        logger.info("role_assumed", role_arn=self._role_arn, valid_until=expiration.isoformat())
        return TemporaryCredentials(
            access_key=creds["AccessKeyId"],
            secret_key=creds["SecretAccessKey"],
            session_token=creds["SessionToken"],
            valid_until=expiration,
        )


class AssumeRoleCredentialSource(CredentialProvider):
    """Plugs an :class:`AssumeRoleCredentialProvider` into a botocore session.

    Inserted at the front of the session's credential resolver so every
    client built from that session refreshes the role credentials on demand.
    """

    METHOD = "codebuild-runner-assume-role"
    CANONICAL_NAME = "codebuild-runner-assume-role"

    def __init__(self, provider: AssumeRoleCredentialProvider) -> None:
        super().__init__()
        self._provider = provider

    def load(self) -> RefreshableCredentials:
        return RefreshableCredentials.create_from_metadata(
            metadata=self._provider.metadata(),
            refresh_using=self._provider.metadata,
            method=self.METHOD,
        )
