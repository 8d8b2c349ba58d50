"""Tests for AssumeRoleCredentialProvider and AssumeRoleCredentialSource."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from codebuild_runner.aws.credentials import (
    AssumeRoleCredentialProvider,
    AssumeRoleCredentialSource,
    TemporaryCredentials,
)
from codebuild_runner.aws.mock import MockServiceClient

ROLE_ARN = "arn:aws:iam::123456789012:role/build"
NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _sts(expiration: datetime) -> MockServiceClient:
    sts = MockServiceClient("sts")
    counter = {"n": 0}

    def assume_role(params: dict[str, Any]) -> dict[str, Any]:
        counter["n"] += 1
        return {
            "Credentials": {
                "AccessKeyId": f"ASIA{counter['n']}",
                "SecretAccessKey": "secret",
                "SessionToken": "token",
                "Expiration": expiration,
            }
        }

    sts.register("assume_role", assume_role)
    return sts


@pytest.fixture
def clock() -> _Clock:
    return _Clock(NOW)


def test_assume_role_parameters(clock: _Clock) -> None:
    sts = _sts(NOW + timedelta(hours=1))
    provider = AssumeRoleCredentialProvider(sts, ROLE_ARN, "ext-id", clock=clock)

    provider.credentials()

    assert sts.last_call("assume_role") == {
        "RoleArn": ROLE_ARN,
        "RoleSessionName": "codebuild-runner",
        "DurationSeconds": 3600,
        "ExternalId": "ext-id",
    }


def test_external_id_omitted_when_unset(clock: _Clock) -> None:
    sts = _sts(NOW + timedelta(hours=1))
    AssumeRoleCredentialProvider(sts, ROLE_ARN, clock=clock).credentials()
    assert "ExternalId" not in sts.last_call("assume_role")


def test_cached_credentials_reused_while_valid(clock: _Clock) -> None:
    sts = _sts(NOW + timedelta(hours=1))
    provider = AssumeRoleCredentialProvider(sts, ROLE_ARN, clock=clock)

    first = provider.credentials()
    clock.now = NOW + timedelta(minutes=50)
    second = provider.credentials()

    assert first == second
    assert sts.call_count("assume_role") == 1
    assert provider.valid_until == NOW + timedelta(hours=1)


def test_refresh_within_three_minutes_of_expiry(clock: _Clock) -> None:
    sts = _sts(NOW + timedelta(hours=1))
    provider = AssumeRoleCredentialProvider(sts, ROLE_ARN, clock=clock)
    provider.credentials()

    clock.now = NOW + timedelta(minutes=57, seconds=1)
    assert provider.needs_refresh()
    refreshed = provider.credentials()

    assert refreshed.access_key == "ASIA2"
    assert sts.call_count("assume_role") == 2


def test_needs_refresh_before_first_use(clock: _Clock) -> None:
    provider = AssumeRoleCredentialProvider(_sts(NOW), ROLE_ARN, clock=clock)
    assert provider.needs_refresh()
    assert provider.valid_until is None


def test_naive_expiration_treated_as_utc(clock: _Clock) -> None:
    sts = _sts(datetime(2024, 5, 1, 13, 0))
    provider = AssumeRoleCredentialProvider(sts, ROLE_ARN, clock=clock)
    assert provider.credentials().valid_until.tzinfo is not None


def test_metadata_shape() -> None:
    creds = TemporaryCredentials(
        access_key="A", secret_key="S", session_token="T", valid_until=NOW
    )
    assert creds.to_metadata() == {
        "access_key": "A",
        "secret_key": "S",
        "token": "T",
        "expiry_time": NOW.isoformat(),
    }


def test_secrets_hidden_from_repr() -> None:
    creds = TemporaryCredentials(
        access_key="A", secret_key="very-secret", session_token="T", valid_until=NOW
    )
    assert "very-secret" not in repr(creds)


def test_credential_source_loads_refreshable_credentials() -> None:
    expiration = datetime.now(timezone.utc) + timedelta(hours=1)
    provider = AssumeRoleCredentialProvider(_sts(expiration), ROLE_ARN)

    credentials = AssumeRoleCredentialSource(provider).load()

    assert credentials.method == AssumeRoleCredentialSource.METHOD
    assert credentials.access_key == "ASIA1"
    assert credentials.token == "token"
