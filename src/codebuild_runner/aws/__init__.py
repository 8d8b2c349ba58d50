"""AWS client construction, role credentials, and in-memory test doubles."""

from codebuild_runner.aws.clients import ClientFactoryProtocol, RemoteClientFactory
from codebuild_runner.aws.credentials import (
    AssumeRoleCredentialProvider,
    AssumeRoleCredentialSource,
    TemporaryCredentials,
)
from codebuild_runner.aws.mock import MockClientFactory, MockServiceClient
from codebuild_runner.aws.retry import ThrottlingRetryPolicy

__all__ = [
    "AssumeRoleCredentialProvider",
    "AssumeRoleCredentialSource",
    "ClientFactoryProtocol",
    "MockClientFactory",
    "MockServiceClient",
    "RemoteClientFactory",
    "TemporaryCredentials",
    "ThrottlingRetryPolicy",
]
