"""Tests for MockServiceClient and MockClientFactory."""
from __future__ import annotations

import pytest

from codebuild_runner.aws.mock import MockClientFactory, MockServiceClient


# ------------------------------------------------------------------ #
# Static and dynamic responses
# ------------------------------------------------------------------ #


def test_static_response() -> None:
    client = MockServiceClient("codebuild")
    client.register("start_build", {"build": {"id": "p:1"}})
    assert client.start_build(projectName="p") == {"build": {"id": "p:1"}}


def test_dynamic_response_receives_kwargs() -> None:
    client = MockServiceClient("codebuild")
    client.register("batch_get_builds", lambda kw: {"builds": [{"id": i} for i in kw["ids"]]})
    assert client.batch_get_builds(ids=["a", "b"]) == {"builds": [{"id": "a"}, {"id": "b"}]}


def test_exception_response_is_raised() -> None:
    client = MockServiceClient("s3")
    client.register("put_object", RuntimeError("boom"))
    with pytest.raises(RuntimeError, match="boom"):
        client.put_object(Bucket="b")
    assert client.call_count("put_object") == 1


def test_unregistered_operation_raises() -> None:
    client = MockServiceClient("logs")
    with pytest.raises(KeyError, match="no response registered"):
        client.get_log_events(logGroupName="g")


def test_private_attribute_lookup_not_dispatched() -> None:
    with pytest.raises(AttributeError):
        MockServiceClient()._missing  # noqa: B018


# ------------------------------------------------------------------ #
# Sequences and pages
# ------------------------------------------------------------------ #


def test_sequence_repeats_last_response() -> None:
    client = MockServiceClient()
    client.register_sequence("op", [{"n": 1}, {"n": 2}])
    assert [client.op()["n"] for _ in range(4)] == [1, 2, 2, 2]


def test_empty_sequence_rejected() -> None:
    with pytest.raises(ValueError):
        MockServiceClient().register_sequence("op", [])


def test_register_replaces_sequence() -> None:
    client = MockServiceClient()
    client.register_sequence("op", [{"n": 1}])
    client.register("op", {"n": 9})
    assert client.op() == {"n": 9}


def test_paginator_yields_pages_and_records_call() -> None:
    client = MockServiceClient("s3")
    client.register_pages("list_objects_v2", [{"Contents": [{"Key": "a"}]}, {"Contents": []}])

    pages = list(client.get_paginator("list_objects_v2").paginate(Bucket="b", Prefix="p"))

    assert len(pages) == 2
    assert client.last_call("list_objects_v2") == {"Bucket": "b", "Prefix": "p"}


# ------------------------------------------------------------------ #
# Assertions and reset
# ------------------------------------------------------------------ #


def test_assert_helpers() -> None:
    client = MockServiceClient()
    client.register("op", {})
    client.op(x=1)
    client.assert_called("op")
    client.assert_not_called("other")
    with pytest.raises(AssertionError):
        client.assert_called("other")
    with pytest.raises(AssertionError):
        client.last_call("other")


def test_reset_clears_everything() -> None:
    client = MockServiceClient()
    client.register("op", {})
    client.op()
    client.reset()
    assert client.calls == []
    with pytest.raises(KeyError):
        client.op()


def test_factory_hands_out_fixed_clients() -> None:
    factory = MockClientFactory(region="eu-west-1", uses_default_credentials=True)
    assert factory.codebuild_client() is factory.codebuild
    assert factory.s3_client() is factory.s3
    assert factory.logs_client() is factory.logs
    assert factory.region == "eu-west-1"
    assert factory.uses_default_credentials
