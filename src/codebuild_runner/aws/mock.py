from __future__ import annotations

from collections import deque
from typing import Any, Callable, Iterator

Response = dict[str, Any] | BaseException | Callable[[dict[str, Any]], dict[str, Any]]


class MockServiceClient:
    """In-memory stand-in for a boto3 service client.

    Operations are looked up by their boto3 (snake_case) name. A response may
    be a static dict, an exception instance to raise, or a callable receiving
    the call's keyword arguments.

    Usage::

        codebuild = MockServiceClient("codebuild")
        codebuild.register("start_build", {"build": {"id": "p:1"}})
        codebuild.register_sequence("batch_get_builds", [in_progress, succeeded])

        codebuild.start_build(projectName="p")
        assert codebuild.call_count("start_build") == 1

    A sequence hands out one response per call and then keeps repeating its
    last element.
    """

    def __init__(self, service_name: str = "mock") -> None:
        self.service_name = service_name
        self._responses: dict[str, Response] = {}
        self._sequences: dict[str, deque[Response]] = {}
        self._pages: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    # ------------------------------------------------------------------ #
    # Registration helpers
    # ------------------------------------------------------------------ #

    def register(self, operation: str, response: Response) -> None:
        """Register a static dict, an exception, or a callable for *operation*."""
        self._sequences.pop(operation, None)
        self._responses[operation] = response

    def register_sequence(self, operation: str, responses: list[Response]) -> None:
        """Register responses handed out one per call, the last one repeating."""
        if not responses:
            raise ValueError("register_sequence needs at least one response")
        self._responses.pop(operation, None)
        self._sequences[operation] = deque(responses)

    def register_pages(self, operation: str, pages: list[dict[str, Any]]) -> None:
        """Register the pages yielded by ``get_paginator(operation).paginate()``."""
        self._pages[operation] = list(pages)

    def get_paginator(self, operation: str) -> MockPaginator:
        return MockPaginator(self, operation)

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    def __getattr__(self, operation: str) -> Callable[..., dict[str, Any]]:
        if operation.startswith("_"):
            raise AttributeError(operation)

        def _invoke(**kwargs: Any) -> dict[str, Any]:
            self.calls.append((operation, kwargs))
            response = self._next_response(operation)
            if isinstance(response, BaseException):
                raise response
            if callable(response):
                return dict(response(kwargs))
            return dict(response)

        return _invoke

    def _next_response(self, operation: str) -> Response:
        if operation in self._sequences:
            queue = self._sequences[operation]
            return queue.popleft() if len(queue) > 1 else queue[0]
        if operation in self._responses:
            return self._responses[operation]
        raise KeyError(
            f"MockServiceClient({self.service_name}): no response registered for '{operation}'"
        )

    # ------------------------------------------------------------------ #
    # Test helpers
    # ------------------------------------------------------------------ #

    def assert_called(self, operation: str) -> None:
        operations = [c[0] for c in self.calls]
        assert operation in operations, f"Expected call to '{operation}', got: {operations}"

    def assert_not_called(self, operation: str) -> None:
        operations = [c[0] for c in self.calls]
        assert operation not in operations, f"Unexpected call to '{operation}'"

    def call_count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    def last_call(self, operation: str) -> dict[str, Any]:
        for name, kwargs in reversed(self.calls):
            if name == operation:
                return kwargs
        raise AssertionError(f"'{operation}' was never called")

    def reset(self) -> None:
        self.calls.clear()
        self._responses.clear()
        self._sequences.clear()
        self._pages.clear()


class MockPaginator:
    def __init__(self, client: MockServiceClient, operation: str) -> None:
        self._client = client
        self._operation = operation

    def paginate(self, **kwargs: Any) -> Iterator[dict[str, Any]]:
        self._client.calls.append((self._operation, kwargs))
        pages = self._client._pages.get(self._operation)
        if pages is None:
            raise KeyError(f"MockPaginator: no pages registered for '{self._operation}'")
        for page in pages:
            if isinstance(page, BaseException):
                raise page
            yield dict(page)


class MockClientFactory:
    """Hands out fixed :class:`MockServiceClient` instances.

    Satisfies :class:`~codebuild_runner.aws.clients.ClientFactoryProtocol`.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        *,
        uses_default_credentials: bool = False,
    ) -> None:
        self.region = region
        self.codebuild = MockServiceClient("codebuild")
        self.s3 = MockServiceClient("s3")
        self.logs = MockServiceClient("logs")
        self._uses_default_credentials = uses_default_credentials

    @property
    def uses_default_credentials(self) -> bool:
        return self._uses_default_credentials

    @property
    def credentials_descriptor(self) -> str:
        return "Using mock credentials"

    def codebuild_client(self) -> MockServiceClient:
        return self.codebuild

    def s3_client(self) -> MockServiceClient:
        return self.s3

    def logs_client(self) -> MockServiceClient:
        return self.logs
