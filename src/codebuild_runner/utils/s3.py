from __future__ import annotations

import re
from urllib.parse import quote_plus

_OBJECT_ARN = re.compile(r"^(?:arn:(?:aws|aws-cn):s3:::)?([^/]+)/?.*$", re.DOTALL)

S3_CONSOLE_BASE_URL = "https://s3.console.aws.amazon.com/s3/buckets/"


def bucket_from_object_arn(location: str) -> str:
    """Return the bucket of an S3 object given as an ARN or as ``bucket/key``.

    ``arn:aws:s3:::my_corporate_bucket/exampleobject.png`` → ``my_corporate_bucket``

    Raises:
        ValueError: If *location* does not name a bucket.
    """
    match = _OBJECT_ARN.match(location or "")
    if match is None:
        raise ValueError(f"Not an S3 object location: {location!r}")
    return match.group(1)


def key_from_object_arn(location: str) -> str:
    """Return everything after the first ``/``, or ``""`` when there is no key."""
    _, sep, key = location.partition("/")
    return key if sep else ""


def format_with_ellipsis(text: str, length: int) -> str:
    """Cut *text* to *length* characters, the last three of which become ``...``."""
    if len(text) <= length:
        return text
    return text[: max(length - 3, 0)] + "..."


def artifact_console_url(location: str | None, artifacts_type: str | None, region: str) -> str:
    """Deep link to a project's S3 artifact location, or ``""`` when there is none."""
    if not location or artifacts_type != "S3":
        return ""
    return f"{S3_CONSOLE_BASE_URL}{quote_plus(location)}?region={region}"


def build_console_url(build_id: str, region: str) -> str:
    return (
        f"https://{region}.console.aws.amazon.com/codebuild/home"
        f"?region={region}#builds/{build_id}/view/new"
    )
