"""The prefixed, human-readable build log shown by the host CI system."""

from __future__ import annotations

import sys
from typing import TextIO

from codebuild_runner.core.types import join_messages

CONSOLE_PREFIX = "[AWS CodeBuild Runner]"


class BuildConsole:
    """Writes ``[AWS CodeBuild Runner] message`` lines to the host's live log.

    Usage::

        console = BuildConsole()
        console.log("Build Id: my-project:1234")
        console.log("Build failed", "DOWNLOAD_SOURCE: access denied")
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so pytest's capsys and click's runner see the output.
        return self._stream if self._stream is not None else sys.stdout

    def log(self, message: str, secondary: str | None = None) -> None:
        """Write *message* (and an indented *secondary* line, if any)."""
        print(f"{CONSOLE_PREFIX} {join_messages(message, secondary)}", file=self.stream)
        self.stream.flush()
