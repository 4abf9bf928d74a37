"""Skeleton for one-shot plugins reading a request on stdin and writing a result."""

from __future__ import annotations

import abc
import json
import sys
from typing import IO, Sequence

from nrikit.types import Request, Result


class Plugin(abc.ABC):
    """A one-shot plugin that adjusts container resources."""

    @abc.abstractmethod
    def type(self) -> str:
        """Return the plugin's type or name."""

    @abc.abstractmethod
    def invoke(self, request: Request) -> Result | None:
        """Handle one request and return its result."""


def _encode(result: Result | None, stdout: IO[str], what: str) -> None:
    payload = result.to_dict() if result is not None else None
    try:
        stdout.write(json.dumps(payload, separators=(",", ":")) + "\n")
        stdout.flush()
    except (OSError, TypeError, ValueError) as err:
        raise RuntimeError(f"unable to encode {what} to stdout: {err}") from err


def run(
    plugin: Plugin,
    argv: Sequence[str] | None = None,
    stdin: IO[str] | None = None,
    stdout: IO[str] | None = None,
) -> None:
    """Read a request, dispatch on the command in argv and write the result."""
    if argv is None:
        argv = sys.argv[1:]
    if stdin is None:
        stdin = sys.stdin
    if stdout is None:
        stdout = sys.stdout

    request = Request.from_dict(json.load(stdin))

    if not argv:
        raise ValueError("missing plugin command")
    command = argv[0]

    if command == "invoke":
        try:
            result = plugin.invoke(request)
        except Exception as err:  # any plugin failure is reported in the result
            result = request.new_result(plugin.type())
            result.error = str(err)
        _encode(result, stdout, "plugin error")
    else:
        result = request.new_result(plugin.type())
        result.error = f"invalid arg {command}"
        _encode(result, stdout, "invalid parameter error")