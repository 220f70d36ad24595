from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Protocol, Union

from glrunner.constants import DEFAULT_COMMAND_TIMEOUT
from glrunner.logger import logger

# Return codes used by shells for "not found" and "timed out"
COMMAND_NOT_FOUND = 127
COMMAND_TIMED_OUT = 124


@dataclass(frozen=True)
class CommandResult:
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, for diagnostics."""
        return "\n".join(s.rstrip() for s in (self.stdout, self.stderr) if s.strip())

    @property
    def command_line(self) -> str:
        return shlex.join(self.args)


class CommandRunner(Protocol):
    def run(self, args: List[str]) -> CommandResult: ...


class SubprocessRunner:
    """
    Runs external commands with subprocess, blocking until they exit.

    A command that cannot be started, or that does not exit within the
    timeout, yields a failed CommandResult instead of raising.
    """

    def __init__(self, timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT) -> None:
        self.timeout = timeout

    def run(self, args: List[str]) -> CommandResult:
        logger.debug(f"Running: {shlex.join(args)}")
        try:
            completed = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            return CommandResult(
                args, COMMAND_NOT_FOUND, stderr=f"{args[0]}: command not found"
            )
        except subprocess.TimeoutExpired as e:
            return CommandResult(
                args,
                COMMAND_TIMED_OUT,
                stdout=_decode(e.stdout),
                stderr=f"{_decode(e.stderr)}\ntimed out after {self.timeout}s".lstrip(),
            )

        result = CommandResult(
            args, completed.returncode, completed.stdout or "", completed.stderr or ""
        )
        if result.output:
            logger.debug(result.output)
        return result


def _decode(stream: Union[str, bytes, None]) -> str:
    # TimeoutExpired carries bytes even when text=True was requested
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace")
    return stream
