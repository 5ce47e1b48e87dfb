"""Async subprocess helpers for host-side commands."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

_URL_CREDENTIALS = re.compile(r"(?P<scheme>[a-z][a-z0-9+.-]*://)[^/\s@]+@", re.IGNORECASE)


@dataclass(slots=True)
class CommandResult:
    """Result from running a command."""

    command: str
    returncode: int
    output: str


def redact_credentials(text: str) -> str:
    """Mask ``user:token@`` credentials embedded in URLs."""
    return _URL_CREDENTIALS.sub(r"\g<scheme>***@", text)


class CommandError(RuntimeError):
    def __init__(self, message: str, result: CommandResult | None = None) -> None:
        super().__init__(message)
        self.result = result


class CommandTimeout(CommandError):
    pass


class CommandRunner(Protocol):
    def __call__(
        self,
        *command: str,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        check: bool = True,
    ) -> Awaitable[CommandResult]: ...


async def run_command(
    *command: str,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    check: bool = True,
) -> CommandResult:
    """Run ``command`` to completion, killing it if ``timeout`` elapses."""
    process = await asyncio.create_subprocess_exec(
        *command,
        cwd=cwd,
        env=dict(env) if env is not None else None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    rendered = redact_credentials(" ".join(command))
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError as exc:
        process.kill()
        await process.wait()
        msg = f"{rendered} timed out after {timeout}s"
        raise CommandTimeout(msg) from exc

    output = redact_credentials(
        stdout.decode("utf-8", errors="replace") + stderr.decode("utf-8", errors="replace")
    )
    result = CommandResult(
        command=rendered,
        returncode=process.returncode if process.returncode is not None else -1,
        output=output.strip(),
    )
    if check and result.returncode != 0:
        msg = f"{rendered} failed: {result.output}"
        raise CommandError(msg, result)
    return result
