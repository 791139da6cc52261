from __future__ import annotations

import asyncio
from asyncio.subprocess import PIPE
from contextlib import suppress
from typing import Callable

from .models import Scope
from .util import resolve_elevate_bin, resolve_systemctl_bin


def set_enabled_argv(scope: Scope, unit: str, enabled: bool) -> list[str]:
    """enable --now / disable --now as one command, so system scope prompts once."""
    verb = "enable" if enabled else "disable"
    systemctl = resolve_systemctl_bin()
    if scope == "user":
        return [systemctl, "--user", verb, "--now", unit]
    return [resolve_elevate_bin(), systemctl, verb, "--now", unit]


def cat_argv(scope: Scope, unit: str) -> list[str]:
    argv = [resolve_systemctl_bin()]
    if scope == "user":
        argv.append("--user")
    return argv + ["cat", unit, "--no-pager"]


async def run_command(
    argv: list[str],
    timeout: float | None = None,
    on_stdout_line: Callable[[str], None] | None = None,
    on_stderr_line: Callable[[str], None] | None = None,
) -> int:
    """Run a command streaming output via provided callbacks.

    On timeout the process is killed and asyncio.TimeoutError propagates.
    """
    proc = await asyncio.create_subprocess_exec(*argv, stdin=asyncio.subprocess.DEVNULL, stdout=PIPE, stderr=PIPE)

    async def _stream(reader, cb):
        while True:
            b = await reader.readline()
            if not b:
                break
            if cb is not None:
                cb(b.decode(errors="ignore"))

    async def _run() -> int:
        await asyncio.gather(_stream(proc.stdout, on_stdout_line), _stream(proc.stderr, on_stderr_line))
        return await proc.wait()

    try:
        return await asyncio.wait_for(_run(), timeout)
    except asyncio.TimeoutError:
        with suppress(ProcessLookupError):
            proc.kill()
        with suppress(Exception):
            await proc.wait()
        raise
