"""Run the backing CLI once per prompt via an asyncio subprocess."""
from __future__ import annotations
import asyncio
import logging
import time
from typing import Optional, Sequence

from cli_chat_proxy.common.errors import ProcessError, ProcessTimeoutError, SpawnError
from cli_chat_proxy.common.schema import CLIResult

LOGGER = logging.getLogger("cliproxy.serve.cli")

async def run_cli(prompt: str, command: Sequence[str] = ("claude",), timeout: Optional[float] = None) -> CLIResult:
    """
    Feed ``prompt`` to the CLI on stdin and collect its stdout until it exits.

    Args:
        prompt: Full prompt text.
        command: Executable and arguments.
        timeout: Seconds to wait before killing the process; None waits forever.

    Raises:
        SpawnError: The executable could not be started.
        ProcessError: The process exited non-zero (or timed out).
    """
    name = command[0]
    start = time.time()
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise SpawnError(f"Failed to spawn {name} CLI: {e.strerror or e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(prompt.encode("utf-8")), timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise ProcessTimeoutError(f"{name} CLI timed out after {timeout}s", returncode=proc.returncode)

    latency_ms = int((time.time() - start) * 1000)
    err_text = stderr.decode("utf-8", errors="replace")
    if proc.returncode != 0:
        LOGGER.warning("%s exited with code %s after %sms", name, proc.returncode, latency_ms)
        raise ProcessError(
            f"{name} CLI exited with code {proc.returncode}: {err_text}",
            returncode=proc.returncode,
            stderr=err_text,
        )
    if err_text.strip():
        LOGGER.debug("%s stderr: %s", name, err_text.strip())
    return CLIResult(
        text=stdout.decode("utf-8", errors="replace").strip(),
        latency_ms=latency_ms,
    )
