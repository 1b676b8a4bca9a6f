"""Bounded subprocess execution.

ProcessRunner spawns the configured executable, captures stdout and
stderr into memory, and waits for it under a deadline composed of the
configured timeout and an optional caller cancellation event. The
subprocess is owned by an async context manager, so it is killed and
reaped on every exit path, including cancellation of the calling task.

execute() reports every outcome as an ExecutionResult; run() turns the
failure outcomes into exceptions.
"""

from __future__ import annotations

import asyncio
import os
import signal
import sys
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence

import structlog

from ipsource.core.exceptions import CommandTimeoutError, ExecutionError, SpawnError
from ipsource.core.models import CommandSpec, ExecutionOutcome, ExecutionResult

log = structlog.get_logger(__name__)

_POSIX = sys.platform != "win32"

# Seconds to wait for a killed process to be reaped before its pipes are
# closed from our side.
REAP_GRACE_SECONDS = 1.0

_CHUNK_SIZE = 65536


def _kill(proc: asyncio.subprocess.Process, group: bool = False) -> None:
    """Kill a still running process.

    With group=True on POSIX the whole process group is killed even if the
    leader already exited, so children holding the pipes open go too.
    """
    if proc.returncode is not None and not (group and _POSIX):
        return
    try:
        if _POSIX:
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass


def _close_pipes(proc: asyncio.subprocess.Process) -> None:
    """Close our ends of the stdout/stderr pipes."""
    transport = getattr(proc, "_transport", None)
    if transport is not None:
        transport.close()


async def _reap(proc: asyncio.subprocess.Process) -> None:
    """Wait for a finished or killed process within REAP_GRACE_SECONDS.

    A descendant that left the process group can keep the pipes open after
    the process itself is gone, and asyncio does not report the exit until
    the pipes disconnect. In that case the pipes are closed from our side.
    """
    try:
        await asyncio.wait_for(proc.wait(), REAP_GRACE_SECONDS)
        return
    except asyncio.TimeoutError:
        log.warning("command_pipes_held_open", pid=proc.pid)

    _close_pipes(proc)
    try:
        await asyncio.wait_for(proc.wait(), REAP_GRACE_SECONDS)
    except asyncio.TimeoutError:
        log.warning("command_reap_abandoned", pid=proc.pid)


async def _drain(stream: Optional[asyncio.StreamReader], sink: bytearray) -> None:
    """Copy a pipe into sink until EOF, keeping what was read if cancelled."""
    if stream is None:
        return
    while True:
        chunk = await stream.read(_CHUNK_SIZE)
        if not chunk:
            return
        sink.extend(chunk)


@asynccontextmanager
async def spawned_process(
    executable: str,
    args: Sequence[str],
    cwd: Optional[str] = None,
) -> AsyncIterator[asyncio.subprocess.Process]:
    """Start a subprocess and guarantee it is reaped on exit.

    Raises:
        SpawnError: If the process cannot be started.
    """
    kwargs: dict[str, Any] = {}
    if _POSIX:
        kwargs["start_new_session"] = True

    try:
        proc = await asyncio.create_subprocess_exec(
            executable,
            *args,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            **kwargs,
        )
    except (OSError, ValueError) as e:
        reason = getattr(e, "strerror", None) or str(e)
        raise SpawnError(command=executable, reason=reason) from e

    try:
        yield proc
    except BaseException:
        _kill(proc, group=True)
        raise
    finally:
        _kill(proc)
        await _reap(proc)


class ProcessRunner:
    """Runs a CommandSpec with a deadline and captures its output."""

    def __init__(self, logger: Optional[Any] = None) -> None:
        """Initialize the runner.

        Args:
            logger: Optional structlog logger; defaults to the module logger.
        """
        self._log = logger if logger is not None else log

    async def execute(
        self,
        spec: CommandSpec,
        args: Sequence[str],
        cancel: Optional[asyncio.Event] = None,
    ) -> ExecutionResult:
        """Run the command and describe how it ended.

        Never raises for spawn failures, timeouts or non-zero exits;
        those are reported through ExecutionResult.outcome.

        Args:
            spec: Command configuration (executable, dir, timeout).
            args: Already expanded arguments.
            cancel: Optional event; setting it terminates the command.

        Returns:
            ExecutionResult for the run.
        """
        self._log.debug(
            "running_command",
            command=spec.executable,
            args=list(args),
            dir=spec.dir,
            timeout=spec.timeout,
        )
        start = time.perf_counter()

        def _elapsed_ms() -> int:
            return int((time.perf_counter() - start) * 1000)

        if cancel is not None and cancel.is_set():
            return ExecutionResult(
                stdout=b"",
                stderr=b"",
                exit_code=-1,
                outcome=ExecutionOutcome.CANCELLED,
                duration_ms=_elapsed_ms(),
            )

        try:
            async with spawned_process(spec.executable, args, cwd=spec.dir) as proc:
                outcome, stdout, stderr = await self._communicate(proc, spec.timeout, cancel)
        except SpawnError as e:
            return ExecutionResult(
                stdout=b"",
                stderr=b"",
                exit_code=-1,
                outcome=ExecutionOutcome.SPAWN_FAILED,
                duration_ms=_elapsed_ms(),
                error=e.reason,
            )

        exit_code = proc.returncode if outcome is ExecutionOutcome.EXITED else -1
        return ExecutionResult(
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code if exit_code is not None else -1,
            outcome=outcome,
            duration_ms=_elapsed_ms(),
        )

    async def run(
        self,
        spec: CommandSpec,
        args: Sequence[str],
        cancel: Optional[asyncio.Event] = None,
    ) -> ExecutionResult:
        """Run the command and raise on anything but a clean exit.

        Stderr output on a zero exit is logged as a warning and does not
        fail the run.

        Raises:
            SpawnError: The process could not be started.
            CommandTimeoutError: Timeout or cancellation fired first.
            ExecutionError: The process exited with a non-zero status.
        """
        result = await self.execute(spec, args, cancel=cancel)
        fields = {
            "command": spec.executable,
            "args": list(args),
            "dir": spec.dir,
        }

        if result.outcome is ExecutionOutcome.SPAWN_FAILED:
            self._log.error("command_start_failed", error=result.error, **fields)
            raise SpawnError(command=spec.executable, reason=result.error or "unknown error")

        if result.outcome in (ExecutionOutcome.TIMED_OUT, ExecutionOutcome.CANCELLED):
            cancelled = result.outcome is ExecutionOutcome.CANCELLED
            self._log.error(
                "command_timed_out",
                timeout=spec.timeout,
                cancelled=cancelled,
                stdout=result.stdout_text,
                stderr=result.stderr_text,
                **fields,
            )
            raise CommandTimeoutError(
                command=spec.executable,
                timeout_seconds=spec.timeout,
                cancelled=cancelled,
            )

        if result.exit_code != 0:
            self._log.error(
                "command_execution_failed",
                stdout=result.stdout_text,
                stderr=result.stderr_text,
                exit_code=result.exit_code,
                **fields,
            )
            raise ExecutionError(
                command=spec.executable,
                exit_code=result.exit_code,
                stdout=result.stdout_text,
                stderr=result.stderr_text,
            )

        if result.stderr:
            self._log.warning(
                "command_wrote_stderr",
                stderr=result.stderr_text,
                **fields,
            )

        return result

    async def _communicate(
        self,
        proc: asyncio.subprocess.Process,
        timeout: float,
        cancel: Optional[asyncio.Event],
    ) -> tuple[ExecutionOutcome, bytes, bytes]:
        """Wait for output, the deadline, or the cancel event, whichever is first.

        Output read before a timeout or cancellation is returned with it.
        """
        stdout = bytearray()
        stderr = bytearray()
        comm = asyncio.gather(
            _drain(proc.stdout, stdout),
            _drain(proc.stderr, stderr),
            proc.wait(),
        )
        cancel_wait = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
        waiters = [f for f in (comm, cancel_wait) if f is not None]

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
            if comm in done:
                comm.result()
                return ExecutionOutcome.EXITED, bytes(stdout), bytes(stderr)
            _kill(proc, group=True)
            if cancel_wait is not None and cancel_wait in done:
                return ExecutionOutcome.CANCELLED, bytes(stdout), bytes(stderr)
            return ExecutionOutcome.TIMED_OUT, bytes(stdout), bytes(stderr)
        finally:
            for fut in waiters:
                if not fut.done():
                    fut.cancel()
