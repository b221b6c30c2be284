"""Process session registry — owns the handle → live CLI process mapping."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum

from ccwrap.constants import TIMEOUT_EXIT_CODE
from ccwrap.correlation import CorrelationRegistry
from ccwrap.errors import ProcessTimeout, SpawnError
from ccwrap.process.command import (
    DEFAULT_CLI_PATH,
    build_command,
    build_environment,
    resolve_working_directory,
)
from ccwrap.process.options import LaunchSpec

logger = logging.getLogger(__name__)

#: Seconds to wait for a force-killed process to be reaped.
_REAP_WAIT = 5.0

#: StreamReader buffer limit for the CLI pipes (1 MiB).
_MAX_LINE_BYTES = 1_048_576


class SessionState(str, Enum):
    """Lifecycle of one session.

    ``CREATED -> RUNNING -> {COMPLETED | KILLED | TIMED_OUT}``. The first
    terminal state reached is final.
    """

    CREATED = "created"
    RUNNING = "running"
    COMPLETED = "completed"
    KILLED = "killed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.KILLED, SessionState.TIMED_OUT)


@dataclass
class ManagedSession:
    """A live CLI process and the per-session state that goes with it."""

    handle: str
    process: asyncio.subprocess.Process
    state: SessionState = SessionState.RUNNING
    exit_code: int | None = None
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)

    @property
    def pid(self) -> int:
        return self.process.pid

    def touch(self) -> None:
        self.last_activity = time.time()


class ProcessRegistry:
    """Spawn, track, kill and clean up CLI processes by session handle.

    Thread-safe: the handle map and state transitions are guarded by a
    ``threading.Lock``. ``kill`` and ``cleanup`` are idempotent and may
    race each other; exactly one caller releases a session.
    """

    def __init__(
        self,
        cli_path: str = DEFAULT_CLI_PATH,
        correlations: CorrelationRegistry | None = None,
    ) -> None:
        self._cli_path = cli_path
        self._correlations = correlations if correlations is not None else CorrelationRegistry()
        self._lock = threading.Lock()
        self._sessions: dict[str, ManagedSession] = {}
        self._starting: set[str] = set()
        self._kill_requested: set[str] = set()

    @property
    def correlations(self) -> CorrelationRegistry:
        return self._correlations

    # ------------------------------------------------------------------ #
    # Spawn / lookup
    # ------------------------------------------------------------------ #

    async def spawn(self, handle: str, spec: LaunchSpec, prompt: str) -> ManagedSession:
        """Launch the CLI for *handle*.

        Raises:
            SpawnError: The handle already has a live process, or the
                executable is missing or not executable.
        """
        args = build_command(prompt, spec, self._cli_path)
        env = build_environment(spec)
        cwd = resolve_working_directory(spec.working_directory)

        with self._lock:
            if handle in self._sessions or handle in self._starting:
                msg = f"Session '{handle}' already has a running process"
                raise SpawnError(msg, reason="busy")
            self._starting.add(handle)

        logger.info("%s: launching %s in %s", handle, args[0], cwd)
        logger.debug("%s: argv=%s", handle, args)
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                cwd=str(cwd),
                start_new_session=True,
                limit=_MAX_LINE_BYTES,
            )
        except BaseException as exc:
            with self._lock:
                self._starting.discard(handle)
                self._kill_requested.discard(handle)
            if isinstance(exc, OSError):
                raise _spawn_error(args[0], exc) from exc
            raise

        session = ManagedSession(handle=handle, process=proc)
        with self._lock:
            self._starting.discard(handle)
            self._sessions[handle] = session
            killed_early = handle in self._kill_requested
            self._kill_requested.discard(handle)
            if killed_early:
                session.state = SessionState.KILLED
        logger.info("%s: CLI started (pid %d)", handle, proc.pid)
        if killed_early:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            logger.info("%s: killed CLI process (pid %d) on launch", handle, proc.pid)
        return session

    def lookup(self, handle: str) -> ManagedSession | None:
        with self._lock:
            return self._sessions.get(handle)

    def state(self, handle: str) -> SessionState | None:
        """Current state, ``CREATED`` while a spawn is in flight, else None."""
        with self._lock:
            session = self._sessions.get(handle)
            if session is not None:
                return session.state
            return SessionState.CREATED if handle in self._starting else None

    def active_handles(self) -> set[str]:
        with self._lock:
            return set(self._sessions)

    # ------------------------------------------------------------------ #
    # Termination
    # ------------------------------------------------------------------ #

    def kill(self, handle: str) -> bool:
        """Force-terminate the process for *handle* and clean up.

        Returns True if a live process was signalled, or if a launch is
        still in flight (the process is killed as soon as it exists).
        Unknown or already-finished handles return False.
        """
        with self._lock:
            if handle in self._starting:
                self._kill_requested.add(handle)
                logger.info("%s: kill requested while the CLI is launching", handle)
                return True
            session = self._sessions.get(handle)
            if session is None or session.state.is_terminal:
                return False
            alive = session.process.returncode is None
            session.state = SessionState.KILLED if alive else SessionState.COMPLETED

        killed = False
        if alive:
            with contextlib.suppress(ProcessLookupError):
                session.process.kill()
                killed = True
            logger.info("%s: killed CLI process (pid %d)", handle, session.pid)

        self._release(handle, signalled=killed)
        return killed

    def request_kill(self, handle: str) -> None:
        """Kill the next process launched on *handle* as soon as it starts."""
        with self._lock:
            self._kill_requested.add(handle)

    def cancel_kill_request(self, handle: str) -> None:
        with self._lock:
            self._kill_requested.discard(handle)

    def cleanup(self, handle: str) -> bool:
        """Drop the process reference and tool correlations for *handle*.

        Safe to call repeatedly and concurrently with :meth:`kill`. Returns
        True for the one call that released the session.
        """
        return self._release(handle, signalled=False)

    def _release(self, handle: str, *, signalled: bool) -> bool:
        with self._lock:
            session = self._sessions.pop(handle, None)
            if session is not None and not session.state.is_terminal:
                # Released while still running, e.g. the orchestrator failed.
                session.state = SessionState.KILLED
        self._correlations.discard(handle)

        if session is None:
            return False

        if not signalled and session.process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                session.process.kill()
        logger.debug("%s: process reference and tool mappings released", handle)
        return True

    async def wait(self, session: ManagedSession, timeout: float) -> int:
        """Wait up to *timeout* seconds for the process to exit.

        On expiry the process is force-killed, the session is marked
        ``TIMED_OUT`` with the sentinel exit code, and ``ProcessTimeout``
        is raised.
        """
        try:
            returncode = await asyncio.wait_for(session.process.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning("%s: process still running after %gs, killing", session.handle, timeout)
            self._transition(session, SessionState.TIMED_OUT)
            with contextlib.suppress(ProcessLookupError):
                session.process.kill()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(session.process.wait(), timeout=_REAP_WAIT)
            session.exit_code = TIMEOUT_EXIT_CODE
            raise ProcessTimeout("exit", timeout) from None

        self._transition(session, SessionState.COMPLETED)
        session.exit_code = returncode
        return returncode

    def _transition(self, session: ManagedSession, state: SessionState) -> None:
        with self._lock:
            if not session.state.is_terminal:
                session.state = state


def _spawn_error(executable: str, exc: OSError) -> SpawnError:
    if isinstance(exc, FileNotFoundError):
        return SpawnError(f"No such file: {executable}", reason="not_found")
    if isinstance(exc, PermissionError):
        return SpawnError(f"Permission denied: {executable}", reason="permission_denied")
    if isinstance(exc, NotADirectoryError):
        return SpawnError(f"Working directory is not usable: {exc}", reason="bad_working_directory")
    return SpawnError(f"Failed to spawn Claude CLI: {exc}", reason="os_error")
