"""Session orchestration — the control surface used by the transport layer.

Each session runs as one orchestration task with two children: a stdout
pipeline (reassemble → decode → callback, in stream order) and a stderr
drain used only for diagnostics. Both children are joined or cancelled
before the session is cleaned up.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections import deque

from ccwrap.config.models import WrapperConfig
from ccwrap.constants import TIMEOUT_EXIT_CODE, MessageCallback
from ccwrap.correlation import CorrelationRegistry
from ccwrap.errors import ProcessTimeout, SpawnError, StreamReadError, describe_failure
from ccwrap.helpers import format_stderr_preview, truncate
from ccwrap.messages.decoder import MessageDecoder
from ccwrap.messages.models import (
    CompleteMessage,
    ErrorMessage,
    RawMessage,
    SessionCreatedMessage,
    WrapperMessage,
)
from ccwrap.process.command import resolve_launch_spec
from ccwrap.process.options import LaunchSpec, OptionsFactory
from ccwrap.process.registry import ManagedSession, ProcessRegistry
from ccwrap.session_id import SessionIdSource, resolve_session_id_with_source
from ccwrap.stream.reassembler import (
    DEFAULT_CHUNK_SIZE,
    ChunkSource,
    TrailingPolicy,
    iter_lines,
)

logger = logging.getLogger(__name__)

#: Default soft bound (s) on draining stdout.
DEFAULT_STDOUT_TIMEOUT = 600.0

#: Default hard bound (s) on process exit once stdout is done.
DEFAULT_EXIT_TIMEOUT = 30.0

#: Seconds granted to reader tasks to reach EOF after the process exits.
_READER_GRACE = 2.0

#: Stderr lines kept for the exit diagnostics.
_STDERR_TAIL_LINES = 50

#: Characters of each stderr line kept in the tail.
_STDERR_LINE_CHARS = 2000

#: Resolver steps trusted to replace an already known conversation id.
_AUTHORITATIVE_SOURCES = {SessionIdSource.MESSAGE, SessionIdSource.RAW_JSON}


class WrapperService:
    """Start, follow up, stop and query CLI sessions by handle.

    Messages are delivered through an async callback, awaited once per
    message in stream order. A failing callback is logged and skipped;
    delivery beyond that is the caller's concern.
    """

    def __init__(
        self,
        registry: ProcessRegistry | None = None,
        decoder: MessageDecoder | None = None,
        *,
        default_options: LaunchSpec | None = None,
        stdout_timeout: float = DEFAULT_STDOUT_TIMEOUT,
        exit_timeout: float = DEFAULT_EXIT_TIMEOUT,
        read_chunk_size: int = DEFAULT_CHUNK_SIZE,
        trailing: TrailingPolicy = "emit",
    ) -> None:
        if registry is None:
            registry = ProcessRegistry(correlations=CorrelationRegistry())
        self._registry = registry
        self._decoder = decoder or MessageDecoder(registry.correlations)
        self._default_options = default_options
        self._stdout_timeout = stdout_timeout
        self._exit_timeout = exit_timeout
        self._chunk_size = read_chunk_size
        self._trailing: TrailingPolicy = trailing

        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._conversation_ids: dict[str, str] = {}
        # Handles whose task has not reached the registry yet.
        self._pending_launch: set[str] = set()

    @classmethod
    def from_config(cls, config: WrapperConfig) -> WrapperService:
        registry = ProcessRegistry(cli_path=config.cli.path)
        return cls(
            registry,
            default_options=OptionsFactory(config).create_default_options(),
            stdout_timeout=config.service.stdout_timeout,
            exit_timeout=config.service.exit_timeout,
            read_chunk_size=config.service.read_chunk_size,
        )

    @property
    def registry(self) -> ProcessRegistry:
        return self._registry

    # ------------------------------------------------------------------ #
    # Control operations
    # ------------------------------------------------------------------ #

    def start_session(
        self,
        handle: str,
        prompt: str,
        *,
        on_message: MessageCallback,
        conversation_id: str | None = None,
        is_first_message: bool = True,
        project_path: str | None = None,
        options: LaunchSpec | None = None,
    ) -> asyncio.Task[None]:
        """Launch the CLI for *handle* and stream its messages to *on_message*.

        Returns the orchestration task; it never raises for CLI failures,
        which are reported as ``claude-error`` messages instead.
        """
        spec = resolve_launch_spec(
            options if options is not None else self._default_options,
            conversation_id,
            is_first_message,
        )
        if project_path:
            spec = spec.model_copy(update={"working_directory": project_path})

        logger.info(
            "%s: starting session (first=%s, resume=%s)",
            handle,
            is_first_message,
            spec.resume_session_id,
        )
        task = asyncio.create_task(
            self._run_session(handle, prompt, spec, on_message),
            name=f"ccwrap-session-{handle}",
        )
        self._tasks[handle] = task
        self._pending_launch.add(handle)
        task.add_done_callback(functools.partial(self._forget_task, handle))
        return task

    def send_follow_up(
        self,
        handle: str,
        prompt: str,
        *,
        on_message: MessageCallback,
        conversation_id: str | None = None,
        options: LaunchSpec | None = None,
    ) -> asyncio.Task[None]:
        """Resume the conversation last seen on *handle* with a new prompt."""
        target = conversation_id or self._conversation_ids.get(handle)
        return self.start_session(
            handle,
            prompt,
            on_message=on_message,
            conversation_id=target,
            is_first_message=False,
            options=options,
        )

    def kill_session(self, handle: str) -> bool:
        """Kill the CLI for *handle*, including one that is still launching.

        Returns False when there is nothing left to kill.
        """
        if self._registry.kill(handle):
            return True
        if handle not in self._pending_launch:
            return False
        logger.info("%s: kill requested before launch", handle)
        self._registry.request_kill(handle)
        return True

    def active_sessions(self) -> set[str]:
        return self._registry.active_handles()

    def conversation_id(self, handle: str) -> str | None:
        """Latest external conversation id observed on *handle*."""
        return self._conversation_ids.get(handle)

    def forget_session(self, handle: str) -> str | None:
        """Drop the conversation id remembered for *handle* and return it."""
        return self._conversation_ids.pop(handle, None)

    async def shutdown(self) -> None:
        """Kill every live session and wait for the orchestration tasks."""
        for handle in sorted(self.active_sessions() | self._pending_launch):
            self.kill_session(handle)
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Orchestration
    # ------------------------------------------------------------------ #

    async def _run_session(
        self,
        handle: str,
        prompt: str,
        spec: LaunchSpec,
        on_message: MessageCallback,
    ) -> None:
        emit = functools.partial(self._emit, handle, on_message)

        self._pending_launch.discard(handle)
        try:
            session = await self._registry.spawn(handle, spec, prompt)
        except SpawnError as exc:
            self._registry.cancel_kill_request(handle)
            logger.error("%s: %s", handle, exc)
            await emit(ErrorMessage(handle=handle, error=describe_failure(exc)))
            return

        await emit(
            SessionCreatedMessage(handle=handle, content="ClaudeCodeCliWrapper session started")
        )

        stderr_task = asyncio.create_task(self._drain_stderr(session))
        stdout_task = asyncio.create_task(self._pump_stdout(session, emit))
        stdout_timeout = spec.timeout or self._stdout_timeout
        try:
            try:
                await asyncio.wait_for(asyncio.shield(stdout_task), timeout=stdout_timeout)
            except TimeoutError:
                logger.warning("%s: %s", handle, ProcessTimeout("stdout", stdout_timeout))

            try:
                exit_code = await self._registry.wait(session, self._exit_timeout)
            except ProcessTimeout as exc:
                logger.warning("%s: %s; process was force-killed", handle, exc)
                exit_code = TIMEOUT_EXIT_CODE
        finally:
            await _settle(stdout_task, stderr_task)
            self._registry.cleanup(handle)

        logger.info("%s: CLI finished with exit code %d", handle, exit_code)
        if exit_code != 0 and not stderr_task.cancelled() and stderr_task.exception() is None:
            preview = format_stderr_preview(stderr_task.result())
            if preview:
                logger.warning("%s: CLI exited with code %d. Stderr:\n  %s", handle, exit_code, preview)

        await emit(
            CompleteMessage(
                handle=handle,
                content=f"Process completed with exit code: {exit_code}",
                exit_code=exit_code,
            )
        )

    async def _pump_stdout(self, session: ManagedSession, emit: MessageCallback) -> None:
        """Reassemble, decode and deliver stdout lines until EOF."""
        handle = session.handle
        stdout = session.process.stdout
        if stdout is None:
            return

        count = 0
        try:
            async for line in iter_lines(stdout, self._chunk_size, self._trailing):
                count += 1
                session.touch()
                logger.debug("%s: line %d: %.200s", handle, count, line)
                await emit(self._process_line(handle, line))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if session.state.is_terminal:
                # Killing the process tears the pipe down under the reader.
                logger.debug("%s: stdout closed after %s: %s", handle, session.state.value, exc)
                return
            failure = StreamReadError(f"Stream processing error: {exc}")
            logger.error("%s: error reading stdout: %s", handle, exc)
            await emit(ErrorMessage(handle=handle, error=str(failure)))
            # The CLI must not block on a full pipe once nobody decodes it.
            await _discard_remaining(stdout, handle, self._chunk_size)
            return

        logger.info("%s: finished reading %d lines", handle, count)

    def _process_line(self, handle: str, line: str) -> WrapperMessage:
        try:
            message = self._decoder.decode(line, handle)
        except Exception:
            logger.exception("%s: decoder failed, passing line through raw", handle)
            return RawMessage(handle=handle, content=line, raw=line)
        try:
            self._track_conversation(handle, message)
        except Exception:
            logger.exception("%s: conversation id lookup failed", handle)
        return message

    async def _drain_stderr(self, session: ManagedSession) -> str:
        """Log stderr lines as they arrive; return the last few for diagnostics.

        Reads fixed-size chunks, so an arbitrarily long line never stalls
        the drain.
        """
        stderr = session.process.stderr
        if stderr is None:
            return ""

        tail: deque[str] = deque(maxlen=_STDERR_TAIL_LINES)
        try:
            async for text in iter_lines(stderr, self._chunk_size):
                logger.warning("%s stderr: %.2000s", session.handle, text)
                tail.append(truncate(text, _STDERR_LINE_CHARS))
        except (OSError, ValueError) as exc:
            logger.debug("%s: error reading stderr: %s", session.handle, exc)
            await _discard_remaining(stderr, session.handle, self._chunk_size)
        return "\n".join(tail)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    async def _emit(
        self,
        handle: str,
        on_message: MessageCallback,
        message: WrapperMessage,
    ) -> None:
        try:
            await on_message(message)
        except Exception:
            logger.exception("%s: message consumer failed on %s message", handle, message.kind)

    def _track_conversation(self, handle: str, message: WrapperMessage) -> None:
        resolved = resolve_session_id_with_source(message, handle)
        if resolved is None:
            return
        current = self._conversation_ids.get(handle)
        if resolved.value == current:
            return
        if current is None or resolved.source in _AUTHORITATIVE_SOURCES:
            logger.info(
                "%s: conversation id %s (from %s)", handle, resolved.value, resolved.source.value
            )
            self._conversation_ids[handle] = resolved.value

    def _forget_task(self, handle: str, task: asyncio.Task[None]) -> None:
        if self._tasks.get(handle) is task:
            del self._tasks[handle]
            self._pending_launch.discard(handle)


async def _settle(*tasks: asyncio.Task[object]) -> None:
    """Give reader tasks a short grace period, then cancel and join them."""
    pending = [t for t in tasks if not t.done()]
    if pending:
        _done, still_running = await asyncio.wait(pending, timeout=_READER_GRACE)
        for task in still_running:
            task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


async def _discard_remaining(stream: ChunkSource, handle: str, chunk_size: int) -> None:
    """Read *stream* to EOF without decoding it."""
    discarded = 0
    while True:
        try:
            chunk = await stream.read(chunk_size)
        except Exception as exc:
            logger.debug("%s: stopped draining pipe: %s", handle, exc)
            break
        if not chunk:
            break
        discarded += len(chunk)
    if discarded:
        logger.warning("%s: discarded %d unread bytes", handle, discarded)
