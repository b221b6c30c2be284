"""Shared constants and type aliases for the ccwrap runtime."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ccwrap.messages.models import WrapperMessage

#: Exit code reported when the CLI had to be force-killed after a hard timeout.
TIMEOUT_EXIT_CODE = -1

#: Callback type for per-message consumers (the transport layer).
MessageCallback = Callable[["WrapperMessage"], Awaitable[None]]
