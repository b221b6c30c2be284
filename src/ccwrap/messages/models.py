"""Pydantic v2 models for messages handed to the transport layer."""

from __future__ import annotations

import time
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag

#: Kind used when a line cannot be classified.
RAW_FALLBACK = "raw-output"


def _now_ms() -> int:
    return int(time.time() * 1000)


class _MessageBase(BaseModel):
    """Fields shared by every message."""

    model_config = ConfigDict(extra="forbid")

    handle: str | None = Field(
        default=None, description="Caller-supplied session handle"
    )
    session_id: str | None = Field(
        default=None, description="External conversation id reported by the CLI"
    )
    content: str | None = Field(default=None, description="Derived display text")
    raw: str | None = Field(default=None, description="Original unmodified line")
    metadata: dict[str, Any] | None = Field(default=None)
    timestamp: int = Field(
        default_factory=_now_ms, description="Creation time, epoch milliseconds"
    )


# ------------------------------------------------------------------ #
# Decoded stream messages
# ------------------------------------------------------------------ #


class AssistantMessage(_MessageBase):
    """Model output: text plus tool-invocation placeholders."""

    kind: Literal["assistant"] = "assistant"
    subtype: str | None = None
    model: str | None = None


class UserMessage(_MessageBase):
    """Tool results (and any text) fed back to the model."""

    kind: Literal["user"] = "user"
    subtype: str | None = None
    tool_use_id: str | None = Field(
        default=None, description="Invocation id of the first tool result"
    )
    tool_name: str | None = Field(
        default=None, description="Resolved name of the first tool result"
    )
    tool_name_source: Literal["correlation", "heuristic"] | None = None


class ResultMessage(_MessageBase):
    """Final summary of a CLI run."""

    kind: Literal["result"] = "result"
    subtype: str | None = None
    cost: float | None = None
    duration: int | None = Field(default=None, description="Milliseconds")
    turns: int | None = None


class SystemMessage(_MessageBase):
    """CLI system events, most notably ``init``."""

    kind: Literal["system"] = "system"
    subtype: str | None = None
    model: str | None = None


class RawMessage(_MessageBase):
    """Fallback for lines that are unparseable or of an unknown type.

    ``content`` always equals the original line.
    """

    kind: Literal["raw-output"] = RAW_FALLBACK
    source_type: str | None = Field(
        default=None, description="Discriminant of an unknown-type payload"
    )


# ------------------------------------------------------------------ #
# Lifecycle messages emitted by the wrapper itself
# ------------------------------------------------------------------ #


class SessionCreatedMessage(_MessageBase):
    kind: Literal["session-created"] = "session-created"


class ErrorMessage(_MessageBase):
    """A user-facing failure; ``error`` is already translated."""

    kind: Literal["claude-error"] = "claude-error"
    error: str


class CompleteMessage(_MessageBase):
    """The CLI process finished (or was killed)."""

    kind: Literal["claude-complete"] = "claude-complete"
    exit_code: int


StreamMessage = AssistantMessage | UserMessage | ResultMessage | SystemMessage | RawMessage
"""Any message produced by decoding one stdout line."""


def _message_discriminator(v: Any) -> str:
    """Extract the discriminator value from raw data or a model instance."""
    if isinstance(v, dict):
        return str(v.get("kind", ""))
    return str(getattr(v, "kind", ""))


WrapperMessage = Annotated[
    Annotated[AssistantMessage, Tag("assistant")]
    | Annotated[UserMessage, Tag("user")]
    | Annotated[ResultMessage, Tag("result")]
    | Annotated[SystemMessage, Tag("system")]
    | Annotated[RawMessage, Tag("raw-output")]
    | Annotated[SessionCreatedMessage, Tag("session-created")]
    | Annotated[ErrorMessage, Tag("claude-error")]
    | Annotated[CompleteMessage, Tag("claude-complete")],
    Discriminator(_message_discriminator),
]
"""Discriminated union of every message the wrapper emits."""
