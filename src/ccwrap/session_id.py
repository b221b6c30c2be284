"""Session identifier resolver.

The CLI reports its conversation id inconsistently: sometimes as a
top-level ``session_id``, sometimes under another name, sometimes only
inside free text. :func:`resolve_session_id` tries each place in a fixed
order and returns the first value that validates.
"""

from __future__ import annotations

import json
import logging
import re
from enum import Enum
from typing import NamedTuple

from ccwrap.messages.models import WrapperMessage

logger = logging.getLogger(__name__)

_UUID_PATTERN = r"[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}"
_UUID_RE = re.compile(_UUID_PATTERN, re.IGNORECASE)

#: Field names probed in the raw JSON line, in order.
SESSION_ID_FIELDS = ("session_id", "sessionId", "claude_session_id", "claudeCodeSessionId")


class SessionIdSource(str, Enum):
    """Which resolution step produced the id."""

    MESSAGE = "message"
    HANDLE = "handle"
    RAW_JSON = "raw_json"
    CONTENT = "content"
    SERIALIZED = "serialized"


class ResolvedSessionId(NamedTuple):
    value: str
    source: SessionIdSource


def is_valid_session_id(value: str | None) -> bool:
    """True for a 36-character 8-4-4-4-12 hex id, any case."""
    return (
        value is not None
        and len(value) == 36
        and _UUID_RE.fullmatch(value) is not None
    )


def resolve_session_id_with_source(
    message: WrapperMessage,
    handle: str | None = None,
) -> ResolvedSessionId | None:
    """Resolve the external conversation id and report where it came from.

    Returns None when no step yields a valid id, which is normal for many
    messages.
    """
    own_id = message.session_id
    if own_id is not None and is_valid_session_id(own_id):
        return ResolvedSessionId(own_id, SessionIdSource.MESSAGE)

    candidate_handle = handle if handle is not None else message.handle
    if candidate_handle is not None and is_valid_session_id(candidate_handle):
        return ResolvedSessionId(candidate_handle, SessionIdSource.HANDLE)

    if message.raw:
        found = _from_json(message.raw)
        if found is not None:
            return ResolvedSessionId(found, SessionIdSource.RAW_JSON)

    if message.content:
        found = _from_text(message.content)
        if found is not None:
            return ResolvedSessionId(found, SessionIdSource.CONTENT)

    found = _from_text(message.model_dump_json())
    if found is not None:
        return ResolvedSessionId(found, SessionIdSource.SERIALIZED)

    logger.debug("No session id found in %s message", message.kind)
    return None


def resolve_session_id(message: WrapperMessage, handle: str | None = None) -> str | None:
    resolved = resolve_session_id_with_source(message, handle)
    return resolved.value if resolved is not None else None


def _from_json(raw: str) -> str | None:
    try:
        payload = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        logger.debug("Raw line is not JSON: %s", exc)
        return None
    if not isinstance(payload, dict):
        return None
    for field in SESSION_ID_FIELDS:
        value = payload.get(field)
        if isinstance(value, str) and is_valid_session_id(value):
            return value
    return None


def _from_text(text: str) -> str | None:
    match = _UUID_RE.search(text)
    if match is None or not is_valid_session_id(match.group(0)):
        return None
    return match.group(0)
