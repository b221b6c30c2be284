"""Message decoder — classifies one stream-json line into a message.

Decoding never raises and never loses data: anything that cannot be
classified becomes a :class:`RawMessage` carrying the original line.
"""

from __future__ import annotations

import json
import math
import logging
from typing import Any

from ccwrap.correlation import CorrelationRegistry
from ccwrap.errors import MalformedLineError
from ccwrap.messages.formatting import format_tool_output, format_tool_result
from ccwrap.messages.models import (
    AssistantMessage,
    RawMessage,
    ResultMessage,
    StreamMessage,
    SystemMessage,
    UserMessage,
)
from ccwrap.messages.tool_names import CorrelatedToolNames, ToolNameResolver

logger = logging.getLogger(__name__)

#: Placeholder name for a ``tool_use`` block without one.
_UNNAMED_TOOL = "unknown_tool"

#: Metadata key → accepted payload field names, first present wins.
_METADATA_FIELDS: dict[str, tuple[str, ...]] = {
    "working_directory": ("working_directory", "cwd"),
    "available_tools": ("available_tools", "tools"),
    "api_key_source": ("api_key_source", "apiKeySource"),
}

_COST_FIELDS = ("cost", "total_cost_usd", "cost_usd")
_DURATION_FIELDS = ("duration", "duration_ms")
_TURN_FIELDS = ("turns", "num_turns")

#: Largest duration or turn count accepted (signed 64-bit range).
_MAX_COUNTER = 2**63 - 1


class MessageDecoder:
    """Decode lines for any number of sessions.

    Tool-invocation ids seen in assistant messages are recorded in
    *correlations* under the line's session handle, so a later tool
    result on the same handle resolves to the right tool name.
    """

    def __init__(
        self,
        correlations: CorrelationRegistry | None = None,
        tool_names: ToolNameResolver | None = None,
    ) -> None:
        self._correlations = correlations if correlations is not None else CorrelationRegistry()
        self._tool_names = tool_names or CorrelatedToolNames(self._correlations)

    @property
    def correlations(self) -> CorrelationRegistry:
        return self._correlations

    def decode(self, line: str, handle: str) -> StreamMessage:
        """Classify *line*; anything that cannot be decoded comes back raw."""
        try:
            return self._decode(line, handle)
        except MalformedLineError as exc:
            logger.warning("%s: %s: %.200s", handle, exc, line)
        except Exception:
            logger.exception("%s: failed to decode line: %.200s", handle, line)
        return RawMessage(handle=handle, content=line, raw=line)

    def _decode(self, line: str, handle: str) -> StreamMessage:
        payload = _parse_payload(line)

        message_type = payload.get("type")
        kind = message_type if isinstance(message_type, str) else "unknown"
        subtype = _str(payload, "subtype")
        common: dict[str, Any] = {
            "handle": handle,
            "session_id": _str(payload, "session_id"),
            "raw": line,
            "metadata": _extract_metadata(payload),
        }

        if kind == "assistant":
            message: StreamMessage = AssistantMessage(
                content=self._assistant_content(payload, handle),
                subtype=subtype,
                model=_str(payload, "model") or _str(_dict(payload, "message"), "model"),
                **common,
            )
        elif kind == "user":
            message = self._user_message(payload, handle, subtype, common)
        elif kind == "result":
            message = ResultMessage(
                content=_result_content(payload, subtype),
                subtype=subtype,
                cost=_number(payload, _COST_FIELDS),
                duration=_integer(payload, _DURATION_FIELDS),
                turns=_integer(payload, _TURN_FIELDS),
                **common,
            )
        elif kind == "system":
            message = SystemMessage(
                content=_system_content(payload, subtype),
                subtype=subtype,
                model=_str(payload, "model"),
                **common,
            )
        else:
            logger.debug("%s: unknown message type %r", handle, kind)
            message = RawMessage(content=line, source_type=kind, **common)

        logger.debug(
            "%s: decoded kind=%s subtype=%s content length=%d",
            handle,
            message.kind,
            subtype,
            len(message.content or ""),
        )
        return message

    # ------------------------------------------------------------------ #
    # Assistant
    # ------------------------------------------------------------------ #

    def _assistant_content(self, payload: dict[str, Any], handle: str) -> str | None:
        blocks = _content_blocks(payload)
        if isinstance(blocks, str):
            return blocks or None

        parts: list[str] = []
        for block in blocks:
            block_type = block.get("type")
            if block_type == "text":
                text = _str(block, "text")
                if text is not None:
                    parts.append(text)
            elif block_type == "tool_use":
                tool_use_id = _str(block, "id")
                tool_name = _str(block, "name") or _UNNAMED_TOOL
                if tool_use_id and tool_name != _UNNAMED_TOOL:
                    self._correlations.record(handle, tool_use_id, tool_name)
                parts.append(f"[Tool used: {tool_name}]")
            else:
                logger.debug("Skipping assistant content block %r", block_type)
        return "\n".join(parts) if parts else None

    # ------------------------------------------------------------------ #
    # User
    # ------------------------------------------------------------------ #

    def _user_message(
        self,
        payload: dict[str, Any],
        handle: str,
        subtype: str | None,
        common: dict[str, Any],
    ) -> UserMessage:
        blocks = _content_blocks(payload)
        if isinstance(blocks, str):
            return UserMessage(content=blocks or None, subtype=subtype, **common)

        parts: list[str] = []
        first_id: str | None = None
        first_name: str | None = None
        first_source = None
        seen_result = False

        for block in blocks:
            block_type = block.get("type")
            if block_type == "text":
                text = _str(block, "text")
                if text is not None:
                    parts.append(text)
            elif block_type == "tool_result":
                tool_use_id = _str(block, "tool_use_id")
                result = _tool_result_text(block)
                resolved = self._tool_names.resolve(handle, tool_use_id, result)
                logger.info(
                    "%s: tool result matched %s -> %s (%s)",
                    handle,
                    tool_use_id,
                    resolved.name,
                    resolved.source,
                )
                if not seen_result:
                    seen_result = True
                    first_id, first_name, first_source = (
                        tool_use_id,
                        resolved.name,
                        resolved.source,
                    )
                formatted = format_tool_result(resolved.name, result)
                parts.append(f"[Tool result for {resolved.name}: {formatted}]")
            else:
                logger.debug("Skipping user content block %r", block_type)

        return UserMessage(
            content="\n".join(parts) if parts else None,
            subtype=subtype,
            tool_use_id=first_id,
            tool_name=first_name,
            tool_name_source=first_source,
            **common,
        )


# ---------------------------------------------------------------------- #
# Payload helpers
# ---------------------------------------------------------------------- #


def _parse_payload(line: str) -> dict[str, Any]:
    try:
        payload = json.loads(line)
    except (ValueError, RecursionError) as exc:
        # ValueError also covers over-long integer literals.
        raise MalformedLineError(line, str(exc) or type(exc).__name__) from exc
    if not isinstance(payload, dict):
        raise MalformedLineError(line, f"expected an object, got {type(payload).__name__}")
    return payload


def _str(data: dict[str, Any] | None, key: str) -> str | None:
    if data is None:
        return None
    value = data.get(key)
    return value if isinstance(value, str) else None


def _dict(data: dict[str, Any], key: str) -> dict[str, Any] | None:
    value = data.get(key)
    return value if isinstance(value, dict) else None


def _number(data: dict[str, Any], keys: tuple[str, ...]) -> float | None:
    """First finite numeric value under *keys*; bools and overflow are skipped."""
    for key in keys:
        value = data.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        try:
            number = float(value)
        except OverflowError:
            logger.debug("Ignoring out-of-range %s value", key)
            continue
        if math.isfinite(number):
            return number
    return None


def _integer(data: dict[str, Any], keys: tuple[str, ...]) -> int | None:
    value = _number(data, keys)
    if value is None or abs(value) > _MAX_COUNTER:
        return None
    return int(value)


def _content_blocks(payload: dict[str, Any]) -> list[dict[str, Any]] | str:
    """``message.content`` as a list of block dicts, or its plain-string form."""
    message = _dict(payload, "message")
    if message is None:
        return []
    content = message.get("content")
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return []
    return [block for block in content if isinstance(block, dict)]


def _tool_result_text(block: dict[str, Any]) -> str:
    body = block.get("content")
    texts: list[str] = []
    if isinstance(body, list):
        for item in body:
            if isinstance(item, dict) and item.get("type") == "text":
                text = _str(item, "text")
                if text is not None:
                    texts.append(format_tool_output(text))
            else:
                texts.append(json.dumps(item, separators=(",", ":"), ensure_ascii=False))
    elif isinstance(body, str):
        texts.append(format_tool_output(body))
    elif body is not None:
        texts.append(json.dumps(body, separators=(",", ":"), ensure_ascii=False))
    return "\n".join(texts) if texts else "No result"


def _result_content(payload: dict[str, Any], subtype: str | None) -> str:
    if subtype == "success":
        parts = ["Session completed successfully"]
        cost = _number(payload, _COST_FIELDS)
        duration = _integer(payload, _DURATION_FIELDS)
        turns = _integer(payload, _TURN_FIELDS)
        if cost is not None:
            parts.append(f"cost: {cost}")
        if duration is not None:
            parts.append(f"duration: {duration}ms")
        if turns is not None:
            parts.append(f"turns: {turns}")
        return ", ".join(parts)
    if subtype == "error":
        detail = _str(payload, "error") or _str(payload, "message") or "Unknown error"
        return f"Error: {detail}"
    return _str(payload, "result") or f"Result: {subtype}"


def _system_content(payload: dict[str, Any], subtype: str | None) -> str:
    if subtype == "init":
        parts = ["System initialized"]
        model = _str(payload, "model")
        working_dir = _first_str(payload, _METADATA_FIELDS["working_directory"])
        tools = _tool_list(payload)
        if model is not None:
            parts.append(f"model: {model}")
        if working_dir is not None:
            parts.append(f"working directory: {working_dir}")
        if tools is not None:
            parts.append(f"tools: {', '.join(tools)}")
        return ", ".join(parts)
    return _str(payload, "model") or f"System message: {subtype}"


def _first_str(payload: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = _str(payload, key)
        if value is not None:
            return value
    return None


def _tool_list(payload: dict[str, Any]) -> list[str] | None:
    for key in _METADATA_FIELDS["available_tools"]:
        value = payload.get(key)
        if isinstance(value, list):
            return [item if isinstance(item, str) else json.dumps(item) for item in value]
    return None


def _extract_metadata(payload: dict[str, Any]) -> dict[str, Any] | None:
    """Copy known optional fields; None (not ``{}``) when there are none."""
    metadata: dict[str, Any] = {}
    working_dir = _first_str(payload, _METADATA_FIELDS["working_directory"])
    if working_dir is not None:
        metadata["working_directory"] = working_dir
    tools = _tool_list(payload)
    if tools is not None:
        metadata["available_tools"] = tools
    key_source = _first_str(payload, _METADATA_FIELDS["api_key_source"])
    if key_source is not None:
        metadata["api_key_source"] = key_source
    return metadata or None
