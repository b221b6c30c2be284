"""Tests for external conversation id resolution."""

from __future__ import annotations

import json

import pytest

from ccwrap.messages.decoder import MessageDecoder
from ccwrap.messages.models import AssistantMessage, RawMessage, SessionCreatedMessage
from ccwrap.session_id import (
    SessionIdSource,
    is_valid_session_id,
    resolve_session_id,
    resolve_session_id_with_source,
)

SESSION = "a1b2c3d4-e5f6-7890-abcd-ef1234567890"
OTHER = "ffffffff-0000-1111-2222-333333333333"


class TestIsValidSessionId:
    @pytest.mark.parametrize("value", [SESSION, SESSION.upper(), OTHER])
    def test_valid(self, value: str) -> None:
        assert is_valid_session_id(value)

    @pytest.mark.parametrize(
        "value",
        [
            None,
            "",
            "not-a-uuid",
            SESSION[:-1],
            SESSION + "0",
            SESSION.replace("-", ""),
            "g1b2c3d4-e5f6-7890-abcd-ef1234567890",
            " " + SESSION[1:],
        ],
    )
    def test_invalid(self, value: str | None) -> None:
        assert not is_valid_session_id(value)


class TestResolutionOrder:
    def test_own_field_first(self) -> None:
        message = AssistantMessage(
            handle=OTHER,
            session_id=SESSION,
            raw=json.dumps({"sessionId": OTHER}),
        )
        resolved = resolve_session_id_with_source(message)
        assert resolved is not None
        assert resolved.value == SESSION
        assert resolved.source == SessionIdSource.MESSAGE

    def test_invalid_own_field_skipped(self) -> None:
        message = AssistantMessage(session_id="bogus", raw=json.dumps({"sessionId": SESSION}))
        resolved = resolve_session_id_with_source(message)
        assert resolved is not None
        assert resolved.source == SessionIdSource.RAW_JSON

    def test_handle_second(self) -> None:
        message = AssistantMessage(handle=SESSION, raw=json.dumps({"sessionId": OTHER}))
        resolved = resolve_session_id_with_source(message)
        assert resolved is not None
        assert resolved.value == SESSION
        assert resolved.source == SessionIdSource.HANDLE

    def test_explicit_handle_overrides_message_handle(self) -> None:
        message = AssistantMessage(handle="not-a-uuid")
        assert resolve_session_id(message, handle=SESSION) == SESSION

    def test_raw_json_without_dedicated_field(self) -> None:
        raw = '{"type":"mystery","session_id":"a1b2c3d4-e5f6-7890-abcd-ef1234567890"}'
        message = RawMessage(handle="h1", session_id=None, content=raw, raw=raw)
        resolved = resolve_session_id_with_source(message)
        assert resolved is not None
        assert resolved.value == SESSION
        assert resolved.source == SessionIdSource.RAW_JSON

    @pytest.mark.parametrize(
        "field", ["session_id", "sessionId", "claude_session_id", "claudeCodeSessionId"]
    )
    def test_raw_json_aliases(self, field: str) -> None:
        message = AssistantMessage(handle="h1", raw=json.dumps({field: SESSION}))
        assert resolve_session_id(message) == SESSION

    def test_raw_alias_order(self) -> None:
        raw = json.dumps({"claudeCodeSessionId": OTHER, "sessionId": SESSION})
        assert resolve_session_id(AssistantMessage(raw=raw)) == SESSION

    def test_content_scan(self) -> None:
        message = AssistantMessage(handle="h1", content=f"resume with {SESSION} later")
        resolved = resolve_session_id_with_source(message)
        assert resolved is not None
        assert resolved.value == SESSION
        assert resolved.source == SessionIdSource.CONTENT

    def test_serialized_scan(self) -> None:
        message = AssistantMessage(handle="h1", metadata={"nested": {"id": SESSION}})
        resolved = resolve_session_id_with_source(message)
        assert resolved is not None
        assert resolved.value == SESSION
        assert resolved.source == SessionIdSource.SERIALIZED

    def test_non_json_raw_is_skipped(self) -> None:
        message = RawMessage(handle="h1", content="garbage", raw="garbage")
        assert resolve_session_id(message) is None

    def test_nothing_found(self) -> None:
        assert resolve_session_id(SessionCreatedMessage(handle="h1", content="started")) is None

    def test_unparseable_raw_falls_back_to_content(self) -> None:
        raw = '{"n": ' + "9" * 5000 + ', "session_id": "' + SESSION + '"}'
        message = RawMessage(handle="h1", content=raw, raw=raw)
        resolved = resolve_session_id_with_source(message)
        assert resolved is not None
        assert resolved.value == SESSION
        assert resolved.source == SessionIdSource.CONTENT

    def test_deeply_nested_raw(self) -> None:
        raw = "[" * 100_000 + "]" * 100_000
        message = RawMessage(handle="h1", content=raw, raw=raw)
        assert resolve_session_id(message) is None


class TestWithDecoder:
    def test_decoded_unknown_type_line(self) -> None:
        line = '{"type":"mystery","session_id":"a1b2c3d4-e5f6-7890-abcd-ef1234567890"}'
        message = MessageDecoder().decode(line, "h1")
        assert resolve_session_id(message) == SESSION

    def test_decoded_init(self) -> None:
        line = json.dumps({"type": "system", "subtype": "init", "session_id": SESSION})
        message = MessageDecoder().decode(line, "h1")
        resolved = resolve_session_id_with_source(message)
        assert resolved is not None
        assert resolved.source == SessionIdSource.MESSAGE
