"""Stream-json message models and decoding."""

from ccwrap.messages.decoder import MessageDecoder
from ccwrap.messages.models import (
    RAW_FALLBACK,
    AssistantMessage,
    CompleteMessage,
    ErrorMessage,
    RawMessage,
    ResultMessage,
    SessionCreatedMessage,
    StreamMessage,
    SystemMessage,
    UserMessage,
    WrapperMessage,
)

__all__ = [
    "RAW_FALLBACK",
    "AssistantMessage",
    "CompleteMessage",
    "ErrorMessage",
    "MessageDecoder",
    "RawMessage",
    "ResultMessage",
    "SessionCreatedMessage",
    "StreamMessage",
    "SystemMessage",
    "UserMessage",
    "WrapperMessage",
]
