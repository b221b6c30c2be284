"""Tool correlation — maps tool-invocation ids to tool names per session."""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class ToolCorrelationStore:
    """Invocation-id → tool-name map owned by one session.

    Written when an assistant ``tool_use`` block is seen and read when the
    matching ``tool_result`` arrives on a later line. Last writer wins.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._names: dict[str, str] = {}

    def record(self, tool_use_id: str, tool_name: str) -> None:
        with self._lock:
            self._names[tool_use_id] = tool_name

    def lookup(self, tool_use_id: str) -> str | None:
        with self._lock:
            return self._names.get(tool_use_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)


class CorrelationRegistry:
    """Per-handle collection of ``ToolCorrelationStore`` instances.

    Lookups never cross handles: a handle without a store simply has no
    correlations.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stores: dict[str, ToolCorrelationStore] = {}

    def store_for(self, handle: str) -> ToolCorrelationStore:
        """Return the store for *handle*, creating it on first use."""
        with self._lock:
            store = self._stores.get(handle)
            if store is None:
                store = ToolCorrelationStore()
                self._stores[handle] = store
            return store

    def get(self, handle: str) -> ToolCorrelationStore | None:
        with self._lock:
            return self._stores.get(handle)

    def record(self, handle: str, tool_use_id: str, tool_name: str) -> None:
        self.store_for(handle).record(tool_use_id, tool_name)
        logger.info("%s: tool mapping stored %s -> %s", handle, tool_use_id, tool_name)

    def lookup(self, handle: str, tool_use_id: str) -> str | None:
        store = self.get(handle)
        if store is None:
            return None
        return store.lookup(tool_use_id)

    def discard(self, handle: str) -> bool:
        """Drop the store for *handle*. Returns whether one existed."""
        with self._lock:
            return self._stores.pop(handle, None) is not None

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return handle in self._stores
