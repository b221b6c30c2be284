"""Tool-name resolution for tool results.

A result names only the invocation id it answers. The name is resolved
from the session's correlation store first and, failing that, guessed
from the result text by an ordered list of rules.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import Literal, NamedTuple, Protocol

from ccwrap.correlation import CorrelationRegistry

#: Invocation-id prefixes issued for tools outside the built-in set.
EXTERNAL_ID_PREFIXES = ("toolu_", "call_")

SEARCH_TOOL = "mcp__brave-search__brave_web_search"
BROWSER_TOOL = "mcp__playwright__playwright_navigate"
EXTERNAL_TOOL = "mcp_tool"
UNKNOWN_TOOL = "unknown"

_LINE_NUMBER_ARROW_RE = re.compile(r"\d+→")

NameSource = Literal["correlation", "heuristic"]


class ResolvedToolName(NamedTuple):
    name: str
    source: NameSource


class ToolNameResolver(Protocol):
    def resolve(self, handle: str, tool_use_id: str | None, content: str) -> ResolvedToolName: ...


class ToolNameRule(NamedTuple):
    """``label`` applies when ``predicate(tool_use_id, content)`` is true."""

    label: str
    predicate: Callable[[str, str], bool]


def _contains_any(*needles: str) -> Callable[[str, str], bool]:
    return lambda _id, content: any(n in content for n in needles)


def _external_id(tool_use_id: str) -> bool:
    return tool_use_id.startswith(EXTERNAL_ID_PREFIXES)


DEFAULT_RULES: tuple[ToolNameRule, ...] = (
    ToolNameRule(
        "Bash", _contains_any("Tool ran without output", "Command timed out", "exit code")
    ),
    ToolNameRule("Read", lambda _id, c: _LINE_NUMBER_ARROW_RE.search(c) is not None),
    ToolNameRule("Edit", _contains_any("File updated", "edited successfully")),
    ToolNameRule("Write", _contains_any("File written", "created successfully")),
    ToolNameRule("Glob", _contains_any("files found", "Found")),
    ToolNameRule("Grep", _contains_any("matches found")),
    ToolNameRule("TodoWrite", _contains_any("Todos have been modified successfully")),
    ToolNameRule(
        SEARCH_TOOL,
        lambda i, c: _external_id(i)
        and any(n in c for n in ("search results", "Title:", "URL:")),
    ),
    ToolNameRule(
        BROWSER_TOOL,
        lambda i, c: _external_id(i) and any(n in c for n in ("<!DOCTYPE html", "Page loaded")),
    ),
    ToolNameRule(EXTERNAL_TOOL, lambda i, _c: _external_id(i)),
)


class HeuristicToolNames:
    """First matching rule wins; ``unknown`` when none match."""

    def __init__(self, rules: Sequence[ToolNameRule] = DEFAULT_RULES) -> None:
        self._rules = tuple(rules)

    def infer(self, tool_use_id: str | None, content: str) -> str:
        tool_id = tool_use_id or ""
        for rule in self._rules:
            if rule.predicate(tool_id, content):
                return rule.label
        return UNKNOWN_TOOL

    def resolve(self, handle: str, tool_use_id: str | None, content: str) -> ResolvedToolName:
        return ResolvedToolName(self.infer(tool_use_id, content), "heuristic")


class CorrelatedToolNames:
    """Correlation lookup with heuristic fallback."""

    def __init__(
        self,
        correlations: CorrelationRegistry,
        fallback: HeuristicToolNames | None = None,
    ) -> None:
        self._correlations = correlations
        self._fallback = fallback or HeuristicToolNames()

    def resolve(self, handle: str, tool_use_id: str | None, content: str) -> ResolvedToolName:
        if tool_use_id:
            name = self._correlations.lookup(handle, tool_use_id)
            if name is not None:
                return ResolvedToolName(name, "correlation")
        return self._fallback.resolve(handle, tool_use_id, content)
