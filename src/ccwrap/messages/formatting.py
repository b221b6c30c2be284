"""Formatting of tool-result payloads for display."""

from __future__ import annotations

import json
import logging
from typing import Any

from ccwrap.helpers import truncate

logger = logging.getLogger(__name__)

#: Maximum search results listed by :func:`format_search_results`.
MAX_SEARCH_RESULTS = 5

#: Snippet length per search result.
MAX_SNIPPET_CHARS = 200

#: Results from namespaced external tools longer than this are truncated.
MAX_EXTERNAL_RESULT_CHARS = 1000

#: Prefix of namespaced external (MCP) tool names.
EXTERNAL_TOOL_PREFIX = "mcp__"


def format_tool_output(text: str) -> str:
    """Prettify *text* if it is embedded JSON, otherwise return it unchanged.

    Recognised search-result payloads become a compact numbered list;
    raw query payloads are left as-is; other JSON is pretty-printed.
    """
    stripped = text.strip()
    if not stripped.startswith(("{", "[")):
        return text
    try:
        payload = json.loads(stripped)
    except (ValueError, RecursionError) as exc:
        logger.debug("Tool output is not JSON: %s", exc)
        return text

    if isinstance(payload, dict):
        if isinstance(payload.get("results"), list):
            return format_search_results(payload)
        if "query" in payload or "web" in payload:
            return text
    try:
        return json.dumps(payload, indent=2, ensure_ascii=False)
    except RecursionError:
        logger.debug("Tool output nests too deeply to pretty-print")
        return text


def format_search_results(payload: dict[str, Any]) -> str:
    """Render a ``{"query": ..., "results": [...]}`` payload as a short list."""
    results = payload.get("results") or []
    query = payload.get("query")
    lines = [f"Search Query: {query if isinstance(query, str) else 'unknown'}"]

    if not results:
        lines.append("No results found")
        return "\n".join(lines)

    lines.append(f"Results found: {len(results)}")
    for index, result in enumerate(results[:MAX_SEARCH_RESULTS], start=1):
        if not isinstance(result, dict):
            result = {}
        title = _text_field(result, "title") or "No title"
        url = _text_field(result, "url") or "No URL"
        snippet = (
            _text_field(result, "snippet")
            or _text_field(result, "description")
            or "No description"
        )
        lines.append(f"{index}. {title}")
        lines.append(f"   URL: {url}")
        lines.append(f"   {truncate(snippet, MAX_SNIPPET_CHARS)}")
    return "\n".join(lines)


def format_tool_result(tool_name: str, result: str) -> str:
    """Apply per-tool display limits to an already formatted result."""
    if "brave-search" in tool_name:
        return result
    if tool_name.startswith(EXTERNAL_TOOL_PREFIX) and len(result) > MAX_EXTERNAL_RESULT_CHARS:
        return (
            f"{result[:MAX_EXTERNAL_RESULT_CHARS]}...\n"
            f"[Result truncated - {len(result)} total characters]"
        )
    return result


def _text_field(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) else None
