"""Compact output formatters for MCP tool responses."""

from kura_search.models.search import (
    SearchHistoryRecord,
    SearchMethod,
    SearchOutcome,
    SearchResult,
)

_METHOD_NOTES = {
    SearchMethod.VECTOR: "semantic match",
    SearchMethod.FTS: "keyword match (semantic search unavailable or empty)",
    SearchMethod.COMBINED: "semantic + keyword match",
}


def format_result_header(result: SearchResult) -> str:
    """Format: [id] pdf | Title (87%)."""
    title = result.title or "(untitled)"
    return f"[{result.id}] {result.content_type.value} | {title} ({result.relevance_score:.0%})"


def format_result_meta(result: SearchResult) -> str:
    """Format: #tag1 #tag2 | 2025-11-20 | web."""
    parts: list[str] = []
    if result.metadata.tags:
        parts.append(" ".join(f"#{t}" for t in result.metadata.tags))
    if result.metadata.created_at:
        parts.append(result.metadata.created_at.date().isoformat())
    if result.metadata.source:
        parts.append(result.metadata.source)
    return " | ".join(parts)


def format_result_compact(result: SearchResult) -> str:
    """Header + excerpt + meta."""
    lines = [format_result_header(result), f"  {result.excerpt}"]
    meta = format_result_meta(result)
    if meta:
        lines.append(f"  {meta}")
    return "\n".join(lines)


def format_outcome(outcome: SearchOutcome) -> str:
    """Count + method note + results joined by blank lines."""
    if not outcome.results:
        return "No results found."

    shown = len(outcome.results)
    count = f"{shown} result(s)"
    if outcome.total_results > shown:
        count = f"{shown} of {outcome.total_results} result(s)"

    lines = [count, f"Method: {_METHOD_NOTES[outcome.method_used]}", ""]
    lines.append("\n\n".join(format_result_compact(r) for r in outcome.results))
    return "\n".join(lines)


def format_history(records: list[SearchHistoryRecord]) -> str:
    """One line per search: timestamp, method, result count, query."""
    if not records:
        return "No search history."
    return "\n".join(
        f"{r.created_at:%Y-%m-%d %H:%M} {r.method_used.value:<8} {r.result_count:>3}  {r.query}"
        for r in records
    )
