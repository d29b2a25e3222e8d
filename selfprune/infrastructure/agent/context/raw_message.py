"""
Helpers for reading raw conversation messages.

Inbound messages are plain dicts in any of the common chat shapes:

- ``{"role", "content": str}`` (OpenAI text)
- ``{"role", "content": [{"type": "text", "text": ...}, ...]}`` (content parts)
- ``{"role", "parts": [{"type": "text", "text": ...}, ...]}`` (UI message parts)

Tool-call wrappers are structural and never contribute text.
"""

from typing import Any

ID_PREFIX = "msg:"
ID_WIDTH = 3


def message_id(index: int) -> str:
    """Positional id for the ``index``-th message (0-based index, 1-based id)."""
    return f"{ID_PREFIX}{index + 1:0{ID_WIDTH}d}"


def _text_from_parts(parts: list[Any]) -> str:
    return "".join(
        part.get("text") or ""
        for part in parts
        if isinstance(part, dict) and part.get("type") == "text"
    )


def extract_text(message: dict[str, Any]) -> str:
    """Concatenate the text-bearing parts of a message."""
    parts = message.get("parts")
    if isinstance(parts, list):
        return _text_from_parts(parts)

    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return _text_from_parts(content)
    return ""


def tool_links(message: dict[str, Any]) -> tuple[set[str], set[str]]:
    """
    Collect the tool-call ids a message issues and the ones it answers.

    Returns:
        (call_ids, result_ids)
    """
    calls: set[str] = set()
    results: set[str] = set()

    for tool_call in message.get("tool_calls") or []:
        if isinstance(tool_call, dict) and tool_call.get("id"):
            calls.add(str(tool_call["id"]))

    if message.get("tool_call_id"):
        results.add(str(message["tool_call_id"]))

    parts: list[Any] = []
    if isinstance(message.get("parts"), list):
        parts.extend(message["parts"])
    if isinstance(message.get("content"), list):
        parts.extend(message["content"])

    for part in parts:
        if not isinstance(part, dict):
            continue
        part_type = part.get("type")
        if part_type == "tool_use" and part.get("id"):
            calls.add(str(part["id"]))
        elif part_type == "tool_result" and part.get("tool_use_id"):
            results.add(str(part["tool_use_id"]))
        elif part_type == "tool-call" and part.get("toolCallId"):
            calls.add(str(part["toolCallId"]))
        elif part_type == "tool-result" and part.get("toolCallId"):
            results.add(str(part["toolCallId"]))

    return calls, results
