"""
Suggestion Parser - extracts pruning proposals from free-form agent output.

Grammar (mirrors the protocol section of the system prompt):

    <prune_suggestions>
      <suggestion id="msg:003" confidence="0.9" tokens="150" reason="..." />
    </prune_suggestions>

Leaf records carry exactly ``id``, ``confidence``, ``tokens`` and ``reason``
in any order, single- or double-quoted. A malformed record is skipped
without affecting its siblings. Parsing is pure and never raises.
"""

import html
import logging
import math
import re
from dataclasses import dataclass, field

from selfprune.domain.model.prune import PruneSuggestion

logger = logging.getLogger(__name__)

BLOCK_OPEN = "<prune_suggestions>"
BLOCK_CLOSE = "</prune_suggestions>"

_BLOCK_PATTERN = re.compile(
    re.escape(BLOCK_OPEN) + r"(.*?)" + re.escape(BLOCK_CLOSE), re.DOTALL
)
_LEAF_START = re.compile(r"<suggestion(?=[\s/>])")
_ATTRIBUTE = re.compile(r"\s+([A-Za-z_][\w\-]*)\s*=\s*(?:\"([^\"]*)\"|'([^']*)')")
_LEAF_END = re.compile(r"\s*/>")
_ID_PATTERN = re.compile(r"^msg:\d{3,}$")
_INTEGER_PATTERN = re.compile(r"^\d+$")

REQUIRED_ATTRIBUTES = frozenset({"id", "confidence", "tokens", "reason"})


@dataclass
class ParseResult:
    """Response text with the suggestion block removed, plus the parsed records."""

    clean_text: str
    suggestions: list[PruneSuggestion] = field(default_factory=list)
    skipped_records: int = 0


def _read_attributes(body: str, pos: int) -> tuple[dict[str, str], int] | None:
    """Read attributes starting at ``pos`` up to the self-closing ``/>``."""
    attributes: dict[str, str] = {}
    while True:
        end = _LEAF_END.match(body, pos)
        if end is not None:
            return attributes, end.end()

        match = _ATTRIBUTE.match(body, pos)
        if match is None:
            return None

        name = match.group(1)
        if name in attributes:
            return None
        raw_value = match.group(2) if match.group(2) is not None else match.group(3)
        attributes[name] = html.unescape(raw_value)
        pos = match.end()


def _to_suggestion(attributes: dict[str, str]) -> PruneSuggestion | None:
    if set(attributes) != REQUIRED_ATTRIBUTES:
        return None

    suggestion_id = attributes["id"].strip()
    if not _ID_PATTERN.match(suggestion_id):
        return None

    try:
        confidence = float(attributes["confidence"])
    except ValueError:
        return None
    if not math.isfinite(confidence) or not 0.0 <= confidence <= 1.0:
        return None

    tokens_text = attributes["tokens"].strip()
    if not _INTEGER_PATTERN.match(tokens_text):
        return None

    return PruneSuggestion(
        id=suggestion_id,
        confidence=confidence,
        tokens=int(tokens_text),
        reason=attributes["reason"],
    )


def _parse_block(body: str) -> tuple[list[PruneSuggestion], int]:
    suggestions: list[PruneSuggestion] = []
    skipped = 0
    pos = 0

    while True:
        start = _LEAF_START.search(body, pos)
        if start is None:
            break

        parsed = _read_attributes(body, start.end())
        if parsed is None:
            skipped += 1
            pos = start.end()
            continue

        attributes, pos = parsed
        suggestion = _to_suggestion(attributes)
        if suggestion is None:
            skipped += 1
            continue
        suggestions.append(suggestion)

    return suggestions, skipped


def parse_prune_suggestions(response_text: str) -> ParseResult:
    """
    Split a model response into clean text and pruning suggestions.

    Only the first block is read. Every block is stripped from the clean
    text, so parsing the clean text again always yields no suggestions.

    Args:
        response_text: Raw model output

    Returns:
        ParseResult (clean text is the input verbatim when no block exists)
    """
    if not response_text:
        return ParseResult(clean_text=response_text or "")

    match = _BLOCK_PATTERN.search(response_text)
    if match is None:
        return ParseResult(clean_text=response_text)

    suggestions, skipped = _parse_block(match.group(1))
    if skipped:
        logger.warning(f"Skipped {skipped} malformed prune suggestion record(s)")

    clean_text = _BLOCK_PATTERN.sub("", response_text).strip()
    return ParseResult(clean_text=clean_text, suggestions=suggestions, skipped_records=skipped)


def filter_by_confidence(
    suggestions: list[PruneSuggestion], threshold: float
) -> list[PruneSuggestion]:
    """Suggestions at or above ``threshold``, in source order."""
    return [s for s in suggestions if s.confidence >= threshold]
