import json
import logging
import re

from castmatch.core.exceptions import MatchParseError
from castmatch.core.metrics import increment_match_parse_failure

logger = logging.getLogger(__name__)

_FENCE_PATTERNS = (
    re.compile(r"```json\s*\n?(.*?)\n?```", re.DOTALL | re.IGNORECASE),
    re.compile(r"```\s*\n?(.*?)\n?```", re.DOTALL),
)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def strip_markdown_fences(text: str) -> str:
    """Remove markdown code fences from LLM output."""
    for pattern in _FENCE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return text


def extract_json_array(text: str) -> str | None:
    """Extract the outermost JSON array using bracket matching."""
    start = text.find("[")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape_next = False

    for i, char in enumerate(text[start:], start):
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    return None


def parse_json_array(text: str) -> list:
    """Parse a JSON array out of free-form model text.

    Raises:
        MatchParseError: If no array can be recovered.
    """
    if not text or not text.strip():
        increment_match_parse_failure("empty")
        raise MatchParseError("Completion returned no text to parse")

    cleaned = strip_markdown_fences(text.strip())
    candidate = extract_json_array(cleaned)
    if candidate is None:
        increment_match_parse_failure("extract")
        raise MatchParseError("No JSON array found in completion text")

    for attempt in (candidate, _TRAILING_COMMA.sub(r"\1", candidate)):
        try:
            parsed = json.loads(attempt)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, list):
            return parsed

    increment_match_parse_failure("decode")
    logger.warning("match payload could not be decoded preview=%r", candidate[:200])
    raise MatchParseError("Completion text is not a valid JSON array")
