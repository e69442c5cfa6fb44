"""
JSON-from-prose extraction.

Models are asked for "JSON only" but still wrap it in prose or code fences.
extract_json_object() pulls out the first balanced {...} that parses as a
JSON object and ignores everything around it.
"""
import json

from app.errors import ParseError


def _balanced_end(text: str, start: int) -> int:
    """Index just past the brace that closes text[start], or -1 if it never closes."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth == 0:
                return i + 1
    return -1


def extract_json_object(text: str) -> dict:
    """
    Return the first balanced {...} substring of text that parses as a JSON object.

    Raises ParseError when text is empty, has no object, or the only
    candidate is truncated.
    """
    if not text or not text.strip():
        raise ParseError('Empty model response')

    start = text.find('{')
    while start != -1:
        end = _balanced_end(text, start)
        value = None
        if end != -1:
            try:
                value = json.loads(text[start:end])
            except ValueError:
                value = None
        if isinstance(value, dict):
            return value
        start = text.find('{', start + 1)

    raise ParseError('No JSON object found in model response')
