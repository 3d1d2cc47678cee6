"""Best-effort syntactic repair of the JSON that small models write into artifact bodies.

Handles the usual defects, in this order:

1. `//` line comments and `/* */` block comments
2. single-quoted strings
3. missing closing brackets, braces and quotes, i.e. truncated output
4. trailing commas before `}` or `]`

The result is only returned if it then decodes as JSON. The repair is purely syntactic, it never tries to guess
what a value was meant to be.
"""

from __future__ import annotations as _annotations

import json
import logging
from typing import Any

__all__ = ('repair_json',)

_logger = logging.getLogger(__name__)


def repair_json(json_string: str) -> str | None:
    """Attempt to repair a malformed JSON string.

    Args:
        json_string: The potentially malformed JSON string.

    Returns:
        `json_string` itself if it is already valid JSON, the repaired string if the repair produced valid JSON,
        or `None` if the input is empty or could not be recovered.
    """
    if not json_string or not json_string.strip():
        return None
    if _is_valid_json(json_string):
        return json_string

    repaired = json_string.strip()
    repaired = _strip_comments(repaired)
    repaired = _normalize_quotes(repaired)
    # bracket closing must come before trailing comma removal, so that `[1, 2,` becomes `[1, 2,]` and then `[1, 2]`
    repaired = _close_brackets(repaired)
    repaired = _remove_trailing_commas(repaired)

    if _is_valid_json(repaired):
        _logger.debug('Repaired malformed JSON (%d chars -> %d chars)', len(json_string), len(repaired))
        return repaired
    _logger.debug('JSON is not recoverable: %.80r', json_string)
    return None


def _is_valid_json(json_string: str) -> bool:
    try:
        json.loads(json_string, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return False
    return True


def _reject_constant(constant: str) -> Any:
    raise ValueError(f'{constant} is not valid JSON')


def _strip_comments(json_string: str) -> str:
    """Strip `//` line comments and `/* */` block comments that are not inside a string."""
    result: list[str] = []
    quote: str | None = None
    escape = False
    i = 0
    n = len(json_string)

    while i < n:
        ch = json_string[i]

        if quote is not None:
            result.append(ch)
            if escape:
                escape = False
            elif ch == '\\':
                escape = True
            elif ch == quote:
                quote = None
            i += 1
            continue

        if ch in '"\'':
            quote = ch
        elif ch == '/' and json_string.startswith('//', i):
            newline = json_string.find('\n', i)
            # keep the newline itself
            i = n if newline == -1 else newline
            continue
        elif ch == '/' and json_string.startswith('/*', i):
            end = json_string.find('*/', i + 2)
            i = n if end == -1 else end + 2
            continue

        result.append(ch)
        i += 1

    return ''.join(result)


def _normalize_quotes(json_string: str) -> str:
    """Rewrite single-quoted strings as double-quoted strings, leaving double-quoted strings alone.

    Inside a converted string `\\'` no longer needs escaping and a bare `"` now does.
    """
    result: list[str] = []
    in_double = False
    in_single = False
    escape = False

    for ch in json_string:
        if escape:
            if in_single and ch == "'":
                result.append("'")
            elif in_single and ch == '"':
                result.append('\\"')
            else:
                result.append('\\' + ch)
            escape = False
        elif ch == '\\' and (in_double or in_single):
            escape = True
        elif ch == '"' and not in_single:
            in_double = not in_double
            result.append(ch)
        elif ch == "'" and not in_double:
            in_single = not in_single
            result.append('"')
        elif ch == '"':
            # a literal double quote inside a single-quoted string
            result.append('\\"')
        else:
            result.append(ch)

    if escape:
        # dangling backslash at the very end of truncated input
        result.append('\\')
    return ''.join(result)


def _close_brackets(json_string: str) -> str:
    """Close a string, arrays and objects left open by truncated output, innermost first."""
    stack: list[str] = []
    in_string = False
    escape = False

    for ch in json_string:
        if escape:
            escape = False
        elif in_string:
            if ch == '\\':
                escape = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == '{':
            stack.append('}')
        elif ch == '[':
            stack.append(']')
        elif ch in '}]' and stack:
            stack.pop()

    if in_string:
        if escape:
            # `"abc\` would otherwise turn the closing quote into an escaped one
            json_string = json_string[:-1]
        json_string += '"'

    return json_string + ''.join(reversed(stack))


def _remove_trailing_commas(json_string: str) -> str:
    """Drop commas that are followed, ignoring whitespace, by `}` or `]` outside of strings."""
    result: list[str] = []
    pending_comma: int | None = None
    in_string = False
    escape = False

    for ch in json_string:
        if in_string:
            if escape:
                escape = False
            elif ch == '\\':
                escape = True
            elif ch == '"':
                in_string = False
            result.append(ch)
            continue

        if ch in '}]' and pending_comma is not None:
            del result[pending_comma]
            pending_comma = None
        elif ch == ',':
            pending_comma = len(result)
        elif not ch.isspace():
            pending_comma = None

        if ch == '"':
            in_string = True
        result.append(ch)

    return ''.join(result)
