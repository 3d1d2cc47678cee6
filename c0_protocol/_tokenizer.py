"""Incremental tokenizer turning arbitrarily split chunks of c0 markup into tag events.

The tokenizer only knows XML-ish syntax, not the c0 vocabulary: every well-formed start or end tag becomes an
event, whatever its name. Text is emitted as soon as it arrives; the only things held back between chunks are
markup that hasn't been terminated yet (e.g. `<artifact type="ch`) and a trailing fragment that could still turn
into a character reference (e.g. `&am`). This guarantees that no matter how the input is split, the events
carry the same tags and the same text, in the same order.
"""

from __future__ import annotations as _annotations

import re
from dataclasses import dataclass, field
from typing import Literal

from . import _utils
from .exceptions import UserError
from .tags import unescape_xml

__all__ = (
    'OpenTagEvent',
    'TextEvent',
    'CloseTagEvent',
    'TagEvent',
    'TagTokenizer',
)


@dataclass(repr=False)
class OpenTagEvent:
    """A start tag, e.g. `<artifact type="chart" id="c1">`."""

    name: str
    """The lower-cased tag name."""

    attributes: dict[str, str] = field(default_factory=dict[str, str])
    """Attributes with lower-cased names and decoded values."""

    event_kind: Literal['open_tag'] = 'open_tag'
    """Event type identifier, used as a discriminator."""

    __repr__ = _utils.dataclasses_no_defaults_repr


@dataclass(repr=False)
class TextEvent:
    """Decoded text between tags."""

    text: str
    """The decoded text."""

    event_kind: Literal['text'] = 'text'
    """Event type identifier, used as a discriminator."""

    __repr__ = _utils.dataclasses_no_defaults_repr


@dataclass(repr=False)
class CloseTagEvent:
    """An end tag, e.g. `</artifact>`."""

    name: str
    """The lower-cased tag name; it is not checked against the tag that is currently open."""

    event_kind: Literal['close_tag'] = 'close_tag'
    """Event type identifier, used as a discriminator."""

    __repr__ = _utils.dataclasses_no_defaults_repr


TagEvent = OpenTagEvent | TextEvent | CloseTagEvent
"""An event produced by the tokenizer."""

_NAME_START = re.compile(r'[A-Za-z_]')
_START_TAG_NAME = re.compile(r'<([A-Za-z_][\w:.\-]*)')
_ATTRIBUTE = re.compile(r'''([^\s=/>"']+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+)))?''')
_END_TAG = re.compile(r'</\s*([A-Za-z_][\w:.\-]*)\s*>')
_PARTIAL_END_TAG = re.compile(r'</\s*(?:[A-Za-z_][\w:.\-]*)?\s*')
_PARTIAL_ENTITY = re.compile(r'&#?[0-9A-Za-z]*')

_COMMENT_OPEN = '<!--'
_CDATA_OPEN = '<![CDATA['


class _Incomplete:
    """Marker for markup that needs more input before it can be tokenized."""


_INCOMPLETE = _Incomplete()


@dataclass
class TagTokenizer:
    """Tokenize chunks of markup into [`TagEvent`][c0_protocol._tokenizer.TagEvent]s.

    Feed chunks in order with [`feed`][c0_protocol._tokenizer.TagTokenizer.feed]; each call returns the events
    that chunk completed. Call [`close`][c0_protocol._tokenizer.TagTokenizer.close] once the input has ended.
    """

    _buffer: str = field(default='', init=False)
    """Input received but not yet turned into events."""

    _closed: bool = field(default=False, init=False)

    def feed(self, chunk: str) -> list[TagEvent]:
        """Tokenize as much of the buffered input plus `chunk` as can be tokenized unambiguously.

        Raises:
            UserError: If the tokenizer has been closed.
        """
        if self._closed:
            raise UserError('Cannot feed a closed tokenizer, call `reset()` first.')
        self._buffer += chunk
        events: list[TagEvent] = []
        self._buffer = self._tokenize(self._buffer, events)
        return events

    def close(self) -> list[TagEvent]:
        """Flush everything still buffered as text and stop accepting input.

        Unterminated markup at the end of the input can no longer become a tag, so it is emitted as literal text.
        """
        events: list[TagEvent] = []
        if not self._closed and self._buffer:
            _append_text(events, unescape_xml(self._buffer))
        self._buffer = ''
        self._closed = True
        return events

    def reset(self) -> None:
        """Discard buffered input and accept input again."""
        self._buffer = ''
        self._closed = False

    @property
    def pending(self) -> str:
        """Input held back until more arrives."""
        return self._buffer

    def _tokenize(self, data: str, events: list[TagEvent]) -> str:
        """Append events for `data` to `events` and return the unconsumed remainder."""
        pos = 0
        n = len(data)
        while pos < n:
            lt = data.find('<', pos)
            if lt == -1:
                text = data[pos:]
                hold = _partial_entity_start(text)
                _append_text(events, unescape_xml(text[:hold]))
                return text[hold:]
            if lt > pos:
                _append_text(events, unescape_xml(data[pos:lt]))
                pos = lt

            result = _scan_markup(data, pos)
            if result is _INCOMPLETE:
                return data[pos:]
            elif result is None:
                # not markup, the `<` is literal text
                _append_text(events, '<')
                pos += 1
            else:
                end, markup_events = result
                for event in markup_events:
                    if isinstance(event, TextEvent):
                        _append_text(events, event.text)
                    else:
                        events.append(event)
                pos = end
        return ''


def _append_text(events: list[TagEvent], text: str) -> None:
    if not text:
        return
    if events and isinstance(last := events[-1], TextEvent):
        events[-1] = TextEvent(last.text + text)
    else:
        events.append(TextEvent(text))


def _partial_entity_start(text: str) -> int:
    """Return the index where a trailing, possibly incomplete character reference starts, or `len(text)`."""
    amp = text.rfind('&')
    if amp != -1 and _PARTIAL_ENTITY.fullmatch(text, amp):
        return amp
    return len(text)


def _scan_markup(data: str, pos: int) -> tuple[int, list[TagEvent]] | _Incomplete | None:
    """Scan the markup starting with the `<` at `data[pos]`.

    Returns:
        The end position and the events of the markup, `_INCOMPLETE` if more input is needed to decide,
        or `None` if the `<` does not start markup.
    """
    if pos + 1 >= len(data):
        return _INCOMPLETE
    next_char = data[pos + 1]

    if next_char == '/':
        return _scan_end_tag(data, pos)
    elif next_char == '!':
        return _scan_declaration(data, pos)
    elif next_char == '?':
        end = data.find('>', pos)
        return _INCOMPLETE if end == -1 else (end + 1, [])
    elif _NAME_START.match(next_char):
        return _scan_start_tag(data, pos)
    else:
        return None


def _scan_end_tag(data: str, pos: int) -> tuple[int, list[TagEvent]] | _Incomplete | None:
    gt = data.find('>', pos)
    if gt == -1:
        return _INCOMPLETE if _PARTIAL_END_TAG.fullmatch(data, pos) else None
    match = _END_TAG.fullmatch(data, pos, gt + 1)
    if match is None:
        return None
    return gt + 1, [CloseTagEvent(match.group(1).lower())]


def _scan_declaration(data: str, pos: int) -> tuple[int, list[TagEvent]] | _Incomplete | None:
    rest = data[pos : pos + len(_CDATA_OPEN)]
    if data.startswith(_COMMENT_OPEN, pos):
        end = data.find('-->', pos + len(_COMMENT_OPEN))
        return _INCOMPLETE if end == -1 else (end + 3, [])
    elif data.startswith(_CDATA_OPEN, pos):
        start = pos + len(_CDATA_OPEN)
        end = data.find(']]>', start)
        return _INCOMPLETE if end == -1 else (end + 3, [TextEvent(data[start:end])])
    elif _COMMENT_OPEN.startswith(rest) or _CDATA_OPEN.startswith(rest):
        # could still become a comment or CDATA section
        return _INCOMPLETE
    else:
        end = data.find('>', pos)
        return _INCOMPLETE if end == -1 else (end + 1, [])


def _scan_start_tag(data: str, pos: int) -> tuple[int, list[TagEvent]] | _Incomplete:
    quote: str | None = None
    end = -1
    for i in range(pos + 1, len(data)):
        ch = data[i]
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in '"\'':
            quote = ch
        elif ch == '>':
            end = i
            break
    if end == -1:
        return _INCOMPLETE

    name_match = _START_TAG_NAME.match(data, pos)
    assert name_match is not None, 'a start tag always begins with a name'
    name = name_match.group(1).lower()
    body = data[name_match.end() : end]
    self_closing = body.rstrip().endswith('/')

    attributes: dict[str, str] = {}
    for match in _ATTRIBUTE.finditer(body):
        key = match.group(1).lower()
        double_quoted, single_quoted, unquoted = match.group(2, 3, 4)
        value = next((v for v in (double_quoted, single_quoted, unquoted) if v is not None), '')
        attributes.setdefault(key, unescape_xml(value))

    events: list[TagEvent] = [OpenTagEvent(name, attributes)]
    if self_closing:
        events.append(CloseTagEvent(name))
    return end + 1, events
