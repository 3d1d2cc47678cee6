"""The state machine that applies tag events to a parsed response.

The grammar is flat: at most one tag is "current" at a time, and text is routed by that tag alone. Parts and
think items are never modified in place. Every change swaps a new object into its slot (built with
`dataclasses.replace`), so snapshots handed out earlier keep the values they had when they were taken.

"The latest artifact", "the latest custom markdown block" and so on are tracked as cached indices into the part
list instead of being searched for on every text event.
"""

from __future__ import annotations as _annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace

from ._tokenizer import OpenTagEvent, TagEvent, TextEvent
from ._utils import generate_artifact_id
from .messages import ArtifactPart, ContentPart, CustomMarkdownPart, MessagePart, ParsedResponse, ThinkItem
from .settings import DEFAULT_ARTIFACT_TYPE
from .tags import KNOWN_TAGS, TAGS

__all__ = ('ParserState',)

_logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r'\s*([+-]?[0-9]+)')

_THINK_ITEM_TAGS = frozenset({TAGS.THINK_ITEM, TAGS.THINK_TITLE, TAGS.THINK_CONTENT})
_CONTENT_CLOSING_TAGS = frozenset({TAGS.CONTENT, TAGS.ARTIFACT, TAGS.ARTIFACT_DIFF})


@dataclass
class ParserState:
    """The working state of one parse session.

    Mutated only through [`apply`][c0_protocol._parser_state.ParserState.apply];
    [`snapshot`][c0_protocol._parser_state.ParserState.snapshot] gives a read-only view of it.
    """

    default_artifact_type: str = DEFAULT_ARTIFACT_TYPE
    """Artifact type used when an `<artifact>` tag has no `type` attribute."""

    id_generator: Callable[[], str] = generate_artifact_id
    """Generates ids for `<artifact>` tags without an `id` attribute."""

    current_tag: str | None = field(default=None, init=False)
    """The tag text is currently routed to, `None` outside any tag."""

    context: str = field(default='', init=False)
    """Text of the last `<context>` block."""

    is_content_closed: bool = field(default=False, init=False)
    """Whether the most recently opened content, artifact or artifact diff tag has been closed."""

    _parts: list[MessagePart] = field(default_factory=list[MessagePart], init=False)
    _think: list[ThinkItem] = field(default_factory=list[ThinkItem], init=False)

    _content_index: int | None = field(default=None, init=False)
    """Index of the one content part, once it exists."""

    _artifact_indices: dict[str, int] = field(default_factory=dict[str, int], init=False)
    """Maps artifact ids to their index in `_parts`."""

    _active_artifact_index: int | None = field(default=None, init=False)
    """Index of the artifact whose `<artifact>` tag was opened most recently, new or reopened."""

    _last_artifact_index: int | None = field(default=None, init=False)
    """Index of the artifact appended most recently; `<artifact_diff>` attaches to it."""

    _diff_artifact_index: int | None = field(default=None, init=False)
    """Index of the artifact the open `<artifact_diff>` belongs to."""

    _last_custom_markdown_index: int | None = field(default=None, init=False)

    _think_item_open: bool = field(default=False, init=False)
    """Whether a `<thinkitem>` is open, in which case text between its children is dropped."""

    def apply(self, event: TagEvent) -> str | None:
        """Apply a tokenizer event.

        Returns:
            For a close event, the name of the tag that was current when it closed (`None` if no tag was
            current), so callers can run completion logic. `None` for other events.
        """
        if isinstance(event, OpenTagEvent):
            self.handle_open_tag(event.name, event.attributes)
            return None
        elif isinstance(event, TextEvent):
            self.handle_text(event.text)
            return None
        else:
            return self.handle_close_tag(event.name)

    def handle_open_tag(self, name: str, attributes: Mapping[str, str]) -> None:
        self.current_tag = name
        if name in KNOWN_TAGS and name not in _THINK_ITEM_TAGS:
            self._think_item_open = False

        if name == TAGS.CONTENT:
            self.is_content_closed = False
            if self._content_index is None:
                self._content_index = self._append_part(ContentPart())
            else:
                self._parts[self._content_index] = ContentPart()
        elif name == TAGS.ARTIFACT:
            self.is_content_closed = False
            self._open_artifact(attributes)
        elif name == TAGS.ARTIFACT_DIFF:
            self.is_content_closed = False
            self._diff_artifact_index = self._last_artifact_index
            if self._diff_artifact_index is None:
                _logger.debug('Ignoring <artifact_diff> with no preceding artifact')
            else:
                artifact = self._artifact_at(self._diff_artifact_index)
                self._parts[self._diff_artifact_index] = replace(artifact, diff='', is_diff_closed=False)
        elif name == TAGS.CONTEXT:
            self.context = ''
        elif name == TAGS.THINK_ITEM:
            ephemeral = attributes.get('ephemeral', '').strip().lower() == 'true'
            self._think.append(ThinkItem(ephemeral=ephemeral))
            self._think_item_open = True
        elif name == TAGS.CUSTOM_MARKDOWN:
            self._last_custom_markdown_index = self._append_part(CustomMarkdownPart())
        elif name not in KNOWN_TAGS:
            _logger.debug('Unknown tag <%s>, its text is routed as content', name)

    def handle_text(self, text: str) -> None:
        tag = self.current_tag

        if tag == TAGS.CONTENT:
            if self._content_index is not None:
                part = self._content_at(self._content_index)
                self._parts[self._content_index] = replace(part, data=part.data + text)
        elif tag == TAGS.ARTIFACT:
            if self._active_artifact_index is not None:
                artifact = self._artifact_at(self._active_artifact_index)
                self._parts[self._active_artifact_index] = replace(artifact, data=artifact.data + text)
        elif tag == TAGS.ARTIFACT_DIFF:
            if self._diff_artifact_index is not None:
                artifact = self._artifact_at(self._diff_artifact_index)
                self._parts[self._diff_artifact_index] = replace(artifact, diff=artifact.diff + text)
        elif tag == TAGS.CONTEXT:
            self.context += text
        elif tag == TAGS.THINK_ITEM:
            # only the title and content children carry text
            pass
        elif tag == TAGS.THINK_TITLE:
            if self._think:
                item = self._think[-1]
                self._think[-1] = replace(item, title=item.title + text)
        elif tag == TAGS.THINK_CONTENT:
            if self._think:
                item = self._think[-1]
                self._think[-1] = replace(item, content=item.content + text)
        elif tag == TAGS.CUSTOM_MARKDOWN:
            if self._last_custom_markdown_index is not None:
                part = self._parts[self._last_custom_markdown_index]
                assert isinstance(part, CustomMarkdownPart)
                self._parts[self._last_custom_markdown_index] = replace(part, content=part.content + text)
        elif tag is None and self._think_item_open:
            # whitespace and stray text between a think item's children
            pass
        else:
            # text outside any known tag is plain prose
            if self._content_index is None:
                self._content_index = self._append_part(ContentPart(text))
            else:
                part = self._content_at(self._content_index)
                self._parts[self._content_index] = replace(part, data=part.data + text)

    def handle_close_tag(self, name: str) -> str | None:
        closing_tag = self.current_tag

        if closing_tag in _CONTENT_CLOSING_TAGS:
            self.is_content_closed = True
        if closing_tag == TAGS.ARTIFACT_DIFF and self._diff_artifact_index is not None:
            artifact = self._artifact_at(self._diff_artifact_index)
            self._parts[self._diff_artifact_index] = replace(artifact, is_diff_closed=True)
        if name == TAGS.THINK_ITEM:
            self._think_item_open = False
        if closing_tag is None:
            _logger.debug('Closing tag </%s> with no open tag', name)
        elif closing_tag != name:
            _logger.debug('Closing tag </%s> closes <%s>', name, closing_tag)

        self.current_tag = None
        return closing_tag

    @property
    def content(self) -> str:
        """The text of the content part, `''` if there is none."""
        if self._content_index is None:
            return ''
        return self._content_at(self._content_index).data

    @property
    def active_artifact(self) -> ArtifactPart | None:
        """The artifact whose `<artifact>` tag was opened most recently."""
        if self._active_artifact_index is None:
            return None
        return self._artifact_at(self._active_artifact_index)

    @property
    def last_think_item(self) -> ThinkItem | None:
        return self._think[-1] if self._think else None

    def set_active_artifact_data(self, data: str) -> ArtifactPart:
        """Replace the body of the active artifact, e.g. with a repaired version of it."""
        assert self._active_artifact_index is not None, 'no artifact has been opened'
        artifact = replace(self._artifact_at(self._active_artifact_index), data=data)
        self._parts[self._active_artifact_index] = artifact
        return artifact

    def snapshot(self) -> ParsedResponse:
        """Return a view of the state that later events won't modify."""
        return ParsedResponse(
            parts=list(self._parts),
            think=list(self._think),
            context=self.context,
            is_content_closed=self.is_content_closed,
        )

    def _open_artifact(self, attributes: Mapping[str, str]) -> None:
        artifact_id = attributes.get('id') or self.id_generator()
        existing_index = self._artifact_indices.get(artifact_id)

        if existing_index is None:
            artifact = ArtifactPart(
                artifact_type=attributes.get('type') or self.default_artifact_type,
                id=artifact_id,
                version=_parse_version(attributes.get('version')),
            )
            index = self._append_part(artifact)
            self._artifact_indices[artifact_id] = index
            self._last_artifact_index = index
        else:
            _logger.debug('Artifact %r reopened, resetting its data', artifact_id)
            index = existing_index
            self._parts[index] = replace(self._artifact_at(index), data='')
        self._active_artifact_index = index

    def _append_part(self, part: MessagePart) -> int:
        self._parts.append(part)
        return len(self._parts) - 1

    def _content_at(self, index: int) -> ContentPart:
        part = self._parts[index]
        assert isinstance(part, ContentPart)
        return part

    def _artifact_at(self, index: int) -> ArtifactPart:
        part = self._parts[index]
        assert isinstance(part, ArtifactPart)
        return part


def _parse_version(value: str | None) -> int:
    """Parse a `version` attribute leniently, like `parseInt`; anything unusable becomes 1."""
    if value is None:
        return 1
    match = _LEADING_INT.match(value)
    if match is None:
        return 1
    version = int(match.group(1))
    return version if version > 0 else 1
