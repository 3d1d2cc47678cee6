from __future__ import annotations as _annotations

from dataclasses import KW_ONLY, dataclass, field
from typing import Annotated, Any, Literal

import pydantic
import pydantic_core

from . import _utils
from .exceptions import ArtifactDataError

__all__ = (
    'ArtifactMeta',
    'ContentPart',
    'ArtifactPart',
    'CustomMarkdownPart',
    'MessagePart',
    'ThinkItem',
    'ParsedResponse',
    'ParsedResponseTypeAdapter',
)


@dataclass(frozen=True)
class ArtifactMeta:
    """The attributes carried by an `<artifact>` tag."""

    type: str
    """The artifact type, used by consumers to pick a component to render, e.g. `'chart'`."""

    id: str
    """Identity of the artifact; reopening an artifact with the same id updates it in place."""

    version: int = 1
    """A positive version number."""


@dataclass(repr=False, frozen=True)
class ContentPart:
    """Narrative markdown text from a `<content>` tag, or plain prose emitted outside any tag.

    A response holds at most one content part.
    """

    data: str = ''
    """The text of the part."""

    _: KW_ONLY

    part_kind: Literal['content'] = 'content'
    """Part type identifier, this is available on all parts as a discriminator."""

    def has_content(self) -> bool:
        """Return `True` if the text content is non-empty."""
        return bool(self.data)

    __repr__ = _utils.dataclasses_no_defaults_repr


@dataclass(repr=False, frozen=True)
class ArtifactPart:
    """A structured UI payload from an `<artifact>` tag, plus the `<artifact_diff>` that may follow it.

    `data` and `diff` are expected to hold JSON but are kept as the raw strings the model produced.
    """

    artifact_type: str
    """The artifact type, from the tag's `type` attribute."""

    id: str
    """The artifact id, from the tag's `id` attribute or generated when it was missing."""

    _: KW_ONLY

    version: int = 1
    """The artifact version, from the tag's `version` attribute."""

    data: str = ''
    """The raw artifact body."""

    diff: str = ''
    """The raw body of the `<artifact_diff>` attached to this artifact, if any."""

    is_diff_closed: bool = True
    """Whether the diff has been closed; `False` only while an `<artifact_diff>` is streaming."""

    part_kind: Literal['artifact'] = 'artifact'
    """Part type identifier, this is available on all parts as a discriminator."""

    @property
    def meta(self) -> ArtifactMeta:
        """The tag attributes of this artifact."""
        return ArtifactMeta(type=self.artifact_type, id=self.id, version=self.version)

    def has_content(self) -> bool:
        """Return `True` if the artifact body is non-empty."""
        return bool(self.data)

    def has_diff(self) -> bool:
        """Return `True` if a non-empty diff is attached."""
        return bool(self.diff)

    def data_as_json(self) -> Any:
        """Decode the artifact body.

        Raises:
            ArtifactDataError: If the body is not valid JSON.
        """
        return _decode_json(self.id, self.data)

    def diff_as_json(self) -> Any:
        """Decode the attached diff, `None` when there is no diff.

        Raises:
            ArtifactDataError: If the diff is not valid JSON.
        """
        if not self.diff:
            return None
        return _decode_json(self.id, self.diff)

    __repr__ = _utils.dataclasses_no_defaults_repr


@dataclass(repr=False, frozen=True)
class CustomMarkdownPart:
    """Free-form markdown from a `<custommarkdown>` tag, outside the narrative content channel."""

    content: str = ''
    """The markdown text."""

    _: KW_ONLY

    part_kind: Literal['custom-markdown'] = 'custom-markdown'
    """Part type identifier, this is available on all parts as a discriminator."""

    def has_content(self) -> bool:
        """Return `True` if the markdown is non-empty."""
        return bool(self.content)

    __repr__ = _utils.dataclasses_no_defaults_repr


MessagePart = Annotated[ContentPart | ArtifactPart | CustomMarkdownPart, pydantic.Discriminator('part_kind')]
"""A part of a parsed response, in order of first appearance in the stream."""


@dataclass(repr=False, frozen=True)
class ThinkItem:
    """One chain-of-thought step from a `<thinkitem>` tag."""

    title: str = ''
    """Text of the `<thinkitemtitle>` child."""

    content: str = ''
    """Text of the `<thinkitemcontent>` child."""

    _: KW_ONLY

    ephemeral: bool = False
    """Whether the step should be hidden once streaming ends, fixed when the tag opens."""

    def has_content(self) -> bool:
        return bool(self.title or self.content)

    __repr__ = _utils.dataclasses_no_defaults_repr


@dataclass(repr=False)
class ParsedResponse:
    """A snapshot of everything parsed so far.

    Snapshots are never modified by the parser after they are returned, so they are safe to keep around
    while more chunks are written. The lists are fresh copies, and the parts and think items in them are frozen,
    since they are shared with the parser and with other snapshots.
    """

    parts: list[MessagePart] = field(default_factory=list[MessagePart])
    """Content, artifact and custom markdown parts, in order of first appearance."""

    think: list[ThinkItem] = field(default_factory=list[ThinkItem])
    """Chain-of-thought steps, in order."""

    context: str = ''
    """The last `<context>` block seen."""

    is_content_closed: bool = False
    """Whether the most recently opened content, artifact or artifact diff tag has been closed."""

    @property
    def content(self) -> str:
        """The text of the content part, or `''` if there is none."""
        for part in self.parts:
            if isinstance(part, ContentPart):
                return part.data
        return ''

    @property
    def artifacts(self) -> list[ArtifactPart]:
        """The artifact parts, in order."""
        return [part for part in self.parts if isinstance(part, ArtifactPart)]

    @property
    def visible_think(self) -> list[ThinkItem]:
        """The think items that remain visible after streaming ends."""
        return [item for item in self.think if not item.ephemeral]

    def get_artifact(self, artifact_id: str) -> ArtifactPart | None:
        """Look up an artifact part by id."""
        for part in self.parts:
            if isinstance(part, ArtifactPart) and part.id == artifact_id:
                return part
        return None

    __repr__ = _utils.dataclasses_no_defaults_repr


ParsedResponseTypeAdapter = pydantic.TypeAdapter(ParsedResponse)
"""Pydantic [`TypeAdapter`][pydantic.type_adapter.TypeAdapter] for (de)serializing parsed responses as JSON."""


def _decode_json(artifact_id: str, body: str) -> Any:
    try:
        return pydantic_core.from_json(body)
    except ValueError as e:
        raise ArtifactDataError(artifact_id, body) from e
