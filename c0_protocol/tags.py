"""Tag vocabulary and builders for the c0 streaming protocol.

A model response is a flat sequence of these tags:

```
<content thesys="true">...</content>
<artifact type="..." id="..." version="...">...</artifact>
<artifact_diff>...</artifact_diff>
<thinkitem ephemeral="true|false">
  <thinkitemtitle>...</thinkitemtitle>
  <thinkitemcontent>...</thinkitemcontent>
</thinkitem>
<context>...</context>
<custommarkdown>...</custommarkdown>
```

Tag bodies are entity-escaped with [`escape_xml`][c0_protocol.tags.escape_xml] when written and
decoded with [`unescape_xml`][c0_protocol.tags.unescape_xml] when read.
"""

from __future__ import annotations as _annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .messages import ArtifactMeta

__all__ = (
    'TAGS',
    'TagName',
    'escape_xml',
    'unescape_xml',
    'wrap_content',
    'wrap_artifact',
    'wrap_artifact_diff',
    'wrap_context',
    'wrap_think_item',
    'wrap_custom_markdown',
)

TagName = Literal[
    'content',
    'artifact',
    'artifact_diff',
    'context',
    'thinkitem',
    'thinkitemtitle',
    'thinkitemcontent',
    'custommarkdown',
]
"""Names of the tags the parser gives meaning to. Any other tag is treated as plain text routing."""


@dataclass(frozen=True)
class _TagNames:
    CONTENT: Literal['content'] = 'content'
    ARTIFACT: Literal['artifact'] = 'artifact'
    ARTIFACT_DIFF: Literal['artifact_diff'] = 'artifact_diff'
    CONTEXT: Literal['context'] = 'context'
    THINK_ITEM: Literal['thinkitem'] = 'thinkitem'
    THINK_TITLE: Literal['thinkitemtitle'] = 'thinkitemtitle'
    THINK_CONTENT: Literal['thinkitemcontent'] = 'thinkitemcontent'
    CUSTOM_MARKDOWN: Literal['custommarkdown'] = 'custommarkdown'


TAGS = _TagNames()
"""Namespace of the protocol's tag names, e.g. `TAGS.ARTIFACT == 'artifact'`."""

KNOWN_TAGS: frozenset[str] = frozenset(
    {
        TAGS.CONTENT,
        TAGS.ARTIFACT,
        TAGS.ARTIFACT_DIFF,
        TAGS.CONTEXT,
        TAGS.THINK_ITEM,
        TAGS.THINK_TITLE,
        TAGS.THINK_CONTENT,
        TAGS.CUSTOM_MARKDOWN,
    }
)

_ESCAPES = {
    '&': '&amp;',
    '<': '&lt;',
    '>': '&gt;',
    '"': '&quot;',
    "'": '&#39;',
}
_ESCAPE_RE = re.compile('[&<>"\']')

_NAMED_ENTITIES = {
    'amp': '&',
    'lt': '<',
    'gt': '>',
    'quot': '"',
    'apos': "'",
}
_ENTITY_RE = re.compile(r'&(?:#(\d+)|#[xX]([0-9a-fA-F]+)|(amp|lt|gt|quot|apos));')


def escape_xml(text: str) -> str:
    """Escape the five XML-significant characters so `text` can be embedded in a tag body or attribute."""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group()], text)


def _decode_entity(match: re.Match[str]) -> str:
    decimal, hexadecimal, name = match.groups()
    if name is not None:
        return _NAMED_ENTITIES[name]
    code_point = int(decimal) if decimal is not None else int(hexadecimal, 16)
    if 0 < code_point <= 0x10FFFF and not 0xD800 <= code_point <= 0xDFFF:
        return chr(code_point)
    # not a usable character reference, keep it as written
    return match.group()


def unescape_xml(text: str) -> str:
    """Decode XML character references in `text`.

    Decoding happens in a single pass, so `&amp;lt;` becomes `&lt;` rather than `<`, which makes
    this the exact inverse of [`escape_xml`][c0_protocol.tags.escape_xml]. Besides the five named references,
    decimal and hexadecimal numeric references are decoded; anything else is left untouched.
    """
    if '&' not in text:
        return text
    return _ENTITY_RE.sub(_decode_entity, text)


def open_tag(name: str, attrs: Mapping[str, str] | None = None) -> str:
    if attrs:
        attr_str = ''.join(f' {key}="{escape_xml(value)}"' for key, value in attrs.items())
    else:
        attr_str = ''
    return f'<{name}{attr_str}>'


def close_tag(name: str) -> str:
    return f'</{name}>'


def _wrap(name: str, body: str, attrs: Mapping[str, str] | None = None) -> str:
    return f'{open_tag(name, attrs)}{escape_xml(body)}{close_tag(name)}'


def wrap_content(text: str) -> str:
    """Wrap narrative text in a `<content>` tag."""
    return _wrap(TAGS.CONTENT, text, {'thesys': 'true'})


def wrap_artifact(data: str, meta: ArtifactMeta) -> str:
    """Wrap an artifact body in an `<artifact>` tag carrying its type, id and version."""
    return _wrap(TAGS.ARTIFACT, data, {'type': meta.type, 'id': meta.id, 'version': str(meta.version)})


def wrap_artifact_diff(diff: str) -> str:
    """Wrap an artifact diff body; it belongs directly after the `</artifact>` it updates."""
    return _wrap(TAGS.ARTIFACT_DIFF, diff)


def wrap_context(context: str) -> str:
    return _wrap(TAGS.CONTEXT, context)


def wrap_think_item(title: str, content: str, ephemeral: bool = True) -> str:
    """Build a `<thinkitem>` with its title and content children.

    The `ephemeral` attribute is only written when it is true, an absent attribute reads back as `False`.
    """
    attrs = {'ephemeral': 'true'} if ephemeral else None
    return (
        f'{open_tag(TAGS.THINK_ITEM, attrs)}'
        f'{_wrap(TAGS.THINK_TITLE, title)}'
        f'{_wrap(TAGS.THINK_CONTENT, content)}'
        f'{close_tag(TAGS.THINK_ITEM)}'
    )


def wrap_custom_markdown(markdown: str) -> str:
    return _wrap(TAGS.CUSTOM_MARKDOWN, markdown)
