"""Turn a parsed response back into c0 markup, e.g. to store it in a conversation history."""

from __future__ import annotations as _annotations

from .messages import ArtifactPart, ContentPart, CustomMarkdownPart, ParsedResponse
from .tags import (
    close_tag,
    open_tag,
    wrap_artifact,
    wrap_artifact_diff,
    wrap_content,
    wrap_context,
    wrap_custom_markdown,
    wrap_think_item,
)

__all__ = ('serialize_response', 'extract_context')

_CONTEXT_OPEN = open_tag('context')
_CONTEXT_CLOSE = close_tag('context')


def serialize_response(response: ParsedResponse) -> str:
    """Serialize a parsed response to c0 markup.

    Think items are written first, then the parts in order, then the context block if there is one.
    Parsing the result gives back an equal response for any response parsed from well-formed markup.

    Content is always written inside a `<content>` tag, so content that arrived as untagged text, or whose
    `</content>` never came, parses back with `is_content_closed=True`.
    """
    chunks: list[str] = [wrap_think_item(item.title, item.content, item.ephemeral) for item in response.think]

    for part in response.parts:
        if isinstance(part, ContentPart):
            chunks.append(wrap_content(part.data))
        elif isinstance(part, CustomMarkdownPart):
            chunks.append(wrap_custom_markdown(part.content))
        elif isinstance(part, ArtifactPart):
            chunks.append(wrap_artifact(part.data, part.meta))
            if part.diff:
                chunks.append(wrap_artifact_diff(part.diff))

    if response.context:
        chunks.append(wrap_context(response.context))

    return ''.join(chunks)


def extract_context(raw: str) -> tuple[str, str]:
    """Cut the `<context>` block out of a raw response.

    Returns:
        The response without the context block, and the raw (still escaped) text of the block. If `raw` has no
        `<context>` followed by a `</context>`, it is returned unchanged along with `''`.
    """
    start = raw.find(_CONTEXT_OPEN)
    if start == -1:
        return raw, ''
    end = raw.find(_CONTEXT_CLOSE, start + len(_CONTEXT_OPEN))
    if end == -1:
        return raw, ''
    return raw[:start] + raw[end + len(_CONTEXT_CLOSE) :], raw[start + len(_CONTEXT_OPEN) : end]
