"""Streaming parser for c0 model responses.

Feed the model's output to [`StreamParser.write`][c0_protocol.parser.StreamParser.write] chunk by chunk, in the
order it was produced, and call [`get_result`][c0_protocol.parser.StreamParser.get_result] whenever you need the
response parsed so far:

```python
from c0_protocol import StreamParser

parser = StreamParser()
parser.write('<content thesys="true">Hello')
parser.write(' world</content>')
result = parser.get_result()
print(result.parts)
#> [ContentPart(data='Hello world')]
```

Chunks may be split anywhere, down to a single character, including in the middle of a tag or a character
reference. Everything is processed synchronously within `write`; there is no background work and nothing to
cancel, a producer that stops writing simply leaves the parser with a valid partial result.
"""

from __future__ import annotations as _annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable, Iterator
from functools import partial

from ._json_repair import repair_json as _repair_json
from ._parser_state import ParserState
from ._tokenizer import TagEvent, TagTokenizer
from ._utils import generate_artifact_id
from .exceptions import UserError
from .hooks import ArtifactHook, ContentHook, ParserHooks, ThinkHook
from .messages import ArtifactPart, ParsedResponse
from .settings import DEFAULT_ARTIFACT_TYPE, StreamParserSettings, merge_parser_settings
from .tags import TAGS

__all__ = ('StreamParser', 'parse_response', 'iter_responses', 'aiter_responses')

_logger = logging.getLogger(__name__)


class StreamParser:
    """Incrementally parses a c0 response into a [`ParsedResponse`][c0_protocol.messages.ParsedResponse].

    A parser instance must not be written to from several threads or tasks at once, but separate instances
    share no state.
    """

    settings: StreamParserSettings
    """The effective settings of this parser."""

    hooks: ParserHooks
    """Completion hooks; more subscribers can be added at any time."""

    def __init__(
        self,
        *,
        settings: StreamParserSettings | None = None,
        hooks: ParserHooks | None = None,
        on_content: ContentHook | None = None,
        on_artifact: ArtifactHook | None = None,
        on_think: ThinkHook | None = None,
        repair_json: bool | None = None,
        id_generator: Callable[[], str] | None = None,
    ):
        """Create a stream parser.

        Args:
            settings: Parser settings.
            hooks: Hooks object to dispatch completion events to, a new one is created if omitted.
            on_content: Called with the content text when `</content>` closes.
            on_artifact: Called with the completed artifact when `</artifact>` closes.
            on_think: Called with the completed think item when `</thinkitemcontent>` closes.
            repair_json: Overrides `settings['repair_json']`.
            id_generator: Generates ids for artifacts whose tag has no `id` attribute, defaults to UUID4 strings.
        """
        overrides: StreamParserSettings | None = None if repair_json is None else {'repair_json': repair_json}
        self.settings = merge_parser_settings(settings, overrides) or {}
        self.hooks = hooks if hooks is not None else ParserHooks()
        if on_content is not None:
            self.hooks.on_content(on_content)
        if on_artifact is not None:
            self.hooks.on_artifact(on_artifact)
        if on_think is not None:
            self.hooks.on_think(on_think)
        self._id_generator = id_generator or generate_artifact_id
        self._tokenizer = TagTokenizer()
        self._state = self._new_state()
        self._finalized = False

    def write(self, chunk: str) -> None:
        """Feed the next chunk of the response.

        The whole chunk is applied first, then the completion hooks for tags it closed run in order before `write`
        returns. If a hook raises, the exception propagates and the hooks after it are not called, but the result
        already includes the entire chunk.

        Raises:
            UserError: If the parser has been finalized, or `chunk` is not a string.
        """
        if not isinstance(chunk, str):
            raise UserError(f'Chunks must be `str`, got {type(chunk).__name__}')
        if self._finalized:
            raise UserError('Cannot write to a finalized parser, call `reset()` to parse another response.')
        _notify(self._apply_all(self._tokenizer.feed(chunk)))

    def get_result(self) -> ParsedResponse:
        """Return the response parsed so far; safe to call at any time, including mid-stream."""
        return self._state.snapshot()

    get_state = get_result

    def finalize(self) -> ParsedResponse:
        """Signal the end of the response and return the final result.

        Input still held back by the tokenizer (an unterminated tag, or a trailing `&` that might have started a
        character reference) is applied as literal text. Calling `finalize` again returns the same result.
        """
        if not self._finalized:
            notifications = self._apply_all(self._tokenizer.close())
            self._finalized = True
            _notify(notifications)
        return self.get_result()

    def reset(self) -> None:
        """Discard everything parsed so far so the parser can be reused for another response.

        Settings and hooks are kept.
        """
        self._tokenizer.reset()
        self._state = self._new_state()
        self._finalized = False

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    @property
    def has_pending_input(self) -> bool:
        """Whether the tokenizer is holding back input until it can be disambiguated."""
        return bool(self._tokenizer.pending)

    def _new_state(self) -> ParserState:
        return ParserState(
            default_artifact_type=self.settings.get('default_artifact_type', DEFAULT_ARTIFACT_TYPE),
            id_generator=self._id_generator,
        )

    def _apply_all(self, events: Iterable[TagEvent]) -> list[Callable[[], None]]:
        """Apply `events` to the state and return the hook calls they trigger, bound to the values at close time."""
        notifications: list[Callable[[], None]] = []
        for event in events:
            closing_tag = self._state.apply(event)
            if closing_tag == TAGS.CONTENT:
                notifications.append(partial(self.hooks.emit_content, self._state.content))
            elif closing_tag == TAGS.ARTIFACT:
                artifact = self._complete_artifact()
                if artifact is not None:
                    notifications.append(partial(self.hooks.emit_artifact, artifact))
            elif closing_tag == TAGS.THINK_CONTENT:
                item = self._state.last_think_item
                if item is not None:
                    notifications.append(partial(self.hooks.emit_think, item))
        return notifications

    def _complete_artifact(self) -> ArtifactPart | None:
        artifact = self._state.active_artifact
        if artifact is None or not self.settings.get('repair_json', False):
            return artifact

        repaired = _repair_json(artifact.data)
        if repaired is None:
            _logger.debug('Keeping unrecoverable JSON of artifact %r as is', artifact.id)
            return artifact
        elif repaired == artifact.data:
            return artifact
        else:
            return self._state.set_active_artifact_data(repaired)


def _notify(notifications: list[Callable[[], None]]) -> None:
    for notify in notifications:
        notify()


def parse_response(
    xml: str,
    *,
    settings: StreamParserSettings | None = None,
    repair_json: bool | None = None,
    id_generator: Callable[[], str] | None = None,
) -> ParsedResponse:
    """Parse a complete response in one go.

    Convenience wrapper for non-streaming use, e.g. loading a stored message.
    """
    parser = StreamParser(settings=settings, repair_json=repair_json, id_generator=id_generator)
    parser.write(xml)
    return parser.finalize()


def iter_responses(chunks: Iterable[str], parser: StreamParser | None = None) -> Iterator[ParsedResponse]:
    """Parse a stream of chunks, yielding the response parsed so far after each chunk.

    The parser is finalized once `chunks` is exhausted; if that flushes held-back input, one more snapshot is
    yielded.

    Args:
        chunks: The chunks of the response, in the order they were produced.
        parser: The parser to use, a fresh `StreamParser` if omitted.
    """
    parser = parser or StreamParser()
    for chunk in chunks:
        parser.write(chunk)
        yield parser.get_result()
    if parser.has_pending_input:
        yield parser.finalize()
    else:
        parser.finalize()


async def aiter_responses(
    chunks: AsyncIterable[str], parser: StreamParser | None = None
) -> AsyncIterator[ParsedResponse]:
    """Async variant of [`iter_responses`][c0_protocol.parser.iter_responses] for async chunk producers."""
    parser = parser or StreamParser()
    async for chunk in chunks:
        parser.write(chunk)
        yield parser.get_result()
    if parser.has_pending_input:
        yield parser.finalize()
    else:
        parser.finalize()
