from __future__ import annotations as _annotations

from collections.abc import AsyncIterator

import pytest

from c0_protocol import ContentPart, ParsedResponse, StreamParser, aiter_responses, iter_responses

pytestmark = pytest.mark.anyio


async def stream(*chunks: str) -> AsyncIterator[str]:
    for chunk in chunks:
        yield chunk


def test_iter_responses():
    snapshots = list(iter_responses(['<content thesys="true">Hel', 'lo</content>']))
    assert snapshots == [
        ParsedResponse(parts=[ContentPart('Hel')]),
        ParsedResponse(parts=[ContentPart('Hello')], is_content_closed=True),
    ]


def test_iter_responses_yields_finalized_snapshot():
    snapshots = list(iter_responses(['Fish ', 'and chips &']))
    assert [response.content for response in snapshots] == ['Fish ', 'Fish and chips ', 'Fish and chips &']


def test_iter_responses_with_parser():
    seen: list[str] = []
    parser = StreamParser(on_content=seen.append)
    for _ in iter_responses(['<content>a</content>'], parser=parser):
        pass
    assert seen == ['a']
    assert parser.is_finalized


def test_iter_responses_is_lazy():
    parser = StreamParser()
    responses = iter_responses(['<content>a', 'b'], parser=parser)
    assert parser.get_result() == ParsedResponse()
    assert next(responses).content == 'a'
    assert not parser.is_finalized


async def test_aiter_responses():
    snapshots = [response async for response in aiter_responses(stream('<content>Hel', 'lo</content>'))]
    assert [response.content for response in snapshots] == ['Hel', 'Hello']
    assert snapshots[-1].is_content_closed


async def test_aiter_responses_yields_finalized_snapshot():
    parser = StreamParser()
    snapshots = [response async for response in aiter_responses(stream('<content>Hi</cont'), parser=parser)]
    assert [response.content for response in snapshots] == ['Hi', 'Hi</cont']
    assert parser.is_finalized
