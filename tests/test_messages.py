from __future__ import annotations as _annotations

import pytest
from inline_snapshot import snapshot

from c0_protocol import (
    ArtifactDataError,
    ArtifactMeta,
    ArtifactPart,
    C0ProtocolError,
    ContentPart,
    CustomMarkdownPart,
    ParsedResponse,
    ParsedResponseTypeAdapter,
    ThinkItem,
)

RESPONSE = ParsedResponse(
    parts=[
        ContentPart('Here is your chart:'),
        ArtifactPart('chart', 'c1', version=3, data='{"x": 1}', diff='[{"op": "add"}]'),
        CustomMarkdownPart('# Notes'),
        ArtifactPart('table', 't1', data='[]'),
    ],
    think=[ThinkItem('Plan', 'Pick a chart', ephemeral=True), ThinkItem('Check', 'Numbers add up')],
    context='{"source": "api"}',
    is_content_closed=True,
)


def test_response_accessors():
    assert RESPONSE.content == 'Here is your chart:'
    assert [artifact.id for artifact in RESPONSE.artifacts] == ['c1', 't1']
    assert RESPONSE.get_artifact('t1') == ArtifactPart('table', 't1', data='[]')
    assert RESPONSE.get_artifact('missing') is None
    assert RESPONSE.visible_think == [ThinkItem('Check', 'Numbers add up')]


def test_empty_response():
    response = ParsedResponse()
    assert response.content == ''
    assert response.artifacts == []
    assert response.visible_think == []


def test_artifact_meta():
    artifact = ArtifactPart('chart', 'c1', version=3)
    assert artifact.meta == ArtifactMeta(type='chart', id='c1', version=3)


def test_has_content():
    assert ContentPart('x').has_content()
    assert not ContentPart().has_content()
    assert ArtifactPart('chart', 'c1', data='{}').has_content()
    assert not ArtifactPart('chart', 'c1').has_content()
    assert CustomMarkdownPart('md').has_content()
    assert not CustomMarkdownPart().has_content()
    assert ThinkItem(title='t').has_content()
    assert not ThinkItem(ephemeral=True).has_content()


def test_artifact_json():
    artifact = ArtifactPart('chart', 'c1', data='{"x": [1, 2.5, null]}', diff='[{"op": "add"}]')
    assert artifact.data_as_json() == {'x': [1, 2.5, None]}
    assert artifact.has_diff()
    assert artifact.diff_as_json() == [{'op': 'add'}]

    no_diff = ArtifactPart('chart', 'c2', data='{}')
    assert not no_diff.has_diff()
    assert no_diff.diff_as_json() is None


def test_artifact_invalid_json():
    artifact = ArtifactPart('chart', 'c1', data='{"x": 1,')
    with pytest.raises(ArtifactDataError) as exc_info:
        artifact.data_as_json()

    error = exc_info.value
    assert isinstance(error, ValueError)
    assert isinstance(error, C0ProtocolError)
    assert error.artifact_id == 'c1'
    assert error.body == '{"x": 1,'
    assert error.message == "Artifact 'c1' does not contain valid JSON"
    assert str(error) == snapshot("""\
Artifact 'c1' does not contain valid JSON, body:
{"x": 1,\
""")


def test_artifact_invalid_diff_json():
    artifact = ArtifactPart('chart', 'c1', data='{}', diff='not json')
    with pytest.raises(ArtifactDataError, match="Artifact 'c1' does not contain valid JSON"):
        artifact.diff_as_json()


def test_empty_artifact_body_is_invalid_json():
    with pytest.raises(ArtifactDataError) as exc_info:
        ArtifactPart('chart', 'c1').data_as_json()
    assert str(exc_info.value) == "Artifact 'c1' does not contain valid JSON"


def test_reprs():
    assert repr(ContentPart('hi')) == snapshot("ContentPart(data='hi')")
    assert repr(ArtifactPart('chart', 'c1', data='{}')) == snapshot("ArtifactPart(artifact_type='chart', id='c1', data='{}')")
    assert repr(ArtifactPart('chart', 'c1', diff='[', is_diff_closed=False)) == snapshot(
        "ArtifactPart(artifact_type='chart', id='c1', diff='[', is_diff_closed=False)"
    )
    assert repr(CustomMarkdownPart('# x')) == snapshot("CustomMarkdownPart(content='# x')")
    assert repr(ThinkItem('t', ephemeral=True)) == snapshot("ThinkItem(title='t', ephemeral=True)")
    assert repr(ParsedResponse(context='c')) == snapshot("ParsedResponse(parts=[], think=[], context='c')")


def test_type_adapter_dump():
    assert ParsedResponseTypeAdapter.dump_python(RESPONSE, mode='json') == snapshot(
        {
            'parts': [
                {'data': 'Here is your chart:', 'part_kind': 'content'},
                {
                    'artifact_type': 'chart',
                    'id': 'c1',
                    'version': 3,
                    'data': '{"x": 1}',
                    'diff': '[{"op": "add"}]',
                    'is_diff_closed': True,
                    'part_kind': 'artifact',
                },
                {'content': '# Notes', 'part_kind': 'custom-markdown'},
                {
                    'artifact_type': 'table',
                    'id': 't1',
                    'version': 1,
                    'data': '[]',
                    'diff': '',
                    'is_diff_closed': True,
                    'part_kind': 'artifact',
                },
            ],
            'think': [
                {'title': 'Plan', 'content': 'Pick a chart', 'ephemeral': True},
                {'title': 'Check', 'content': 'Numbers add up', 'ephemeral': False},
            ],
            'context': '{"source": "api"}',
            'is_content_closed': True,
        }
    )


def test_type_adapter_round_trip():
    dumped = ParsedResponseTypeAdapter.dump_json(RESPONSE)
    assert ParsedResponseTypeAdapter.validate_json(dumped) == RESPONSE


def test_type_adapter_uses_discriminator():
    loaded = ParsedResponseTypeAdapter.validate_python(
        {'parts': [{'part_kind': 'custom-markdown', 'content': 'md'}, {'part_kind': 'content', 'data': 'text'}]}
    )
    assert loaded == ParsedResponse(parts=[CustomMarkdownPart('md'), ContentPart('text')])
