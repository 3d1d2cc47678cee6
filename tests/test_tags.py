from __future__ import annotations as _annotations

import pytest
from inline_snapshot import snapshot

from c0_protocol import (
    TAGS,
    ArtifactMeta,
    escape_xml,
    unescape_xml,
    wrap_artifact,
    wrap_artifact_diff,
    wrap_content,
    wrap_context,
    wrap_custom_markdown,
    wrap_think_item,
)
from c0_protocol.tags import KNOWN_TAGS


def test_tag_names():
    assert TAGS.CONTENT == 'content'
    assert TAGS.ARTIFACT_DIFF == 'artifact_diff'
    assert TAGS.THINK_CONTENT == 'thinkitemcontent'
    assert sorted(KNOWN_TAGS) == snapshot(
        [
            'artifact',
            'artifact_diff',
            'content',
            'context',
            'custommarkdown',
            'thinkitem',
            'thinkitemcontent',
            'thinkitemtitle',
        ]
    )


def test_escape_xml():
    assert escape_xml('Price: $100 < $200 & "quoted" \'single\' >') == snapshot(
        'Price: $100 &lt; $200 &amp; &quot;quoted&quot; &#39;single&#39; &gt;'
    )
    assert escape_xml('plain') == 'plain'


@pytest.mark.parametrize(
    'text,expected',
    [
        pytest.param('&lt;b&gt;', '<b>', id='named'),
        pytest.param('&quot;&apos;&#39;', '"\'\'', id='quotes'),
        pytest.param('&#60;&#x3C;&#X3c;', '<<<', id='numeric'),
        pytest.param('&#8364;', '€', id='non-ascii'),
        pytest.param('&amp;lt;', '&lt;', id='single-pass'),
        pytest.param('&nbsp;', '&nbsp;', id='unknown-name'),
        pytest.param('&#0;&#xD800;&#x110000;', '&#0;&#xD800;&#x110000;', id='invalid-code-points'),
        pytest.param('a & b &amp c', 'a & b &amp c', id='bare-ampersands'),
        pytest.param('no references', 'no references', id='nothing-to-decode'),
    ],
)
def test_unescape_xml(text: str, expected: str):
    assert unescape_xml(text) == expected


@pytest.mark.parametrize(
    'text',
    [
        '',
        'Price: $100 < $200 & "quoted"',
        '&amp; is already escaped, &lt; too',
        '&#39;&#x27;&apos;',
        '{"component": "Chart", "props": {"title": "Q1 <b>&</b> Q2"}}',
        'trailing &',
    ],
)
def test_escape_is_invertible(text: str):
    assert unescape_xml(escape_xml(text)) == text


def test_wrap_content():
    assert wrap_content('Hello & welcome') == snapshot('<content thesys="true">Hello &amp; welcome</content>')


def test_wrap_artifact():
    meta = ArtifactMeta(type='chart', id='c-1', version=2)
    assert wrap_artifact('{"a":1}', meta) == snapshot(
        '<artifact type="chart" id="c-1" version="2">{&quot;a&quot;:1}</artifact>'
    )


def test_wrap_artifact_escapes_attributes():
    meta = ArtifactMeta(type='a"b', id='x&y')
    assert wrap_artifact('', meta) == snapshot('<artifact type="a&quot;b" id="x&amp;y" version="1"></artifact>')


def test_wrap_artifact_diff():
    assert wrap_artifact_diff('[]') == snapshot('<artifact_diff>[]</artifact_diff>')


def test_wrap_context():
    assert wrap_context('{"k":"v"}') == snapshot('<context>{&quot;k&quot;:&quot;v&quot;}</context>')


def test_wrap_think_item():
    assert wrap_think_item('Step 1', 'a < b') == snapshot(
        '<thinkitem ephemeral="true"><thinkitemtitle>Step 1</thinkitemtitle><thinkitemcontent>a &lt; b</thinkitemcontent></thinkitem>'
    )
    assert wrap_think_item('Step 2', 'kept', ephemeral=False) == snapshot(
        '<thinkitem><thinkitemtitle>Step 2</thinkitemtitle><thinkitemcontent>kept</thinkitemcontent></thinkitem>'
    )


def test_wrap_custom_markdown():
    assert wrap_custom_markdown('# Title\n\n**bold**') == snapshot(
        """\
<custommarkdown># Title

**bold**</custommarkdown>\
"""
    )
