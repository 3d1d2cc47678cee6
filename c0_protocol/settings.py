from __future__ import annotations

from typing_extensions import TypedDict

__all__ = ('StreamParserSettings', 'DEFAULT_ARTIFACT_TYPE', 'merge_parser_settings')

DEFAULT_ARTIFACT_TYPE = 'slides'
"""Artifact type used when an `<artifact>` tag has no `type` attribute."""


class StreamParserSettings(TypedDict, total=False):
    """Settings to configure a [`StreamParser`][c0_protocol.parser.StreamParser].

    All types must be JSON-serializable.
    """

    repair_json: bool
    """Whether to repair malformed JSON in an artifact body when its `</artifact>` tag closes.

    Repair is off by default, so consumers see exactly what the model produced. Turn it on for weak or small
    models that write trailing commas, single quotes or truncated JSON.
    """

    default_artifact_type: str
    """The artifact type to use when an `<artifact>` tag has no `type` attribute, defaults to `'slides'`."""


def merge_parser_settings(
    base: StreamParserSettings | None, overrides: StreamParserSettings | None
) -> StreamParserSettings | None:
    """Merge two sets of parser settings, preferring the overrides."""
    if base and overrides:
        return base | overrides
    else:
        return base or overrides
