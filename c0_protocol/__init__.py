from importlib.metadata import version as _metadata_version

from ._json_repair import repair_json
from .exceptions import ArtifactDataError, C0ProtocolError, UserError
from .hooks import ArtifactHook, ContentHook, ParserHooks, ThinkHook
from .messages import (
    ArtifactMeta,
    ArtifactPart,
    ContentPart,
    CustomMarkdownPart,
    MessagePart,
    ParsedResponse,
    ParsedResponseTypeAdapter,
    ThinkItem,
)
from .parser import StreamParser, aiter_responses, iter_responses, parse_response
from .serializer import extract_context, serialize_response
from .settings import DEFAULT_ARTIFACT_TYPE, StreamParserSettings, merge_parser_settings
from .tags import (
    TAGS,
    TagName,
    escape_xml,
    unescape_xml,
    wrap_artifact,
    wrap_artifact_diff,
    wrap_content,
    wrap_context,
    wrap_custom_markdown,
    wrap_think_item,
)

__all__ = (
    '__version__',
    # parser
    'StreamParser',
    'parse_response',
    'iter_responses',
    'aiter_responses',
    # messages
    'ArtifactMeta',
    'ArtifactPart',
    'ContentPart',
    'CustomMarkdownPart',
    'MessagePart',
    'ParsedResponse',
    'ParsedResponseTypeAdapter',
    'ThinkItem',
    # hooks
    'ParserHooks',
    'ContentHook',
    'ArtifactHook',
    'ThinkHook',
    # settings
    'StreamParserSettings',
    'DEFAULT_ARTIFACT_TYPE',
    'merge_parser_settings',
    # serializer
    'serialize_response',
    'extract_context',
    # json repair
    'repair_json',
    # tags
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
    # exceptions
    'C0ProtocolError',
    'UserError',
    'ArtifactDataError',
)
__version__ = _metadata_version('c0-protocol')
