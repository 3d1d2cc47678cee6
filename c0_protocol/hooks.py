"""Completion hooks fired by the stream parser.

Three events can be observed, each fired exactly once, synchronously, while the `write()` call that
delivered the closing tag is running:

* `content`: `</content>` closed, receives the final content text
* `artifact`: `</artifact>` closed, receives the completed (and, if enabled, repaired) artifact
* `think`: `</thinkitemcontent>` closed, receives the completed think item

```python
from c0_protocol import ParserHooks, StreamParser

hooks = ParserHooks()


@hooks.on_artifact
def render(artifact):
    print(artifact.artifact_type, artifact.data)


parser = StreamParser(hooks=hooks)
```
"""

from __future__ import annotations as _annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .messages import ArtifactPart, ThinkItem

__all__ = ('ParserHooks', 'ContentHook', 'ArtifactHook', 'ThinkHook')

ContentHook = Callable[[str], None]
ArtifactHook = Callable[[ArtifactPart], None]
ThinkHook = Callable[[ThinkItem], None]

HookT = TypeVar('HookT', bound=Callable[..., None])


@dataclass
class ParserHooks:
    """Subscriber slots for the parser's completion events.

    Subscribers of each slot are called in registration order, after every event of the chunk being written has
    been applied. An exception raised by a subscriber propagates out of the `write()` call and skips the remaining
    calls for that chunk; the parsed result is not affected.
    """

    content: list[ContentHook] = field(default_factory=list[ContentHook])
    artifact: list[ArtifactHook] = field(default_factory=list[ArtifactHook])
    think: list[ThinkHook] = field(default_factory=list[ThinkHook])

    def on_content(self, hook: ContentHook) -> ContentHook:
        """Subscribe to closed content blocks, usable as a decorator."""
        return _register(self.content, hook)

    def on_artifact(self, hook: ArtifactHook) -> ArtifactHook:
        """Subscribe to closed artifacts, usable as a decorator."""
        return _register(self.artifact, hook)

    def on_think(self, hook: ThinkHook) -> ThinkHook:
        """Subscribe to completed think items, usable as a decorator."""
        return _register(self.think, hook)

    def emit_content(self, content: str) -> None:
        for hook in self.content:
            hook(content)

    def emit_artifact(self, artifact: ArtifactPart) -> None:
        for hook in self.artifact:
            hook(artifact)

    def emit_think(self, item: ThinkItem) -> None:
        for hook in self.think:
            hook(item)


def _register(slot: list[HookT], hook: HookT) -> HookT:
    slot.append(hook)
    return hook
