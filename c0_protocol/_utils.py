from __future__ import annotations as _annotations

import uuid
from dataclasses import fields
from typing import Any


def dataclasses_no_defaults_repr(self: Any) -> str:
    """Exclude fields with values equal to the field default."""
    kv_pairs = (
        f'{f.name}={getattr(self, f.name)!r}' for f in fields(self) if f.repr and getattr(self, f.name) != f.default
    )
    return f'{self.__class__.__qualname__}({", ".join(kv_pairs)})'


def generate_artifact_id() -> str:
    """Generate an ID for an artifact tag that arrived without one."""
    return str(uuid.uuid4())

