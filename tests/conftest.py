from __future__ import annotations as _annotations

from collections.abc import Callable, Iterator
from itertools import count

import pytest


@pytest.fixture
def anyio_backend():
    return 'asyncio'


@pytest.fixture
def sequential_ids() -> Iterator[Callable[[], str]]:
    """An artifact id generator returning `generated-1`, `generated-2`, ..."""
    counter = count(1)
    yield lambda: f'generated-{next(counter)}'
