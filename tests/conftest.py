from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

import pytest

from cachegate import BaseClock

BASELINE_TS = int(datetime(2015, 8, 25, 12, 0, 0, tzinfo=timezone.utc).timestamp())


class FixedClock(BaseClock):
    def __init__(self, now: int) -> None:
        self._now = now

    def now(self) -> int:
        return self._now


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_clock() -> Callable[[int], BaseClock]:
    return FixedClock


@pytest.fixture
def clock() -> BaseClock:
    """A clock frozen one hour after Tue, 25 Aug 2015 12:00:00 GMT."""
    return FixedClock(BASELINE_TS + 3600)
