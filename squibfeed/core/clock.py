"""Epoch-millisecond clock used by stores and normalization."""
import time
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)
