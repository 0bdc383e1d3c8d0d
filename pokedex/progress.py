"""
Progress reporting for long-running bulk fetches.

The region fetcher calls a ProgressCallback with (current, total) after each
batch. ProgressState is the observer the presentation side keeps; resetting
it once a run ends is the observer's job, never the fetcher's.
"""

from typing import Callable, List, Tuple

ProgressCallback = Callable[[int, int], None]


class ProgressState:
    """Mutable {current, total} pair that doubles as a ProgressCallback."""

    def __init__(self):
        self.current = 0
        self.total = 0
        self.history: List[Tuple[int, int]] = []

    def __call__(self, current: int, total: int) -> None:
        self.update(current, total)

    def update(self, current: int, total: int) -> None:
        self.current = current
        self.total = total
        self.history.append((current, total))

    def reset(self) -> None:
        self.current = 0
        self.total = 0
        self.history.clear()

    @property
    def fraction(self) -> float:
        return self.current / self.total if self.total else 0.0

    @property
    def percent(self) -> int:
        return round(self.fraction * 100)

    @property
    def complete(self) -> bool:
        return self.total > 0 and self.current >= self.total

    def __repr__(self) -> str:
        return f"ProgressState(current={self.current}, total={self.total})"
