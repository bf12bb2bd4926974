"""Two-heap running median."""

from __future__ import annotations

import heapq

from .models import TrackerStats


class MedianTracker:
    """Running median over an append-only stream of prices.

    The smaller half of observations lives in ``_low`` (a max-heap, stored
    negated because ``heapq`` only provides min-heaps) and the larger half in
    ``_high`` (a min-heap). After every insert:

        0 <= len(_low) - len(_high) <= 1
        max(_low) <= min(_high)

    so the median is always available from the two heap tops.
    """

    def __init__(self) -> None:
        self._low: list[float] = []  # negated values
        self._high: list[float] = []
        self._count: int = 0

    def insert(self, price: float) -> None:
        """Add one observation. O(log n)."""
        self._count += 1

        if not self._low:
            heapq.heappush(self._low, -price)
            return

        if price <= -self._low[0]:
            heapq.heappush(self._low, -price)
        else:
            heapq.heappush(self._high, price)
        self._rebalance()

    def _rebalance(self) -> None:
        if len(self._low) > len(self._high) + 1:
            heapq.heappush(self._high, -heapq.heappop(self._low))
        elif len(self._high) > len(self._low):
            heapq.heappush(self._low, -heapq.heappop(self._high))

    def median(self) -> float | None:
        """Current median, or None before the first observation. O(1)."""
        if self._count == 0:
            return None
        if self._count % 2 == 1:
            return -self._low[0]
        return (-self._low[0] + self._high[0]) / 2

    def stats(self) -> TrackerStats:
        return TrackerStats(
            count=self._count,
            median=self.median(),
            max_heap_size=len(self._low),
            min_heap_size=len(self._high),
        )

    @property
    def count(self) -> int:
        return self._count

    def __len__(self) -> int:
        return self._count
