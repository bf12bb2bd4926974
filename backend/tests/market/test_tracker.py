"""Tests for MedianTracker."""

import random

import numpy as np
import pytest

from median_service.market.tracker import MedianTracker


def _heap_invariants_hold(tracker: MedianTracker) -> bool:
    low, high = tracker._low, tracker._high
    if not 0 <= len(low) - len(high) <= 1:
        return False
    if low and high and -low[0] > high[0]:
        return False
    return True


class TestMedianTracker:
    """Unit tests for the two-heap running median."""

    def test_empty_median_is_none(self):
        """No observations yet means no median."""
        tracker = MedianTracker()
        assert tracker.median() is None
        assert tracker.count == 0

    def test_single_value(self):
        tracker = MedianTracker()
        tracker.insert(42.5)
        assert tracker.median() == 42.5

    def test_odd_count_example(self):
        """[5, 1, 3] -> 3."""
        tracker = MedianTracker()
        for price in [5, 1, 3]:
            tracker.insert(price)
        assert tracker.median() == 3

    def test_even_count_example(self):
        """[5, 1, 3, 8] -> average of 3 and 5."""
        tracker = MedianTracker()
        for price in [5, 1, 3, 8]:
            tracker.insert(price)
        assert tracker.median() == 4

    def test_all_equal_prices(self):
        """Ties go to the low half and still rebalance."""
        tracker = MedianTracker()
        for _ in range(7):
            tracker.insert(10.0)
        assert tracker.median() == 10.0
        assert _heap_invariants_hold(tracker)

    def test_stats(self):
        """Stats report count, median and both heap sizes."""
        tracker = MedianTracker()
        for price in [5, 1, 3, 8, 2]:
            tracker.insert(price)
        stats = tracker.stats()
        assert stats.count == 5
        assert stats.median == 3
        assert stats.max_heap_size == 3
        assert stats.min_heap_size == 2

    def test_stats_empty(self):
        stats = MedianTracker().stats()
        assert stats.count == 0
        assert stats.median is None
        assert stats.max_heap_size == 0
        assert stats.min_heap_size == 0

    def test_len_tracks_count(self):
        tracker = MedianTracker()
        tracker.insert(1.0)
        tracker.insert(2.0)
        assert len(tracker) == 2

    @pytest.mark.parametrize(
        "sequence",
        [
            list(range(1, 101)),  # ascending
            list(range(100, 0, -1)),  # descending
            [7.0] * 20 + [3.0] * 20 + [9.0] * 21,  # duplicate runs
            [1.0, 1000.0] * 25,  # alternating extremes
        ],
        ids=["ascending", "descending", "duplicates", "alternating"],
    )
    def test_structured_sequences_match_reference(self, sequence):
        """Median after every insert equals the sorted-array median."""
        tracker = MedianTracker()
        for i, price in enumerate(sequence, start=1):
            tracker.insert(price)
            assert tracker.median() == pytest.approx(float(np.median(sequence[:i])))
            assert _heap_invariants_hold(tracker)

    @pytest.mark.parametrize("seed", [0, 1, 7, 42, 1337])
    def test_random_sequences_match_reference(self, seed):
        """Randomized prices with deliberate duplicates match numpy's median."""
        rng = random.Random(seed)
        pool = [round(rng.uniform(0.0001, 70000.0), 4) for _ in range(40)]
        prices = [rng.choice(pool) for _ in range(500)]

        tracker = MedianTracker()
        for i, price in enumerate(prices, start=1):
            tracker.insert(price)
            assert _heap_invariants_hold(tracker)
            if i % 25 == 0:
                assert tracker.median() == pytest.approx(float(np.median(prices[:i])))

        assert tracker.count == len(prices)
        assert tracker.median() == pytest.approx(float(np.median(prices)))
