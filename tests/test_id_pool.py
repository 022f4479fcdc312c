"""Tests for cvmd.core.id_pool."""

import random

import pytest

from cvmd.core import IdPool
from cvmd.exceptions import IdOutOfRangeError, PoolExhaustedError


class TestAllocate:
    def test_lowest_first(self):
        pool = IdPool(10, 14)
        assert [pool.allocate() for _ in range(4)] == [10, 11, 12, 13]

    def test_exhausted(self):
        pool = IdPool(10, 12)
        pool.allocate()
        pool.allocate()
        with pytest.raises(PoolExhaustedError):
            pool.allocate()

    def test_empty_range(self):
        with pytest.raises(PoolExhaustedError):
            IdPool(5, 5).allocate()

    def test_reuses_freed_id(self):
        pool = IdPool(10, 14)
        for _ in range(3):
            pool.allocate()
        pool.free(11)
        assert pool.allocate() == 11
        assert pool.allocate() == 13

    def test_invalid_range(self):
        with pytest.raises(ValueError):
            IdPool(10, 9)


class TestFree:
    def test_idempotent(self):
        pool = IdPool(10, 14)
        value = pool.allocate()
        pool.free(value)
        pool.free(value)
        assert len(pool) == 0
        assert pool.allocate() == value

    def test_unheld_value(self):
        pool = IdPool(10, 14)
        pool.free(12)
        pool.free(99)
        assert pool.available == 4


class TestOccupy:
    def test_allocate_skips_occupied(self):
        pool = IdPool(10, 14)
        pool.occupy(10)
        pool.occupy(12)
        assert pool.allocate() == 11
        assert pool.allocate() == 13
        with pytest.raises(PoolExhaustedError):
            pool.allocate()

    def test_idempotent(self):
        pool = IdPool(10, 14)
        pool.occupy(11)
        pool.occupy(11)
        assert len(pool) == 1
        assert 11 in pool

    @pytest.mark.parametrize("value", [9, 14, -1, 1000])
    def test_out_of_range(self, value):
        pool = IdPool(10, 14)
        with pytest.raises(IdOutOfRangeError):
            pool.occupy(value)
        assert len(pool) == 0


class TestRandomSequences:
    @pytest.mark.parametrize("seed", range(20))
    def test_no_double_allocation(self, seed):
        rng = random.Random(seed)
        start, end = 100, 108
        pool = IdPool(start, end)
        held: set[int] = set()

        for _ in range(200):
            op = rng.choice(["allocate", "free", "occupy"])
            if op == "allocate":
                if len(held) == end - start:
                    with pytest.raises(PoolExhaustedError):
                        pool.allocate()
                else:
                    value = pool.allocate()
                    assert value not in held
                    assert value == min(set(range(start, end)) - held)
                    held.add(value)
            elif op == "free":
                value = rng.randrange(start - 2, end + 2)
                pool.free(value)
                held.discard(value)
            else:
                value = rng.randrange(start, end)
                pool.occupy(value)
                held.add(value)
            assert len(pool) == len(held)
            assert all(v in pool for v in held)
