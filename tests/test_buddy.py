"""Tests for the power-of-two buddy allocator."""

import random

import pytest

from buddy import BuddyAllocationEngine, next_power_of_two
from models import ErrorKind


def make_buddy(total=1024, min_block=32):
    engine = BuddyAllocationEngine()
    assert engine.init(total, min_block).success
    return engine


def test_buddy_scenario():
    engine = make_buddy()

    r1 = engine.allocate(100)
    assert (r1.success, r1.actual_size, r1.address) == (True, 128, 0)
    r2 = engine.allocate(100)
    assert r2.address == 128

    engine.deallocate(r1.block_id)
    engine.deallocate(r2.block_id)
    assert engine.free_blocks() == [(0, 1024)]
    assert engine.dump_free_lists() == {1024: [0]}


def test_init_rounds_to_powers_of_two():
    engine = make_buddy(1000, 20)
    assert engine.memory_size == 1024
    assert engine.min_block_size == 32
    assert engine.statistics().total_memory == 1024


def test_init_errors():
    engine = BuddyAllocationEngine()
    assert engine.init(0).error == ErrorKind.INVALID_REQUEST
    assert engine.init(64, 128).error == ErrorKind.INVALID_REQUEST
    assert engine.init(1024).success
    assert engine.init(2048).error == ErrorKind.ALREADY_INITIALIZED
    assert engine.memory_size == 1024


def test_split_leaves_one_free_block_per_level():
    engine = make_buddy()
    engine.allocate(100)
    assert engine.dump_free_lists() == {128: [128], 256: [256], 512: [512]}


def test_min_block_size_applies():
    engine = make_buddy()
    result = engine.allocate(1)
    assert result.actual_size == 32
    assert engine.internal_fragmentation_bytes == 31
    assert engine.statistics().internal_fragmentation == pytest.approx(31 / 32 * 100)


def test_out_of_memory():
    engine = make_buddy(256)
    assert engine.allocate(300).error == ErrorKind.OUT_OF_MEMORY
    assert engine.allocate(256).success
    assert engine.allocate(1).error == ErrorKind.OUT_OF_MEMORY
    assert engine.statistics().allocation_failures == 2


def test_allocated_buddy_blocks_merge():
    engine = make_buddy()
    engine.allocate(100)
    engine.allocate(100)
    engine.deallocate(1)
    assert engine.free_blocks() == [(0, 128), (256, 256), (512, 512)]


def test_deallocate_errors():
    engine = make_buddy()
    assert engine.deallocate(1).error == ErrorKind.INVALID_BLOCK_ID
    engine.allocate(64)
    assert engine.deallocate(0).error == ErrorKind.INVALID_BLOCK_ID
    assert engine.deallocate(1).success
    assert engine.deallocate(1).error == ErrorKind.DOUBLE_FREE


def test_failed_requests_leave_state_unchanged():
    engine = make_buddy()
    engine.allocate(100)
    engine.allocate(300)
    freed = engine.allocate(64).block_id
    assert engine.deallocate(freed).success

    def snapshot():
        return (engine.free_blocks(), engine.dump_free_lists(), engine.next_id,
                engine.statistics().used_memory, engine.internal_fragmentation_bytes)

    before = snapshot()
    assert engine.allocate(600).error == ErrorKind.OUT_OF_MEMORY
    assert engine.allocate(0).error == ErrorKind.INVALID_REQUEST
    assert engine.allocate(-8).error == ErrorKind.INVALID_REQUEST
    assert engine.deallocate(freed).error == ErrorKind.DOUBLE_FREE
    assert engine.deallocate(0).error == ErrorKind.INVALID_BLOCK_ID
    assert engine.deallocate(99).error == ErrorKind.INVALID_BLOCK_ID
    assert snapshot() == before


def test_not_initialized():
    engine = BuddyAllocationEngine()
    assert engine.allocate(10).error == ErrorKind.NOT_INITIALIZED
    assert engine.deallocate(1).error == ErrorKind.NOT_INITIALIZED


def test_statistics():
    engine = make_buddy()
    engine.allocate(100)

    stats = engine.statistics()
    assert stats.used_memory == 128
    assert stats.free_memory == 896
    assert stats.num_free_blocks == 3
    assert stats.num_allocated_blocks == 1
    assert stats.external_fragmentation == pytest.approx(1 - 512 / 896)
    assert stats.internal_fragmentation == pytest.approx(28 / 128 * 100)


def test_dump_marks_allocated_blocks():
    engine = make_buddy(256)
    engine.allocate(100)
    blocks = engine.dump()
    assert [(b.start, b.size, b.allocated, b.block_id) for b in blocks] == [
        (0, 128, True, 1),
        (128, 128, False, None),
    ]


def test_next_power_of_two():
    assert [next_power_of_two(n) for n in (1, 2, 3, 100, 128, 129)] == [1, 2, 4, 128, 128, 256]


def test_random_workload_alignment_and_full_merge():
    rng = random.Random(11)
    engine = make_buddy(4096, 16)
    live = {}

    for _ in range(400):
        if live and rng.random() < 0.4:
            block_id = rng.choice(sorted(live))
            del live[block_id]
            assert engine.deallocate(block_id).success
        else:
            result = engine.allocate(rng.randint(1, 600))
            if result.success:
                assert result.address % result.actual_size == 0
                live[result.block_id] = result.actual_size

        stats = engine.statistics()
        assert stats.used_memory + stats.free_memory == stats.total_memory
        assert stats.used_memory == sum(live.values())

    for block_id in list(live):
        engine.deallocate(block_id)
    assert engine.free_blocks() == [(0, 4096)]
