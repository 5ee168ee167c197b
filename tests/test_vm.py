"""Tests for paged virtual memory translation and replacement."""

import random

import pytest

from models import ErrorKind, PagePolicy
from vm import VirtualMemoryEngine


def make_vm(policy=PagePolicy.FIFO, vsize=4096, page=256, psize=1024):
    engine = VirtualMemoryEngine()
    assert engine.init(vsize, page, psize, policy).success
    return engine


def test_fifo_scenario():
    engine = make_vm()
    assert (engine.num_virtual_pages, engine.num_frames) == (16, 4)

    for page in range(4):
        result = engine.access(page * 256)
        assert result.page_fault
        assert result.frame_index == page
        assert result.evicted_page is None

    result = engine.access(4 * 256 + 8)
    assert result.page_fault
    assert (result.evicted_page, result.frame_index, result.physical_address) == (0, 0, 8)

    # page 0 is gone; its fault evicts page 1
    result = engine.access(0)
    assert result.page_fault
    assert (result.evicted_page, result.frame_index) == (1, 1)


def test_lru_evicts_least_recently_used():
    engine = make_vm(PagePolicy.LRU)
    for page in range(4):
        engine.access(page * 256)
    assert not engine.access(0).page_fault

    result = engine.access(4 * 256)
    assert (result.evicted_page, result.frame_index) == (1, 1)


def test_fifo_ignores_recent_use():
    engine = make_vm(PagePolicy.FIFO)
    for page in range(4):
        engine.access(page * 256)
    engine.access(0)
    assert engine.access(4 * 256).evicted_page == 0


def test_translation_fields():
    engine = make_vm()
    engine.access(0)
    result = engine.access(300)
    assert result.success
    assert (result.virtual_page, result.offset, result.frame_index) == (1, 44, 1)
    assert result.physical_address == 256 + 44

    hit = engine.access(301)
    assert not hit.page_fault
    assert hit.physical_address == 256 + 45
    assert hit.message == "Page hit"


def test_sizes_truncate_to_page_multiples():
    engine = make_vm(vsize=1000, page=256, psize=600)
    assert (engine.virtual_size, engine.physical_size) == (768, 512)
    assert (engine.num_virtual_pages, engine.num_frames) == (3, 2)
    assert engine.access(767).success
    assert engine.access(768).error == ErrorKind.OUT_OF_RANGE


@pytest.mark.parametrize("args", [
    (4096, 0, 1024),
    (100, 256, 1024),
    (4096, 256, 100),
    (4096, -256, 1024),
])
def test_init_rejects_bad_sizes(args):
    engine = VirtualMemoryEngine()
    assert engine.init(*args).error == ErrorKind.INVALID_REQUEST
    assert not engine.initialized


def test_smallest_valid_configuration_has_one_page_and_frame():
    engine = VirtualMemoryEngine()
    assert engine.init(256, 256, 300).success
    assert (engine.num_virtual_pages, engine.num_frames) == (1, 1)
    assert engine.access(255).physical_address == 255


def test_init_rejects_unknown_policy():
    engine = make_vm()
    assert engine.init(4096, 256, 1024, "CLOCK").error == ErrorKind.INVALID_REQUEST
    assert engine.policy == PagePolicy.FIFO


def test_access_errors_leave_state_unchanged():
    engine = VirtualMemoryEngine()
    assert engine.access(0).error == ErrorKind.NOT_INITIALIZED

    engine = make_vm()
    engine.access(0)
    before = engine.statistics()
    assert engine.access(4096).error == ErrorKind.OUT_OF_RANGE
    assert engine.access(-1).error == ErrorKind.OUT_OF_RANGE
    assert engine.statistics() == before
    assert engine.global_time == 1


def test_statistics():
    engine = make_vm()
    for address in (0, 256, 512, 768, 0):
        engine.access(address)

    stats = engine.statistics()
    assert (stats.accesses, stats.page_hits, stats.page_faults) == (5, 1, 4)
    assert stats.hit_rate == pytest.approx(20.0)
    assert stats.fault_rate == pytest.approx(80.0)
    assert (stats.num_virtual_pages, stats.num_frames, stats.page_size) == (16, 4, 256)


def test_reset_is_idempotent_and_keeps_configuration():
    engine = make_vm(PagePolicy.LRU)
    for address in (0, 256, 0, 2048):
        engine.access(address)

    engine.reset()
    first = engine.statistics()
    engine.reset()
    assert engine.statistics() == first
    assert (first.accesses, first.page_hits, first.page_faults) == (0, 0, 0)
    assert first.num_frames == 4
    assert engine.policy == PagePolicy.LRU
    assert all(not f.occupied for f in engine.frame_table())
    assert engine.access(0).page_fault


def test_page_and_frame_tables_agree():
    rng = random.Random(3)
    engine = make_vm(PagePolicy.LRU)
    for _ in range(300):
        engine.access(rng.randrange(4096))

        snapshot = engine.page_table_snapshot()
        frames = engine.frame_table()
        assert len(snapshot) == sum(f.occupied for f in frames)
        for page, entry in snapshot.items():
            assert frames[entry.frame_index].page == page


def test_replay_is_deterministic():
    def replay():
        engine = make_vm(PagePolicy.LRU)
        results = [engine.access(a) for a in (0, 300, 900, 1500, 30, 3000, 310, 4095, 5000)]
        return results, engine.statistics()

    assert replay() == replay()
