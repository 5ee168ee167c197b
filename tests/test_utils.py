from models import AllocationStats, Block, CacheStats
from utils import format_allocation_stats, format_cache_stats, format_dump, get_color


def test_get_color():
    assert get_color(False) == "#d3d3d3"
    assert get_color(True, 3) == get_color(True, 3)
    assert get_color(True, 1) != get_color(True, 2)


def test_format_dump():
    text = format_dump([Block(0, 16, True, 1), Block(16, 48, False)])
    lines = text.splitlines()
    assert lines[1] == "[0x0000 - 0x000f] USED (id=1, size=16)"
    assert lines[2] == "[0x0010 - 0x003f] FREE (size=48)"


def test_format_allocation_stats():
    stats = AllocationStats(total_memory=1000, used_memory=300, free_memory=700,
                            num_allocations=3, allocation_failures=1,
                            external_fragmentation=0.25)
    text = format_allocation_stats(stats, "First Fit")
    assert "Memory utilization: 30.00%" in text
    assert "Allocation success rate: 75.00%" in text
    assert "External fragmentation: 25.00%" in text


def test_format_cache_stats_without_accesses():
    text = format_cache_stats([CacheStats("L1")])
    assert "Hit ratio: 0.00%" in text
