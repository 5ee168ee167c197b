import pytest

from config import SimulatorConfig, load_config, parse_cache_levels
from models import CachePolicy, PagePolicy


def test_missing_file_is_created_with_defaults(tmp_path):
    path = tmp_path / "config.ini"
    cfg = load_config(str(path))
    assert path.exists()
    assert cfg == SimulatorConfig()


def test_values_are_read_from_file(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text(
        "[SIMULATOR]\n"
        "memory_size = 2048\n"
        "allocator = Buddy\n"
        "cache_levels = L1:128:32:2\n"
        "cache_policy = lfu\n"
        "vm_policy = lru\n"
        "forward_to_cache = no\n"
    )
    cfg = load_config(str(path))
    assert cfg.memory_size == 2048
    assert cfg.allocator == "buddy"
    assert cfg.cache_levels == (("L1", 128, 32, 2),)
    assert cfg.cache_policy == CachePolicy.LFU
    assert cfg.vm_policy == PagePolicy.LRU
    assert cfg.forward_to_cache is False
    # untouched keys keep their defaults
    assert cfg.vm_page_size == 256


@pytest.mark.parametrize("line", [
    "allocator = next_fit",
    "cache_policy = MRU",
    "vm_policy = CLOCK",
    "memory_size = lots",
    "cache_levels = L1:64:16",
])
def test_invalid_values_raise(tmp_path, line):
    path = tmp_path / "config.ini"
    path.write_text(f"[SIMULATOR]\n{line}\n")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_parse_cache_levels():
    assert parse_cache_levels("L1:64:16:1, L2:256:16:2,") == [
        ("L1", 64, 16, 1),
        ("L2", 256, 16, 2),
    ]
