# config.py
"""
Simulator defaults read from config.ini.

The file is created with the defaults below when it does not exist, so the
Streamlit sidebar always has a starting point that users can edit on disk.
"""

import configparser
import os
from dataclasses import dataclass
from typing import List, Tuple

from models import CachePolicy, PagePolicy

CONFIG_FILE = "config.ini"
SECTION = "SIMULATOR"

DEFAULT_CONFIG = {
    SECTION: {
        "memory_size": "1024",        # bytes managed by the allocator
        "allocator": "first_fit",     # first_fit | best_fit | worst_fit | buddy
        "buddy_min_block": "32",      # smallest buddy block in bytes
        "cache_levels": "L1:64:16:1, L2:256:16:2",  # name:size:block:assoc
        "cache_policy": "FIFO",       # FIFO | LRU | LFU
        "vm_virtual_size": "4096",
        "vm_page_size": "256",
        "vm_physical_size": "1024",
        "vm_policy": "FIFO",          # FIFO | LRU
        "forward_to_cache": "True",   # feed translated addresses into the cache
    }
}

ALLOCATORS = ("first_fit", "best_fit", "worst_fit", "buddy")


@dataclass
class SimulatorConfig:
    memory_size: int = 1024
    allocator: str = "first_fit"
    buddy_min_block: int = 32
    cache_levels: Tuple[Tuple[str, int, int, int], ...] = (("L1", 64, 16, 1), ("L2", 256, 16, 2))
    cache_policy: str = CachePolicy.FIFO
    vm_virtual_size: int = 4096
    vm_page_size: int = 256
    vm_physical_size: int = 1024
    vm_policy: str = PagePolicy.FIFO
    forward_to_cache: bool = True


def parse_cache_levels(text) -> List[Tuple[str, int, int, int]]:
    """Parse ``"L1:64:16:1, L2:256:16:2"`` into (name, size, block, assoc) tuples."""
    levels = []
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        parts = item.split(":")
        if len(parts) != 4:
            raise ValueError(f"Invalid cache level: {item!r} (expected name:size:block:assoc)")
        name, size, block, assoc = parts
        levels.append((name.strip(), int(size), int(block), int(assoc)))
    return levels


def ensure_config(path=CONFIG_FILE):
    if not os.path.exists(path):
        cfg = configparser.ConfigParser()
        cfg[SECTION] = DEFAULT_CONFIG[SECTION]
        with open(path, "w") as f:
            cfg.write(f)
    return path


def load_config(path=CONFIG_FILE, create=True) -> SimulatorConfig:
    if create:
        ensure_config(path)
    config = configparser.ConfigParser()
    config.read(path)
    s = config[SECTION] if config.has_section(SECTION) else {}
    defaults = DEFAULT_CONFIG[SECTION]

    def get(key):
        return s.get(key, defaults[key])

    allocator = get("allocator").lower()
    if allocator not in ALLOCATORS:
        raise ValueError(f"Unknown allocator in {path}: {allocator}")
    cache_policy = get("cache_policy").upper()
    if cache_policy not in CachePolicy.ALL:
        raise ValueError(f"Unknown cache policy in {path}: {cache_policy}")
    vm_policy = get("vm_policy").upper()
    if vm_policy not in PagePolicy.ALL:
        raise ValueError(f"Unknown VM policy in {path}: {vm_policy}")

    return SimulatorConfig(
        memory_size=int(get("memory_size")),
        allocator=allocator,
        buddy_min_block=int(get("buddy_min_block")),
        cache_levels=tuple(parse_cache_levels(get("cache_levels"))),
        cache_policy=cache_policy,
        vm_virtual_size=int(get("vm_virtual_size")),
        vm_page_size=int(get("vm_page_size")),
        vm_physical_size=int(get("vm_physical_size")),
        vm_policy=vm_policy,
        forward_to_cache=get("forward_to_cache").lower() in ("1", "true", "yes"),
    )
