"""
Set-associative cache hierarchy simulator.

Only tags and replacement metadata are tracked; no data is stored. Every
level keeps its own logical clock that advances once per access and drives
FIFO/LRU ordering.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from models import (CacheAccessResult, CachePolicy, CacheStats, ErrorKind,
                    LevelAccess, OperationResult)


@dataclass
class CacheConfig:
    """
    Configuration of one cache level.

    Attributes:
        name (str): Label used in statistics (e.g. "L1")
        size (int): Capacity in bytes, rounded down to whole sets
        block_size (int): Line size in bytes
        associativity (int): Ways per set
        policy (str): One of CachePolicy.FIFO, LRU, LFU
    """
    name: str
    size: int
    block_size: int
    associativity: int = 1
    policy: str = CachePolicy.FIFO


_VICTIM_ORDER = {
    CachePolicy.FIFO: "insert_time",
    CachePolicy.LRU: "last_access_time",
    CachePolicy.LFU: "frequency",
}


@dataclass
class CacheLine:
    valid: bool = False
    tag: int = 0
    insert_time: int = 0
    last_access_time: int = 0
    frequency: int = 0


class CacheLevel:
    def __init__(self, config: CacheConfig):
        if config.size <= 0 or config.block_size <= 0 or config.associativity <= 0:
            raise ValueError(f"Invalid cache configuration for {config.name}")
        if config.policy not in CachePolicy.ALL:
            raise ValueError(f"Unknown replacement policy: {config.policy}")

        set_bytes = config.block_size * config.associativity
        size = (config.size // set_bytes) * set_bytes
        num_sets = (size // config.block_size) // config.associativity
        if num_sets == 0:
            raise ValueError(f"Invalid cache configuration for {config.name}: zero sets")

        self.config = CacheConfig(config.name, size, config.block_size,
                                  config.associativity, config.policy)
        self.num_sets = num_sets
        self.stats = CacheStats(config.name)
        self.global_time = 0
        self.sets: List[List[CacheLine]] = self._empty_sets()

    @property
    def name(self):
        return self.config.name

    def _empty_sets(self):
        return [[CacheLine() for _ in range(self.config.associativity)]
                for _ in range(self.num_sets)]

    def set_index(self, address):
        return (address // self.config.block_size) % self.num_sets

    def tag(self, address):
        return (address // self.config.block_size) // self.num_sets

    def access(self, address) -> LevelAccess:
        self.stats.accesses += 1
        self.global_time += 1

        set_index = self.set_index(address)
        tag = self.tag(address)
        ways = self.sets[set_index]

        for way, line in enumerate(ways):
            if line.valid and line.tag == tag:
                self.stats.hits += 1
                line.last_access_time = self.global_time
                line.frequency += 1
                return LevelAccess(self.name, True, set_index, tag, way)

        self.stats.misses += 1
        way = self._select_victim(ways)
        victim = ways[way]
        evicted_tag = victim.tag if victim.valid else None

        victim.valid = True
        victim.tag = tag
        victim.insert_time = self.global_time
        victim.last_access_time = self.global_time
        victim.frequency = 1
        return LevelAccess(self.name, False, set_index, tag, way, evicted_tag)

    def _select_victim(self, ways):
        for way, line in enumerate(ways):
            if not line.valid:
                return way

        attr = _VICTIM_ORDER[self.config.policy]
        # min() keeps the first (lowest) way on ties
        return min(range(len(ways)), key=lambda way: getattr(ways[way], attr))

    def reset(self):
        self.stats = CacheStats(self.name)
        self.global_time = 0
        self.sets = self._empty_sets()


class CacheHierarchyEngine:
    """
    Ordered list of independently configured cache levels.

    An access is submitted to every level in order regardless of earlier
    hits or misses, so each level's statistics reflect the full address
    trace. The first level that hits is reported as the overall hit level.
    """

    def __init__(self):
        self.levels: List[CacheLevel] = []
        self.event_log: List[str] = []

    @property
    def configured(self):
        return bool(self.levels)

    def configure(self, configs: Sequence[CacheConfig]) -> OperationResult:
        if not configs:
            return self._fail(ErrorKind.INVALID_REQUEST, "No cache levels given")
        try:
            levels = [CacheLevel(cfg) for cfg in configs]
        except ValueError as e:
            return self._fail(ErrorKind.INVALID_CONFIGURATION, str(e))

        self.levels = levels
        for level in levels:
            cfg = level.config
            self.event_log.append(
                f"I[Cache] {cfg.name}: {cfg.size} bytes, block={cfg.block_size}, "
                f"{cfg.associativity}-way, {level.num_sets} sets, {cfg.policy}")
        return OperationResult(success=True, message=f"Cache init with {len(levels)} level(s)")

    def access(self, address) -> CacheAccessResult:
        if not self.levels:
            return self._fail(ErrorKind.NOT_INITIALIZED, "Cache not initialized",
                              result_type=CacheAccessResult)
        if address < 0:
            return self._fail(ErrorKind.INVALID_REQUEST, f"Invalid address: {address}",
                              result_type=CacheAccessResult)

        outcomes = [level.access(address) for level in self.levels]
        hit_level: Optional[int] = next(
            (i for i, outcome in enumerate(outcomes) if outcome.hit), None)

        if hit_level is None:
            message = "Miss at all levels"
        else:
            message = f"Hit in {outcomes[hit_level].level_name}"
        self.event_log.append(f"I[Cache] 0x{address:04x}: {message}")
        return CacheAccessResult(success=True, message=message, address=address,
                                 hit_level=hit_level, levels=outcomes)

    def reset(self):
        for level in self.levels:
            level.reset()
        self.event_log.append("I[Cache] Reset")
        return OperationResult(success=True, message="Cache reset")

    def statistics(self) -> List[CacheStats]:
        return [CacheStats(s.level_name, s.accesses, s.hits, s.misses)
                for s in (level.stats for level in self.levels)]

    def _fail(self, error, message, result_type=OperationResult):
        self.event_log.append(f"E[Cache] {message}")
        return result_type(success=False, error=error, message=message)
