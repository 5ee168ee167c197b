"""
Shared data structures for the memory management simulator.

Holds the constant "enumerations" used to configure the engines, the result
records every mutating engine operation returns, and the statistics
snapshots. Engines never raise for domain failures: they hand back one of the
result records below with ``success=False`` and an ``ErrorKind``.
"""

from dataclasses import dataclass, field
from typing import List, Optional


# =============================================================================
# CONSTANTS
# =============================================================================

class Strategy:
    """Placement strategies for the free-list allocator."""
    FIRST_FIT = "First-Fit"
    BEST_FIT = "Best-Fit"
    WORST_FIT = "Worst-Fit"

    ALL = (FIRST_FIT, BEST_FIT, WORST_FIT)


class CachePolicy:
    """
    Replacement policies for a cache level.

    FIFO: evict the line installed earliest
    LRU:  evict the line not used for the longest time
    LFU:  evict the line with the fewest accesses
    """
    FIFO = "FIFO"
    LRU = "LRU"
    LFU = "LFU"

    ALL = (FIFO, LRU, LFU)


class PagePolicy:
    """Page replacement policies for the virtual memory engine."""
    FIFO = "FIFO"
    LRU = "LRU"

    ALL = (FIFO, LRU)


class ErrorKind:
    """Failure reasons reported inside result records."""
    INVALID_REQUEST = "InvalidRequest"
    INVALID_CONFIGURATION = "InvalidConfiguration"
    ALREADY_INITIALIZED = "AlreadyInitialized"
    NOT_INITIALIZED = "NotInitialized"
    OUT_OF_MEMORY = "OutOfMemory"
    INVALID_BLOCK_ID = "InvalidBlockId"
    DOUBLE_FREE = "DoubleFree"
    OUT_OF_RANGE = "OutOfRange"


def percent(part, whole) -> float:
    return part / whole * 100.0 if whole > 0 else 0.0


# =============================================================================
# DUMP RECORDS
# =============================================================================

class Block:
    """A contiguous region as shown in a memory dump."""

    def __init__(self, start, size, allocated=False, block_id=None):
        self.start = start
        self.size = size
        self.allocated = allocated
        self.block_id = block_id

    @property
    def end(self):
        # inclusive last byte
        return self.start + self.size - 1

    def __eq__(self, other):
        if not isinstance(other, Block):
            return NotImplemented
        return (self.start, self.size, self.allocated, self.block_id) == (
            other.start, other.size, other.allocated, other.block_id)

    def __repr__(self):
        state = "A" if self.allocated else "F"
        return f"[{state}|{self.start}|{self.size}]"


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class OperationResult:
    """
    Outcome of an engine operation without a specific payload.

    Attributes:
        success (bool): True if the operation took effect
        error (Optional[str]): One of the ErrorKind constants on failure
        message (str): Human-readable reason or confirmation
    """
    success: bool = False
    error: Optional[str] = None
    message: str = ""


@dataclass
class AllocationResult(OperationResult):
    """
    Outcome of an allocation.

    ``size`` is the requested size; ``actual_size`` is what was carved out,
    which only differs from ``size`` for the buddy allocator.
    """
    block_id: int = 0
    address: int = 0
    size: int = 0
    actual_size: int = 0


@dataclass
class DeallocationResult(OperationResult):
    block_id: int = 0
    address: int = 0
    size: int = 0


@dataclass
class LevelAccess:
    """What happened at one cache level during a hierarchy access."""
    level_name: str
    hit: bool
    set_index: int
    tag: int
    way: int
    evicted_tag: Optional[int] = None


@dataclass
class CacheAccessResult(OperationResult):
    """
    Outcome of a cache hierarchy access.

    ``hit_level`` is the index of the first level that reported a hit, or
    None if every level missed. ``levels`` holds every level's own outcome in
    configured order.
    """
    address: int = 0
    hit_level: Optional[int] = None
    levels: List[LevelAccess] = field(default_factory=list)

    @property
    def hit(self) -> bool:
        return self.hit_level is not None

    @property
    def hit_level_name(self) -> Optional[str]:
        if self.hit_level is None:
            return None
        return self.levels[self.hit_level].level_name


@dataclass
class TranslationResult(OperationResult):
    """
    Outcome of a virtual address translation.

    Attributes:
        page_fault (bool): True if the page was not resident
        virtual_address (int): The address that was requested
        physical_address (int): frame * page_size + offset
        virtual_page (int): vaddr // page_size
        offset (int): vaddr % page_size
        frame_index (int): Frame now holding the page
        evicted_page (Optional[int]): Page displaced by the fault, if any
    """
    page_fault: bool = False
    virtual_address: int = 0
    physical_address: int = 0
    virtual_page: int = 0
    offset: int = 0
    frame_index: int = 0
    evicted_page: Optional[int] = None


# =============================================================================
# STATISTICS
# =============================================================================

@dataclass
class AllocationStats:
    """
    Snapshot of an allocator.

    ``external_fragmentation`` is a fraction in [0, 1]:
    1 - largest_free_block / total_free. ``internal_fragmentation`` is a
    percentage of used memory lost to rounding (always 0 for the free-list
    allocator).
    """
    total_memory: int = 0
    used_memory: int = 0
    free_memory: int = 0
    num_allocations: int = 0
    num_deallocations: int = 0
    allocation_failures: int = 0
    num_free_blocks: int = 0
    num_allocated_blocks: int = 0
    external_fragmentation: float = 0.0
    internal_fragmentation: float = 0.0

    @property
    def utilization(self) -> float:
        return percent(self.used_memory, self.total_memory)

    @property
    def success_rate(self) -> float:
        requests = self.num_allocations + self.allocation_failures
        return percent(self.num_allocations, requests)

    @property
    def failure_rate(self) -> float:
        requests = self.num_allocations + self.allocation_failures
        return percent(self.allocation_failures, requests)


@dataclass
class CacheStats:
    level_name: str = ""
    accesses: int = 0
    hits: int = 0
    misses: int = 0

    @property
    def hit_ratio(self) -> float:
        return percent(self.hits, self.accesses)


@dataclass
class VMStats:
    virtual_size: int = 0
    physical_size: int = 0
    page_size: int = 0
    num_virtual_pages: int = 0
    num_frames: int = 0
    accesses: int = 0
    page_hits: int = 0
    page_faults: int = 0

    @property
    def hit_rate(self) -> float:
        return percent(self.page_hits, self.accesses)

    @property
    def fault_rate(self) -> float:
        return percent(self.page_faults, self.accesses)
