"""
Paged virtual memory simulator.

A single-level page table maps virtual pages onto a fixed pool of physical
frames. Page faults load the page into a free frame, or evict a resident
page chosen by the replacement policy (FIFO or LRU).
"""

from dataclasses import dataclass
from typing import List, Optional

from models import ErrorKind, OperationResult, PagePolicy, TranslationResult, VMStats


# =============================================================================
# CORE DATA STRUCTURES
# =============================================================================

@dataclass
class PageTableEntry:
    """
    One entry of the page table, indexed by virtual page number.

    Attributes:
        valid (bool): True if the page is currently resident in a frame
        frame_index (int): Physical frame holding the page (when valid)
        load_time (int): Logical time the page was loaded (for FIFO)
        last_access_time (int): Logical time of the last access (for LRU)
    """
    valid: bool = False
    frame_index: int = 0
    load_time: int = 0
    last_access_time: int = 0


@dataclass
class Frame:
    """A physical frame and the virtual page occupying it, if any."""
    frame_index: int
    page: Optional[int] = None

    @property
    def occupied(self) -> bool:
        return self.page is not None


# =============================================================================
# VIRTUAL MEMORY ENGINE
# =============================================================================

class VirtualMemoryEngine:
    """
    Core simulation engine for address translation and page replacement.

    Attributes:
        virtual_size (int): Virtual address space in bytes (page multiple)
        physical_size (int): Physical memory in bytes (page multiple)
        page_size (int): Size of a page/frame in bytes
        policy (str): Current replacement policy (FIFO or LRU)
        page_table (List[PageTableEntry]): One entry per virtual page
        frame_to_page (List[Optional[int]]): Reverse map frame -> page
        global_time (int): Logical clock, advanced once per access
        event_log (List[str]): Log of all translation events
    """

    def __init__(self):
        self.initialized = False
        self.virtual_size = 0
        self.physical_size = 0
        self.page_size = 0
        self.num_virtual_pages = 0
        self.num_frames = 0
        self.policy = PagePolicy.FIFO

        self.page_table: List[PageTableEntry] = []
        self.frame_to_page: List[Optional[int]] = []
        self.global_time = 0
        self.accesses = 0
        self.hits = 0
        self.faults = 0
        self.event_log: List[str] = []

    # =========================================================================
    # CONFIGURATION METHODS
    # =========================================================================

    def init(self, virtual_size, page_size, physical_size, policy=PagePolicy.FIFO):
        """
        Configure the address spaces and clear all state.

        Both sizes are truncated down to a multiple of ``page_size``.
        Re-initializing replaces the previous configuration.

        Returns:
            OperationResult: failure with InvalidRequest for a non-positive
            page size, a space smaller than one page or an unknown policy;
            InvalidConfiguration if zero pages or frames result (cannot
            happen once the size checks pass).
        """
        if page_size <= 0 or virtual_size < page_size or physical_size < page_size:
            return self._fail(ErrorKind.INVALID_REQUEST, "VM init error")
        if policy not in PagePolicy.ALL:
            return self._fail(ErrorKind.INVALID_REQUEST, f"Unknown page replacement policy: {policy}")

        virtual_size -= virtual_size % page_size
        physical_size -= physical_size % page_size
        num_pages = virtual_size // page_size
        num_frames = physical_size // page_size
        # unreachable while both sizes hold at least one page (checked above)
        if num_pages == 0 or num_frames == 0:
            return self._fail(ErrorKind.INVALID_CONFIGURATION, "VM init error")

        self.virtual_size = virtual_size
        self.physical_size = physical_size
        self.page_size = page_size
        self.num_virtual_pages = num_pages
        self.num_frames = num_frames
        self.policy = policy
        self.initialized = True
        self._clear()

        self.event_log.append(
            f"I[VM] INIT VAS={virtual_size} bytes, PM={physical_size} bytes, "
            f"page size={page_size} bytes, {policy}")
        return OperationResult(success=True, message="Virtual memory initialized")

    def reset(self):
        """Invalidate every mapping and zero the counters; keep configuration."""
        if self.initialized:
            self._clear()
            self.event_log.append("I[VM] Reset")
        return OperationResult(success=True, message="Virtual memory reset")

    def _clear(self):
        self.page_table = [PageTableEntry() for _ in range(self.num_virtual_pages)]
        self.frame_to_page = [None] * self.num_frames
        self.global_time = 0
        self.accesses = 0
        self.hits = 0
        self.faults = 0

    # =========================================================================
    # TRANSLATION
    # =========================================================================

    def access(self, virtual_address) -> TranslationResult:
        """
        Translate a virtual address, handling hits, faults and replacement.

        Args:
            virtual_address (int): Byte address in the virtual space

        Returns:
            TranslationResult: physical address, frame and fault information
        """
        if not self.initialized:
            return self._fail(ErrorKind.NOT_INITIALIZED, "Virtual memory not initialized",
                              virtual_address)
        if virtual_address < 0 or virtual_address >= self.virtual_size:
            return self._fail(ErrorKind.OUT_OF_RANGE, "Virtual address out of range",
                              virtual_address)

        self.global_time += 1
        self.accesses += 1

        vpage, offset = divmod(virtual_address, self.page_size)
        pte = self.page_table[vpage]

        # ----- PAGE HIT -----
        if pte.valid:
            self.hits += 1
            pte.last_access_time = self.global_time
            self.event_log.append(f"Hit: Page {vpage} in Frame {pte.frame_index}")
            return self._translation(virtual_address, vpage, offset, pte.frame_index,
                                     page_fault=False, message="Page hit")

        # ----- PAGE FAULT -----
        self.faults += 1
        frame_index = self._choose_victim_frame()
        evicted_page = self.frame_to_page[frame_index]

        if evicted_page is not None:
            self.page_table[evicted_page].valid = False
            self.event_log.append(f"Evicting: Page {evicted_page} from Frame {frame_index}")

        self.frame_to_page[frame_index] = vpage
        pte.valid = True
        pte.frame_index = frame_index
        pte.load_time = self.global_time
        pte.last_access_time = self.global_time
        self.event_log.append(f"Fault: Page {vpage} -> Frame {frame_index}")

        message = "Replaced victim page" if evicted_page is not None else "Loaded into free frame"
        result = self._translation(virtual_address, vpage, offset, frame_index,
                                   page_fault=True, message=message)
        result.evicted_page = evicted_page
        return result

    def _choose_victim_frame(self):
        for frame_index, page in enumerate(self.frame_to_page):
            if page is None:
                return frame_index

        if self.policy == PagePolicy.FIFO:
            attr = "load_time"
        else:
            attr = "last_access_time"
        # min() keeps the lowest frame index on ties
        return min(range(self.num_frames),
                   key=lambda f: getattr(self.page_table[self.frame_to_page[f]], attr))

    def _translation(self, vaddr, vpage, offset, frame_index, page_fault, message):
        return TranslationResult(
            success=True,
            message=message,
            page_fault=page_fault,
            virtual_address=vaddr,
            physical_address=frame_index * self.page_size + offset,
            virtual_page=vpage,
            offset=offset,
            frame_index=frame_index,
        )

    def _fail(self, error, message, virtual_address=None):
        self.event_log.append(f"E[VM] {message}")
        if virtual_address is None:
            return OperationResult(success=False, error=error, message=message)
        return TranslationResult(success=False, error=error, message=message,
                                 virtual_address=virtual_address)

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def frame_table(self) -> List[Frame]:
        return [Frame(i, page) for i, page in enumerate(self.frame_to_page)]

    def page_table_snapshot(self):
        """Resident pages only, as {page: PageTableEntry copy}."""
        return {page: PageTableEntry(e.valid, e.frame_index, e.load_time, e.last_access_time)
                for page, e in enumerate(self.page_table) if e.valid}

    def statistics(self) -> VMStats:
        return VMStats(
            virtual_size=self.virtual_size,
            physical_size=self.physical_size,
            page_size=self.page_size,
            num_virtual_pages=self.num_virtual_pages,
            num_frames=self.num_frames,
            accesses=self.accesses,
            page_hits=self.hits,
            page_faults=self.faults,
        )
