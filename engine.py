# engine.py

from typing import Dict, Iterator, List, Optional, Tuple

from models import (AllocationResult, AllocationStats, Block,
                    DeallocationResult, ErrorKind, Strategy)


class MemoryBlock:
    """
    Arena slot for the free-list allocator.

    ``prev`` and ``next`` are slot indices of the neighbouring free blocks;
    they are only meaningful while the block sits on the free list.
    """

    def __init__(self, address, size, allocated=False):
        self.address = address
        self.size = size
        self.allocated = allocated
        self.prev: Optional[int] = None
        self.next: Optional[int] = None

    def __repr__(self):
        state = "A" if self.allocated else "F"
        return f"[{state}|{self.address}|{self.size}]"


class AllocationEngine:
    def __init__(self, strategy=Strategy.FIRST_FIT):
        if strategy not in Strategy.ALL:
            raise ValueError(f"Unknown placement strategy: {strategy}")
        self.strategy = strategy
        self.total_size = 0
        self.initialized = False

        self._slots: List[Optional[MemoryBlock]] = []
        self._vacant: List[int] = []
        self._head: Optional[int] = None
        self._allocated: Dict[int, int] = {}  # block id -> slot
        self.next_id = 1

        self.num_allocations = 0
        self.num_deallocations = 0
        self.allocation_failures = 0
        self.event_log: List[str] = []

    @property
    def name(self):
        return self.strategy.replace("-", " ")

    def init(self, total_size):
        if self.initialized:
            return self._fail(ErrorKind.ALREADY_INITIALIZED, "Memory already initialized")
        if total_size <= 0:
            return self._fail(ErrorKind.INVALID_REQUEST, f"Invalid memory size: {total_size}")

        self.total_size = total_size
        self._head = self._new_slot(MemoryBlock(0, total_size))
        self.initialized = True
        self.event_log.append(f"I[Allocator] Initialized {total_size} bytes ({self.name})")
        return AllocationResult(success=True, address=0, size=total_size, message="Initialized")

    # -----------------------------
    # Allocate Dispatcher
    # -----------------------------
    def allocate(self, req_size):
        if not self.initialized:
            return self._fail(ErrorKind.NOT_INITIALIZED, "Memory not initialized")
        if req_size <= 0:
            return self._fail(ErrorKind.INVALID_REQUEST, "Invalid alloc size")

        if self.strategy == Strategy.FIRST_FIT:
            index = self._first_fit(req_size)
        elif self.strategy == Strategy.BEST_FIT:
            index = self._best_fit(req_size)
        else:
            index = self._worst_fit(req_size)

        if index is None:
            self.allocation_failures += 1
            return self._fail(ErrorKind.OUT_OF_MEMORY, f"No suitable block for {req_size} bytes")
        return self._split_block(index, req_size)

    # -----------------------------
    # Algorithms
    # -----------------------------
    def _first_fit(self, req):
        for index, block in self._iter_free():
            if block.size >= req:
                return index
        return None

    def _best_fit(self, req):
        best_index = None
        smallest_diff = None

        for index, block in self._iter_free():
            if block.size < req:
                continue
            diff = block.size - req
            if smallest_diff is None or diff < smallest_diff:
                smallest_diff = diff
                best_index = index
                if diff == 0:
                    break

        return best_index

    def _worst_fit(self, req):
        worst_index = None
        largest_size = 0

        for index, block in self._iter_free():
            if block.size >= req and block.size > largest_size:
                largest_size = block.size
                worst_index = index

        return worst_index

    # -----------------------------
    # Helpers
    # -----------------------------
    def _split_block(self, index, req_size):
        block = self._slots[index]
        block_id = self.next_id
        self.next_id += 1

        # Perfect fit
        if block.size == req_size:
            self._unlink(index)
            block.allocated = True
            allocated_index = index
        else:
            allocated_index = self._new_slot(MemoryBlock(block.address, req_size, allocated=True))
            block.address += req_size
            block.size -= req_size

        address = self._slots[allocated_index].address
        self._allocated[block_id] = allocated_index
        self.num_allocations += 1
        self.event_log.append(
            f"I[Allocator] Allocated block id={block_id} at address=0x{address:04x} (size={req_size})")
        return AllocationResult(success=True, block_id=block_id, address=address,
                                size=req_size, actual_size=req_size, message="Success")

    def deallocate(self, block_id):
        if not self.initialized:
            return self._fail(ErrorKind.NOT_INITIALIZED, "Memory not initialized",
                              result_type=DeallocationResult)
        if block_id <= 0 or block_id >= self.next_id:
            return self._fail(ErrorKind.INVALID_BLOCK_ID, f"Invalid block ID {block_id}",
                              result_type=DeallocationResult)
        if block_id not in self._allocated:
            return self._fail(ErrorKind.DOUBLE_FREE, f"Block {block_id} is already free",
                              result_type=DeallocationResult)

        index = self._allocated.pop(block_id)
        block = self._slots[index]
        address, size = block.address, block.size
        block.allocated = False
        self._insert_free(index)
        self._coalesce(index)

        self.num_deallocations += 1
        self.event_log.append(f"I[Allocator] Block {block_id} freed")
        return DeallocationResult(success=True, block_id=block_id, address=address,
                                  size=size, message="Freed")

    def _coalesce(self, index):
        block = self._slots[index]

        next_index = block.next
        if next_index is not None:
            following = self._slots[next_index]
            if block.address + block.size == following.address:
                block.size += following.size
                self._unlink(next_index)
                self._release_slot(next_index)

        prev_index = block.prev
        if prev_index is not None:
            previous = self._slots[prev_index]
            if previous.address + previous.size == block.address:
                previous.size += block.size
                self._unlink(index)
                self._release_slot(index)

    # -----------------------------
    # Free list arena
    # -----------------------------
    def _new_slot(self, block):
        if self._vacant:
            index = self._vacant.pop()
            self._slots[index] = block
        else:
            index = len(self._slots)
            self._slots.append(block)
        return index

    def _release_slot(self, index):
        self._slots[index] = None
        self._vacant.append(index)

    def _iter_free(self) -> Iterator[Tuple[int, MemoryBlock]]:
        index = self._head
        while index is not None:
            block = self._slots[index]
            yield index, block
            index = block.next

    def _insert_free(self, index):
        block = self._slots[index]
        prev_index = None
        next_index = self._head
        while next_index is not None and self._slots[next_index].address < block.address:
            prev_index = next_index
            next_index = self._slots[next_index].next

        block.prev = prev_index
        block.next = next_index
        if prev_index is None:
            self._head = index
        else:
            self._slots[prev_index].next = index
        if next_index is not None:
            self._slots[next_index].prev = index

    def _unlink(self, index):
        block = self._slots[index]
        if block.prev is None:
            self._head = block.next
        else:
            self._slots[block.prev].next = block.next
        if block.next is not None:
            self._slots[block.next].prev = block.prev
        block.prev = None
        block.next = None

    def _fail(self, error, message, result_type=AllocationResult):
        self.event_log.append(f"E[Allocator] {message}")
        return result_type(success=False, error=error, message=message)

    # --------------------------------------
    # Inspection
    # --------------------------------------
    def free_blocks(self) -> List[Tuple[int, int]]:
        return [(block.address, block.size) for _, block in self._iter_free()]

    def dump(self) -> List[Block]:
        blocks = [Block(b.address, b.size, False) for _, b in self._iter_free()]
        for block_id, index in self._allocated.items():
            b = self._slots[index]
            blocks.append(Block(b.address, b.size, True, block_id))
        blocks.sort(key=lambda b: b.start)
        return blocks

    # --------------------------------------
    # Fragmentation Metrics
    # --------------------------------------
    def statistics(self) -> AllocationStats:
        free_sizes = [b.size for _, b in self._iter_free()]
        used = sum(self._slots[i].size for i in self._allocated.values())
        total_free = sum(free_sizes)

        # external = 1 - (largest_free_block / total_free)
        if total_free == 0:
            external_frag = 0.0
        else:
            external_frag = 1 - (max(free_sizes) / total_free)

        return AllocationStats(
            total_memory=self.total_size,
            used_memory=used,
            free_memory=total_free,
            num_allocations=self.num_allocations,
            num_deallocations=self.num_deallocations,
            allocation_failures=self.allocation_failures,
            num_free_blocks=len(free_sizes),
            num_allocated_blocks=len(self._allocated),
            external_fragmentation=external_frag,
            # blocks are never over-allocated
            internal_fragmentation=0.0,
        )
