# buddy.py

from typing import Dict, List

from models import (AllocationResult, AllocationStats, Block,
                    DeallocationResult, ErrorKind)


def is_power_of_two(n):
    return n > 0 and (n & (n - 1)) == 0


def next_power_of_two(n):
    power = 1
    while power < n:
        power *= 2
    return power


def log2_size(size):
    return size.bit_length() - 1


class BuddyBlock:
    def __init__(self, address, size, allocated=False):
        self.address = address
        self.size = size
        self.allocated = allocated

    @property
    def buddy_address(self):
        return self.address ^ self.size

    def __repr__(self):
        state = "A" if self.allocated else "F"
        return f"[{state}|{self.address}|{self.size}]"


class BuddyAllocationEngine:
    """
    Power-of-two buddy allocator.

    Live blocks are keyed by address, which is unique among blocks that
    partition the memory. Free blocks are additionally listed in one bucket
    per size class (log2 of the size); each bucket is a stack whose last
    element is its head.
    """

    name = "Buddy System"

    def __init__(self):
        self.memory_size = 0
        self.min_block_size = 0
        self.max_block_size = 0
        self.initialized = False

        self._blocks: Dict[int, BuddyBlock] = {}
        self._buckets: Dict[int, List[int]] = {}
        self._allocated: Dict[int, int] = {}  # block id -> address
        self.next_id = 1

        self.num_allocations = 0
        self.num_deallocations = 0
        self.allocation_failures = 0
        self.internal_fragmentation_bytes = 0
        self.event_log: List[str] = []

    def init(self, total_size, min_block_size=32):
        if self.initialized:
            return self._fail(ErrorKind.ALREADY_INITIALIZED, "Already initialized")
        if total_size <= 0 or min_block_size <= 0:
            return self._fail(ErrorKind.INVALID_REQUEST,
                              f"Invalid sizes: total={total_size}, min={min_block_size}")

        size = next_power_of_two(total_size)
        min_size = next_power_of_two(min_block_size)
        if min_size > size:
            return self._fail(ErrorKind.INVALID_REQUEST,
                              f"Min block size {min_size} exceeds memory size {size}")
        if size != total_size:
            self.event_log.append(f"I[Buddy] Rounded to power of 2: {size}")

        self.memory_size = size
        self.min_block_size = min_size
        self.max_block_size = size
        self._buckets = {order: [] for order in range(log2_size(min_size), log2_size(size) + 1)}
        self._push_free(BuddyBlock(0, size))
        self.initialized = True

        self.event_log.append(f"I[Buddy] Initialized: {size} bytes, min block size: {min_size} bytes")
        return AllocationResult(success=True, address=0, size=size, actual_size=size,
                                message="Initialized")

    # -----------------------------
    # Allocation
    # -----------------------------
    def allocate(self, size):
        if not self.initialized:
            return self._fail(ErrorKind.NOT_INITIALIZED, "Buddy allocator not initialized")
        if size <= 0:
            return self._fail(ErrorKind.INVALID_REQUEST, "Invalid alloc size")

        actual_size = max(self.min_block_size, next_power_of_two(size))
        block = self._take_free(actual_size)
        if block is None:
            self.allocation_failures += 1
            return self._fail(ErrorKind.OUT_OF_MEMORY, f"Out of memory for {size} bytes")

        block.allocated = True
        block_id = self.next_id
        self.next_id += 1
        self._allocated[block_id] = block.address
        self.num_allocations += 1
        self.internal_fragmentation_bytes += actual_size - size

        self.event_log.append(
            f"I[Buddy] Allocated block id={block_id} at address=0x{block.address:04x} "
            f"(requested={size}, actual={actual_size})")
        return AllocationResult(success=True, block_id=block_id, address=block.address,
                                size=size, actual_size=actual_size, message="Success")

    def _take_free(self, size):
        if size > self.max_block_size:
            return None

        order = log2_size(size)
        if self._buckets[order]:
            return self._pop_free(order)

        for larger in range(order + 1, log2_size(self.max_block_size) + 1):
            if self._buckets[larger]:
                self._split(self._buckets[larger][-1], size)
                return self._pop_free(order)
        return None

    def _split(self, address, target_size):
        block = self._blocks[address]
        while block.size > target_size:
            self._remove_free(block)
            half = block.size // 2
            sibling = BuddyBlock(block.address + half, half)
            block.size = half
            # low half ends up at the bucket head
            self._push_free(sibling)
            self._push_free(block)

    # -----------------------------
    # Deallocation
    # -----------------------------
    def deallocate(self, block_id):
        if not self.initialized:
            return self._fail(ErrorKind.NOT_INITIALIZED, "Buddy allocator not initialized",
                              result_type=DeallocationResult)
        if block_id <= 0 or block_id >= self.next_id:
            return self._fail(ErrorKind.INVALID_BLOCK_ID, f"Invalid block ID {block_id}",
                              result_type=DeallocationResult)
        if block_id not in self._allocated:
            return self._fail(ErrorKind.DOUBLE_FREE, f"Block {block_id} is already free",
                              result_type=DeallocationResult)

        block = self._blocks[self._allocated.pop(block_id)]
        address, size = block.address, block.size
        block.allocated = False
        self._push_free(block)
        self._coalesce(block)

        self.num_deallocations += 1
        self.event_log.append(f"I[Buddy] Block {block_id} freed")
        return DeallocationResult(success=True, block_id=block_id, address=address,
                                  size=size, message="Freed")

    def _coalesce(self, block):
        while block.size < self.max_block_size:
            buddy_address = block.buddy_address
            if buddy_address not in self._buckets[log2_size(block.size)]:
                break
            buddy = self._blocks[buddy_address]

            self._remove_free(block)
            self._remove_free(buddy)
            merged, absorbed = (block, buddy) if block.address < buddy.address else (buddy, block)
            del self._blocks[absorbed.address]
            merged.size *= 2
            self._push_free(merged)
            block = merged
        return block

    # -----------------------------
    # Buckets
    # -----------------------------
    def _push_free(self, block):
        self._blocks[block.address] = block
        self._buckets[log2_size(block.size)].append(block.address)

    def _pop_free(self, order):
        return self._blocks[self._buckets[order].pop()]

    def _remove_free(self, block):
        self._buckets[log2_size(block.size)].remove(block.address)

    def _fail(self, error, message, result_type=AllocationResult):
        self.event_log.append(f"E[Buddy] {message}")
        return result_type(success=False, error=error, message=message)

    # -----------------------------
    # Inspection
    # -----------------------------
    def free_blocks(self):
        addresses = sorted(a for bucket in self._buckets.values() for a in bucket)
        return [(a, self._blocks[a].size) for a in addresses]

    def dump(self) -> List[Block]:
        ids = {address: block_id for block_id, address in self._allocated.items()}
        return [Block(b.address, b.size, b.allocated, ids.get(b.address))
                for _, b in sorted(self._blocks.items())]

    def dump_free_lists(self) -> Dict[int, List[int]]:
        """Map each block size to its free addresses, bucket head first."""
        return {1 << order: list(reversed(bucket))
                for order, bucket in sorted(self._buckets.items()) if bucket}

    def statistics(self) -> AllocationStats:
        used = sum(self._blocks[a].size for a in self._allocated.values())
        free_memory = self.memory_size - used
        free_sizes = [self._blocks[a].size for bucket in self._buckets.values() for a in bucket]

        internal = self.internal_fragmentation_bytes / used * 100.0 if used > 0 else 0.0
        if free_memory > 0:
            external = 1 - (max(free_sizes) / free_memory)
        else:
            external = 0.0

        return AllocationStats(
            total_memory=self.memory_size,
            used_memory=used,
            free_memory=free_memory,
            num_allocations=self.num_allocations,
            num_deallocations=self.num_deallocations,
            allocation_failures=self.allocation_failures,
            num_free_blocks=len(free_sizes),
            num_allocated_blocks=len(self._allocated),
            external_fragmentation=external,
            internal_fragmentation=internal,
        )
