# utils.py

from typing import Dict, List, Sequence

from models import AllocationStats, Block, CacheStats, VMStats


def get_color(allocated, block_id=None):
    """Return a color for allocated/free blocks."""
    if not allocated:
        return "#d3d3d3"  # light grey
    # pastel hue spread by block id so a block keeps its color between reruns
    hue = ((block_id or 0) * 47) % 360
    return f"hsl({hue}, 70%, 75%)"


def hex_addr(address):
    return f"0x{address:04x}"


# -----------------------------
# Text formatting
# -----------------------------
def format_dump(blocks: Sequence[Block], title="Memory Dump"):
    lines = [f"~~~~~~~{title}~~~~~~~"]
    for b in blocks:
        span = f"[{hex_addr(b.start)} - {hex_addr(b.end)}]"
        if b.allocated:
            lines.append(f"{span} USED (id={b.block_id}, size={b.size})")
        else:
            lines.append(f"{span} FREE (size={b.size})")
    return "\n".join(lines)


def format_free_lists(free_lists: Dict[int, List[int]]):
    lines = ["~~~~~~~Buddy Free Lists~~~~~~~"]
    for size, addresses in free_lists.items():
        lines.append(f"Size {size} bytes: " + " -> ".join(hex_addr(a) for a in addresses))
    return "\n".join(lines)


def format_allocation_stats(stats: AllocationStats, allocator_name):
    return "\n".join([
        "~~~~~~~Memory Statistics~~~~~~",
        f"Allocator: {allocator_name}",
        f"Total memory: {stats.total_memory} bytes",
        f"Used memory: {stats.used_memory} bytes",
        f"Free memory: {stats.free_memory} bytes",
        f"Memory utilization: {stats.utilization:.2f}%",
        f"Number of allocations: {stats.num_allocations}",
        f"Number of deallocations: {stats.num_deallocations}",
        f"Allocation failures: {stats.allocation_failures}",
        f"Allocation success rate: {stats.success_rate:.2f}%",
        f"Allocation failure rate: {stats.failure_rate:.2f}%",
        f"Allocated blocks: {stats.num_allocated_blocks}",
        f"Free blocks: {stats.num_free_blocks}",
        f"External fragmentation: {stats.external_fragmentation * 100:.2f}%",
        f"Internal fragmentation: {stats.internal_fragmentation:.2f}%",
    ])


def format_cache_stats(stats: Sequence[CacheStats]):
    lines = ["~~~~~~Cache Statistics~~~~~"]
    for s in stats:
        lines.extend([
            f"{s.level_name}:",
            f"Accesses: {s.accesses}",
            f"Hits: {s.hits}",
            f"Misses: {s.misses}",
            f"Hit ratio: {s.hit_ratio:.2f}%",
        ])
    return "\n".join(lines)


def format_vm_stats(stats: VMStats):
    return "\n".join([
        "~~~~~~Virtual Memory Statistics~~~~~",
        f"Virtual size: {stats.virtual_size} bytes ({stats.num_virtual_pages} pages)",
        f"Physical size: {stats.physical_size} bytes ({stats.num_frames} frames)",
        f"Page size: {stats.page_size} bytes",
        f"Accesses: {stats.accesses}",
        f"Page hits: {stats.page_hits}",
        f"Page faults: {stats.page_faults}",
        f"Hit rate: {stats.hit_rate:.2f}%",
        f"Fault rate: {stats.fault_rate:.2f}%",
    ])
