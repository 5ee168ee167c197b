# commands.py
"""
Command console driving the simulation engines.

A command line such as ``malloc 100`` or ``cache_access 0x40`` is tokenized,
dispatched to one engine call and turned into a CommandOutcome holding the
formatted text and the engine's result record. The only cross-engine flow is
the optional hand-off of a translated physical address from the virtual
memory engine to the cache hierarchy.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from buddy import BuddyAllocationEngine
from cache import CacheConfig, CacheHierarchyEngine
from config import SimulatorConfig, parse_cache_levels
from engine import AllocationEngine
from models import CachePolicy, PagePolicy, Strategy
from utils import (format_allocation_stats, format_cache_stats, format_dump,
                   format_free_lists, format_vm_stats, hex_addr)
from vm import VirtualMemoryEngine

ALLOCATOR_TYPES = {
    "first_fit": Strategy.FIRST_FIT,
    "best_fit": Strategy.BEST_FIT,
    "worst_fit": Strategy.WORST_FIT,
    "buddy": None,
}

HELP_TEXT = """\
set allocator <first_fit|best_fit|worst_fit|buddy>
init memory <size> [min_block]
malloc <size>
free <block_id>
dump
stats
cache_init <size> <block> <assoc> [<size> <block> <assoc> ...] [FIFO|LRU|LFU]
cache_init <name:size:block:assoc> [<name:size:block:assoc> ...] [FIFO|LRU|LFU]
cache_access <address>
cache_stats
cache_reset
vm_init <virtual_size> <page_size> <physical_size> [FIFO|LRU]
vm_access <virtual_address>
vm_stats
vm_reset"""


@dataclass
class Command:
    name: str
    args: List[str] = field(default_factory=list)


@dataclass
class CommandOutcome:
    """
    Result of executing one command line.

    Attributes:
        command (str): Lower-cased command name
        ok (bool): False for usage errors and failed engine operations
        text (str): Human-readable output
        result (Any): The engine result record, when an engine was called
        cache_result (Any): Cache access made with a forwarded VM address
    """
    command: str
    ok: bool
    text: str
    result: Any = None
    cache_result: Any = None


def parse_command(line) -> Command:
    tokens = line.split()
    if not tokens:
        return Command("")
    return Command(tokens[0].lower(), tokens[1:])


def parse_int(token) -> int:
    """Parse a decimal or 0x-prefixed hexadecimal integer."""
    if token.lower().startswith("0x"):
        return int(token, 16)
    return int(token, 10)


class Simulator:
    def __init__(self, config: Optional[SimulatorConfig] = None):
        self.config = config or SimulatorConfig()
        self.allocator_type = self.config.allocator
        self.allocator = self._new_allocator(self.allocator_type)
        self.cache = CacheHierarchyEngine()
        self.vm = VirtualMemoryEngine()
        self.forward_to_cache = self.config.forward_to_cache
        self.history: List[CommandOutcome] = []

        self._handlers = {
            "help": self._handle_help,
            "set": self._handle_set_allocator,
            "init": self._handle_init,
            "malloc": self._handle_malloc,
            "free": self._handle_free,
            "dump": self._handle_dump,
            "stats": self._handle_stats,
            "cache_init": self._handle_cache_init,
            "cache_access": self._handle_cache_access,
            "cache_stats": self._handle_cache_stats,
            "cache_reset": self._handle_cache_reset,
            "vm_init": self._handle_vm_init,
            "vm_access": self._handle_vm_access,
            "vm_stats": self._handle_vm_stats,
            "vm_reset": self._handle_vm_reset,
        }

    @staticmethod
    def _new_allocator(allocator_type):
        strategy = ALLOCATOR_TYPES[allocator_type]
        if strategy is None:
            return BuddyAllocationEngine()
        return AllocationEngine(strategy)

    @property
    def use_buddy(self):
        return isinstance(self.allocator, BuddyAllocationEngine)

    # -----------------------------
    # Dispatch
    # -----------------------------
    def execute(self, line) -> CommandOutcome:
        cmd = parse_command(line)
        handler = self._handlers.get(cmd.name)
        if handler is None:
            outcome = CommandOutcome(cmd.name, False, f"Unknown command: {cmd.name or '(empty)'}")
        else:
            try:
                outcome = handler(cmd.args)
            except ValueError as e:
                outcome = CommandOutcome(cmd.name, False, f"Invalid argument: {e}")
        self.history.append(outcome)
        return outcome

    def run_script(self, text) -> List[CommandOutcome]:
        outcomes = []
        for line in text.splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            outcomes.append(self.execute(line))
        return outcomes

    @staticmethod
    def _usage(name, usage):
        return CommandOutcome(name, False, f"Usage: {usage}")

    @staticmethod
    def _from_result(name, result, text):
        if not result.success:
            return CommandOutcome(name, False, f"{result.error}: {result.message}", result)
        return CommandOutcome(name, True, text, result)

    def _require_memory(self, name):
        if not self.allocator.initialized:
            return CommandOutcome(name, False, "Use 'init memory <size>' first.")
        return None

    # -----------------------------
    # Allocator commands
    # -----------------------------
    def _handle_help(self, args):
        return CommandOutcome("help", True, HELP_TEXT)

    def _handle_set_allocator(self, args):
        if len(args) < 2 or args[0].lower() != "allocator":
            return self._usage("set", "set allocator <type>")
        if self.allocator.initialized:
            return CommandOutcome("set", False, "Allocator cannot change after memory init")

        allocator_type = args[1].lower()
        if allocator_type not in ALLOCATOR_TYPES:
            return CommandOutcome("set", False, f"Unknown allocator: {allocator_type}. "
                                                f"Available: {', '.join(ALLOCATOR_TYPES)}")
        self.allocator_type = allocator_type
        self.allocator = self._new_allocator(allocator_type)
        return CommandOutcome("set", True, f"Allocator: {self.allocator.name}")

    def _handle_init(self, args):
        if len(args) < 2 or args[0].lower() != "memory":
            return self._usage("init", "init memory <size> [min_block]")

        size = parse_int(args[1])
        if self.use_buddy:
            min_block = parse_int(args[2]) if len(args) > 2 else self.config.buddy_min_block
            result = self.allocator.init(size, min_block)
            text = (f"Initialized {self.allocator.memory_size} bytes "
                    f"(min block {self.allocator.min_block_size}) with {self.allocator.name}")
        else:
            result = self.allocator.init(size)
            text = f"Initialized {size} bytes with {self.allocator.name}"
        return self._from_result("init", result, text)

    def _handle_malloc(self, args):
        missing = self._require_memory("malloc")
        if missing:
            return missing
        if not args:
            return self._usage("malloc", "malloc <size>")

        result = self.allocator.allocate(parse_int(args[0]))
        text = f"Allocated block id={result.block_id} at address={hex_addr(result.address)}"
        if result.actual_size != result.size:
            text += f" (requested={result.size}, actual={result.actual_size})"
        return self._from_result("malloc", result, text)

    def _handle_free(self, args):
        missing = self._require_memory("free")
        if missing:
            return missing
        if not args:
            return self._usage("free", "free <block_id>")

        block_id = parse_int(args[0])
        result = self.allocator.deallocate(block_id)
        return self._from_result("free", result, f"Block {block_id} freed")

    def _handle_dump(self, args):
        missing = self._require_memory("dump")
        if missing:
            return missing
        text = format_dump(self.allocator.dump())
        if self.use_buddy:
            text += "\n" + format_free_lists(self.allocator.dump_free_lists())
        return CommandOutcome("dump", True, text)

    def _handle_stats(self, args):
        missing = self._require_memory("stats")
        if missing:
            return missing
        stats = self.allocator.statistics()
        return CommandOutcome("stats", True, format_allocation_stats(stats, self.allocator.name), stats)

    # -----------------------------
    # Cache commands
    # -----------------------------
    def _handle_cache_init(self, args):
        usage = "cache_init <size> <block> <assoc> [<size> <block> <assoc> ...] [policy]"
        policy = self.config.cache_policy
        if args and args[-1].upper() in CachePolicy.ALL:
            policy = args[-1].upper()
            args = args[:-1]

        # named levels: L1:64:16:1 L2:256:16:2
        if args and all(":" in a for a in args):
            configs = [CacheConfig(name, size, block, assoc, policy)
                       for name, size, block, assoc in parse_cache_levels(",".join(args))]
            result = self.cache.configure(configs)
            return self._from_result("cache_init", result, result.message)

        if not args or len(args) % 3 != 0:
            return self._usage("cache_init", usage)

        numbers = [parse_int(a) for a in args]
        configs = [CacheConfig(f"L{i // 3 + 1}", numbers[i], numbers[i + 1], numbers[i + 2], policy)
                   for i in range(0, len(numbers), 3)]
        result = self.cache.configure(configs)
        return self._from_result("cache_init", result, result.message)

    def _handle_cache_access(self, args):
        if not args:
            return self._usage("cache_access", "cache_access <address>")
        address = parse_int(args[0])
        result = self.cache.access(address)
        return self._from_result("cache_access", result, self._describe_cache_access(result))

    @staticmethod
    def _describe_cache_access(result):
        parts = [f"{lvl.level_name} {'HIT' if lvl.hit else 'MISS'}" for lvl in result.levels]
        return f"{hex_addr(result.address)}: " + ", ".join(parts)

    def _handle_cache_stats(self, args):
        if not self.cache.configured:
            return CommandOutcome("cache_stats", False, "Use 'cache_init' first.")
        stats = self.cache.statistics()
        return CommandOutcome("cache_stats", True, format_cache_stats(stats), stats)

    def _handle_cache_reset(self, args):
        result = self.cache.reset()
        return self._from_result("cache_reset", result, result.message)

    # -----------------------------
    # Virtual memory commands
    # -----------------------------
    def _handle_vm_init(self, args):
        if len(args) not in (3, 4):
            return self._usage("vm_init", "vm_init <virtual_size> <page_size> <physical_size> [FIFO|LRU]")
        policy = args[3].upper() if len(args) == 4 else self.config.vm_policy
        if policy not in PagePolicy.ALL:
            return CommandOutcome("vm_init", False, f"Unknown page replacement policy: {policy}")

        vsize, page_size, psize = (parse_int(a) for a in args[:3])
        result = self.vm.init(vsize, page_size, psize, policy)
        text = (f"VM: {self.vm.num_virtual_pages} pages, {self.vm.num_frames} frames, "
                f"page size {self.vm.page_size}, {self.vm.policy}")
        return self._from_result("vm_init", result, text)

    def _handle_vm_access(self, args):
        if not args:
            return self._usage("vm_access", "vm_access <virtual_address>")

        result = self.vm.access(parse_int(args[0]))
        if not result.success:
            return self._from_result("vm_access", result, "")

        text = (f"VA={hex_addr(result.virtual_address)} -> PA={hex_addr(result.physical_address)} "
                f"(page {result.virtual_page}, frame {result.frame_index}) "
                f"{'PAGE FAULT' if result.page_fault else 'HIT'}")
        if result.evicted_page is not None:
            text += f", evicted page {result.evicted_page}"

        outcome = CommandOutcome("vm_access", True, text, result)
        if self.forward_to_cache and self.cache.configured:
            outcome.cache_result = self.cache.access(result.physical_address)
            outcome.text += "\n" + self._describe_cache_access(outcome.cache_result)
        return outcome

    def _handle_vm_stats(self, args):
        if not self.vm.initialized:
            return CommandOutcome("vm_stats", False, "Use 'vm_init' first.")
        stats = self.vm.statistics()
        return CommandOutcome("vm_stats", True, format_vm_stats(stats), stats)

    def _handle_vm_reset(self, args):
        result = self.vm.reset()
        return self._from_result("vm_reset", result, result.message)
