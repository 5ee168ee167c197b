"""
Memory Management Simulator — Allocation, Caches & Virtual Memory

This application provides an interactive front end for the simulation
engines:
    - Dynamic allocation (First-Fit, Best-Fit, Worst-Fit, Buddy System)
    - Multi-level set-associative caches (FIFO, LRU, LFU)
    - Paged virtual memory with page replacement (FIFO, LRU)

Every action is expressed as a console command and executed by the
Simulator, so the sidebar buttons and the command script box share one path.
Built with Streamlit for the web interface and Plotly for visualizations.
"""

# =============================================================================
# IMPORTS
# =============================================================================

import plotly.graph_objects as go            # Interactive plotting library
import streamlit as st                       # Web application framework

from commands import ALLOCATOR_TYPES, Simulator
from config import load_config
from models import CachePolicy, PagePolicy
from utils import get_color


# Configure the Streamlit page
st.set_page_config(page_title="Memory Management Simulator", layout="wide")
st.title("Memory Management Simulator — Allocation, Caches & Virtual Memory")

config = load_config()

# -----------------------------------------------------------------------------
# SESSION STATE - Simulator Persistence
# -----------------------------------------------------------------------------

# Simulator persists across Streamlit reruns
if "simulator" not in st.session_state:
    st.session_state.simulator = Simulator(config)

sim: Simulator = st.session_state.simulator


def run(line):
    outcome = sim.execute(line)
    if outcome.ok:
        st.sidebar.success(outcome.text.splitlines()[0])
    else:
        st.sidebar.error(outcome.text)


# -----------------------------------------------------------------------------
# SIDEBAR - Allocator Settings
# -----------------------------------------------------------------------------

st.sidebar.header("Allocator")

allocator_names = list(ALLOCATOR_TYPES)
allocator_type = st.sidebar.selectbox(
    "Allocator", options=allocator_names, index=allocator_names.index(config.allocator)
)
memory_size = st.sidebar.number_input("Memory size (bytes)", min_value=1, value=config.memory_size)
min_block = st.sidebar.number_input("Buddy min block (bytes)", min_value=1, value=config.buddy_min_block)

if st.sidebar.button("Init Memory"):
    # a fresh simulator keeps cache and VM state but replaces the allocator
    if sim.allocator.initialized:
        fresh = Simulator(config)
        fresh.cache, fresh.vm, fresh.history = sim.cache, sim.vm, sim.history
        st.session_state.simulator = sim = fresh
    run(f"set allocator {allocator_type}")
    run(f"init memory {memory_size} {min_block}")

alloc_size = st.sidebar.number_input("Allocation size (bytes)", min_value=1, value=100)
if st.sidebar.button("Allocate"):
    run(f"malloc {alloc_size}")

free_id = st.sidebar.number_input("Block ID to free", min_value=1, value=1)
if st.sidebar.button("Free"):
    run(f"free {free_id}")

st.sidebar.markdown("---")

# -----------------------------------------------------------------------------
# SIDEBAR - Cache Settings
# -----------------------------------------------------------------------------

st.sidebar.header("Cache")

cache_levels = st.sidebar.text_input(
    "Levels (name:size:block:assoc, ...)",
    value=", ".join(f"{name}:{size}:{block}:{assoc}" for name, size, block, assoc in config.cache_levels),
)
cache_policy = st.sidebar.selectbox(
    "Cache policy", options=list(CachePolicy.ALL), index=CachePolicy.ALL.index(config.cache_policy)
)
if st.sidebar.button("Init Cache", key="init_cache"):
    run(f"cache_init {cache_levels.replace(',', ' ')} {cache_policy}")

# reset before the statistics below are drawn
if st.sidebar.button("Reset Cache", key="reset_cache"):
    run("cache_reset")

st.sidebar.markdown("---")

# -----------------------------------------------------------------------------
# SIDEBAR - Virtual Memory Settings
# -----------------------------------------------------------------------------

st.sidebar.header("Virtual Memory")

vsize = st.sidebar.number_input("Virtual size (bytes)", min_value=1, value=config.vm_virtual_size)
page_size = st.sidebar.number_input("Page size (bytes)", min_value=1, value=config.vm_page_size)
psize = st.sidebar.number_input("Physical size (bytes)", min_value=1, value=config.vm_physical_size)
vm_policy = st.sidebar.selectbox(
    "Page replacement", options=list(PagePolicy.ALL), index=PagePolicy.ALL.index(config.vm_policy)
)
sim.forward_to_cache = st.sidebar.checkbox("Forward physical addresses to cache",
                                           value=sim.forward_to_cache)
if st.sidebar.button("Init VM", key="init_vm"):
    run(f"vm_init {vsize} {page_size} {psize} {vm_policy}")

if st.sidebar.button("Reset VM", key="reset_vm"):
    run("vm_reset")

# =============================================================================
# MAIN CONTENT AREA - Two Column Layout
# =============================================================================

col1, col2 = st.columns([1, 2])

# -----------------------------------------------------------------------------
# LEFT COLUMN - Command Script and Output
# -----------------------------------------------------------------------------

with col1:
    st.subheader("Command Script")
    script = st.text_area(
        "One command per line (type 'help' for the list)",
        value="malloc 100\nmalloc 200\nfree 1\nvm_access 0x10\nvm_access 0x310\ncache_access 0",
        height=200,
    )
    if st.button("Run Script", key="run_script"):
        for outcome in sim.run_script(script):
            (st.success if outcome.ok else st.error)(outcome.text)

    st.subheader("Recent Output")
    for outcome in sim.history[-10:][::-1]:
        st.code(outcome.text)

    # Display event logs (most recent 20 events, newest first)
    st.subheader("Event Log")
    events = sim.allocator.event_log + sim.cache.event_log + sim.vm.event_log
    for ev in events[-20:][::-1]:
        st.write(ev)

# -----------------------------------------------------------------------------
# RIGHT COLUMN - Visualizations
# -----------------------------------------------------------------------------

with col2:
    # ----- Memory Map -----
    st.subheader(f"Memory Map ({sim.allocator.name})")
    if not sim.allocator.initialized:
        st.write("Memory not initialized")
    else:
        fig = go.Figure()
        for b in sim.allocator.dump():
            label = f"#{b.block_id}" if b.allocated else "Free"
            fig.add_trace(go.Bar(
                x=[b.size], y=["Memory"], base=b.start, orientation="h",
                marker_color=get_color(b.allocated, b.block_id),
                text=f"{label} ({b.size})", hovertext=f"{label} [{b.start}, {b.end}]",
                hoverinfo="text",
            ))
        fig.update_layout(height=150, showlegend=False, barmode="overlay",
                          yaxis=dict(showticklabels=False))
        st.plotly_chart(fig, use_container_width=True)

        stats = sim.allocator.statistics()
        m1, m2, m3, m4 = st.columns(4)
        m1.metric("Used", f"{stats.used_memory} B")
        m2.metric("Free", f"{stats.free_memory} B")
        m3.metric("External frag.", f"{stats.external_fragmentation * 100:.2f}%")
        m4.metric("Internal frag.", f"{stats.internal_fragmentation:.2f}%")

    # ----- Cache Statistics -----
    st.subheader("Cache Levels")
    if not sim.cache.configured:
        st.write("Cache not initialized")
    else:
        cache_stats = sim.cache.statistics()
        st.table([{"level": s.level_name, "accesses": s.accesses, "hits": s.hits,
                   "misses": s.misses, "hit ratio %": round(s.hit_ratio, 2)} for s in cache_stats])
        fig2 = go.Figure()
        fig2.add_trace(go.Bar(x=[s.level_name for s in cache_stats], y=[s.hits for s in cache_stats],
                              name="Hits"))
        fig2.add_trace(go.Bar(x=[s.level_name for s in cache_stats], y=[s.misses for s in cache_stats],
                              name="Misses"))
        fig2.update_layout(height=300, title="Hits vs Misses", barmode="group")
        st.plotly_chart(fig2, use_container_width=True)

    # ----- Physical Frames Visualization -----
    st.subheader("Physical Frames")
    if not sim.vm.initialized:
        st.write("Virtual memory not initialized")
    else:
        frames = sim.vm.frame_table()
        fig3 = go.Figure()
        fig3.add_trace(go.Bar(
            x=[f.frame_index for f in frames],
            y=[1] * len(frames),
            text=[f"F{f.frame_index}: " + (f"P{f.page}" if f.occupied else "Free") for f in frames],
            marker_color=["lightgreen" if f.occupied else "lightgray" for f in frames],
            hoverinfo="text",
        ))
        fig3.update_layout(height=150, showlegend=False, yaxis=dict(showticklabels=False))
        st.plotly_chart(fig3, use_container_width=True)

        ptable = sim.vm.page_table_snapshot()
        if ptable:
            st.table([{"page": page, "frame": pte.frame_index, "loaded": pte.load_time,
                       "last_used": pte.last_access_time} for page, pte in sorted(ptable.items())])

        vm_stats = sim.vm.statistics()
        st.metric("Page Accesses", vm_stats.accesses)
        st.metric("Page Faults", vm_stats.page_faults)
        st.metric("Hit Rate", f"{vm_stats.hit_rate:.2f}%")
