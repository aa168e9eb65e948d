"""Shared fixtures: a fake procfs tree under tmp_path."""

from pathlib import Path

import pytest

from sysmon.config import MonitorConfig

STAT_TEXT = """\
cpu  10 20 30 40 50 60 70 80 90 100
cpu0 1 2 3 4 5 6 7 8 9 10
cpu1 11 12 13 14 15 16 17 18 19 20
intr 123456 0 9 0 0 0 0 3 0 1 0 0 0 0 0 0 0 0 0 0 0 0
ctxt 12345
btime 1700000000
processes 4242
procs_running 3
procs_blocked 1
softirq 98765 1 2 3 4 5 6 7 8 9 10
"""

MEMINFO_TEXT = """\
MemTotal:       16384000 kB
MemFree:         2048000 kB
MemAvailable:    8192000 kB
Buffers:          512000 kB
Cached:          4096000 kB
SwapCached:            0 kB
Active:          6000000 kB
Inactive:        3000000 kB
Dirty:               128 kB
PageTables:        65536 kB
Percpu:            12288 kB
HardwareCorrupted:     0 kB
"""

NET_DEV_HEADER = """\
Inter-|   Receive                                                |  Transmit
 face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed
"""

NET_DEV_TEXT = NET_DEV_HEADER + """\
    lo: 1000 10 0 0 0 0 0 0 1000 10 0 0 0 0 0 0
  eth0: 2000 20 1 2 3 4 5 6 3000 30 7 8 9 10 11 12
"""


def write_proc(root: Path, stat: str | None = None, meminfo: str | None = None,
               net_dev: str | None = None) -> Path:
    """Write the given sources under `root`; None leaves a source missing."""
    if stat is not None:
        (root / "stat").write_text(stat)
    if meminfo is not None:
        (root / "meminfo").write_text(meminfo)
    if net_dev is not None:
        (root / "net").mkdir(exist_ok=True)
        (root / "net" / "dev").write_text(net_dev)
    return root


@pytest.fixture
def proc_root(tmp_path: Path) -> Path:
    """A procfs root holding all three sources."""
    return write_proc(tmp_path, STAT_TEXT, MEMINFO_TEXT, NET_DEV_TEXT)


@pytest.fixture
def config(proc_root: Path) -> MonitorConfig:
    """Config pointing at the fake procfs with small fixed capacities."""
    return MonitorConfig(proc_root=str(proc_root), max_cores=4, max_devices=8, interval=1.0)
