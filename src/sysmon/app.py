"""sysmon - table renderer and command line entry point."""

import argparse
import logging
import sys

from rich import box
from rich.cells import cell_len
from rich.console import Console
from rich.control import Control
from rich.table import Table

from sysmon.config import MonitorConfig
from sysmon.errors import SourceUnavailable
from sysmon.models import (
    CPU_COUNTER_FIELDS,
    CpuTable,
    Domain,
    MemoryStore,
    NetworkDevice,
    NetworkTable,
    RecordStore,
)
from sysmon.monitor import RefreshLoop, Sampler
from sysmon.parser import MEMORY_KEYS

logger = logging.getLogger(__name__)

CPU_HEADERS = (
    "Name",
    "User",
    "Nice",
    "System",
    "Idle",
    "IOWait",
    "IRQ",
    "SoftIRQ",
    "Steal",
    "Guest",
    "GuestNice",
)

CPU_SCALAR_LABELS = {
    "num_context_switches": "Context Switches",
    "boot_time": "Boot Time",
    "num_processes_created": "Processes Created",
    "processes_running": "Processes Running",
    "processes_blocked": "Processes Blocked",
}

MEMORY_LABELS = {name: key.rstrip(":") for key, name in MEMORY_KEYS.items()}

RX_COLUMNS = (
    ("R Bytes", "rx_bytes"),
    ("R Packets", "rx_packets"),
    ("R Errs", "rx_errors"),
    ("R Drop", "rx_drops"),
    ("R FIFO", "rx_fifo"),
    ("R Frame", "rx_frame"),
    ("R Compressed", "rx_compressed"),
    ("R Multicast", "rx_multicast"),
)

TX_COLUMNS = (
    ("T Bytes", "tx_bytes"),
    ("T Packets", "tx_packets"),
    ("T Errs", "tx_errors"),
    ("T Drop", "tx_drops"),
    ("T FIFO", "tx_fifo"),
    ("T Colls", "tx_frame"),
    ("T Carrier", "tx_carrier"),
    ("T Compressed", "tx_compressed"),
)

# selector -> (domain, runs forever)
SELECTORS: dict[str, tuple[Domain, bool]] = {
    "cpu-stats": (Domain.CPU, False),
    "mem-info": (Domain.MEMORY, False),
    "network-info": (Domain.NETWORK, False),
    "cpu-status-loop": (Domain.CPU, True),
    "mem-info-loop": (Domain.MEMORY, True),
    "network-info-loop": (Domain.NETWORK, True),
}

SELECTOR_HELP = """\
Run with one or more of the following selectors:
  cpu-stats            Displays cpu stats
  mem-info             Displays information on memory usage
  network-info         Displays information on network devices

Run with only one of these selectors:
  cpu-status-loop      Displays cpu stats on loop
  mem-info-loop        Displays information on memory usage on loop
  network-info-loop    Displays information on network devices on loop
"""


def _table(headers: tuple[str, ...], rows: list[list[str]]) -> Table:
    """
    Create a boxed table sized to its widest cells.

    Every row takes exactly one line and no cell is cut short, however narrow
    the console is.
    """
    widths = [max(cell_len(cell) for cell in column) for column in zip(headers, *rows)]
    # one padding space either side of each cell, plus the vertical rules
    table = Table(box=box.ASCII, highlight=False, width=sum(widths) + 3 * len(widths) + 1)
    for header, width in zip(headers, widths):
        table.add_column(header, justify="right", no_wrap=True, min_width=width)
    for row in rows:
        table.add_row(*row)
    return table


def build_cpu_tables(store: CpuTable) -> list[Table]:
    """Build the per-CPU table and the scalar counter table."""
    cpu_rows = [
        [line.name, *(getattr(line, name) for name in CPU_COUNTER_FIELDS)]
        for line in store.populated_rows
    ]
    scalar_rows = [
        [label, getattr(store.scalars, name)] for name, label in CPU_SCALAR_LABELS.items()
    ]
    return [_table(CPU_HEADERS, cpu_rows), _table(("Counter", "Value"), scalar_rows)]


def build_memory_tables(store: MemoryStore) -> list[Table]:
    """Build the memory counter table."""
    rows = [[label, getattr(store.snapshot, name)] for name, label in MEMORY_LABELS.items()]
    return [_table(("Field", "Value"), rows)]


def _device_table(
    devices: tuple[NetworkDevice, ...],
    columns: tuple[tuple[str, str], ...],
) -> Table:
    headers = ("Face", *(header for header, _ in columns))
    rows = [[device.name, *(getattr(device, name) for _, name in columns)] for device in devices]
    return _table(headers, rows)


def build_network_tables(store: NetworkTable) -> list[Table]:
    """Build the receive table and the transmit table."""
    devices = store.devices
    return [_device_table(devices, RX_COLUMNS), _device_table(devices, TX_COLUMNS)]


TABLE_BUILDERS = {
    Domain.CPU: build_cpu_tables,
    Domain.MEMORY: build_memory_tables,
    Domain.NETWORK: build_network_tables,
}


class TableRenderer:
    """Prints sampled stores as tables and rewinds the cursor between frames."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize TableRenderer."""
        self._console = console or Console(highlight=False)

    @property
    def console(self) -> Console:
        """Get the output console."""
        return self._console

    def render(self, domain: Domain, store: RecordStore) -> None:
        """Print the tables for `store`."""
        for table in TABLE_BUILDERS[domain](store):
            self._console.print(table, crop=False)

    def rewind(self, rows: int) -> None:
        """Move the cursor up `rows` lines so the next frame overwrites this one."""
        if rows > 0:
            self._console.control(Control.move(0, -rows))


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="sysmon",
        description="Monitors CPU, memory and network counters from procfs.",
        epilog=SELECTOR_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("selectors", nargs="*", metavar="SELECTOR", help="what to display")
    parser.add_argument("--proc-root", help="procfs mount point (default: /proc)")
    parser.add_argument("--max-cores", type=int, help="per-core rows in the cpu table")
    parser.add_argument("--max-devices", type=int, help="rows in the network table")
    parser.add_argument(
        "--interval", type=float, help="seconds between loop frames (minimum 0.1)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging on stderr")
    return parser


def _config_from_args(args: argparse.Namespace) -> MonitorConfig:
    overrides = {
        name: value
        for name, value in (
            ("proc_root", args.proc_root),
            ("max_cores", args.max_cores),
            ("max_devices", args.max_devices),
            ("interval", args.interval),
        )
        if value is not None
    }
    return MonitorConfig(**overrides)


def main(argv: list[str] | None = None) -> int:
    """Entry point for the sysmon command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.selectors:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    if len(args.selectors) > 1 and any(
        SELECTORS.get(selector, (None, False))[1] for selector in args.selectors
    ):
        parser.error("loop selectors must be used on their own")

    try:
        config = _config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    renderer = TableRenderer()
    try:
        with Sampler(config) as sampler:
            for selector in args.selectors:
                entry = SELECTORS.get(selector)
                if entry is None:
                    renderer.console.print(
                        f"Argument '{selector}' not recognized.", markup=False, soft_wrap=True
                    )
                    continue
                domain, forever = entry
                if forever:
                    loop = RefreshLoop(
                        sampler, renderer, domain, interval=sampler.config.interval
                    )
                    loop.run()
                else:
                    renderer.render(domain, sampler.sample(domain))
    except SourceUnavailable as e:
        logger.debug("Sampling aborted", exc_info=True)
        error_console = Console(stderr=True, highlight=False)
        error_console.print(f"ERROR: {e}.", markup=False, soft_wrap=True)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
