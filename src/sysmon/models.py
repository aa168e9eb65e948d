"""Data models for sysmon.

Every counter is kept as the opaque text token read from the kernel. Records
are immutable; stores swap whole records when a line is mapped onto them.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum

from sysmon.errors import UseBeforeInit


class Domain(Enum):
    """Kernel counter sources that can be sampled."""

    CPU = "cpu"
    MEMORY = "memory"
    NETWORK = "network"


@dataclass(slots=True, frozen=True)
class CpuLine:
    """One row of the CPU table, in the kernel's column order."""

    name: str = ""  # 'cpu', 'cpu0', 'cpu1', ...
    user: str = ""
    nice: str = ""
    system: str = ""
    idle: str = ""
    iowait: str = ""
    irq: str = ""
    softirq: str = ""
    steal: str = ""
    guest: str = ""
    guest_nice: str = ""


@dataclass(slots=True, frozen=True)
class CpuScalars:
    """Single-value counters from the stat source."""

    num_context_switches: str = ""
    boot_time: str = ""
    num_processes_created: str = ""
    processes_running: str = ""
    processes_blocked: str = ""


@dataclass(slots=True, frozen=True)
class MemorySnapshot:
    """Selected meminfo counters, values without their unit suffix."""

    mem_total: str = ""
    mem_free: str = ""
    mem_available: str = ""
    buffers: str = ""
    cached: str = ""
    active: str = ""
    inactive: str = ""
    dirty: str = ""
    page_tables: str = ""
    percpu: str = ""
    hardware_corrupted: str = ""


@dataclass(slots=True, frozen=True)
class NetworkDevice:
    """Per-interface counters in net/dev column order."""

    name: str = ""
    rx_bytes: str = ""
    rx_packets: str = ""
    rx_errors: str = ""
    rx_drops: str = ""
    rx_fifo: str = ""
    rx_frame: str = ""
    rx_compressed: str = ""
    rx_multicast: str = ""
    tx_bytes: str = ""
    tx_packets: str = ""
    tx_errors: str = ""
    tx_drops: str = ""
    tx_fifo: str = ""
    tx_frame: str = ""  # the kernel's 'colls' column
    tx_carrier: str = ""
    tx_compressed: str = ""


CPU_COUNTER_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(CpuLine))[1:]
CPU_SCALAR_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(CpuScalars))
MEMORY_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(MemorySnapshot))
NETWORK_DEVICE_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(NetworkDevice))


class RecordStore:
    """
    Base class for the allocate -> populate -> read -> release lifecycle.

    Subclasses implement _fill() to create empty records and _clear() to drop
    them. Reads on an unallocated store raise UseBeforeInit.
    """

    def __init__(self) -> None:
        """Initialize an unallocated store."""
        self._allocated = False

    @property
    def allocated(self) -> bool:
        """Check if the store currently holds storage."""
        return self._allocated

    def allocate(self) -> None:
        """Reserve empty records. Calling it again keeps the existing records."""
        if self._allocated:
            return
        self._fill()
        self._allocated = True

    def release(self) -> None:
        """Drop all records. Safe on an unallocated store."""
        self._clear()
        self._allocated = False

    def reset(self) -> None:
        """Return every field of an allocated store to empty."""
        self._require()
        self._fill()

    def _require(self) -> None:
        if not self._allocated:
            raise UseBeforeInit(f"{type(self).__name__} used before allocate()")

    def _fill(self) -> None:
        raise NotImplementedError

    def _clear(self) -> None:
        raise NotImplementedError


class CpuTable(RecordStore):
    """Aggregate CPU row, per-core rows and the scalar stat counters."""

    def __init__(self, max_cores: int) -> None:
        """
        Initialize the CpuTable.

        Args:
            max_cores: Number of per-core rows. Row 0 holds the aggregate line,
                so the table has max_cores + 1 rows.
        """
        super().__init__()
        self._capacity = max_cores + 1
        self._rows: list[CpuLine] = []
        self._scalars: CpuScalars | None = None

    @property
    def capacity(self) -> int:
        """Get the number of rows, aggregate included."""
        return self._capacity

    @property
    def rows(self) -> tuple[CpuLine, ...]:
        """Get all rows, populated or not."""
        self._require()
        return tuple(self._rows)

    @property
    def populated_rows(self) -> list[CpuLine]:
        """Get the rows that were written by the last sample."""
        self._require()
        return [row for row in self._rows if row.name]

    @property
    def scalars(self) -> CpuScalars:
        """Get the scalar counters."""
        self._require()
        return self._scalars

    def write_row(self, index: int, name: str, values: dict[str, str]) -> None:
        """Replace row `index` with a new CpuLine."""
        self._require()
        self._rows[index] = CpuLine(name=name, **values)

    def write_scalars(self, values: dict[str, str]) -> None:
        """Overwrite the given scalar counters."""
        self._require()
        self._scalars = replace(self._scalars, **values)

    def _fill(self) -> None:
        self._rows = [CpuLine() for _ in range(self._capacity)]
        self._scalars = CpuScalars()

    def _clear(self) -> None:
        self._rows = []
        self._scalars = None


class MemoryStore(RecordStore):
    """Holds the single MemorySnapshot of a session."""

    def __init__(self) -> None:
        """Initialize the MemoryStore."""
        super().__init__()
        self._snapshot: MemorySnapshot | None = None

    @property
    def snapshot(self) -> MemorySnapshot:
        """Get the current snapshot."""
        self._require()
        return self._snapshot

    def write(self, values: dict[str, str]) -> None:
        """Overwrite the given memory counters."""
        self._require()
        self._snapshot = replace(self._snapshot, **values)

    def _fill(self) -> None:
        self._snapshot = MemorySnapshot()

    def _clear(self) -> None:
        self._snapshot = None


class NetworkTable(RecordStore):
    """Bounded table of network devices with a live populated count."""

    def __init__(self, max_devices: int) -> None:
        """
        Initialize the NetworkTable.

        Args:
            max_devices: Number of device rows. Devices past this are dropped.
        """
        super().__init__()
        self._capacity = max_devices
        self._devices: list[NetworkDevice] = []
        self._count = 0

    @property
    def capacity(self) -> int:
        """Get the maximum number of devices."""
        return self._capacity

    @property
    def count(self) -> int:
        """Get the number of populated device rows."""
        self._require()
        return self._count

    @property
    def is_full(self) -> bool:
        """Check if every device row is populated."""
        return self.count >= self._capacity

    @property
    def devices(self) -> tuple[NetworkDevice, ...]:
        """Get the populated devices in source order."""
        self._require()
        return tuple(self._devices[: self._count])

    def append(self, device: NetworkDevice) -> bool:
        """
        Write `device` to the next free row.

        Returns:
            False if the table is already full and the device was dropped.
        """
        if self.is_full:
            return False
        self._devices[self._count] = device
        self._count += 1
        return True

    def _fill(self) -> None:
        self._devices = [NetworkDevice() for _ in range(self._capacity)]
        self._count = 0

    def _clear(self) -> None:
        self._devices = []
        self._count = 0
