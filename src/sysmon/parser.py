"""Line tokenizer and schema mapper for procfs counter files."""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

from sysmon.errors import MalformedLine, UnrecognizedKey
from sysmon.models import (
    CPU_COUNTER_FIELDS,
    NETWORK_DEVICE_FIELDS,
    CpuTable,
    MemoryStore,
    NetworkDevice,
    NetworkTable,
)

# The 'intr' line carries one counter per interrupt vector, thousands of
# tokens. It is dropped before the rest of the line is split.
IGNORED_KEYS = frozenset({"intr"})

NETWORK_HEADER_LINES = 2


class Tokens(NamedTuple):
    """A tokenized line: the classifying key and the tokens after it."""

    key: str
    fields: list[str]


def tokenize(line: str) -> Tokens | None:
    """
    Split a line into whitespace-delimited tokens.

    Returns:
        None for blank lines and for lines whose key is an ignore marker.
    """
    head = line.split(None, 1)
    if not head or head[0] in IGNORED_KEYS:
        return None
    rest = head[1].split() if len(head) > 1 else []
    return Tokens(head[0], rest)


class Target(Enum):
    """Record a schema entry writes to."""

    CPU_ROW = "cpu_row"
    CPU_SCALAR = "cpu_scalar"
    MEMORY = "memory"


@dataclass(slots=True, frozen=True)
class FieldMapping:
    """Where the tokens after a key land."""

    target: Target
    fields: tuple[str, ...]
    row: int | None = None

    @property
    def token_count(self) -> int:
        """Get the number of trailing tokens the mapping consumes."""
        return len(self.fields)


CPU_SCALAR_KEYS: dict[str, str] = {
    "ctxt": "num_context_switches",
    "btime": "boot_time",
    "processes": "num_processes_created",
    "procs_running": "processes_running",
    "procs_blocked": "processes_blocked",
}

MEMORY_KEYS: dict[str, str] = {
    "MemTotal:": "mem_total",
    "MemFree:": "mem_free",
    "MemAvailable:": "mem_available",
    "Buffers:": "buffers",
    "Cached:": "cached",
    "Active:": "active",
    "Inactive:": "inactive",
    "Dirty:": "dirty",
    "PageTables:": "page_tables",
    "Percpu:": "percpu",
    "HardwareCorrupted:": "hardware_corrupted",
}


def build_cpu_schema(max_cores: int) -> dict[str, FieldMapping]:
    """Build the stat schema for a table with `max_cores` per-core rows."""
    schema = {"cpu": FieldMapping(Target.CPU_ROW, CPU_COUNTER_FIELDS, row=0)}
    for core in range(max_cores):
        schema[f"cpu{core}"] = FieldMapping(Target.CPU_ROW, CPU_COUNTER_FIELDS, row=core + 1)
    for key, name in CPU_SCALAR_KEYS.items():
        schema[key] = FieldMapping(Target.CPU_SCALAR, (name,))
    return schema


def build_memory_schema() -> dict[str, FieldMapping]:
    """Build the meminfo schema."""
    return {key: FieldMapping(Target.MEMORY, (name,)) for key, name in MEMORY_KEYS.items()}


class SchemaMapper:
    """Routes tokenized lines onto record stores through a key lookup table."""

    def __init__(self, schema: dict[str, FieldMapping]) -> None:
        """
        Initialize the SchemaMapper.

        Args:
            schema: Lookup table from classifying key to field mapping.
        """
        self._schema = schema

    def resolve(self, key: str) -> FieldMapping:
        """Get the mapping for `key` or raise UnrecognizedKey."""
        try:
            return self._schema[key]
        except KeyError:
            raise UnrecognizedKey(key) from None

    def apply(self, tokens: Tokens, store: CpuTable | MemoryStore) -> None:
        """
        Write the tokens of one line into `store`.

        Raises:
            UnrecognizedKey: The key is not in the schema.
            MalformedLine: The line has fewer tokens than the mapping needs.
        """
        mapping = self.resolve(tokens.key)
        if len(tokens.fields) < mapping.token_count:
            raise MalformedLine(tokens.key, mapping.token_count, len(tokens.fields))
        values = dict(zip(mapping.fields, tokens.fields))

        if mapping.target is Target.CPU_ROW:
            store.write_row(mapping.row, tokens.key, values)
        elif mapping.target is Target.CPU_SCALAR:
            store.write_scalars(values)
        else:
            store.write(values)


def parse_network_device(tokens: Tokens) -> NetworkDevice:
    """
    Decompose a net/dev line positionally into a NetworkDevice.

    The interface name is kept verbatim, trailing colon included.
    """
    expected = len(NETWORK_DEVICE_FIELDS)
    actual = len(tokens.fields) + 1
    if actual < expected:
        raise MalformedLine(tokens.key, expected, actual)
    return NetworkDevice(tokens.key, *tokens.fields[: expected - 1])


def map_network_line(tokens: Tokens, table: NetworkTable) -> bool:
    """
    Append the device on this line to `table`.

    Returns:
        False if the table was full and the device was dropped.
    """
    return table.append(parse_network_device(tokens))
