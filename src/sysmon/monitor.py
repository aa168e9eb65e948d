"""Sampling engine and refresh loop for sysmon."""

import logging
import time
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Protocol

from sysmon.config import MIN_INTERVAL, MonitorConfig
from sysmon.errors import MalformedLine, SourceUnavailable, UnrecognizedKey
from sysmon.models import (
    CPU_SCALAR_FIELDS,
    MEMORY_FIELDS,
    CpuTable,
    Domain,
    MemoryStore,
    NetworkTable,
    RecordStore,
)
from sysmon.parser import (
    NETWORK_HEADER_LINES,
    SchemaMapper,
    build_cpu_schema,
    build_memory_schema,
    map_network_line,
    tokenize,
)

logger = logging.getLogger(__name__)

# Lines taken by one boxed table besides its rows: top edge, header,
# header rule, bottom edge.
TABLE_CHROME_ROWS = 4


class Sampler:
    """
    Owns the record stores of one session and fills them from procfs.

    Use as a context manager: entering allocates every store, leaving
    releases them, also when an exception propagates.
    """

    def __init__(self, config: MonitorConfig | None = None) -> None:
        """
        Initialize the Sampler.

        Args:
            config: Source paths and table capacities. Defaults to MonitorConfig().
        """
        self._config = config or MonitorConfig()
        self._cpu = CpuTable(self._config.max_cores)
        self._memory = MemoryStore()
        self._network = NetworkTable(self._config.max_devices)
        self._cpu_mapper = SchemaMapper(build_cpu_schema(self._config.max_cores))
        self._memory_mapper = SchemaMapper(build_memory_schema())

    @property
    def config(self) -> MonitorConfig:
        """Get the sampler configuration."""
        return self._config

    def store(self, domain: Domain) -> RecordStore:
        """Get the store that holds `domain`."""
        return {
            Domain.CPU: self._cpu,
            Domain.MEMORY: self._memory,
            Domain.NETWORK: self._network,
        }[domain]

    def allocate(self) -> None:
        """Allocate every store."""
        for domain in Domain:
            self.store(domain).allocate()

    def release(self) -> None:
        """Release every store."""
        for domain in Domain:
            self.store(domain).release()

    def __enter__(self) -> "Sampler":
        self.allocate()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    def sample(self, domain: Domain) -> RecordStore:
        """
        Read the source for `domain` once and return its populated store.

        Raises:
            SourceUnavailable: The source file could not be opened.
            UseBeforeInit: The store was not allocated.
        """
        store = self.store(domain)
        store.reset()
        path = self._config.source_path(domain)
        try:
            source = open(path, encoding="utf-8", errors="replace")
        except OSError as e:
            raise SourceUnavailable(path, e.strerror or "") from e

        with source:
            if domain is Domain.NETWORK:
                self._populate_network(source, store)
            else:
                mapper = self._cpu_mapper if domain is Domain.CPU else self._memory_mapper
                self._populate(source, mapper, store)

        logger.debug("Sampled %s from %s", domain.value, path)
        return store

    def _populate(
        self,
        lines: Iterable[str],
        mapper: SchemaMapper,
        store: CpuTable | MemoryStore,
    ) -> None:
        """Route keyed lines through `mapper` into `store`."""
        for line in lines:
            tokens = tokenize(line)
            if tokens is None:
                continue
            try:
                mapper.apply(tokens, store)
            except UnrecognizedKey:
                continue
            except MalformedLine as e:
                logger.debug("Skipping malformed line: %s", e)

    def _populate_network(self, lines: Iterable[str], table: NetworkTable) -> None:
        """Skip the header, then append one device per line until full."""
        dropped = 0
        for index, line in enumerate(lines):
            if index < NETWORK_HEADER_LINES:
                continue
            tokens = tokenize(line)
            if tokens is None:
                continue
            try:
                if not map_network_line(tokens, table):
                    dropped += 1
            except MalformedLine as e:
                logger.debug("Skipping malformed device line: %s", e)

        if dropped:
            logger.debug(
                "Network table holds %d devices, dropped %d more",
                table.capacity,
                dropped,
            )


def frame_rows(domain: Domain, store: RecordStore) -> int:
    """Get the number of terminal lines the frame for `store` occupies."""
    if domain is Domain.CPU:
        return (
            len(store.populated_rows)
            + TABLE_CHROME_ROWS
            + len(CPU_SCALAR_FIELDS)
            + TABLE_CHROME_ROWS
        )
    if domain is Domain.MEMORY:
        return len(MEMORY_FIELDS) + TABLE_CHROME_ROWS
    # Receive and transmit tables, one row per device each.
    return 2 * (store.count + TABLE_CHROME_ROWS)


class Renderer(Protocol):
    """Draws sampled stores and moves the cursor between frames."""

    def render(self, domain: Domain, store: RecordStore) -> None: ...

    def rewind(self, rows: int) -> None: ...


class LoopState(Enum):
    """States of the refresh loop."""

    IDLE = "idle"
    SAMPLING = "sampling"
    RENDERED = "rendered"


class RefreshLoop:
    """
    Samples one domain on a fixed interval and redraws it in place.

    Each cycle samples, renders, sleeps, then asks the renderer to move the
    cursor up by the number of lines the frame took, so the next frame
    overwrites it.
    """

    def __init__(
        self,
        sampler: Sampler,
        renderer: Renderer,
        domain: Domain,
        interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the RefreshLoop.

        Args:
            sampler: Session that owns the stores. Must be allocated.
            renderer: Receives each sampled store and the rewind requests.
            domain: Domain to sample every cycle.
            interval: Seconds between frames. Default 1.0s.
            sleep: Sleep function, replaceable in tests.
        """
        self._sampler = sampler
        self._renderer = renderer
        self._domain = domain
        self._interval = max(MIN_INTERVAL, interval)
        self._sleep = sleep
        self._state = LoopState.IDLE
        self._last_frame_rows = 0
        self._frames = 0

    @property
    def interval(self) -> float:
        """Get the interval between frames."""
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        """Set the interval between frames."""
        self._interval = max(MIN_INTERVAL, value)

    @property
    def state(self) -> LoopState:
        """Get the current loop state."""
        return self._state

    @property
    def last_frame_rows(self) -> int:
        """Get the line count of the most recent frame."""
        return self._last_frame_rows

    @property
    def frames(self) -> int:
        """Get the number of frames rendered so far."""
        return self._frames

    def step(self) -> int:
        """
        Run one cycle and return the number of rows rewound.

        SourceUnavailable propagates to the caller.
        """
        self._state = LoopState.SAMPLING
        store = self._sampler.sample(self._domain)
        self._renderer.render(self._domain, store)
        self._last_frame_rows = frame_rows(self._domain, store)
        self._frames += 1
        self._state = LoopState.RENDERED

        self._sleep(self._interval)
        self._renderer.rewind(self._last_frame_rows)
        return self._last_frame_rows

    def run(self, max_frames: int | None = None) -> None:
        """
        Run cycles until interrupted.

        Args:
            max_frames: Stop after this many frames. None runs forever.
        """
        while max_frames is None or self._frames < max_frames:
            self.step()
