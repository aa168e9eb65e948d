"""Runtime configuration for sysmon."""

import os
from dataclasses import dataclass, field

import psutil

from sysmon.models import Domain

DEFAULT_PROC_ROOT = "/proc"
DEFAULT_MAX_DEVICES = 8
DEFAULT_INTERVAL = 1.0
MIN_INTERVAL = 0.1
FALLBACK_MAX_CORES = 16

# Source file for each domain, relative to the procfs root.
SOURCE_FILES: dict[Domain, str] = {
    Domain.CPU: "stat",
    Domain.MEMORY: "meminfo",
    Domain.NETWORK: os.path.join("net", "dev"),
}


def default_max_cores() -> int:
    """Get the number of logical CPUs, or a fixed fallback if unknown."""
    return psutil.cpu_count(logical=True) or FALLBACK_MAX_CORES


@dataclass(slots=True, frozen=True)
class MonitorConfig:
    """Settings shared by the sampler and the refresh loop."""

    proc_root: str = DEFAULT_PROC_ROOT
    max_cores: int = field(default_factory=default_max_cores)
    max_devices: int = DEFAULT_MAX_DEVICES
    interval: float = DEFAULT_INTERVAL

    def __post_init__(self) -> None:
        """Validate the settings."""
        if self.max_cores < 1:
            raise ValueError(f"max_cores must be at least 1, got {self.max_cores}")
        if self.max_devices < 1:
            raise ValueError(f"max_devices must be at least 1, got {self.max_devices}")
        if self.interval < MIN_INTERVAL:
            raise ValueError(f"interval must be at least {MIN_INTERVAL}, got {self.interval}")

    def source_path(self, domain: Domain) -> str:
        """Get the source file path for `domain`."""
        return os.path.join(self.proc_root, SOURCE_FILES[domain])
