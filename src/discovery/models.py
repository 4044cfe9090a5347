"""
Discovery data structures and models
"""

from enum import Enum
from typing import List
from dataclasses import dataclass, field


@dataclass
class ServiceRecord:
    """A resolved mDNS service announcement"""
    name: str               # advertised server hostname, trailing dot removed
    host: str               # first IPv4 address, or the hostname when none is known
    port: int
    addresses: List[str] = field(default_factory=list)
    service_type: str = ""


@dataclass
class DeviceCapability:
    """One row of the device status table"""
    domain: str     # "switch", "binary_sensor", ...
    id: str         # slug without the domain prefix
    name: str


class ProbeStatus(Enum):
    MATCHED = "matched"
    NOT_DEVICE = "not_device"
    FAILED = "failed"


@dataclass
class ProbeResult:
    """Outcome of probing a service's status page"""
    status: ProbeStatus
    capabilities: List[DeviceCapability] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.status is ProbeStatus.MATCHED
