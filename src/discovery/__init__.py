"""
Discovery module for ESPHome device discovery
"""

from .models import ServiceRecord, DeviceCapability, ProbeResult, ProbeStatus
from .network_discovery import AdvertisementListener, build_service_record
from .prober import CapabilityProber, parse_capabilities

__all__ = ['AdvertisementListener', 'build_service_record', 'CapabilityProber', 'parse_capabilities',
           'ServiceRecord', 'DeviceCapability', 'ProbeResult', 'ProbeStatus']
