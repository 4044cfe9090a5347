"""
Capability prober - identifies ESPHome devices and harvests their capability table
"""

import asyncio
import logging
from typing import List, Optional

import aiohttp
from bs4 import BeautifulSoup

from config_loader import DeviceSettings
from http_helper import fetch
from .models import DeviceCapability, ProbeResult, ProbeStatus

logger = logging.getLogger(__name__)

STATES_ROW_SELECTOR = "#states tbody tr"


def parse_capabilities(html: str) -> List[DeviceCapability]:
    """
    Parse the capability table of an ESPHome status page

    Each row looks like <tr class="switch" id="switch-relay1"><td>Relay 1</td>...</tr>.
    Rows without a domain or id are skipped; malformed markup never raises.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    capabilities = []

    for row in soup.select(STATES_ROW_SELECTOR):
        domain = _row_domain(row)
        raw_id = row.get('id') or ""

        if not domain:
            logger.warning(f"[PROBE] No domain attribute found on row {raw_id or '<unnamed>'}")
            continue

        capability_id = _strip_prefix(raw_id, f"{domain}-")
        if not capability_id:
            logger.warning(f"[PROBE] No id attribute found on {domain} row")
            continue

        capabilities.append(DeviceCapability(
            domain=domain,
            id=capability_id,
            name=_row_name(row) or raw_id
        ))

    return capabilities


def _row_domain(row) -> str:
    # BeautifulSoup splits class into a list
    value = row.get('class')
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def _row_name(row) -> Optional[str]:
    first_cell = row.find(['td', 'th'])
    if first_cell is None:
        return None
    text = first_cell.get_text(strip=True)
    return text or None


def _strip_prefix(value: str, prefix: str) -> str:
    if value.startswith(prefix):
        return value[len(prefix):]
    return value


class CapabilityProber:
    """Probes a host/port for an ESPHome status page"""

    def __init__(self, settings: DeviceSettings):
        self.settings = settings
        self.credentials = settings.credentials
        self.marker = settings.firmware_marker

    async def probe(self, host: str, port: int, name: Optional[str] = None) -> ProbeResult:
        """Fetch the root page once and extract capabilities if it is a matching device"""
        label = name or host
        url = f"http://{host}:{port}/"
        logger.info(f"[PROBE] Probing {host}:{port}")

        try:
            response = await fetch(url, self.credentials,
                                   timeout_seconds=self.settings.request_timeout_seconds)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.warning(f"[PROBE] {label} could not be reached at {url}: {e}")
            return ProbeResult(ProbeStatus.FAILED)

        if not response.ok:
            logger.warning(f"[PROBE] {label} responded with {response.status} ({response.reason})")
            return ProbeResult(ProbeStatus.FAILED)

        if self.marker not in response.body:
            logger.info(f"[PROBE] {label} seems not to be an {self.marker} device")
            return ProbeResult(ProbeStatus.NOT_DEVICE)

        capabilities = parse_capabilities(response.body)
        logger.info(f"[PROBE] Discovered device {label} at {host} with "
                    f"{len(capabilities)} capabilities: {[c.id for c in capabilities]}")
        return ProbeResult(ProbeStatus.MATCHED, capabilities)
