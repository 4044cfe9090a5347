"""
Polling property state machine

One instance per capability. Holds the cached boolean value, fetches remote
state on each poll cycle and, for switches, forwards commands to the device.
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Callable, Dict, Optional

import aiohttp

from config_loader import DeviceSettings
from errors import CommandRejected
from http_helper import fetch

logger = logging.getLogger(__name__)


class PollOutcome(Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"


def parse_state_value(body: str) -> Optional[bool]:
    """Extract the boolean 'value' of a state response, None if malformed"""
    try:
        result = json.loads(body)
    except ValueError:
        return None
    if not isinstance(result, dict):
        return None
    value = result.get('value')
    if not isinstance(value, bool):
        return None
    return value


class PollingProperty:
    """Boolean property kept in sync with a remote capability"""

    domain = ""
    read_only = True
    metadata: Dict = {}

    def __init__(self, capability_id: str, device_host: str, settings: DeviceSettings,
                 device_name: str = "", name: str = "on", device_port: int = 80):
        self.name = name
        self.capability_id = capability_id
        self.device_host = device_host
        self.device_port = device_port
        self.device_name = device_name or device_host
        self.credentials = settings.credentials
        self.timeout_seconds = settings.request_timeout_seconds

        self.cached_value: Optional[bool] = None
        self.last_notified_value: Optional[bool] = None
        self.on_change: Optional[Callable[['PollingProperty'], None]] = None

    @property
    def title(self) -> str:
        return self.metadata.get('title', self.name)

    @property
    def label(self) -> str:
        return f"{self.device_name}#{self.title}"

    @property
    def base_url(self) -> str:
        if self.device_port == 80:
            return f"http://{self.device_host}"
        return f"http://{self.device_host}:{self.device_port}"

    @property
    def status_url(self) -> str:
        return f"{self.base_url}/{self.domain}/{self.capability_id}"

    @property
    def current_value(self) -> Optional[bool]:
        return self.cached_value

    async def poll_once(self) -> PollOutcome:
        """Fetch the remote state once and reconcile the cached value"""
        try:
            response = await fetch(self.status_url, self.credentials,
                                   timeout_seconds=self.timeout_seconds)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.warning(f"[POLL] Could not fetch status for {self.label}: {e}")
            return PollOutcome.FAILED

        if not response.ok:
            logger.warning(f"[POLL] Could not fetch status for {self.label}: "
                           f"{response.status} ({response.reason})")
            return PollOutcome.FAILED

        value = parse_state_value(response.body)
        if value is None:
            logger.warning(f"[POLL] Malformed status for {self.label} from {self.status_url}: {response.body[:100]!r}")
            return PollOutcome.FAILED

        previous = self.cached_value
        self.cached_value = value
        self.update(value)
        return PollOutcome.UPDATED if previous != value else PollOutcome.UNCHANGED

    def update(self, value: bool) -> None:
        raise NotImplementedError

    async def apply_command(self, value: bool) -> bool:
        raise CommandRejected(f"{self.label} is read-only")

    def notify(self) -> None:
        self.last_notified_value = self.cached_value
        if self.on_change is not None:
            self.on_change(self)

    def as_dict(self) -> Dict:
        description = dict(self.metadata)
        description['name'] = self.name
        description['value'] = self.cached_value
        return description


class BinarySensorProperty(PollingProperty):
    """Read-only sensor; announces every successful poll"""

    domain = "binary_sensor"
    read_only = True
    metadata = {
        '@type': 'BooleanProperty',
        'type': 'boolean',
        'title': 'On',
        'description': 'The state of the sensor',
        'readOnly': True
    }

    def update(self, value: bool) -> None:
        self.notify()


class SwitchProperty(PollingProperty):
    """On/off actuator; announces only values that differ from the last announced one"""

    domain = "switch"
    read_only = False
    metadata = {
        '@type': 'OnOffProperty',
        'type': 'boolean',
        'title': 'On',
        'description': 'Whether the device is on or off',
        'readOnly': False
    }

    def command_url(self, value: bool) -> str:
        action = 'turn_on' if value else 'turn_off'
        return f"{self.base_url}/switch/{self.capability_id}/{action}"

    def update(self, value: bool) -> None:
        if self.last_notified_value != value:
            self.notify()
            logger.info(f"[POLL] Value of {self.label} changed to {value}")

    async def apply_command(self, value: bool) -> bool:
        """
        Optimistically apply the value, then send the command to the device
        Returns whether the device accepted it; failures are logged, never raised
        """
        value = bool(value)
        logger.info(f"[COMMAND] Set value of {self.label} to {value}")
        self.cached_value = value
        self.notify()

        url = self.command_url(value)
        try:
            response = await fetch(url, self.credentials, method="POST",
                                   timeout_seconds=self.timeout_seconds)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.warning(f"[COMMAND] Could not set value of {self.label}: {e}")
            return False

        if not response.ok:
            logger.warning(f"[COMMAND] Could not set value of {self.label}: "
                           f"{response.status} ({response.reason})")
            return False
        return True
