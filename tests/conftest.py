"""Shared fixtures for the ESPHome bridge tests."""

from typing import Dict, List, Tuple, Union

import pytest

from config_loader import BridgeConfig, DeviceSettings
from http_helper import DeviceResponse

STATUS_PAGE = """<!DOCTYPE html>
<html><head><title>living-room Web Server</title></head>
<body>
<h1>living-room Web Server</h1>
<table id="states">
<thead><tr><th>Name</th><th>State</th><th>Actions</th></tr></thead>
<tbody>
{rows}
</tbody>
</table>
<p>See <a href="https://esphome.io/web-api/index.html">ESPHome Web API</a> for REST API documentation.</p>
</body></html>
"""


def status_page(*rows: str) -> str:
    return STATUS_PAGE.format(rows="\n".join(rows))


class FakeDeviceHttp:
    """Stand-in for http_helper.fetch keyed by (method, url)."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Union[DeviceResponse, BaseException]] = {}
        self.calls: List[Tuple[str, str, object]] = []

    def add(self, method: str, url: str, body: str = "", status: int = 200, reason: str = "OK"):
        self.routes[(method, url)] = DeviceResponse(status=status, reason=reason, body=body)

    def fail(self, method: str, url: str, error: BaseException):
        self.routes[(method, url)] = error

    def urls(self, method: str = None) -> List[str]:
        return [url for m, url, _ in self.calls if method is None or m == method]

    async def __call__(self, url, credentials=None, method="GET", timeout_seconds=None):
        self.calls.append((method, url, credentials))
        result = self.routes.get((method, url))
        if result is None:
            return DeviceResponse(status=404, reason="Not Found", body="")
        if isinstance(result, BaseException):
            raise result
        return result


class RecordingHub:
    """Minimal hub collaborator recording what the bridge reports."""

    def __init__(self):
        self.adapters = []
        self.devices = []
        self.changes = []

    def add_adapter(self, adapter):
        self.adapters.append(adapter)

    def handle_device_added(self, device):
        self.devices.append(device)

    def notify_property_changed(self, device, prop):
        self.changes.append((device.id, prop.name, prop.current_value))


@pytest.fixture
def device_http(monkeypatch):
    fake = FakeDeviceHttp()
    monkeypatch.setattr("discovery.prober.fetch", fake)
    monkeypatch.setattr("devices.properties.fetch", fake)
    return fake


@pytest.fixture
def settings():
    return DeviceSettings(poll_interval_ms=60000)


@pytest.fixture
def config(settings):
    return BridgeConfig(device=settings)


@pytest.fixture
def hub():
    return RecordingHub()
