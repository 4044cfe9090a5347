"""Tests for the periodic poll task and device polling lifecycle."""

import asyncio

import pytest

from devices.device import BridgeDevice, create_device
from devices.polling import PeriodicTask
from discovery.models import DeviceCapability


@pytest.mark.asyncio
async def test_runs_until_stopped():
    calls = []

    async def action():
        calls.append(1)

    task = PeriodicTask("test", 0.01, action)
    task.start()
    await asyncio.sleep(0.08)
    await task.stop()

    assert len(calls) >= 2
    assert not task.running
    count = len(calls)
    await asyncio.sleep(0.03)
    assert len(calls) == count


@pytest.mark.asyncio
async def test_failing_action_does_not_end_loop():
    calls = []

    async def action():
        calls.append(1)
        raise RuntimeError("boom")

    task = PeriodicTask("failing", 0.01, action)
    task.start()
    await asyncio.sleep(0.05)
    assert task.running
    await task.stop()

    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_stop_is_idempotent():
    task = PeriodicTask("idle", 1, lambda: asyncio.sleep(0))

    await task.stop()
    task.start()
    task.start()
    await task.stop()
    await task.stop()

    assert not task.running


@pytest.mark.asyncio
async def test_device_polling_can_be_torn_down(settings, hub, device_http):
    device_http.add("GET", "http://10.0.0.5/switch/relay1", '{"id": "switch-relay1", "state": "ON", "value": true}')
    device = BridgeDevice("living-room", "10.0.0.5", DeviceCapability("switch", "relay1", "Relay 1"), settings, hub)

    device.start_polling()
    await asyncio.sleep(0.01)
    assert device.polling
    await device.stop_polling()

    assert not device.polling
    assert hub.changes == [("living-room_relay1", "on", True)]


def test_device_identity(settings):
    device = create_device("living-room", "10.0.0.5", DeviceCapability("binary_sensor", "door", "Front Door"), settings)

    assert device.id == "living-room_door"
    assert device.name == "Front Door (10.0.0.5)"
    assert device.types == ["BinarySensor"]
    assert device.as_dict()["@context"] == "https://iot.mozilla.org/schemas/"
    assert device.poll_interval == 60


def test_unsupported_domain_has_no_device(settings):
    assert create_device("living-room", "10.0.0.5", DeviceCapability("sensor", "temp", "Temp"), settings) is None
