"""Tests for the polling property state machine."""

import asyncio
import json

import aiohttp
import pytest
from aiohttp import web
from aiohttp import test_utils

from devices.properties import (
    BinarySensorProperty,
    PollOutcome,
    SwitchProperty,
    parse_state_value,
)
from errors import CommandRejected
from http_helper import DeviceResponse


def state(value, id_="x"):
    return json.dumps({"id": id_, "state": "ON" if value else "OFF", "value": value})


def make_property(cls, settings, changes, capability_id="relay1", host="10.0.0.5", port=80):
    prop = cls(capability_id, host, settings, device_name=f"Relay 1 ({host})", device_port=port)
    prop.on_change = lambda p: changes.append(p.current_value)
    return prop


class TestParseStateValue:
    def test_boolean_value(self):
        assert parse_state_value(state(True)) is True
        assert parse_state_value(state(False)) is False

    @pytest.mark.parametrize("body", ["", "{", "[]", '{"state": "ON"}', '{"value": "true"}', '{"value": 1}'])
    def test_malformed_bodies(self, body):
        assert parse_state_value(body) is None


class TestBinarySensorProperty:
    @pytest.mark.asyncio
    async def test_notifies_on_every_successful_poll(self, settings, device_http):
        changes = []
        prop = make_property(BinarySensorProperty, settings, changes, "door")
        device_http.add("GET", "http://10.0.0.5/binary_sensor/door", state(True))

        assert await prop.poll_once() is PollOutcome.UPDATED
        assert await prop.poll_once() is PollOutcome.UNCHANGED

        assert changes == [True, True]
        assert prop.current_value is True

    @pytest.mark.asyncio
    async def test_commands_are_rejected(self, settings, device_http):
        prop = make_property(BinarySensorProperty, settings, [], "door")

        with pytest.raises(CommandRejected):
            await prop.apply_command(True)
        assert device_http.calls == []

    def test_metadata(self, settings):
        prop = BinarySensorProperty("door", "10.0.0.5", settings)

        described = prop.as_dict()
        assert described["@type"] == "BooleanProperty"
        assert described["readOnly"] is True
        assert described["title"] == "On"
        assert described["value"] is None


class TestSwitchPollCycle:
    @pytest.mark.asyncio
    async def test_repeated_value_notifies_at_most_once(self, settings, device_http):
        changes = []
        prop = make_property(SwitchProperty, settings, changes)
        device_http.add("GET", "http://10.0.0.5/switch/relay1", state(False))

        assert await prop.poll_once() is PollOutcome.UPDATED
        assert await prop.poll_once() is PollOutcome.UNCHANGED

        assert changes == [False]
        assert prop.last_notified_value is False

    @pytest.mark.asyncio
    async def test_change_notifies_again(self, settings, device_http):
        changes = []
        prop = make_property(SwitchProperty, settings, changes)
        url = "http://10.0.0.5/switch/relay1"

        device_http.add("GET", url, state(False))
        await prop.poll_once()
        device_http.add("GET", url, state(True))
        await prop.poll_once()

        assert changes == [False, True]

    @pytest.mark.asyncio
    async def test_non_default_port_is_used(self, settings, device_http):
        prop = make_property(SwitchProperty, settings, [], port=8080)
        device_http.add("GET", "http://10.0.0.5:8080/switch/relay1", state(True))

        assert await prop.poll_once() is PollOutcome.UPDATED

    @pytest.mark.parametrize("response", [
        DeviceResponse(500, "Internal Server Error", ""),
        DeviceResponse(200, "OK", "not json"),
        DeviceResponse(200, "OK", '{"id": "switch-relay1"}'),
    ])
    @pytest.mark.asyncio
    async def test_failed_poll_keeps_cached_value(self, settings, device_http, response):
        changes = []
        prop = make_property(SwitchProperty, settings, changes)
        url = "http://10.0.0.5/switch/relay1"
        device_http.add("GET", url, state(True))
        await prop.poll_once()

        device_http.routes[("GET", url)] = response
        assert await prop.poll_once() is PollOutcome.FAILED

        assert prop.current_value is True
        assert changes == [True]

    @pytest.mark.asyncio
    async def test_transport_failure_keeps_cached_value(self, settings, device_http):
        prop = make_property(SwitchProperty, settings, [])
        device_http.fail("GET", "http://10.0.0.5/switch/relay1", aiohttp.ClientConnectionError("reset"))

        assert await prop.poll_once() is PollOutcome.FAILED
        assert prop.current_value is None


class TestSwitchCommand:
    @pytest.mark.asyncio
    async def test_value_is_visible_before_command_resolves(self, settings, monkeypatch):
        changes = []
        prop = make_property(SwitchProperty, settings, changes)
        release = asyncio.Event()
        seen = []

        async def slow_fetch(url, credentials=None, method="GET", timeout_seconds=None):
            seen.append((method, url, prop.current_value))
            await release.wait()
            return DeviceResponse(500, "Internal Server Error", "")

        monkeypatch.setattr("devices.properties.fetch", slow_fetch)
        task = asyncio.create_task(prop.apply_command(True))
        await asyncio.sleep(0)
        assert prop.current_value is True
        assert changes == [True]

        release.set()
        accepted = await task

        assert seen == [("POST", "http://10.0.0.5/switch/relay1/turn_on", True)]
        assert accepted is False
        assert prop.current_value is True

    @pytest.mark.asyncio
    async def test_turn_off_endpoint(self, settings, device_http):
        prop = make_property(SwitchProperty, settings, [])
        device_http.add("POST", "http://10.0.0.5/switch/relay1/turn_off")

        assert await prop.apply_command(False) is True
        assert device_http.urls("POST") == ["http://10.0.0.5/switch/relay1/turn_off"]
        assert prop.current_value is False

    @pytest.mark.asyncio
    async def test_transport_failure_is_not_raised(self, settings, device_http):
        prop = make_property(SwitchProperty, settings, [])
        device_http.fail("POST", "http://10.0.0.5/switch/relay1/turn_on", asyncio.TimeoutError())

        assert await prop.apply_command(True) is False
        assert prop.current_value is True

    @pytest.mark.asyncio
    async def test_next_poll_reconciles_rejected_command(self, settings, device_http):
        changes = []
        prop = make_property(SwitchProperty, settings, changes)
        device_http.add("POST", "http://10.0.0.5/switch/relay1/turn_on", status=500, reason="Error")
        device_http.add("GET", "http://10.0.0.5/switch/relay1", state(False))

        await prop.apply_command(True)
        await prop.poll_once()

        assert changes == [True, False]
        assert prop.current_value is False

    @pytest.mark.asyncio
    async def test_non_utf8_reply_from_real_server(self, settings):
        async def turn_on(request):
            return web.Response(body=b"\xff\xfe ok", content_type="text/plain")

        app = web.Application()
        app.router.add_post("/switch/relay1/turn_on", turn_on)
        server = test_utils.TestServer(app, host="127.0.0.1")
        await server.start_server()
        try:
            prop = make_property(SwitchProperty, settings, [], host="127.0.0.1", port=server.port)

            assert await prop.apply_command(True) is True
            assert prop.current_value is True
        finally:
            await server.close()

    def test_metadata(self, settings):
        described = SwitchProperty("relay1", "10.0.0.5", settings).as_dict()

        assert described["@type"] == "OnOffProperty"
        assert described["readOnly"] is False
        assert described["type"] == "boolean"
