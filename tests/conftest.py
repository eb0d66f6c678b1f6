from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from handlers.base import (
    ANALOG_INPUT,
    POWER_CONFIGURATION,
    PRESSURE_MEASUREMENT,
    RELATIVE_HUMIDITY,
    TEMPERATURE_MEASUREMENT,
    AttributeReport,
    ReportType,
)

IEEE = "00:12:4b:00:1c:aa:bb:cc"

ATTRIBUTE_NAMES = {
    POWER_CONFIGURATION: {0x0020: "battery_voltage", 0x0021: "battery_percentage_remaining"},
    ANALOG_INPUT: {0x0055: "present_value"},
    TEMPERATURE_MEASUREMENT: {0x0000: "measured_value"},
    PRESSURE_MEASUREMENT: {0x0000: "measured_value", 0x0010: "scaled_value"},
    RELATIVE_HUMIDITY: {0x0000: "measured_value"},
}


def make_report(cluster_id, endpoint_id=1, report_type=ReportType.ATTRIBUTE_REPORT, **data):
    return AttributeReport(cluster_id=cluster_id, endpoint_id=endpoint_id, data=data, type=report_type)


class FakeCluster:
    """Stand-in for a zigpy cluster: listener registry plus async requests."""

    def __init__(self, cluster_id, endpoint_id, read_result=None):
        self.cluster_id = cluster_id
        self.endpoint = SimpleNamespace(endpoint_id=endpoint_id)
        self.attributes = {
            attrid: SimpleNamespace(name=name)
            for attrid, name in ATTRIBUTE_NAMES.get(cluster_id, {}).items()
        }
        self.listeners = []
        self.read_attributes = AsyncMock(return_value=(read_result or {}, {}))
        self.write_attributes = AsyncMock(return_value=[[MagicMock(status=0)]])
        self.bind = AsyncMock(return_value=[0])
        self.configure_reporting = AsyncMock(return_value=[[MagicMock(status=0)]])

    def add_listener(self, listener):
        self.listeners.append(listener)

    def fire(self, attrid, value):
        for listener in self.listeners:
            listener.attribute_updated(attrid, value)


def make_zigpy_device(model="caelum", ieee=IEEE, read_results=None):
    """Caelum topology: EP1 sensors + power, EP2 rain gauge, EP3 sleep interval."""
    read_results = read_results or {}
    layout = {
        1: [POWER_CONFIGURATION, TEMPERATURE_MEASUREMENT, RELATIVE_HUMIDITY, PRESSURE_MEASUREMENT],
        2: [ANALOG_INPUT],
        3: [ANALOG_INPUT],
    }
    endpoints = {0: SimpleNamespace(in_clusters={}, out_clusters={})}
    for ep_id, cluster_ids in layout.items():
        clusters = {
            cid: FakeCluster(cid, ep_id, read_results.get((ep_id, cid)))
            for cid in cluster_ids
        }
        endpoints[ep_id] = SimpleNamespace(in_clusters=clusters, out_clusters={})
    return SimpleNamespace(ieee=ieee, model=model, manufacturer="ESPRESSIF", endpoints=endpoints)


@pytest.fixture
def zigpy_dev():
    return make_zigpy_device()


@pytest.fixture
def published():
    messages = []

    def callback(ieee, payload):
        messages.append((ieee, payload))

    callback.messages = messages
    return callback
