"""
Caelum Device Definitions
=========================
Static, declarative description of the Caelum weather station for each
firmware revision: identity, endpoint topology, which capabilities use the
standard converters, which use our own, the numeric settings with their
wire binding, reporting thresholds and valid range, and the exposure
records published for values the standard capabilities do not cover.

Definitions are built once at import time and never mutated. Everything
that consumes them (decoding, write validation, reporting configuration,
discovery) only reads.
"""
import logging
import math
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from exceptions import SettingNotWritable, UnknownSetting, UnsupportedDevice, ValueOutOfRange
from handlers import caelum
from handlers.base import (
    ANALOG_INPUT,
    POWER_CONFIGURATION,
    AttributeReport,
    Converter,
    ConverterChain,
    Decoded,
)
from handlers.sensors import get_standard_converter

logger = logging.getLogger("device_definitions")


class FirmwareRevision(Enum):
    """Firmware generation of the station; selects converters and descriptors."""
    A = "a"  # integer mm rainfall, standard battery
    B = "b"  # centi-mm rainfall, custom battery decoding


class Access(IntFlag):
    """Access bits for published values."""
    STATE = 1
    SET = 2
    GET = 4
    STATE_SET = STATE | SET
    STATE_GET = STATE | GET
    ALL = STATE | SET | GET


# Symbolic reporting intervals in seconds. MIN and MAX ask the device for
# the protocol defaults.
REPORTING_INTERVALS = {
    "MIN": 0,
    "1_SECOND": 1,
    "5_SECONDS": 5,
    "10_SECONDS": 10,
    "1_MINUTE": 60,
    "2_MINUTES": 120,
    "5_MINUTES": 300,
    "30_MINUTES": 1800,
    "1_HOUR": 3600,
    "4_HOURS": 14400,
    "MAX": 65000,
}

Interval = Union[int, str]


def resolve_interval(interval: Interval) -> int:
    if isinstance(interval, str):
        try:
            return REPORTING_INTERVALS[interval]
        except KeyError:
            raise ValueError(f"Unknown reporting interval: {interval!r}") from None
    return int(interval)


@dataclass(frozen=True)
class Reporting:
    """Reporting thresholds: min/max interval and the minimum change worth a report."""
    min: Interval = "MIN"
    max: Interval = "MAX"
    change: float = 1

    @property
    def min_interval(self) -> int:
        return resolve_interval(self.min)

    @property
    def max_interval(self) -> int:
        return resolve_interval(self.max)


@dataclass(frozen=True)
class ReportingBinding:
    endpoint_id: int
    cluster_id: int
    attribute: str
    reporting: Reporting


@dataclass(frozen=True)
class WriteCommand:
    """What the host sends for a validated setting write."""
    endpoint_id: int
    cluster_id: int
    attribute: str
    value: Any


@dataclass(frozen=True)
class NumericExpose:
    """External schema record for one published numeric value."""
    name: str
    property: str
    description: str
    unit: str = ""
    access: Access = Access.STATE
    value_min: Optional[float] = None
    value_max: Optional[float] = None
    type: str = "numeric"

    def to_dict(self) -> Dict[str, Any]:
        record = {
            "type": self.type,
            "name": self.name,
            "property": self.property,
            "description": self.description,
            "access": int(self.access),
        }
        if self.unit:
            record["unit"] = self.unit
        if self.value_min is not None:
            record["value_min"] = self.value_min
        if self.value_max is not None:
            record["value_max"] = self.value_max
        return record


@dataclass(frozen=True)
class NumericSetting:
    """
    A numeric value bound to one cluster attribute.

    Settable ones are written through the same binding; the range is
    inclusive and checked before anything is sent to the device.
    """
    name: str
    cluster_id: int
    attribute: str
    description: str
    unit: str = ""
    access: Access = Access.STATE_SET
    endpoint_names: Tuple[str, ...] = ()
    reporting: Optional[Reporting] = None
    value_min: Optional[float] = None
    value_max: Optional[float] = None

    @property
    def writable(self) -> bool:
        return bool(self.access & Access.SET)

    def is_valid(self, value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if isinstance(value, float) and not math.isfinite(value):
            return False
        if self.value_min is not None and value < self.value_min:
            return False
        if self.value_max is not None and value > self.value_max:
            return False
        return True

    def validate(self, value: Any) -> Any:
        if not self.writable:
            raise SettingNotWritable(self.name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"{self.name} expects a number, got {type(value).__name__}")
        if not self.is_valid(value):
            raise ValueOutOfRange(self.name, value, self.value_min, self.value_max)
        return value

    def decode(self, report: AttributeReport) -> Optional[Decoded]:
        if self.attribute not in report.data:
            return None
        return {self.name: report.data[self.attribute]}

    def to_expose(self) -> NumericExpose:
        return NumericExpose(
            name=self.name,
            property=self.name,
            description=self.description,
            unit=self.unit,
            access=self.access,
            value_min=self.value_min,
            value_max=self.value_max,
        )


# Schema records the host generates on its own for standard capabilities
STANDARD_EXPOSES: Mapping[str, NumericExpose] = MappingProxyType({
    "temperature": NumericExpose("temperature", "temperature", "Measured temperature value", "°C", Access.STATE_GET),
    "humidity": NumericExpose("humidity", "humidity", "Measured relative humidity", "%", Access.STATE_GET),
    "pressure": NumericExpose("pressure", "pressure", "The measured atmospheric pressure", "hPa", Access.STATE_GET),
    "battery": NumericExpose("battery", "battery", "Remaining battery in %", "%", Access.STATE_GET, 0, 100),
})


@dataclass(frozen=True)
class DeviceDefinition:
    revision: FirmwareRevision
    zigbee_models: Tuple[str, ...]
    model: str
    vendor: str
    description: str
    endpoints: Mapping[str, int]
    roles: Mapping[str, int]
    standard: Tuple[str, ...] = ()
    converters: ConverterChain = field(default_factory=ConverterChain)
    numerics: Tuple[NumericSetting, ...] = ()
    custom_exposes: Tuple[NumericExpose, ...] = ()
    extra_reporting: Tuple[ReportingBinding, ...] = ()
    ota: bool = False
    _standard_chain: ConverterChain = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "endpoints", MappingProxyType(dict(self.endpoints)))
        object.__setattr__(self, "roles", MappingProxyType(dict(self.roles)))

        for numeric in self.numerics:
            for ep_name in numeric.endpoint_names:
                if ep_name not in self.endpoints:
                    raise ValueError(f"{numeric.name}: unknown endpoint {ep_name!r}")

        standard = [get_standard_converter(cap) for cap in self.standard]
        standard.extend(self._numeric_converter(n) for n in self.numerics)
        object.__setattr__(self, "_standard_chain", ConverterChain(standard))

    def _numeric_converter(self, numeric: NumericSetting) -> Converter:
        return Converter(
            name=f"numeric_{numeric.name}",
            cluster_id=numeric.cluster_id,
            decode=numeric.decode,
            endpoints=self.endpoint_ids(numeric),
        )

    # ================================================================
    # DECODING
    # ================================================================

    @property
    def standard_chain(self) -> ConverterChain:
        return self._standard_chain

    @property
    def cluster_ids(self) -> List[int]:
        return (self.converters + self._standard_chain).cluster_ids

    def decode(self, report: AttributeReport) -> Optional[Decoded]:
        """
        Device converters first, then the standard ones. None means nothing
        recognised the report.
        """
        result = self.converters.decode(report)
        if result is not None:
            return result
        return self._standard_chain.decode(report)

    # ================================================================
    # SETTINGS
    # ================================================================

    def endpoint_ids(self, numeric: NumericSetting) -> Tuple[int, ...]:
        return tuple(self.endpoints[name] for name in numeric.endpoint_names)

    def get_setting(self, name: str) -> NumericSetting:
        for numeric in self.numerics:
            if numeric.name == name:
                return numeric
        raise UnknownSetting(name)

    def build_write(self, name: str, value: Any) -> WriteCommand:
        """Validate a write and bind it to its endpoint, cluster and attribute."""
        numeric = self.get_setting(name)
        numeric.validate(value)
        endpoint_ids = self.endpoint_ids(numeric)
        endpoint_id = endpoint_ids[0] if endpoint_ids else self.roles["primary"]
        return WriteCommand(
            endpoint_id=endpoint_id,
            cluster_id=numeric.cluster_id,
            attribute=numeric.attribute,
            value=value,
        )

    def reporting_bindings(self) -> List[ReportingBinding]:
        bindings = []
        for numeric in self.numerics:
            if numeric.reporting is None:
                continue
            for endpoint_id in self.endpoint_ids(numeric) or (self.roles["primary"],):
                bindings.append(ReportingBinding(endpoint_id, numeric.cluster_id, numeric.attribute, numeric.reporting))
        bindings.extend(self.extra_reporting)
        return bindings

    # ================================================================
    # EXPOSURE
    # ================================================================

    def exposes(self) -> List[NumericExpose]:
        """Everything published externally, standard entries first."""
        records = [STANDARD_EXPOSES[cap] for cap in self.standard]
        records.extend(n.to_expose() for n in self.numerics)
        records.extend(self.custom_exposes)
        return records


# ============================================================
# CAELUM
# ============================================================

CAELUM_ENDPOINTS = {"1": 1, "2": 2, "3": 3}
CAELUM_ROLES = {"primary": 1, "rain_gauge": 2, "sleep_config": 3}

SLEEP_DURATION = NumericSetting(
    name="sleep_duration",
    cluster_id=ANALOG_INPUT,
    attribute="present_value",
    reporting=Reporting(min="MIN", max="MAX", change=1),
    description="Deep sleep interval (seconds)",
    unit="s",
    access=Access.STATE_SET,
    endpoint_names=("3",),
    value_min=60,
    value_max=7200,
)

RAINFALL = NumericSetting(
    name="rainfall",
    cluster_id=ANALOG_INPUT,
    attribute="present_value",
    reporting=Reporting(min="MIN", max="MAX", change=1),
    description="Cumulative rainfall (mm)",
    unit="mm",
    access=Access.STATE,
    endpoint_names=("2",),
    value_min=0,
    value_max=10000,
)

BATTERY_EXPOSE = NumericExpose(
    name="battery",
    property="battery",
    description="Remaining battery in %",
    unit="%",
    access=Access.STATE,
    value_min=0,
    value_max=100,
)

VOLTAGE_EXPOSE = NumericExpose(
    name="voltage",
    property="voltage",
    description="Voltage of the battery in millivolts",
    unit="mV",
    access=Access.STATE,
)

_IDENTITY = dict(
    zigbee_models=("caelum",),
    model="caelum",
    vendor="ESPRESSIF",
    description="Caelum - Battery-powered Zigbee weather station with rain gauge",
    endpoints=CAELUM_ENDPOINTS,
    roles=CAELUM_ROLES,
    ota=True,
)

CAELUM_A = DeviceDefinition(
    revision=FirmwareRevision.A,
    standard=("temperature", "humidity", "pressure", "battery"),
    converters=ConverterChain([caelum.rainfall_mm]),
    numerics=(SLEEP_DURATION,),
    **_IDENTITY,
)

CAELUM_B = DeviceDefinition(
    revision=FirmwareRevision.B,
    standard=("temperature", "humidity", "pressure"),
    converters=ConverterChain([caelum.rainfall_centi_mm, caelum.battery]),
    numerics=(RAINFALL, SLEEP_DURATION),
    custom_exposes=(BATTERY_EXPOSE, VOLTAGE_EXPOSE),
    extra_reporting=(
        ReportingBinding(1, POWER_CONFIGURATION, "battery_percentage_remaining", Reporting("1_HOUR", 21600, 2)),
        ReportingBinding(1, POWER_CONFIGURATION, "battery_voltage", Reporting("1_HOUR", 21600, 1)),
    ),
    **_IDENTITY,
)

DEFINITIONS: Mapping[FirmwareRevision, DeviceDefinition] = MappingProxyType({
    FirmwareRevision.A: CAELUM_A,
    FirmwareRevision.B: CAELUM_B,
})


def get_definition(revision: Union[FirmwareRevision, str]) -> DeviceDefinition:
    if isinstance(revision, str):
        try:
            revision = FirmwareRevision(revision.strip().lower())
        except ValueError:
            raise UnsupportedDevice(f"Unknown firmware revision: {revision!r}") from None
    return DEFINITIONS[revision]


def find_definition(model: Optional[str], revision: Union[FirmwareRevision, str]) -> DeviceDefinition:
    """Match a zigpy model string against the definitions for one revision."""
    definition = get_definition(revision)
    if str(model or "").strip() not in definition.zigbee_models:
        raise UnsupportedDevice(f"No definition for model {model!r}")
    logger.debug(f"Model {model} -> {definition.model} revision {definition.revision.name}")
    return definition


def decode_report(report: AttributeReport, definition: DeviceDefinition) -> Optional[Decoded]:
    return definition.decode(report)
