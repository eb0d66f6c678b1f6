"""
Converter infrastructure for attribute reports.

An inbound report is offered to an ordered chain of converters. The first
converter that recognizes the (cluster, endpoint, attribute) combination
returns a decoded reading and the chain stops; a converter that does not
recognize the report returns None so the next one (or the standard path)
gets a go.

The zigpy listener at the bottom turns cluster callbacks into
AttributeReport records and hands them to the owning device.
"""
import asyncio
import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from zigpy.zcl.clusters.general import AnalogInput, PowerConfiguration
from zigpy.zcl.clusters.measurement import (
    PressureMeasurement,
    RelativeHumidity,
    TemperatureMeasurement,
)

logger = logging.getLogger("handlers.base")

# Cluster IDs
POWER_CONFIGURATION = PowerConfiguration.cluster_id  # 0x0001
ANALOG_INPUT = AnalogInput.cluster_id  # 0x000C
TEMPERATURE_MEASUREMENT = TemperatureMeasurement.cluster_id  # 0x0402
PRESSURE_MEASUREMENT = PressureMeasurement.cluster_id  # 0x0403
RELATIVE_HUMIDITY = RelativeHumidity.cluster_id  # 0x0405

CLUSTER_NAMES = {
    POWER_CONFIGURATION: "PowerConfiguration",
    ANALOG_INPUT: "AnalogInput",
    TEMPERATURE_MEASUREMENT: "TemperatureMeasurement",
    PRESSURE_MEASUREMENT: "PressureMeasurement",
    RELATIVE_HUMIDITY: "RelativeHumidity",
}

# Attributes read back when a device is polled
POLLABLE_ATTRIBUTES: Dict[int, Tuple[str, ...]] = {
    POWER_CONFIGURATION: ("battery_voltage", "battery_percentage_remaining"),
    ANALOG_INPUT: ("present_value",),
    TEMPERATURE_MEASUREMENT: ("measured_value",),
    PRESSURE_MEASUREMENT: ("measured_value",),
    RELATIVE_HUMIDITY: ("measured_value",),
}

Decoded = Dict[str, Any]


def cluster_name(cluster_id: int) -> str:
    return CLUSTER_NAMES.get(cluster_id, f"0x{cluster_id:04X}")


def round_half_away(value: Any) -> Any:
    """
    Round to the nearest integer, halves away from zero.

    Python's round() uses banker's rounding (round(0.5) == 0), which would
    under-report values sitting exactly on a half step. inf and nan come
    back unchanged.
    """
    if isinstance(value, float) and not math.isfinite(value):
        return value
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _unwrap(value: Any) -> Any:
    # zigpy wraps some attribute values (enums, TypeValue)
    if hasattr(value, "value") and not isinstance(value, (int, float, str, bytes)):
        return value.value
    return value


# ============================================================
# ATTRIBUTE REPORT
# ============================================================

class ReportType(Enum):
    ATTRIBUTE_REPORT = "attributeReport"
    READ_RESPONSE = "readResponse"


@dataclass(frozen=True)
class AttributeReport:
    """One inbound message: a cluster on an endpoint plus its raw attribute values."""
    cluster_id: int
    endpoint_id: int
    data: Mapping[str, Any]
    type: ReportType = ReportType.ATTRIBUTE_REPORT

    def __post_init__(self):
        frozen = MappingProxyType({k: _unwrap(v) for k, v in dict(self.data).items()})
        object.__setattr__(self, "data", frozen)

    @property
    def cluster_name(self) -> str:
        return cluster_name(self.cluster_id)

    def __str__(self) -> str:
        return (
            f"{self.cluster_name} EP{self.endpoint_id} "
            f"{self.type.value} {dict(self.data)}"
        )


# ============================================================
# CONVERTERS
# ============================================================

CONVERTER_REGISTRY: Dict[str, "Converter"] = {}


@dataclass(frozen=True)
class Converter:
    """
    A (predicate, decode) pair.

    The predicate is the cluster/endpoint/report-type match; decode runs only
    when it holds and may still return None if the payload lacks the
    attribute it needs.
    """
    name: str
    cluster_id: int
    decode: Callable[[AttributeReport], Optional[Decoded]] = field(repr=False)
    endpoints: Tuple[int, ...] = ()
    report_types: Tuple[ReportType, ...] = (ReportType.ATTRIBUTE_REPORT, ReportType.READ_RESPONSE)

    def matches(self, report: AttributeReport) -> bool:
        if report.cluster_id != self.cluster_id:
            return False
        if self.endpoints and report.endpoint_id not in self.endpoints:
            return False
        return report.type in self.report_types

    def convert(self, report: AttributeReport) -> Optional[Decoded]:
        if not self.matches(report):
            return None
        return self.decode(report)

    def __call__(self, report: AttributeReport) -> Optional[Decoded]:
        return self.convert(report)


def converter(cluster_id: int, endpoints: Iterable[int] = (), name: Optional[str] = None):
    """Decorator turning a decode function into a registered Converter."""
    def decorator(func):
        conv = Converter(
            name=name or func.__name__,
            cluster_id=cluster_id,
            decode=func,
            endpoints=tuple(endpoints),
        )
        CONVERTER_REGISTRY[conv.name] = conv
        logger.debug(f"Registered converter {conv.name} for cluster {cluster_name(cluster_id)}")
        return conv
    return decorator


class ConverterChain:
    """Ordered, immutable list of converters. First non-None result wins."""

    def __init__(self, converters: Iterable[Converter] = ()):
        self._converters: Tuple[Converter, ...] = tuple(converters)

    def __iter__(self) -> Iterator[Converter]:
        return iter(self._converters)

    def __len__(self) -> int:
        return len(self._converters)

    def __add__(self, other: "ConverterChain") -> "ConverterChain":
        return ConverterChain(self._converters + tuple(other))

    def __repr__(self) -> str:
        return f"ConverterChain({[c.name for c in self._converters]})"

    @property
    def cluster_ids(self) -> List[int]:
        seen = []
        for conv in self._converters:
            if conv.cluster_id not in seen:
                seen.append(conv.cluster_id)
        return seen

    def decode(self, report: AttributeReport) -> Optional[Decoded]:
        for conv in self._converters:
            result = conv.convert(report)
            if result is not None:
                logger.debug(f"{report} handled by {conv.name} -> {result}")
                return result
        return None


# ============================================================
# ZIGPY LISTENER
# ============================================================

class ClusterListener:
    """
    Subscribes to a zigpy cluster and forwards every attribute update to the
    owning device as an AttributeReport.
    """

    def __init__(self, device, cluster):
        self.device = device
        self.cluster = cluster
        self.endpoint_id = cluster.endpoint.endpoint_id
        self.cluster_id = cluster.cluster_id
        self.cluster.add_listener(self)
        logger.info(
            f"[{self.device.ieee}] EP{self.endpoint_id} - "
            f"Listener registered for {cluster_name(self.cluster_id)}"
        )

    def get_attr_name(self, attrid: int) -> str:
        attr_def = getattr(self.cluster, "attributes", {}).get(attrid)
        if attr_def is not None:
            return attr_def.name
        return f"attr_0x{attrid:04x}"

    def get_pollable_attributes(self) -> Tuple[str, ...]:
        return POLLABLE_ATTRIBUTES.get(self.cluster_id, ())

    def attribute_updated(self, attrid: int, value: Any, timestamp: Optional[float] = None):
        """Called by zigpy for each attribute in an inbound report."""
        attr_name = self.get_attr_name(attrid)
        logger.debug(
            f"[{self.device.ieee}] {cluster_name(self.cluster_id)} EP{self.endpoint_id} "
            f"attribute_updated {attr_name}={value}"
        )
        report = AttributeReport(
            cluster_id=self.cluster_id,
            endpoint_id=self.endpoint_id,
            data={attr_name: value},
            type=ReportType.ATTRIBUTE_REPORT,
        )
        try:
            self.device.handle_report(report)
        except Exception as e:
            # zigpy dispatches listener events synchronously; never let the host break the radio loop
            logger.error(f"[{self.device.ieee}] Error processing {report}: {e}")

    def cluster_command(self, tsn: int, command_id: int, args):
        logger.debug(
            f"[{self.device.ieee}] {cluster_name(self.cluster_id)} cluster_command "
            f"tsn={tsn}, cmd=0x{command_id:02X}, args={args}"
        )

    def general_command(self, hdr, args):
        logger.debug(f"[{self.device.ieee}] general_command: hdr={hdr}, args={args}")

    async def poll(self, timeout: float = 5.0) -> Optional[AttributeReport]:
        """Read the pollable attributes in one request and wrap them as a read response."""
        attributes = list(self.get_pollable_attributes())
        if not attributes:
            return None

        async with asyncio.timeout(timeout):
            success, failure = await self.cluster.read_attributes(attributes)

        if failure:
            logger.debug(f"[{self.device.ieee}] Unsupported attributes on EP{self.endpoint_id}: {failure}")

        values = {k: v for k, v in success.items() if v is not None}
        if not values:
            return None
        return AttributeReport(
            cluster_id=self.cluster_id,
            endpoint_id=self.endpoint_id,
            data=values,
            type=ReportType.READ_RESPONSE,
        )
