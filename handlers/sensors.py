"""
Standard capability converters.

These are the host-side decoders for the standard measurement clusters. A
device definition lists the capabilities it exposes verbatim; their
converters run after the device's own converters have declined a report.
"""
import logging
from typing import Dict, Optional

from .base import (
    POWER_CONFIGURATION,
    PRESSURE_MEASUREMENT,
    RELATIVE_HUMIDITY,
    TEMPERATURE_MEASUREMENT,
    AttributeReport,
    Converter,
    Decoded,
    converter,
    round_half_away,
)

logger = logging.getLogger("handlers.sensors")

ATTR_MEASURED_VALUE = "measured_value"
ATTR_SCALED_VALUE = "scaled_value"
ATTR_BATTERY_VOLTAGE = "battery_voltage"
ATTR_BATTERY_PERCENTAGE = "battery_percentage_remaining"


# ============================================================
# TEMPERATURE MEASUREMENT CLUSTER (0x0402)
# ============================================================
@converter(TEMPERATURE_MEASUREMENT, name="temperature")
def temperature(report: AttributeReport) -> Optional[Decoded]:
    if ATTR_MEASURED_VALUE not in report.data:
        return None
    # Reported in 0.01 C steps
    value = round(report.data[ATTR_MEASURED_VALUE] / 100, 2)
    logger.debug(f"Temperature: {value} C")
    return {"temperature": value}


# ============================================================
# RELATIVE HUMIDITY CLUSTER (0x0405)
# ============================================================
@converter(RELATIVE_HUMIDITY, name="humidity")
def humidity(report: AttributeReport) -> Optional[Decoded]:
    if ATTR_MEASURED_VALUE not in report.data:
        return None
    value = round(report.data[ATTR_MEASURED_VALUE] / 100, 2)
    logger.debug(f"Humidity: {value}%")
    return {"humidity": value}


# ============================================================
# PRESSURE MEASUREMENT CLUSTER (0x0403)
# ============================================================
@converter(PRESSURE_MEASUREMENT, name="pressure")
def pressure(report: AttributeReport) -> Optional[Decoded]:
    # scaled_value is in 0.1 hPa when present; prefer it for the extra digit
    if ATTR_SCALED_VALUE in report.data:
        value = round(report.data[ATTR_SCALED_VALUE] / 10, 1)
    elif ATTR_MEASURED_VALUE in report.data:
        value = float(report.data[ATTR_MEASURED_VALUE])
    else:
        return None
    logger.debug(f"Pressure: {value} hPa")
    return {"pressure": value}


# ============================================================
# POWER CONFIGURATION CLUSTER (0x0001)
# ============================================================
@converter(POWER_CONFIGURATION, name="battery")
def battery(report: AttributeReport) -> Optional[Decoded]:
    """
    Standard battery decoding.
    Voltage is in 100 mV units, percentage is 0-200 (0.5% steps).
    """
    result: Decoded = {}
    if ATTR_BATTERY_VOLTAGE in report.data:
        result["voltage"] = report.data[ATTR_BATTERY_VOLTAGE] * 100
    if ATTR_BATTERY_PERCENTAGE in report.data:
        percentage = round_half_away(report.data[ATTR_BATTERY_PERCENTAGE] / 2)
        result["battery"] = max(0, min(100, percentage))
    if not result:
        return None
    logger.debug(f"Battery: {result}")
    return result


STANDARD_CONVERTERS: Dict[str, Converter] = {
    "temperature": temperature,
    "humidity": humidity,
    "pressure": pressure,
    "battery": battery,
}


def get_standard_converter(capability: str) -> Converter:
    """Look up the host converter for a standard capability name."""
    try:
        return STANDARD_CONVERTERS[capability]
    except KeyError:
        raise ValueError(f"Unknown standard capability: {capability!r}") from None
