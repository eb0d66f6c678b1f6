"""
Caelum weather station converters.

The station reports rainfall through a generic Analog Input cluster on its
rain gauge endpoint (EP2); EP3 carries the same cluster for the sleep
interval, so the endpoint is what tells them apart.

Two firmware generations are in the field:
  - A: rainfall in whole millimetres, battery through the standard
    Power Configuration decoding.
  - B: rainfall in hundredths of a millimetre, battery decoded here because
    the firmware reports voltage in 100 mV units and percentage on the
    0-200 half-percent scale.
"""
import logging
from typing import Optional

from .base import (
    ANALOG_INPUT,
    POWER_CONFIGURATION,
    AttributeReport,
    Decoded,
    converter,
    round_half_away,
)

logger = logging.getLogger("handlers.caelum")

RAIN_GAUGE_ENDPOINT = 2

ATTR_PRESENT_VALUE = "present_value"
ATTR_BATTERY_VOLTAGE = "battery_voltage"
ATTR_BATTERY_PERCENTAGE = "battery_percentage_remaining"

# 100 mV wire units -> 1 mV
DECIVOLT_TO_MILLIVOLT = 100
# 0-200 on the wire -> 0-100 %
HALF_PERCENT_STEPS = 2


@converter(ANALOG_INPUT, endpoints=(RAIN_GAUGE_ENDPOINT,), name="caelum_rainfall_mm")
def rainfall_mm(report: AttributeReport) -> Optional[Decoded]:
    """Firmware A: present_value is already whole millimetres."""
    if ATTR_PRESENT_VALUE not in report.data:
        return None
    raw = report.data[ATTR_PRESENT_VALUE]
    rainfall = round_half_away(raw)
    logger.debug(f"Rainfall: {rainfall} mm (raw: {raw})")
    return {"rainfall": rainfall}


@converter(ANALOG_INPUT, endpoints=(RAIN_GAUGE_ENDPOINT,), name="caelum_rainfall_centi_mm")
def rainfall_centi_mm(report: AttributeReport) -> Optional[Decoded]:
    """Firmware B: keep two decimals of the reported rainfall."""
    if ATTR_PRESENT_VALUE not in report.data:
        return None
    raw = report.data[ATTR_PRESENT_VALUE]
    rainfall = round_half_away(raw * 100) / 100
    logger.debug(f"Rainfall: {rainfall} mm (raw: {raw})")
    return {"rainfall": rainfall}


@converter(POWER_CONFIGURATION, name="caelum_battery")
def battery(report: AttributeReport) -> Decoded:
    """
    Firmware B battery decoding.

    Owns the whole Power Configuration cluster: a report with neither
    attribute yields an empty reading rather than falling through.
    """
    result: Decoded = {}

    if ATTR_BATTERY_VOLTAGE in report.data:
        raw = report.data[ATTR_BATTERY_VOLTAGE]
        result["voltage"] = raw * DECIVOLT_TO_MILLIVOLT
        logger.debug(f"Battery voltage: {result['voltage']} mV (raw: {raw})")

    if ATTR_BATTERY_PERCENTAGE in report.data:
        raw = report.data[ATTR_BATTERY_PERCENTAGE]
        result["battery"] = round_half_away(raw / HALF_PERCENT_STEPS)
        logger.debug(f"Battery: {result['battery']}% (raw: {raw})")

    return result
