import math

import pytest

from conftest import make_report
from handlers import caelum
from handlers.base import ANALOG_INPUT, POWER_CONFIGURATION, TEMPERATURE_MEASUREMENT, ReportType


# ============================================================
# RAINFALL - FIRMWARE A (whole mm)
# ============================================================

@pytest.mark.parametrize("raw", [0, 1, 7, 250, 10000, 123456])
def test_rainfall_mm_integers_pass_through(raw):
    report = make_report(ANALOG_INPUT, endpoint_id=2, present_value=raw)
    assert caelum.rainfall_mm(report) == {"rainfall": raw}


@pytest.mark.parametrize("raw, expected", [(12.4, 12), (12.5, 13), (12.6, 13), (2.5, 3), (0.49999, 0)])
def test_rainfall_mm_rounds_transport_noise(raw, expected):
    report = make_report(ANALOG_INPUT, endpoint_id=2, present_value=raw)
    result = caelum.rainfall_mm(report)
    assert result == {"rainfall": expected}
    assert isinstance(result["rainfall"], int)


def test_rainfall_mm_out_of_range_is_still_decoded():
    report = make_report(ANALOG_INPUT, endpoint_id=2, present_value=-3)
    assert caelum.rainfall_mm(report) == {"rainfall": -3}


@pytest.mark.parametrize("conv", [caelum.rainfall_mm, caelum.rainfall_centi_mm])
@pytest.mark.parametrize("raw", [float("inf"), float("-inf")])
def test_rainfall_infinite_value_is_decoded(conv, raw):
    report = make_report(ANALOG_INPUT, endpoint_id=2, present_value=raw)
    assert conv(report) == {"rainfall": raw}


@pytest.mark.parametrize("conv", [caelum.rainfall_mm, caelum.rainfall_centi_mm])
def test_rainfall_nan_is_decoded(conv):
    report = make_report(ANALOG_INPUT, endpoint_id=2, present_value=float("nan"))
    assert math.isnan(conv(report)["rainfall"])


# ============================================================
# RAINFALL - FIRMWARE B (hundredths of mm)
# ============================================================

@pytest.mark.parametrize("raw, expected", [
    (12.344, 12.34),
    (12.346, 12.35),
    (0, 0),
    (5, 5),
    (0.01, 0.01),
    (9999.999, 10000),
])
def test_rainfall_centi_mm_keeps_two_decimals(raw, expected):
    report = make_report(ANALOG_INPUT, endpoint_id=2, present_value=raw)
    assert caelum.rainfall_centi_mm(report) == {"rainfall": expected}


def test_rainfall_read_response_is_handled():
    report = make_report(ANALOG_INPUT, endpoint_id=2, report_type=ReportType.READ_RESPONSE, present_value=3)
    assert caelum.rainfall_centi_mm(report) == {"rainfall": 3}


@pytest.mark.parametrize("conv", [caelum.rainfall_mm, caelum.rainfall_centi_mm])
@pytest.mark.parametrize("endpoint_id", [1, 3, 4])
def test_rainfall_ignores_other_endpoints(conv, endpoint_id):
    report = make_report(ANALOG_INPUT, endpoint_id=endpoint_id, present_value=42)
    assert conv(report) is None


@pytest.mark.parametrize("conv", [caelum.rainfall_mm, caelum.rainfall_centi_mm])
def test_rainfall_ignores_other_clusters(conv):
    report = make_report(TEMPERATURE_MEASUREMENT, endpoint_id=2, present_value=42)
    assert conv(report) is None


@pytest.mark.parametrize("conv", [caelum.rainfall_mm, caelum.rainfall_centi_mm])
def test_rainfall_without_present_value_is_not_handled(conv):
    report = make_report(ANALOG_INPUT, endpoint_id=2, status_flags=0)
    assert conv(report) is None


# ============================================================
# BATTERY - FIRMWARE B
# ============================================================

@pytest.mark.parametrize("raw, expected", [(41, 4100), (0, 0), (-1, -100), (30, 3000)])
def test_battery_voltage_decivolt_to_millivolt(raw, expected):
    report = make_report(POWER_CONFIGURATION, battery_voltage=raw)
    assert caelum.battery(report) == {"voltage": expected}


@pytest.mark.parametrize("raw, expected", [(200, 100), (199, 100), (0, 0), (1, 1), (150, 75), (3, 2)])
def test_battery_percentage_rounds_half_away_from_zero(raw, expected):
    report = make_report(POWER_CONFIGURATION, battery_percentage_remaining=raw)
    assert caelum.battery(report) == {"battery": expected}


def test_battery_percentage_is_not_clamped():
    report = make_report(POWER_CONFIGURATION, battery_percentage_remaining=255)
    assert caelum.battery(report) == {"battery": 128}


def test_battery_both_fields():
    report = make_report(POWER_CONFIGURATION, battery_voltage=30, battery_percentage_remaining=150)
    assert caelum.battery(report) == {"voltage": 3000, "battery": 75}


def test_battery_owns_cluster_even_without_known_fields():
    report = make_report(POWER_CONFIGURATION, battery_size=3)
    assert caelum.battery(report) == {}


def test_battery_on_any_endpoint():
    report = make_report(POWER_CONFIGURATION, endpoint_id=3, battery_voltage=33)
    assert caelum.battery(report) == {"voltage": 3300}
