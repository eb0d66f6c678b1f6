"""
Zigbee Converters Package
"""
import logging

logger = logging.getLogger("handlers")

# Import base infrastructure FIRST
from .base import (
    AttributeReport,
    ReportType,
    Converter,
    ConverterChain,
    ClusterListener,
    CONVERTER_REGISTRY,
    converter,
    round_half_away,
)

# Import converter modules to trigger registration decorators
from . import sensors
from . import caelum

from .sensors import STANDARD_CONVERTERS, get_standard_converter

# Public API
__all__ = [
    # Base
    "AttributeReport",
    "ReportType",
    "Converter",
    "ConverterChain",
    "ClusterListener",
    "CONVERTER_REGISTRY",
    "converter",
    "round_half_away",

    # Standard capabilities
    "STANDARD_CONVERTERS",
    "get_standard_converter",

    # Modules
    "caelum",
    "sensors",
]


def get_converter(name: str) -> Converter:
    """Get a registered converter by name."""
    return CONVERTER_REGISTRY[name]


logger.info(f"Loaded {len(CONVERTER_REGISTRY)} converters")

if logger.isEnabledFor(logging.DEBUG):
    for name, conv in sorted(CONVERTER_REGISTRY.items()):
        logger.debug(f"  {name}: cluster 0x{conv.cluster_id:04X} endpoints={conv.endpoints or 'any'}")
