"""
Exceptions raised on the outbound (write) side.

Decoding never raises: an unrecognised or partial report is simply not
handled. Only writes and definition lookups can fail.
"""
from typing import Any, Optional


class CaelumError(Exception):
    """Base class for all errors raised by this package."""
    pass


class UnsupportedDevice(CaelumError):
    """Raised when no device definition matches a model or revision."""
    pass


class UnknownSetting(CaelumError, KeyError):
    """Raised when a write names a setting the definition does not declare."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown setting: {self.name!r}"


class SettingNotWritable(CaelumError):
    """Raised when a write targets a read-only value."""

    def __init__(self, name: str):
        super().__init__(f"Setting {name!r} is read-only")
        self.name = name


class ValueOutOfRange(CaelumError, ValueError):
    """Raised before transmission when a value falls outside the declared range."""

    def __init__(self, name: str, value: Any, value_min: Optional[float], value_max: Optional[float]):
        self.name = name
        self.value = value
        self.value_min = value_min
        self.value_max = value_max
        super().__init__(
            f"Value {value} for {name!r} is out of range "
            f"[{'-inf' if value_min is None else value_min}, "
            f"{'inf' if value_max is None else value_max}]"
        )
