"""
Configuration for the Caelum converter, loaded from config/config.yaml.

Example:

    revision: b
    write_timeout: 5
    devices:
      "00:12:4b:00:1c:aa:bb:cc": a
    logging:
      level: INFO
      file: logs/caelum.log
"""
import logging
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from device_definitions import FirmwareRevision
from yaml_loader import load_yaml_config

logger = logging.getLogger("config")

DEFAULT_CONFIG_PATH = Path("./config/config.yaml")


def _normalise_revision(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Optional[str] = "logs/caelum.log"
    max_bytes: int = 1024 * 1024
    backup_count: int = 3


class CaelumConfig(BaseModel):
    revision: FirmwareRevision = FirmwareRevision.B
    devices: Dict[str, FirmwareRevision] = Field(default_factory=dict)
    write_timeout: float = Field(default=5.0, gt=0)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("revision", mode="before")
    @classmethod
    def _revision(cls, value):
        return _normalise_revision(value)

    @field_validator("devices", mode="before")
    @classmethod
    def _devices(cls, value):
        if not value:
            return {}
        return {str(ieee).lower(): _normalise_revision(rev) for ieee, rev in value.items()}

    def revision_for(self, ieee: str) -> FirmwareRevision:
        """Per-device override, else the default revision."""
        return self.devices.get(str(ieee).lower(), self.revision)


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> CaelumConfig:
    """Load and validate the YAML config; a missing file gives the defaults."""
    if not path.exists():
        logger.info(f"No config found at {path} - using defaults")
        return CaelumConfig()

    data = load_yaml_config(path)
    config = CaelumConfig(**data)
    logger.info(
        f"Loaded config from {path}: default revision {config.revision.name}, "
        f"{len(config.devices)} device overrides"
    )
    return config
