from enum import Enum
from typing import Dict, Final, Optional
import codecs

from pydantic import BaseModel, Field, field_validator


# Config files picked up from the working directory when --config is not given.
DEFAULT_CONFIG_NAMES: Final = (".unipatch.yaml", ".unipatch.yml", ".unipatch.json5")


class LogLevel(str, Enum):
    debug = "debug"
    info = "info"
    warning = "warning"
    error = "error"
    critical = "critical"
    disabled = "disabled"


class LoggingSettings(BaseModel):
    # Level for the unipatch logger if not overridden.
    default_level: LogLevel = LogLevel.warning
    # Mapping of logger name -> level override (e.g., {"unipatch": "debug"})
    enabled_loggers: Dict[str, LogLevel] = Field(default_factory=dict)


class IOSettings(BaseModel):
    """
    How the command line reads and writes files.
    - encoding/errors: used to decode patches and targets in text mode
    - binary: operate on raw bytes instead of decoded text
    - backup_suffix: when set, keep a copy of every overwritten file
    """

    encoding: str = "utf-8"
    errors: str = "strict"
    binary: bool = False
    backup_suffix: Optional[str] = None

    @field_validator("encoding")
    @classmethod
    def _validate_encoding(cls, v: str) -> str:
        try:
            codecs.lookup(v)
        except LookupError as exc:
            raise ValueError(f"Unknown encoding {v!r}") from exc
        return v


class Settings(BaseModel):
    logging: Optional[LoggingSettings] = Field(default=None)
    io: IOSettings = Field(default_factory=IOSettings)
    # Leading path components removed from patch labels (patch -p).
    strip: int = Field(default=1, ge=0)
