from .models import IOSettings, LogLevel, LoggingSettings, Settings
from .loader import find_settings_file, load_settings

__all__ = [
    "IOSettings",
    "LogLevel",
    "LoggingSettings",
    "Settings",
    "find_settings_file",
    "load_settings",
]
