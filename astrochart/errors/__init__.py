"""
Error classification for the event overlay core.

Structured exception hierarchy for data quality problems in raw event
records, system failures in plugins and configuration, and recoverable
fetch failures.
"""

from .data_quality import (
    DataQualityError,
    TemporalDataError,
    MissingDataError,
    MalformedDataError,
)
from .system_failures import (
    SystemFailureError,
    PluginError,
    ManagerDestroyedError,
    ConfigurationError,
)
from .recovery import (
    RecoverableError,
    EventFetchError,
)

__all__ = [
    # Data Quality Errors
    "DataQualityError",
    "TemporalDataError",
    "MissingDataError",
    "MalformedDataError",
    # System Failures
    "SystemFailureError",
    "PluginError",
    "ManagerDestroyedError",
    "ConfigurationError",
    # Recovery Categories
    "RecoverableError",
    "EventFetchError",
]
