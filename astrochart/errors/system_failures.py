"""
System failure error classifications.

These exceptions represent failures of plugins, of the plugin manager
lifecycle, or of configuration that the caller has to act on.
"""

from typing import Any, Optional


class SystemFailureError(Exception):
    """Base class for unrecoverable system failures."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class PluginError(SystemFailureError):
    """Failure raised by a plugin during init, render, cleanup or notification."""

    def __init__(self, plugin_id: str, message: str,
                 cause: Optional[BaseException] = None, **kwargs):
        super().__init__(f"Plugin {plugin_id}: {message}", **kwargs)
        self.plugin_id = plugin_id
        self.cause = cause


class ManagerDestroyedError(SystemFailureError):
    """Operation attempted on a plugin manager that was already cleaned up."""

    def __init__(self, message: str = "Plugin manager destroyed",
                 operation: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation


class ConfigurationError(SystemFailureError):
    """Invalid configuration values."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []
