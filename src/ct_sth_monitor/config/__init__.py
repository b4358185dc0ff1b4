"""
Configuration management for the CT STH Monitor.

This module handles loading and validating configuration from TOML files:

Configuration hierarchy:
1. Default values (built-in)
2. config/default.toml (project defaults)
3. config/local.toml (user overrides, gitignored)
4. Environment variables (CT_MONITOR_* prefix)
5. Command-line arguments

Example:
    >>> from ct_sth_monitor.config import get_settings
    >>>
    >>> settings = get_settings()
    >>> print(f"Database: {settings.database_path}")
    >>> print(f"Logs: {[log.name for log in settings.logs]}")

Configuration files use TOML format. See config/default.toml for all options.
"""

from ct_sth_monitor.config.settings import (
    DatabaseSettings,
    LoggingSettings,
    LogSettings,
    Settings,
    get_settings,
    load_settings,
    reload_settings,
)

__all__ = [
    "DatabaseSettings",
    "LogSettings",
    "LoggingSettings",
    "Settings",
    "get_settings",
    "load_settings",
    "reload_settings",
]
