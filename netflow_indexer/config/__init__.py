"""
Configuration management for the netflow indexer.

Loads and validates settings from the YAML config file and environment
variables. Exposes a single source of truth for all service configuration.
"""

from netflow_indexer.config.settings import Settings, get_settings, load_settings  # noqa: F401

__all__ = ["Settings", "get_settings", "load_settings"]
