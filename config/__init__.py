"""Configuration management."""

from config.settings import ProcessorSettings, load_settings

__all__ = [
    "ProcessorSettings",
    "load_settings",
]
