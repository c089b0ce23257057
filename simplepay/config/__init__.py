"""Configuration: settings and constants."""

from .settings import Network, SimplePaySettings, get_settings, load_settings


__all__ = [
    "Network",
    "SimplePaySettings",
    "get_settings",
    "load_settings",
]
