"""Plugin system for resolving and loading box-cli generator plugins."""

from .base import (
    PluginCapabilities,
    PluginError,
    PluginInvalidError,
    PluginNotFoundError,
    PluginReference,
)
from .registry import EntryPointLoader, PluginLoader, PluginRegistry
from .resolution import find_plugin, resolve_plugin_id

__all__ = [
    "PluginCapabilities",
    "PluginError",
    "PluginInvalidError",
    "PluginNotFoundError",
    "PluginReference",
    "EntryPointLoader",
    "PluginLoader",
    "PluginRegistry",
    "find_plugin",
    "resolve_plugin_id",
]
