"""Plugin registry: maps package ids to the generators and prompts they provide."""

from __future__ import annotations

import importlib.metadata
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .base import GeneratorEntry, PluginCapabilities, PluginInvalidError

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUPS = {
    "generator": "box_cli.generators",
    "prompts": "box_cli.prompts",
}


class PluginLoader(Protocol):
    """Resolves a plugin package id to its capabilities, or ``None``."""

    def load(self, plugin_id: str, context: Path) -> Optional[PluginCapabilities]:
        ...


class EntryPointLoader:
    """Loads plugins advertised through installed distributions' entry points.

    A plugin distribution registers its generator under the
    ``box_cli.generators`` group and, optionally, its prompts under
    ``box_cli.prompts``, with the package id as the entry point name.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Dict[str, importlib.metadata.EntryPoint]] = {
            kind: {} for kind in ENTRY_POINT_GROUPS
        }
        self.discover_plugins()

    def discover_plugins(self) -> None:
        """Discover available plugins via entry points."""
        for kind, group_name in ENTRY_POINT_GROUPS.items():
            for entry_point in importlib.metadata.entry_points(group=group_name):
                self._entries[kind][entry_point.name] = entry_point

    def available(self) -> List[str]:
        return sorted(self._entries["generator"])

    def _load_entry(self, kind: str, plugin_id: str) -> Optional[Any]:
        entry_point = self._entries[kind].get(plugin_id)
        if entry_point is None:
            return None
        try:
            return entry_point.load()
        except Exception as e:
            logger.warning(f"Warning: Could not load {kind} of plugin '{plugin_id}': {e}")
            return None

    def load(self, plugin_id: str, context: Path) -> Optional[PluginCapabilities]:
        generator = self._load_entry("generator", plugin_id)
        if generator is None:
            return None
        return PluginCapabilities(generator=generator, prompts=self._load_entry("prompts", plugin_id))


class PluginRegistry:
    """Registry for looking up the generator entry of a resolved plugin.

    Explicitly registered plugins take precedence over the loaders, which are
    consulted in order.
    """

    def __init__(self, loaders: Sequence[PluginLoader] | None = None) -> None:
        self._registered: Dict[str, PluginCapabilities] = {}
        self._loaders: List[PluginLoader] = list(loaders) if loaders is not None else [EntryPointLoader()]

    def register(self, plugin_id: str, generator: GeneratorEntry, prompts: Any = None) -> None:
        """Register a plugin's generator (and prompts) under its package id."""
        self._registered[plugin_id] = PluginCapabilities(generator=generator, prompts=prompts)

    def get_available_plugins(self) -> List[str]:
        """Package ids known without consulting a project."""
        available = set(self._registered)
        for loader in self._loaders:
            if isinstance(loader, EntryPointLoader):
                available.update(loader.available())
        return sorted(available)

    def find(self, plugin_id: str, context: Path) -> Optional[PluginCapabilities]:
        if plugin_id in self._registered:
            return self._registered[plugin_id]
        for loader in self._loaders:
            capabilities = loader.load(plugin_id, context)
            if capabilities is not None:
                return capabilities
        return None

    def load_plugin(self, plugin_id: str, context: Path) -> PluginCapabilities:
        """Return the capabilities of ``plugin_id``.

        Raises:
            PluginInvalidError: if no generator is available for the plugin.
        """
        capabilities = self.find(plugin_id, context)
        if capabilities is None or not callable(capabilities.generator):
            raise PluginInvalidError(f"Plugin {plugin_id} does not have a generator.")
        return capabilities
