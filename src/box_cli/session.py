"""Per-invocation context shared by the CLI commands."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from box_cli.config import RuntimeConfig
from box_cli.package_manager import ProjectPackageManager
from box_cli.plugins.registry import PluginRegistry
from box_cli.preferences import PreferencesStore, get_rc_path
from box_cli.versions import VersionChecker


@dataclass
class Session:
    """Caches that live for exactly one CLI invocation.

    The preferences cache and the version-check result are owned here rather
    than at module level, so a new session starts from the files on disk.
    """
    runtime: RuntimeConfig
    preferences: PreferencesStore
    registry: PluginRegistry = field(default_factory=PluginRegistry)
    _version_checker: Optional[VersionChecker] = field(default=None, repr=False)

    @classmethod
    def create(cls, runtime: Optional[RuntimeConfig] = None, registry: Optional[PluginRegistry] = None) -> Session:
        runtime = runtime or RuntimeConfig.from_env()
        preferences = PreferencesStore(get_rc_path(config_path=runtime.config_path))
        if registry is None:
            return cls(runtime=runtime, preferences=preferences)
        return cls(runtime=runtime, preferences=preferences, registry=registry)

    def package_manager(self, context: Path, registry: Optional[str] = None) -> ProjectPackageManager:
        return ProjectPackageManager(context, registry=registry, preferences=self.preferences)

    @property
    def version_checker(self) -> VersionChecker:
        if self._version_checker is None:
            self._version_checker = VersionChecker(
                self.preferences,
                self.package_manager(Path.cwd()),
                runtime=self.runtime,
            )
        return self._version_checker
