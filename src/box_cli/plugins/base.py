"""Plugin data types and error definitions for the box-cli plugin system."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from box_cli.exceptions import BoxCLIError

# apply(api, options)
GeneratorEntry = Callable[..., Any]


class PluginError(BoxCLIError):
    """Base exception for plugin-related errors."""
    pass


class PluginNotFoundError(PluginError):
    """Raised when a short plugin name matches no declared dependency."""
    pass


class PluginInvalidError(PluginError):
    """Raised when a resolved plugin does not provide a generator."""
    pass


@dataclass(frozen=True)
class PluginCapabilities:
    """What a plugin package provides to box-cli.

    ``prompts`` may be a list of questions, a callable taking the project
    descriptor and returning one, or an object with ``get_prompts(pkg)``.
    """
    generator: GeneratorEntry
    prompts: Optional[Any] = None


@dataclass(frozen=True)
class PluginReference:
    """A resolved plugin bound to its final options for one invocation."""
    id: str
    apply: GeneratorEntry
    options: Dict[str, Any] = field(default_factory=dict)
