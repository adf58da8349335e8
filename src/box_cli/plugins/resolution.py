"""Short-name to package-id resolution for generator plugins."""

from __future__ import annotations

import re
from typing import Dict, Iterator, Optional

from box_cli.manifest import ProjectDescriptor

from .base import PluginNotFoundError

FIRST_PARTY_PREFIX = "box-cli-plugin-"
LEGACY_PREFIX = "@vue/cli-plugin-"

OFFICIAL_PLUGINS = (
    "babel",
    "e2e-cypress",
    "e2e-nightwatch",
    "e2e-webdriverio",
    "eslint",
    "pwa",
    "router",
    "typescript",
    "unit-jest",
    "unit-mocha",
    "vuex",
)

PLUGIN_RE = re.compile(r"^(@vue/|vue-|@[\w-]+(\.)?[\w-]+/vue-)cli-plugin-")
SCOPE_RE = re.compile(r"^@[\w-]+(\.)?[\w-]+/")


def resolve_plugin_id(name: str) -> str:
    """Expand a third-party short name into a full package id."""
    if PLUGIN_RE.match(name):
        return name
    if name == "@vue/cli-service":
        return name
    if name in OFFICIAL_PLUGINS:
        return f"{LEGACY_PREFIX}{name}"
    if name.startswith("@"):
        scope_match = SCOPE_RE.match(name)
        if scope_match:
            scope = scope_match.group(0)
            short_id = name[len(scope):]
            infix = "" if scope == "@vue/" else "vue-"
            return f"{scope}{infix}cli-plugin-{short_id}"
    return f"vue-cli-plugin-{name}"


def candidate_ids(name: str) -> Iterator[str]:
    """Package ids a short name may refer to, in priority order."""
    yield f"{FIRST_PARTY_PREFIX}{name}"
    yield f"{LEGACY_PREFIX}{name}"
    yield resolve_plugin_id(name)


def _find_in(deps: Optional[Dict[str, str]], name: str) -> Optional[str]:
    if not deps:
        return None
    for candidate in candidate_ids(name):
        if candidate in deps:
            return candidate
    return None


def find_plugin(name: str, pkg: ProjectDescriptor) -> str:
    """Return the declared package id for ``name``.

    devDependencies are searched before dependencies.

    Raises:
        PluginNotFoundError: if neither dependency map declares the plugin.
    """
    plugin_id = _find_in(pkg.devDependencies, name) or _find_in(pkg.dependencies, name)
    if not plugin_id:
        raise PluginNotFoundError(
            f"Cannot resolve plugin {name} from package.json. "
            "Did you forget to install it?"
        )
    return plugin_id
