"""Generator: applies plugin generators to a project's manifest and file tree.

Plugins see the project through a ``GeneratorAPI``: they extend the manifest,
add or remove files in an in-memory file map and queue completion hooks. When
every plugin has run, the manifest and the changed files are written back.
"""
from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from box_cli.exceptions import GeneratorError
from box_cli.manifest import MANIFEST_FILENAME, ProjectDescriptor
from box_cli.plugins.base import PluginReference
from box_cli.utils import deep_merge, ensure_dir

logger = logging.getLogger(__name__)

Hook = Callable[[], Any]

# manifest field -> (config file, format)
CONFIG_FILES: Dict[str, tuple[str, str]] = {
    "babel": ("babel.config.json", "json"),
    "postcss": (".postcssrc.json", "json"),
    "eslintConfig": (".eslintrc.json", "json"),
    "jest": ("jest.config.json", "json"),
    "browserslist": (".browserslistrc", "lines"),
}

DEPENDENCY_FIELDS = ("dependencies", "devDependencies", "peerDependencies")


class GeneratorAPI:
    """The view of the project handed to one plugin's generator."""

    def __init__(self, plugin: PluginReference, generator: Generator) -> None:
        self.id = plugin.id
        self.generator = generator
        self.options = plugin.options

    @property
    def context(self) -> Path:
        return self.generator.context

    @property
    def invoking(self) -> bool:
        return self.generator.invoking

    @property
    def pkg(self) -> Dict[str, Any]:
        return self.generator.pkg

    @property
    def files(self) -> Dict[str, str]:
        return self.generator.files

    def has_plugin(self, plugin_id: str) -> bool:
        pkg = self.generator.pkg
        return any(plugin_id in (pkg.get(field) or {}) for field in DEPENDENCY_FIELDS)

    def extend_package(self, fields: Dict[str, Any]) -> None:
        """Deep-merge ``fields`` into the manifest; dependency maps are merged key by key."""
        self.generator.pkg = deep_merge(self.generator.pkg, fields)

    def render_file(self, path: str, content: str) -> None:
        self.generator.files[Path(path).as_posix()] = content

    def remove_file(self, path: str) -> None:
        self.generator.files.pop(Path(path).as_posix(), None)

    def after_invoke(self, cb: Hook) -> None:
        """Queue ``cb`` to run once this invocation's dependencies are installed."""
        self.generator.after_invoke_cbs.append(cb)

    def after_any_invoke(self, cb: Hook) -> None:
        """Queue ``cb`` to run after any invocation, after the per-invocation hooks."""
        self.generator.after_any_invoke_cbs.append(cb)

    def exit_log(self, msg: str, level: str = "info") -> None:
        self.generator.exit_logs.append((self.id, level, msg))


class Generator:
    def __init__(
        self,
        context: Path,
        pkg: ProjectDescriptor | Dict[str, Any] | None = None,
        plugins: Sequence[PluginReference] = (),
        files: Optional[Dict[str, str]] = None,
        after_invoke_cbs: Optional[List[Hook]] = None,
        after_any_invoke_cbs: Optional[List[Hook]] = None,
        invoking: bool = False,
    ) -> None:
        self.context = Path(context)
        if isinstance(pkg, ProjectDescriptor):
            pkg = pkg.to_dict()
        self.pkg: Dict[str, Any] = copy.deepcopy(pkg or {})
        self.plugins = list(plugins)
        self.original_files: Dict[str, str] = dict(files or {})
        self.files: Dict[str, str] = dict(self.original_files)
        self.after_invoke_cbs = after_invoke_cbs if after_invoke_cbs is not None else []
        self.after_any_invoke_cbs = after_any_invoke_cbs if after_any_invoke_cbs is not None else []
        self.invoking = invoking
        self.exit_logs: List[tuple[str, str, str]] = []

    def generate(self, extract_config_files: bool = False, check_existing: bool = False) -> None:
        """Run every plugin's generator, then write the results to disk.

        Raises:
            GeneratorError: if a plugin's generator raises.
        """
        for plugin in self.plugins:
            api = GeneratorAPI(plugin, self)
            try:
                plugin.apply(api, plugin.options)
            except Exception as e:
                raise GeneratorError(f"Generator of plugin {plugin.id} failed: {e}") from e

        if extract_config_files:
            self.extract_config_files(check_existing)
        self.sort_pkg()
        self.files[MANIFEST_FILENAME] = json.dumps(self.pkg, indent=2, ensure_ascii=False) + "\n"
        self.write_files()

    def extract_config_files(self, check_existing: bool = False) -> None:
        """Move tool configuration out of the manifest into dedicated files.

        With ``check_existing``, values already in an existing JSON config
        file are kept underneath the extracted ones.
        """
        for field, (filename, fmt) in CONFIG_FILES.items():
            if field not in self.pkg:
                continue
            value = self.pkg.pop(field)
            if fmt == "lines":
                lines = value if isinstance(value, list) else [value]
                self.files[filename] = "\n".join(str(line) for line in lines) + "\n"
                continue
            if check_existing and filename in self.files:
                try:
                    existing = json.loads(self.files[filename])
                except json.JSONDecodeError:
                    logger.warning(f"Existing {filename} is not valid JSON; overwriting it.")
                    existing = None
                if isinstance(existing, dict) and isinstance(value, dict):
                    value = deep_merge(existing, value)
            self.files[filename] = json.dumps(value, indent=2, ensure_ascii=False) + "\n"

    def sort_pkg(self) -> None:
        for field in DEPENDENCY_FIELDS:
            if isinstance(self.pkg.get(field), dict):
                self.pkg[field] = dict(sorted(self.pkg[field].items()))

    def write_files(self) -> None:
        """Write changed files and delete removed ones."""
        for rel in set(self.original_files) - set(self.files):
            path = self.context / rel
            if path.exists():
                logger.debug(f"Removing {rel}")
                path.unlink()
        for rel, content in self.files.items():
            if self.original_files.get(rel) == content:
                continue
            path = self.context / rel
            ensure_dir(path.parent)
            logger.debug(f"Writing {rel}")
            path.write_text(content, encoding="utf-8")

    def print_exit_logs(self) -> None:
        if not self.exit_logs:
            return
        logger.info("")
        for plugin_id, level, msg in self.exit_logs:
            getattr(logger, level if level in ("info", "warning", "error") else "info")(
                f"   [{plugin_id}] {msg}"
            )
