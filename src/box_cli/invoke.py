"""Invocation of a single plugin's generator against an existing project."""
from __future__ import annotations

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from box_cli.exceptions import HookError
from box_cli.generator import Generator, Hook
from box_cli.git import confirm_if_git_dirty, has_project_git, list_changed_files
from box_cli.manifest import ProjectDescriptor, get_pkg
from box_cli.options import Prompter, assemble_options
from box_cli.plugins.base import PluginReference
from box_cli.plugins.resolution import find_plugin
from box_cli.session import Session
from box_cli.utils import read_files

logger = logging.getLogger(__name__)


class InvocationState(str, Enum):
    CHECK_DIRTY = "check_dirty"
    RESOLVE_PLUGIN = "resolve_plugin"
    ASSEMBLE_OPTIONS = "assemble_options"
    GENERATE = "generate"
    INSTALL_DEPS = "install_deps"
    RUN_HOOKS = "run_hooks"
    REPORT_CHANGES = "report_changes"
    DONE = "done"


def _run_hooks(after_invoke_cbs: List[Hook], after_any_invoke_cbs: List[Hook]) -> None:
    for cb in [*after_invoke_cbs, *after_any_invoke_cbs]:
        try:
            cb()
        except Exception as e:
            raise HookError(f"Completion hook failed: {e}") from e


def _report_changes(context: Path) -> None:
    changed = list_changed_files(context)
    if not changed:
        return
    logger.info("   The following files have been updated / added:\n")
    logger.info("\n".join(f"     {line}" for line in changed))
    logger.info("")
    logger.info("   You should review these changes with git diff and commit them.")
    logger.info("")


def run_generator(
    context: Path,
    plugin: PluginReference,
    session: Session,
    pkg: Optional[ProjectDescriptor] = None,
    on_state: Optional[Callable[[InvocationState], None]] = None,
) -> Generator:
    """Run ``plugin``'s generator, install new dependencies and run its hooks.

    Files already written stay on disk if a later step fails.
    """
    context = Path(context)
    pkg = pkg if pkg is not None else get_pkg(context)
    runtime = session.runtime
    notify = on_state or (lambda state: None)
    after_invoke_cbs: List[Hook] = []
    after_any_invoke_cbs: List[Hook] = []

    notify(InvocationState.GENERATE)
    snapshot = pkg.model_copy(deep=True)
    generator = Generator(
        context,
        pkg=pkg.model_copy(deep=True),
        plugins=[plugin],
        files=read_files(context),
        after_invoke_cbs=after_invoke_cbs,
        after_any_invoke_cbs=after_any_invoke_cbs,
        invoking=True,
    )

    logger.info("")
    logger.info(f"🚀  Invoking generator for {plugin.id}...")
    generator.generate(extract_config_files=True, check_existing=True)

    new_deps = generator.pkg.get("dependencies") or {}
    new_dev_deps = generator.pkg.get("devDependencies") or {}
    deps_changed = new_deps != snapshot.dependencies or new_dev_deps != snapshot.devDependencies

    notify(InvocationState.INSTALL_DEPS)
    if deps_changed and not runtime.is_test_or_debug:
        logger.info("📦  Installing additional dependencies...")
        logger.info("")
        session.package_manager(context, registry=plugin.options.get("registry")).install()

    notify(InvocationState.RUN_HOOKS)
    if after_invoke_cbs or after_any_invoke_cbs:
        logger.info("⚓  Running completion hooks...")
        _run_hooks(after_invoke_cbs, after_any_invoke_cbs)
        logger.info("")

    logger.info(f"✔  Successfully invoked generator for plugin: {plugin.id}")

    notify(InvocationState.REPORT_CHANGES)
    if not runtime.test_mode and has_project_git(context):
        _report_changes(context)

    generator.print_exit_logs()
    notify(InvocationState.DONE)
    return generator


class Invocation:
    """One ``box invoke`` run, stepping through ``InvocationState`` in order.

    Any failure aborts the remaining steps. Declining the dirty-tree prompt
    ends the run with no side effects.
    """

    def __init__(
        self,
        plugin_name: str,
        options: Optional[Dict[str, Any]] = None,
        context: Optional[Path] = None,
        session: Optional[Session] = None,
        prompter: Optional[Prompter] = None,
    ) -> None:
        self.plugin_name = plugin_name
        self.options = dict(options or {})
        self.context = Path(context) if context is not None else Path.cwd()
        self.session = session or Session.create()
        self.prompter = prompter
        self.state = InvocationState.CHECK_DIRTY
        self.plugin: Optional[PluginReference] = None

    def _enter(self, state: InvocationState) -> None:
        logger.debug(f"invoke {self.plugin_name}: {self.state.value} -> {state.value}")
        self.state = state

    def run(self) -> Optional[PluginReference]:
        """Run the invocation; returns the plugin, or ``None`` if the user declined."""
        self._enter(InvocationState.CHECK_DIRTY)
        if not confirm_if_git_dirty(self.context, self.session.runtime):
            return None

        self._enter(InvocationState.RESOLVE_PLUGIN)
        self.options.pop("_", None)
        pkg = get_pkg(self.context)
        plugin_id = find_plugin(self.plugin_name, pkg)
        capabilities = self.session.registry.load_plugin(plugin_id, self.context)

        self._enter(InvocationState.ASSEMBLE_OPTIONS)
        plugin_options = assemble_options(self.options, pkg, capabilities.prompts, self.prompter)

        self.plugin = PluginReference(id=plugin_id, apply=capabilities.generator, options=plugin_options)
        run_generator(self.context, self.plugin, self.session, pkg=pkg, on_state=self._enter)
        return self.plugin


def invoke(
    plugin_name: str,
    options: Optional[Dict[str, Any]] = None,
    context: Optional[Path] = None,
    session: Optional[Session] = None,
    prompter: Optional[Prompter] = None,
) -> Optional[PluginReference]:
    return Invocation(plugin_name, options, context, session, prompter).run()


def invoke_and_report(
    plugin_name: str,
    options: Optional[Dict[str, Any]] = None,
    context: Optional[Path] = None,
    session: Optional[Session] = None,
    prompter: Optional[Prompter] = None,
) -> bool:
    """Run an invocation, logging any failure.

    Outside test mode a failure exits the process with status 1; in test
    mode it returns ``False``.
    """
    session = session or Session.create()
    try:
        invoke(plugin_name, options, context, session, prompter)
    except Exception as e:
        logger.error(f"❌ {e}")
        logger.debug("Invocation failed", exc_info=True)
        if not session.runtime.test_mode:
            sys.exit(1)
        return False
    return True
