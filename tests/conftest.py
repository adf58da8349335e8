from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

import pytest

from box_cli.config import RuntimeConfig
from box_cli.plugins.registry import PluginRegistry
from box_cli.preferences import PreferencesStore
from box_cli.session import Session


def write_pkg(context: Path, pkg: Dict[str, Any]) -> Path:
    path = context / "package.json"
    path.write_text(json.dumps(pkg, indent=2))
    return path


@pytest.fixture(autouse=True)
def _restore_logging(monkeypatch: pytest.MonkeyPatch):
    """setup_logging() swaps handlers and the excepthook; undo it per test."""
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    yield
    logger = logging.getLogger("box_cli")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def runtime() -> RuntimeConfig:
    return RuntimeConfig(test_mode=True, skip_dirty_git_prompt=True)


@pytest.fixture
def rc_path(tmp_path: Path) -> Path:
    return tmp_path / "home" / ".boxrc"


@pytest.fixture
def preferences(rc_path: Path) -> PreferencesStore:
    return PreferencesStore(rc_path)


@pytest.fixture
def registry() -> PluginRegistry:
    return PluginRegistry(loaders=[])


@pytest.fixture
def session(runtime: RuntimeConfig, preferences: PreferencesStore, registry: PluginRegistry) -> Session:
    return Session(runtime=runtime, preferences=preferences, registry=registry)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A minimal project declaring the eslint plugin."""
    context = tmp_path / "project"
    context.mkdir()
    write_pkg(
        context,
        {
            "name": "demo",
            "version": "0.1.0",
            "dependencies": {"vue": "^2.6.0"},
            "devDependencies": {"@vue/cli-plugin-eslint": "^4.0.0"},
        },
    )
    (context / "src").mkdir()
    (context / "src" / "main.js").write_text("console.log('hi')\n")
    return context
