"""Persisted user preferences (``~/.boxrc``): presets and version-check cache."""
from __future__ import annotations

import copy
import json
import logging
import os
import sys
from pathlib import Path
from typing import Annotated, Any, Dict, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    StringConstraints,
    ValidationError,
)

from box_cli.exceptions import PreferencesCorruptError
from box_cli.utils import _read_json, _write_json

logger = logging.getLogger(__name__)

RC_FILENAME = ".boxrc"
SEMVER_PATTERN = r"^\d+\.\d+\.\d+(-(alpha|beta|rc)\.\d+)?$"


class PresetSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    bare: StrictBool | None = None
    useConfigFiles: StrictBool | None = None
    router: StrictBool | None = None
    routerHistoryMode: StrictBool | None = None
    vuex: StrictBool | None = None
    cssPreprocessor: Literal["sass", "dart-sass", "node-sass", "less", "stylus"] | None = None
    plugins: Dict[str, Any]
    configs: Dict[str, Any] | None = None


class PreferencesSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    latestVersion: Annotated[StrictStr, StringConstraints(pattern=SEMVER_PATTERN)] | None = None
    lastChecked: StrictInt | StrictFloat | None = None
    packageManager: Literal["yarn", "npm", "pnpm"] | None = None
    useTaobaoRegistry: StrictBool | None = None
    presets: Dict[str, PresetSchema] | None = None


DEFAULT_PRESET: Dict[str, Any] = {
    "useConfigFiles": False,
    "plugins": {
        "@vue/cli-plugin-babel": {},
        "@vue/cli-plugin-eslint": {
            "config": "base",
            "lintOn": ["save"],
        },
    },
}

DEFAULTS: Dict[str, Any] = {
    "lastChecked": None,
    "latestVersion": None,
    "packageManager": None,
    "useTaobaoRegistry": None,
    "presets": {
        "default": DEFAULT_PRESET,
    },
}


def get_rc_path(filename: str = RC_FILENAME, config_path: Path | None = None) -> Path:
    """Locate the preferences file.

    An explicit ``config_path`` wins; then an existing file under
    ``$XDG_CONFIG_HOME/box``; then the home directory.
    """
    if config_path is not None:
        return Path(config_path)
    xdg_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_home:
        xdg_path = Path(xdg_home) / "box" / filename
        if xdg_path.exists():
            return xdg_path
    return Path.home() / filename


def _format_errors(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
        for err in error.errors()
    )


def validate_preset(preset: Dict[str, Any]) -> bool:
    """Check a preset against the schema, logging the problems if it fails."""
    try:
        PresetSchema.model_validate(preset)
    except ValidationError as e:
        logger.error(f"invalid preset options: {_format_errors(e)}")
        return False
    return True


class PreferencesStore:
    """Loads and saves the preferences document.

    A store keeps one cached copy of the document so repeated reads within a
    CLI invocation do not hit the disk; only ``save`` replaces it. The file is
    read then rewritten without locking, so concurrent processes may lose
    each other's updates.
    """

    def __init__(self, rc_path: Path | None = None) -> None:
        self.rc_path = Path(rc_path) if rc_path is not None else get_rc_path()
        self._cached: Dict[str, Any] | None = None

    def load(self) -> Dict[str, Any]:
        """Return the preferences document, or ``{}`` when none is saved."""
        if self._cached is not None:
            return self._cached
        if not self.rc_path.exists():
            return {}
        try:
            options = _read_json(self.rc_path)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(
                "Error loading saved preferences: "
                f"{self.rc_path} may be corrupted or have syntax errors. "
                "Please fix/delete it and re-run box-cli.\n"
                f"({e})"
            )
            sys.exit(1)
        if not isinstance(options, dict):
            logger.error(f"{self.rc_path} does not contain a JSON object. Please fix/delete it.")
            raise PreferencesCorruptError(f"{self.rc_path} does not contain a JSON object")
        try:
            PreferencesSchema.model_validate(options)
        except ValidationError as e:
            logger.warning(
                f"{self.rc_path} may be outdated. "
                "Please delete it and re-run box-cli. "
                f"({_format_errors(e)})"
            )
        self._cached = options
        return self._cached

    def save(self, to_save: Dict[str, Any]) -> None:
        """Merge ``to_save`` over the current document and write it back.

        Keys unknown to the defaults are dropped and ``None`` values are not
        persisted. Write failures are logged, not raised.
        """
        options = copy.deepcopy(self.load())
        options.update(copy.deepcopy(to_save))
        options = {
            key: value for key, value in options.items()
            if key in DEFAULTS and value is not None
        }
        self._cached = options
        try:
            _write_json(self.rc_path, options)
        except OSError as e:
            logger.error(
                "Error saving preferences: "
                f"make sure you have write access to {self.rc_path}.\n"
                f"({e})"
            )

    def get_presets(self) -> Dict[str, Dict[str, Any]]:
        """Saved presets layered over the built-in ones."""
        presets = copy.deepcopy(DEFAULTS["presets"])
        presets.update(self.load().get("presets") or {})
        return presets

    def save_preset(self, name: str, preset: Dict[str, Any]) -> None:
        presets = copy.deepcopy(self.load().get("presets") or {})
        presets[name] = preset
        self.save({"presets": presets})

    def remove_preset(self, name: str) -> bool:
        """Delete a saved preset; returns ``False`` if it did not exist."""
        presets = copy.deepcopy(self.load().get("presets") or {})
        if name not in presets:
            return False
        del presets[name]
        self.save({"presets": presets})
        return True
