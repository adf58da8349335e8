"""Project manifest (``package.json``) loading."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from box_cli.exceptions import ManifestNotFoundError
from box_cli.utils import _read_json

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"


class PluginsConfig(BaseModel):
    """The ``vuePlugins`` section of a manifest."""
    model_config = ConfigDict(extra="allow")

    resolveFrom: Optional[str] = None


class ProjectDescriptor(BaseModel):
    """Parsed project manifest. Unknown fields are preserved."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: Optional[str] = None
    version: Optional[str] = None
    dependencies: Dict[str, str] = Field(default_factory=dict)
    devDependencies: Dict[str, str] = Field(default_factory=dict)
    vuePlugins: Optional[PluginsConfig] = None

    _key_order: List[str] = PrivateAttr(default_factory=list)

    @classmethod
    def from_manifest(cls, data: Dict[str, Any]) -> ProjectDescriptor:
        pkg = cls.model_validate(data)
        pkg._key_order = list(data)
        return pkg

    def to_dict(self) -> Dict[str, Any]:
        """Manifest contents as written to disk, in the order they were read."""
        data = self.model_dump(exclude_unset=True)
        ordered = {key: data[key] for key in self._key_order if key in data}
        ordered.update(data)
        return ordered


def get_pkg(context: Path) -> ProjectDescriptor:
    """Read the manifest of ``context``, following ``vuePlugins.resolveFrom``."""
    pkg_path = Path(context).resolve() / MANIFEST_FILENAME
    if not pkg_path.exists():
        raise ManifestNotFoundError(f"{MANIFEST_FILENAME} not found in {context}")
    try:
        data = _read_json(pkg_path)
    except json.JSONDecodeError as e:
        raise ManifestNotFoundError(f"{pkg_path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ManifestNotFoundError(f"{pkg_path} does not contain a JSON object")
    pkg = ProjectDescriptor.from_manifest(data)
    if pkg.vuePlugins and pkg.vuePlugins.resolveFrom:
        redirect = (pkg_path.parent / pkg.vuePlugins.resolveFrom).resolve()
        logger.debug(f"Resolving manifest from {redirect}")
        return get_pkg(redirect)
    return pkg
