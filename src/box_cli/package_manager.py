"""Package manager adapter: dependency installation and registry lookups."""
from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import httpx

from box_cli.exceptions import InstallError, RemoteVersionCheckError
from box_cli.preferences import PreferencesStore

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = "https://registry.npmjs.org"
TAOBAO_REGISTRY = "https://registry.npmmirror.com"
SUPPORTED_PACKAGE_MANAGERS = ("yarn", "pnpm", "npm")

LOCKFILES: Dict[str, str] = {
    "yarn.lock": "yarn",
    "pnpm-lock.yaml": "pnpm",
    "package-lock.json": "npm",
}

INSTALL_COMMANDS: Dict[str, List[str]] = {
    "npm": ["npm", "install", "--loglevel", "error"],
    "yarn": ["yarn", "install"],
    "pnpm": ["pnpm", "install"],
}


class ProjectPackageManager:
    """Runs the project's package manager and queries the package registry."""

    def __init__(
        self,
        context: Path | None = None,
        registry: Optional[str] = None,
        preferences: Optional[PreferencesStore] = None,
        package_manager: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.context = Path(context) if context is not None else Path.cwd()
        self.preferences = preferences
        self._client = client
        self.bin = package_manager or self._detect_package_manager()
        if self.bin not in SUPPORTED_PACKAGE_MANAGERS:
            raise ValueError(f"Unknown package manager: {self.bin}")
        self.registry = (registry or self._default_registry()).rstrip("/")

    def _saved_preferences(self) -> Dict:
        return self.preferences.load() if self.preferences is not None else {}

    def _detect_package_manager(self) -> str:
        preferred = self._saved_preferences().get("packageManager")
        if preferred in SUPPORTED_PACKAGE_MANAGERS:
            return preferred
        for lockfile, name in LOCKFILES.items():
            if (self.context / lockfile).exists():
                return name
        return "npm"

    def _default_registry(self) -> str:
        if self._saved_preferences().get("useTaobaoRegistry"):
            return TAOBAO_REGISTRY
        return DEFAULT_REGISTRY

    def install(self) -> None:
        """Install the project's dependencies.

        Raises:
            InstallError: if the package manager is missing or exits non-zero.
        """
        argv = list(INSTALL_COMMANDS[self.bin])
        if self.registry != DEFAULT_REGISTRY:
            argv += ["--registry", self.registry]
        if shutil.which(argv[0]) is None:
            raise InstallError(f"{argv[0]} is not installed or not on PATH")
        logger.debug(f"Running {' '.join(argv)} in {self.context}")
        result = subprocess.run(argv, cwd=str(self.context), check=False)
        if result.returncode != 0:
            raise InstallError(f"{' '.join(argv)} exited with code {result.returncode}")

    def get_remote_version(self, package_name: str, dist_tag: str = "latest") -> Optional[str]:
        """Version published under ``dist_tag``, or ``None`` if the tag is unset.

        Raises:
            RemoteVersionCheckError: if the registry cannot be queried.
        """
        url = f"{self.registry}/{package_name.replace('/', '%2F')}"
        try:
            if self._client is not None:
                response = self._client.get(url)
            else:
                with httpx.Client(timeout=10.0) as client:
                    response = client.get(url)
            response.raise_for_status()
            metadata = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RemoteVersionCheckError(f"Failed to get version of {package_name}@{dist_tag}: {e}") from e
        return (metadata.get("dist-tags") or {}).get(dist_tag)
