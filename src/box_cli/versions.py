"""Current vs. latest release checks with a one-day cache."""
from __future__ import annotations

import logging
import re
import threading
from typing import Optional, Protocol

from packaging.version import InvalidVersion, Version
from pydantic import BaseModel, ConfigDict

from box_cli import CLI_PACKAGE_NAME, __version__
from box_cli.config import RuntimeConfig
from box_cli.preferences import SEMVER_PATTERN, PreferencesStore
from box_cli.utils import now_ms

logger = logging.getLogger(__name__)

ONE_DAY_MS = 24 * 60 * 60 * 1000


class RemoteVersionSource(Protocol):
    def get_remote_version(self, package_name: str, dist_tag: str = "latest") -> Optional[str]:
        ...


class VersionCheckResult(BaseModel):
    """Outcome of a version check; ``error`` is set when the lookup failed."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    current: str
    latest: str
    error: Optional[Exception] = None


def is_valid_version(version: object) -> bool:
    """Whether ``version`` is a release the preferences file may store.

    Only ``alpha``, ``beta`` and ``rc`` prereleases qualify. Other tags such as
    ``2.0.0-next.1`` are neither persisted nor compared.
    """
    return isinstance(version, str) and re.match(SEMVER_PATTERN, version) is not None


def is_prerelease(version: str) -> bool:
    try:
        return Version(version).is_prerelease
    except InvalidVersion:
        return False


def is_greater(a: str, b: str) -> bool:
    return Version(a) > Version(b)


def is_update_available(result: VersionCheckResult) -> bool:
    try:
        return is_greater(result.latest, result.current)
    except InvalidVersion:
        return False


class VersionChecker:
    """Reports the running and the latest published version of the CLI.

    The result is computed once per checker. A check older than a day blocks
    on the registry; a fresher one returns the cached value and refreshes it
    in a background thread for future runs. That thread is not a daemon, so
    the interpreter lets it finish writing the preferences file before exit.
    """

    def __init__(
        self,
        preferences: PreferencesStore,
        remote: RemoteVersionSource,
        current: str = __version__,
        runtime: Optional[RuntimeConfig] = None,
        package_name: str = CLI_PACKAGE_NAME,
    ) -> None:
        self.preferences = preferences
        self.remote = remote
        self.current = current
        self.runtime = runtime or RuntimeConfig()
        self.package_name = package_name
        self._session_cached: Optional[VersionCheckResult] = None
        self.background: Optional[threading.Thread] = None

    def get_versions(self) -> VersionCheckResult:
        if self._session_cached is not None:
            return self._session_cached

        local = self.current
        if self.runtime.is_test_or_debug:
            self._session_cached = VersionCheckResult(current=local, latest=local)
            return self._session_cached

        # pre-release users also follow the next channel
        include_prerelease = is_prerelease(local)

        saved = self.preferences.load()
        # an outdated rc file is only warned about on load; ignore mistyped values
        cached = saved.get("latestVersion")
        if not is_valid_version(cached):
            cached = local
        last_checked = saved.get("lastChecked")
        if isinstance(last_checked, bool) or not isinstance(last_checked, (int, float)):
            last_checked = 0
        days_passed = (now_ms() - last_checked) / ONE_DAY_MS

        error: Optional[Exception] = None
        if days_passed > 1:
            try:
                latest = self.get_and_cache_latest_version(cached, include_prerelease)
            except Exception as e:
                logger.debug(f"Version check failed: {e}")
                latest = cached
                error = e
        else:
            self.background = threading.Thread(
                target=self._refresh_quietly,
                args=(cached, include_prerelease),
                name="box-cli-version-check",
            )
            self.background.start()
            latest = cached

        self._session_cached = VersionCheckResult(current=local, latest=latest, error=error)
        return self._session_cached

    def _refresh_quietly(self, cached: str, include_prerelease: bool) -> None:
        try:
            self.get_and_cache_latest_version(cached, include_prerelease)
        except Exception as e:
            logger.debug(f"Background version check failed: {e}")

    def get_and_cache_latest_version(self, cached: str, include_prerelease: bool) -> str:
        """Look up the latest release and persist it if it changed."""
        version = self.remote.get_remote_version(self.package_name, "latest")
        if include_prerelease:
            next_version = self.remote.get_remote_version(self.package_name, "next")
            if is_valid_version(next_version) and (
                not is_valid_version(version) or is_greater(next_version, version)
            ):
                version = next_version

        if is_valid_version(version) and version != cached:
            self.preferences.save({"latestVersion": version, "lastChecked": now_ms()})
            return version
        return cached
