"""Tests for the version checker."""
import json
import os
import subprocess
import sys
import textwrap
import threading
import time
from pathlib import Path

import pytest

from box_cli.config import RuntimeConfig
from box_cli.exceptions import RemoteVersionCheckError
from box_cli.preferences import PreferencesStore
from box_cli.utils import now_ms
from box_cli.versions import VersionChecker, VersionCheckResult, is_update_available

LIVE = RuntimeConfig()


class FakeRemote:
    def __init__(self, tags=None, error=None):
        self.tags = tags or {}
        self.error = error
        self.calls = []

    def get_remote_version(self, package_name, dist_tag="latest"):
        self.calls.append((package_name, dist_tag))
        if self.error:
            raise self.error
        return self.tags.get(dist_tag)


class BlockingRemote(FakeRemote):
    def __init__(self, tags):
        super().__init__(tags)
        self.release = threading.Event()
        self.started = threading.Event()

    def get_remote_version(self, package_name, dist_tag="latest"):
        self.started.set()
        self.release.wait(timeout=5)
        return super().get_remote_version(package_name, dist_tag)


def test_test_mode_short_circuits(preferences: PreferencesStore):
    remote = FakeRemote({"latest": "9.0.0"})
    checker = VersionChecker(preferences, remote, current="1.0.0", runtime=RuntimeConfig(test_mode=True))
    assert checker.get_versions() == VersionCheckResult(current="1.0.0", latest="1.0.0")
    assert remote.calls == []


def test_debug_mode_short_circuits(preferences: PreferencesStore):
    remote = FakeRemote({"latest": "9.0.0"})
    checker = VersionChecker(preferences, remote, current="1.0.0", runtime=RuntimeConfig(debug_mode=True))
    assert checker.get_versions().latest == "1.0.0"
    assert remote.calls == []


def test_stale_cache_blocks_and_persists(preferences: PreferencesStore):
    remote = FakeRemote({"latest": "1.1.0"})
    checker = VersionChecker(preferences, remote, current="1.0.0", runtime=LIVE)
    result = checker.get_versions()
    assert result.latest == "1.1.0"
    assert result.error is None
    assert is_update_available(result)
    saved = preferences.load()
    assert saved["latestVersion"] == "1.1.0"
    assert now_ms() - saved["lastChecked"] < 60_000


def test_result_is_memoized(preferences: PreferencesStore):
    remote = FakeRemote({"latest": "1.1.0"})
    checker = VersionChecker(preferences, remote, current="1.0.0", runtime=LIVE)
    assert checker.get_versions() is checker.get_versions()
    assert remote.calls == [("box-cli", "latest")]


def test_stale_cache_failure_falls_back(preferences: PreferencesStore):
    preferences.save({"latestVersion": "1.0.5", "lastChecked": now_ms() - 3 * 86_400_000})
    error = RemoteVersionCheckError("offline")
    checker = VersionChecker(preferences, FakeRemote(error=error), current="1.0.0", runtime=LIVE)
    result = checker.get_versions()
    assert result.latest == "1.0.5"
    assert result.error is error


def test_fresh_cache_returns_without_waiting(preferences: PreferencesStore):
    preferences.save({"latestVersion": "1.0.5", "lastChecked": now_ms() - 60_000})
    remote = BlockingRemote({"latest": "2.0.0"})
    checker = VersionChecker(preferences, remote, current="1.0.0", runtime=LIVE)

    started = time.monotonic()
    result = checker.get_versions()
    assert time.monotonic() - started < 1
    assert result.latest == "1.0.5"
    assert result.error is None

    remote.release.set()
    checker.background.join(timeout=5)
    # refreshed for future runs only
    assert preferences.load()["latestVersion"] == "2.0.0"
    assert checker.get_versions().latest == "1.0.5"


def test_background_failure_is_silent(preferences: PreferencesStore):
    preferences.save({"latestVersion": "1.0.5", "lastChecked": now_ms()})
    checker = VersionChecker(preferences, FakeRemote(error=RemoteVersionCheckError("offline")), current="1.0.0", runtime=LIVE)
    result = checker.get_versions()
    checker.background.join(timeout=5)
    assert result.latest == "1.0.5"
    assert result.error is None
    assert preferences.load()["latestVersion"] == "1.0.5"


def test_prerelease_compares_next_channel(preferences: PreferencesStore):
    remote = FakeRemote({"latest": "1.0.0", "next": "1.0.1-beta.0"})
    checker = VersionChecker(preferences, remote, current="1.0.0-beta.1", runtime=LIVE)
    assert checker.get_versions().latest == "1.0.1-beta.0"
    assert ("box-cli", "next") in remote.calls


def test_prerelease_keeps_newer_stable(preferences: PreferencesStore):
    remote = FakeRemote({"latest": "1.1.0", "next": "1.0.1-beta.0"})
    checker = VersionChecker(preferences, remote, current="1.0.0-beta.1", runtime=LIVE)
    assert checker.get_versions().latest == "1.1.0"


def test_stable_release_ignores_next_channel(preferences: PreferencesStore):
    remote = FakeRemote({"latest": "1.0.0", "next": "2.0.0-beta.0"})
    checker = VersionChecker(preferences, remote, current="1.0.0", runtime=LIVE)
    assert checker.get_versions().latest == "1.0.0"
    assert remote.calls == [("box-cli", "latest")]


@pytest.mark.parametrize("fetched", ["not-a-version", None])
def test_invalid_fetched_version_not_persisted(preferences: PreferencesStore, fetched):
    checker = VersionChecker(preferences, FakeRemote({"latest": fetched}), current="1.0.0", runtime=LIVE)
    assert checker.get_versions().latest == "1.0.0"
    assert preferences.load() == {}


def test_unchanged_version_not_persisted(preferences: PreferencesStore):
    preferences.save({"latestVersion": "1.2.0", "lastChecked": 1})
    checker = VersionChecker(preferences, FakeRemote({"latest": "1.2.0"}), current="1.0.0", runtime=LIVE)
    assert checker.get_versions().latest == "1.2.0"
    assert preferences.load()["lastChecked"] == 1


def test_next_tag_is_not_persisted(preferences: PreferencesStore):
    checker = VersionChecker(preferences, FakeRemote({"latest": "2.0.0-next.1"}), current="1.0.0", runtime=LIVE)
    assert checker.get_versions().latest == "1.0.0"
    assert preferences.load() == {}


def test_mistyped_last_checked_forces_a_check(rc_path: Path):
    rc_path.parent.mkdir(parents=True)
    rc_path.write_text(json.dumps({"latestVersion": "1.0.5", "lastChecked": "2024-01-01"}))
    preferences = PreferencesStore(rc_path)
    checker = VersionChecker(preferences, FakeRemote({"latest": "1.1.0"}), current="1.0.0", runtime=LIVE)

    result = checker.get_versions()

    assert result.latest == "1.1.0"
    assert result.error is None
    assert isinstance(preferences.load()["lastChecked"], int)


def test_mistyped_latest_version_falls_back_to_current(rc_path: Path):
    rc_path.parent.mkdir(parents=True)
    rc_path.write_text(json.dumps({"latestVersion": 5, "lastChecked": now_ms()}))
    checker = VersionChecker(
        PreferencesStore(rc_path),
        FakeRemote(error=RemoteVersionCheckError("offline")),
        current="1.0.0",
        runtime=LIVE,
    )

    result = checker.get_versions()
    checker.background.join(timeout=5)

    assert result.latest == "1.0.0"


REFRESH_SCRIPT = textwrap.dedent(
    """
    import sys
    import time
    from pathlib import Path

    from box_cli.config import RuntimeConfig
    from box_cli.preferences import PreferencesStore
    from box_cli.versions import VersionChecker


    class SlowRemote:
        def get_remote_version(self, package_name, dist_tag="latest"):
            time.sleep(0.3)
            return "2.0.0"


    preferences = PreferencesStore(Path(sys.argv[1]))
    checker = VersionChecker(preferences, SlowRemote(), current="1.0.0", runtime=RuntimeConfig())
    print(checker.get_versions().latest)
    """
)


def test_background_refresh_outlives_the_command(rc_path: Path):
    PreferencesStore(rc_path).save({"latestVersion": "1.0.5", "lastChecked": now_ms() - 60_000})
    src = Path(__file__).resolve().parents[1] / "src"
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(src), env.get("PYTHONPATH")]))

    result = subprocess.run(
        [sys.executable, "-c", REFRESH_SCRIPT, str(rc_path)],
        capture_output=True,
        text=True,
        env=env,
        timeout=30,
        check=False,
    )

    assert result.returncode == 0, result.stderr
    assert result.stdout.strip() == "1.0.5"
    assert json.loads(rc_path.read_text())["latestVersion"] == "2.0.0"
