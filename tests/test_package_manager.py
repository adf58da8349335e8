"""Tests for the package manager adapter."""
import subprocess
import unittest.mock
from pathlib import Path

import httpx
import pytest

from box_cli.exceptions import InstallError, RemoteVersionCheckError
from box_cli.package_manager import DEFAULT_REGISTRY, TAOBAO_REGISTRY, ProjectPackageManager
from box_cli.preferences import PreferencesStore


def registry_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_get_remote_version_reads_dist_tags(project: Path):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"dist-tags": {"latest": "1.2.3", "next": "1.3.0-beta.0"}})

    pm = ProjectPackageManager(project, client=registry_client(handler))
    assert pm.get_remote_version("@acme/box", "latest") == "1.2.3"
    assert pm.get_remote_version("@acme/box", "next") == "1.3.0-beta.0"
    assert pm.get_remote_version("@acme/box", "canary") is None
    assert seen[0] == f"{DEFAULT_REGISTRY}/@acme%2Fbox"


def test_get_remote_version_http_error(project: Path):
    pm = ProjectPackageManager(project, client=registry_client(lambda request: httpx.Response(404)))
    with pytest.raises(RemoteVersionCheckError):
        pm.get_remote_version("box-cli")


def test_registry_selection(project: Path, preferences: PreferencesStore):
    assert ProjectPackageManager(project).registry == DEFAULT_REGISTRY
    assert ProjectPackageManager(project, registry="https://r.example.com/").registry == "https://r.example.com"
    preferences.save({"useTaobaoRegistry": True})
    assert ProjectPackageManager(project, preferences=preferences).registry == TAOBAO_REGISTRY


def test_package_manager_detection(project: Path, preferences: PreferencesStore):
    assert ProjectPackageManager(project).bin == "npm"
    (project / "yarn.lock").write_text("")
    assert ProjectPackageManager(project).bin == "yarn"
    preferences.save({"packageManager": "pnpm"})
    assert ProjectPackageManager(project, preferences=preferences).bin == "pnpm"


def test_unknown_package_manager(project: Path):
    with pytest.raises(ValueError):
        ProjectPackageManager(project, package_manager="bower")


def test_install_runs_package_manager(project: Path):
    with unittest.mock.patch("box_cli.package_manager.shutil.which", return_value="/usr/bin/yarn"), \
            unittest.mock.patch("box_cli.package_manager.subprocess.run") as run:
        run.return_value = subprocess.CompletedProcess(args=[], returncode=0)
        ProjectPackageManager(project, package_manager="yarn", registry="https://r.example.com").install()
    argv = run.call_args.args[0]
    assert argv == ["yarn", "install", "--registry", "https://r.example.com"]
    assert run.call_args.kwargs["cwd"] == str(project)


def test_install_failure(project: Path):
    with unittest.mock.patch("box_cli.package_manager.shutil.which", return_value="/usr/bin/npm"), \
            unittest.mock.patch("box_cli.package_manager.subprocess.run") as run:
        run.return_value = subprocess.CompletedProcess(args=[], returncode=1)
        with pytest.raises(InstallError, match="exited with code 1"):
            ProjectPackageManager(project).install()


def test_install_missing_binary(project: Path):
    with unittest.mock.patch("box_cli.package_manager.shutil.which", return_value=None):
        with pytest.raises(InstallError, match="not installed"):
            ProjectPackageManager(project).install()
