"""box-cli: invoke generator plugins against an existing project."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("box-cli")
except PackageNotFoundError:
    __version__ = "0.0.0"

__author__ = "box-cli Team"

CLI_PACKAGE_NAME = "box-cli"
