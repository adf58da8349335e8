"""Custom exception classes for box-cli."""


class BoxCLIError(Exception):
    """Base exception for all box-cli errors."""
    pass


class ManifestNotFoundError(BoxCLIError):
    """Raised when a project has no package.json."""
    pass


class InvalidOptionsJSONError(BoxCLIError):
    """Raised when inline plugin options are not a valid JSON object."""
    pass


class PreferencesCorruptError(BoxCLIError):
    """Raised when the preferences file cannot be parsed."""
    pass


class RemoteVersionCheckError(BoxCLIError):
    """Raised when the registry cannot report a published version."""
    pass


class GeneratorError(BoxCLIError):
    """Raised when a plugin generator fails while applying its changes."""
    pass


class HookError(BoxCLIError):
    """Raised when a completion hook queued by a generator fails."""
    pass


class InstallError(BoxCLIError):
    """Raised when the package manager fails to install dependencies."""
    pass


class GitError(BoxCLIError):
    """Raised when a git query fails inside a repository."""
    pass
