"""Error taxonomy for the upgrade pipeline.

Every recoverable failure is raised as an ``UpgradeError`` subclass and
left to the caller to present. ``UnsupportedPlatformError`` is kept out of
that hierarchy: no artifact path exists for such a host, so the command
aborts instead of reporting a recoverable error.
"""

from __future__ import annotations


class UpgradeError(Exception):
    """Base class for recoverable upgrade failures."""


class InvalidArgumentError(UpgradeError):
    """Malformed release root or other caller-supplied argument."""


class NetworkError(UpgradeError):
    """Transport failure reaching the manifest or archive endpoint."""


class RemoteError(UpgradeError):
    """The server answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(UpgradeError):
    """Manifest body is not JSON or carries an invalid semantic version."""


class MissingFieldError(UpgradeError):
    """Manifest lacks a required field such as the ``latest`` tag."""


class InvalidDataError(UpgradeError):
    """Installed or overridden version text is not valid semver."""


class DecompressionError(UpgradeError):
    """Archive stream is not valid gzip or ended early."""


class ArchiveError(UpgradeError):
    """A tar entry could not be extracted."""


class InstallIOError(UpgradeError):
    """Filesystem failure while installing the new executable."""


class UnsupportedPlatformError(RuntimeError):
    """No release architecture exists for the host operating system."""
