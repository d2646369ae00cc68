"""Version resolution: which release is latest, and is it worth installing."""

from __future__ import annotations

from typing import Protocol

from semver import Version

from dfx_upgrade import __version__
from dfx_upgrade.errors import InvalidDataError, MissingFieldError
from dfx_upgrade.manifest import Manifest

LATEST_TAG = "latest"


class VersionEnv(Protocol):
    """Source of the installed version string."""

    def get_version(self) -> str: ...


class PackageVersionEnv:
    """Reports the configured installed version, or this package's own."""

    def __init__(self, installed_version: str | None = None) -> None:
        self._installed_version = installed_version

    def get_version(self) -> str:
        return self._installed_version or __version__


def parse_version(text: str) -> Version:
    """Parse ``text`` as semver, raising ``InvalidDataError`` on failure."""
    try:
        return Version.parse(text.strip())
    except (TypeError, ValueError) as exc:
        raise InvalidDataError(f"invalid version: {exc}") from exc


def current_version(override: str | None, env: VersionEnv) -> Version:
    """Return the installed version, preferring an explicit ``override``."""
    return parse_version(override if override is not None else env.get_version())


def resolve_latest(manifest: Manifest) -> Version:
    """Return the version the manifest tags as ``latest``."""
    try:
        return manifest.tags[LATEST_TAG]
    except KeyError:
        raise MissingFieldError(f"expected field '{LATEST_TAG}' in 'tags'") from None


def needs_upgrade(latest: Version | None, current: Version) -> bool:
    """Return True when ``latest`` is unknown or strictly newer than ``current``.

    Build metadata does not take part in the comparison; an equal version
    never triggers an upgrade.
    """
    if latest is None:
        return True
    return latest.compare(current) > 0
