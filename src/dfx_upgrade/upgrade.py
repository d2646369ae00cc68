"""Upgrade orchestration.

One invocation walks a fixed sequence of states::

    IDLE -> FETCHING_MANIFEST -> COMPARING_VERSIONS -> UP_TO_DATE
    COMPARING_VERSIONS -> DOWNLOADING -> UNPACKING -> SETTING_PERMISSIONS -> DONE

Any error moves the run to FAILED and is re-raised to the caller. Nothing
is retried.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import httpx

from dfx_upgrade import fetcher, installer
from dfx_upgrade.config import Settings
from dfx_upgrade.logging import get_logger
from dfx_upgrade.manifest import fetch_manifest
from dfx_upgrade.platforms import architecture
from dfx_upgrade.versions import (
    PackageVersionEnv,
    VersionEnv,
    current_version,
    needs_upgrade,
    resolve_latest,
)

log = get_logger("dfx_upgrade.upgrade")


class UpgradeState(Enum):
    """State of an upgrade invocation."""

    IDLE = "idle"
    FETCHING_MANIFEST = "fetching_manifest"
    COMPARING_VERSIONS = "comparing_versions"
    UP_TO_DATE = "up_to_date"
    DOWNLOADING = "downloading"
    UNPACKING = "unpacking"
    SETTING_PERMISSIONS = "setting_permissions"
    DONE = "done"
    FAILED = "failed"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class UpgradeResult:
    """Outcome of an upgrade invocation."""

    status: UpgradeState = UpgradeState.IDLE
    current_version: str | None = None
    latest_version: str | None = None
    release_url: str | None = None
    executable: str | None = None
    error: str | None = None
    steps_completed: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=_now_iso)
    completed_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "current_version": self.current_version,
            "latest_version": self.latest_version,
            "release_url": self.release_url,
            "executable": self.executable,
            "error": self.error,
            "steps_completed": self.steps_completed,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }


class Upgrader:
    """Runs the manifest check and, when needed, installs the latest release."""

    def __init__(
        self,
        settings: Settings,
        version_env: VersionEnv | None = None,
        client_factory: Callable[[], httpx.Client] | None = None,
    ) -> None:
        self._settings = settings
        self._version_env = version_env or PackageVersionEnv(settings.installed_version)
        self._client_factory = client_factory
        self.result = UpgradeResult()

    @property
    def state(self) -> UpgradeState:
        return self.result.status

    def run(
        self,
        current: str | None = None,
        release_root: str | None = None,
    ) -> UpgradeResult:
        """Upgrade the installed executable if the manifest advertises a newer version.

        Args:
            current: Version to compare against instead of the installed one.
            release_root: Release server; defaults to ``Settings.release_root``.

        Raises:
            UpgradeError: Any recoverable failure, after recording it.
            UnsupportedPlatformError: The host has no published release.
        """
        # Resolved before anything else: no request is made for an unsupported host.
        arch = architecture()
        root = release_root or self._settings.release_root
        self.result = UpgradeResult()

        try:
            self._run(arch, root, current)
        except Exception as exc:
            self.result.status = UpgradeState.FAILED
            self.result.error = str(exc)
            self.result.completed_at = _now_iso()
            log.debug("upgrade_failed", error=str(exc), steps=self.result.steps_completed)
            raise

        self.result.completed_at = _now_iso()
        return self.result

    def _run(self, arch: str, release_root: str, current_override: str | None) -> None:
        result = self.result

        installed = current_version(current_override, self._version_env)
        result.current_version = str(installed)
        log.info("current_version", version=str(installed))

        result.status = UpgradeState.FETCHING_MANIFEST
        with self._client(self._settings.manifest_timeout) as client:
            manifest = fetch_manifest(release_root, self._settings.manifest_timeout, client=client)
        result.steps_completed.append("fetch_manifest")

        result.status = UpgradeState.COMPARING_VERSIONS
        latest = resolve_latest(manifest)
        result.latest_version = str(latest)
        if not needs_upgrade(latest, installed):
            result.status = UpgradeState.UP_TO_DATE
            log.info("already_up_to_date", version=str(installed))
            return
        log.info("new_version_available", current=str(installed), latest=str(latest))

        target = installer.current_executable(self._settings.install_path)
        result.executable = str(target)

        with installer.staging_dir(target) as staging:
            result.status = UpgradeState.DOWNLOADING
            with self._client(self._settings.download_timeout) as client:
                url = fetcher.fetch_and_unpack(
                    release_root,
                    latest,
                    arch,
                    staging,
                    self._settings.download_timeout,
                    client=client,
                    on_unpack=self._mark_unpacking,
                )
            result.release_url = str(url)
            result.steps_completed.append("download")
            result.steps_completed.append("unpack")

            result.status = UpgradeState.SETTING_PERMISSIONS
            log.info("setting_permissions", path=str(target))
            installer.set_permissions(installer.staged_executable(staging))
            result.steps_completed.append("set_permissions")

            installer.promote(staging, target)
            result.steps_completed.append("install")

        result.status = UpgradeState.DONE
        log.info("upgrade_complete", version=str(latest), executable=str(target))

    def _mark_unpacking(self) -> None:
        self.result.status = UpgradeState.UNPACKING

    def _client(self, timeout: float | None) -> httpx.Client:
        if self._client_factory is not None:
            return self._client_factory()
        return httpx.Client(timeout=timeout, follow_redirects=True)
