"""Release manifest client.

The manifest is a small JSON document published at the release root::

    {"tags": {"latest": "0.4.1"}, "versions": ["0.3.1", "0.4.0", "0.4.1"]}

Decoding is all-or-nothing: a single invalid version anywhere in the
document rejects the whole manifest.
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from semver import Version

from dfx_upgrade.errors import InvalidArgumentError, NetworkError, ParseError, RemoteError
from dfx_upgrade.logging import get_logger

log = get_logger("dfx_upgrade.manifest")

MANIFEST_PATH = "manifest.json"


def _parse_semver(value: Any) -> Version:
    if not isinstance(value, str):
        raise ValueError(f"invalid SemVer: expected a string, got {type(value).__name__}")
    try:
        return Version.parse(value)
    except ValueError as exc:
        raise ValueError(f"invalid SemVer: {exc}") from exc


class Manifest(BaseModel):
    """Decoded release manifest."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    tags: dict[str, Version]
    versions: list[Version]

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> dict[str, Version]:
        if not isinstance(value, dict):
            raise ValueError("expected an object mapping tag names to versions")
        return {tag: _parse_semver(version) for tag, version in value.items()}

    @field_validator("versions", mode="before")
    @classmethod
    def _parse_versions(cls, value: Any) -> list[Version]:
        if not isinstance(value, list):
            raise ValueError("expected a list of versions")
        return [_parse_semver(version) for version in value]


def decode_manifest(payload: str | bytes) -> Manifest:
    """Decode a manifest document, raising ``ParseError`` on any defect."""
    try:
        return Manifest.model_validate_json(payload)
    except ValidationError as exc:
        raise ParseError(f"invalid manifest: {exc}") from exc


def parse_release_root(release_root: str) -> httpx.URL:
    """Parse ``release_root`` as an absolute http(s) URL."""
    try:
        url = httpx.URL(release_root)
    except httpx.InvalidURL as exc:
        raise InvalidArgumentError(f"invalid release root: {exc}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise InvalidArgumentError(f"invalid release root: {release_root!r} is not an http(s) URL")
    return url


def manifest_url(release_root: str) -> httpx.URL:
    """Return the manifest location for ``release_root``."""
    return parse_release_root(release_root).join(MANIFEST_PATH)


@contextlib.contextmanager
def http_client(client: httpx.Client | None, timeout: float | None) -> Iterator[httpx.Client]:
    """Yield ``client`` unchanged, or a short-lived client owned by the block."""
    if client is not None:
        yield client
        return
    with httpx.Client(timeout=timeout, follow_redirects=True) as owned:
        yield owned


def fetch_manifest(
    release_root: str,
    timeout: float | None = None,
    *,
    client: httpx.Client | None = None,
) -> Manifest:
    """Fetch and decode the manifest published under ``release_root``.

    Args:
        release_root: Base URL of the release server.
        timeout: Request timeout in seconds; ``None`` waits indefinitely.
        client: Optional pre-configured client (used as-is, not closed).

    Raises:
        InvalidArgumentError: ``release_root`` is not a usable URL.
        NetworkError: The request failed at the transport level.
        RemoteError: The server answered with a non-success status.
        ParseError: The body is not a valid manifest.
    """
    url = manifest_url(release_root)
    log.info("fetching_manifest", url=str(url))

    try:
        with http_client(client, timeout) as http:
            response = http.get(url, timeout=timeout)
    except httpx.TransportError as exc:
        raise NetworkError(f"unable to fetch manifest: {exc}") from exc

    if not response.is_success:
        reason = httpx.codes.get_reason_phrase(response.status_code) or "unknown error"
        log.debug("manifest_request_rejected", status=response.status_code)
        raise RemoteError(f"unable to fetch manifest: {reason}", response.status_code)

    manifest = decode_manifest(response.content)
    log.debug(
        "manifest_decoded",
        tags=sorted(manifest.tags),
        versions=len(manifest.versions),
    )
    return manifest
