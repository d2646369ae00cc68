"""Shared fixtures for the dfx-upgrade test suite."""

from __future__ import annotations

import gzip
import io
import os
import tarfile
from collections.abc import Callable

import pytest
import structlog

from dfx_upgrade.config import get_settings

SAMPLE_MANIFEST = """{
  "tags": {
    "latest": "0.4.1"
  },
  "versions": [
    "0.3.1",
    "0.4.0",
    "0.4.1"
  ]
}"""


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep DFX_* variables from the developer's shell out of the tests."""
    for key in list(os.environ):
        if key.upper().startswith("DFX_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()


def build_archive(files: dict[str, bytes], mode: int = 0o644) -> bytes:
    """Return a gzipped tarball holding ``files`` (name -> content)."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = mode
            tar.addfile(info, io.BytesIO(data))
    return gzip.compress(buffer.getvalue())


@pytest.fixture
def release_archive() -> Callable[..., bytes]:
    """Factory fixture building in-memory release archives."""
    return build_archive


@pytest.fixture
def sample_manifest() -> str:
    return SAMPLE_MANIFEST
