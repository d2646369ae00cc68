"""Release archive download and extraction.

The archive is never held in memory or written to disk as a whole: the
response body is read in chunks through a gzip stage into a streaming tar
reader that writes entries straight into the destination directory.
"""

from __future__ import annotations

import gzip
import io
import tarfile
import zlib
from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
from semver import Version

from dfx_upgrade.errors import ArchiveError, DecompressionError, NetworkError, RemoteError
from dfx_upgrade.logging import get_logger
from dfx_upgrade.manifest import http_client, parse_release_root

log = get_logger("dfx_upgrade.fetcher")

RELEASE_PATH = "downloads/dfx/{version}/{arch}/dfx-{version}.tar.gz"


class ChunkReader(io.RawIOBase):
    """Read-only file object over an iterator of byte chunks."""

    def __init__(self, chunks: Iterator[bytes]) -> None:
        self._chunks = chunks
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: bytearray | memoryview) -> int:
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


class GunzipReader(io.RawIOBase):
    """Decompressing stage that reports corrupt input as ``DecompressionError``."""

    def __init__(self, raw: io.RawIOBase) -> None:
        self._gzip = gzip.GzipFile(fileobj=raw, mode="rb")

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: bytearray | memoryview) -> int:
        try:
            return self._gzip.readinto(buffer)
        except (OSError, EOFError, zlib.error) as exc:
            raise DecompressionError(f"unable to gunzip file: {exc}") from exc

    def close(self) -> None:
        self._gzip.close()
        super().close()


def release_url(release_root: str, version: Version, arch: str) -> httpx.URL:
    """Return the archive location for ``version`` on ``arch``."""
    root = parse_release_root(release_root)
    path = RELEASE_PATH.format(version=version, arch=arch)
    return httpx.URL(f"{str(root).rstrip('/')}/{path}")


def unpack_stream(chunks: Iterator[bytes], dest_dir: Path) -> None:
    """Gunzip and untar ``chunks`` into ``dest_dir``.

    Members are filtered with tarfile's ``data`` policy, which rejects
    absolute paths, parent-directory traversal and links leaving
    ``dest_dir``. The gzip stream is read to its end so that a missing or
    mismatching trailer (CRC32 and length) raises ``DecompressionError``.
    """
    with GunzipReader(ChunkReader(chunks)) as stream:
        try:
            with tarfile.open(fileobj=stream, mode="r|") as archive:
                archive.extractall(dest_dir, filter="data")
        except tarfile.TarError as exc:
            raise ArchiveError(f"unable to unpack archive: {exc}") from exc
        except OSError as exc:
            raise ArchiveError(f"unable to write archive entry: {exc}") from exc

        # tarfile stops at the end-of-archive marker, before the gzip trailer.
        while stream.read(io.DEFAULT_BUFFER_SIZE):
            pass


def fetch_and_unpack(
    release_root: str,
    version: Version,
    arch: str,
    dest_dir: Path,
    timeout: float | None = None,
    *,
    client: httpx.Client | None = None,
    on_unpack: Callable[[], None] | None = None,
) -> httpx.URL:
    """Download the release archive for ``version`` and unpack it into ``dest_dir``.

    ``on_unpack`` is called once the server has accepted the request, just
    before the body starts streaming into ``dest_dir``. Returns the URL the
    archive was fetched from.

    Raises:
        InvalidArgumentError: ``release_root`` is not a usable URL.
        NetworkError: The download failed at the transport level.
        RemoteError: The server answered with a non-success status.
        DecompressionError: The body is not a valid gzip stream.
        ArchiveError: An archive entry could not be extracted.
    """
    url = release_url(release_root, version, arch)
    log.info("downloading_release", url=str(url))

    try:
        with http_client(client, timeout) as http:
            with http.stream(
                "GET",
                url,
                timeout=timeout,
                headers={"Accept-Encoding": "identity"},
            ) as response:
                if not response.is_success:
                    reason = httpx.codes.get_reason_phrase(response.status_code) or "unknown error"
                    raise RemoteError(f"unable to download release: {reason}", response.status_code)

                log.info("unpacking_release", directory=str(dest_dir))
                if on_unpack is not None:
                    on_unpack()
                unpack_stream(response.iter_bytes(), dest_dir)
    except httpx.TransportError as exc:
        raise NetworkError(f"unable to download release: {exc}") from exc

    return url
