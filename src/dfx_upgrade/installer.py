"""Installation of an unpacked release over the running executable.

New content is unpacked into a staging directory beside the executable so
that the final step is a same-filesystem ``os.replace``. Until that rename
the previous executable is never modified.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import stat
import sys
import tempfile
from collections.abc import Iterator
from pathlib import Path

from dfx_upgrade.errors import ArchiveError, InstallIOError
from dfx_upgrade.logging import get_logger

log = get_logger("dfx_upgrade.installer")

# rwxrwxr-x
# TODO: carry over the previous executable's mode once a policy for it is agreed.
EXECUTABLE_MODE = 0o775

# Name of the executable at the top of every release archive. The installed
# copy may be called something else (a renamed binary, a console script).
RELEASE_BINARY = "dfx"


def current_executable(install_path: Path | None = None) -> Path:
    """Return the executable an upgrade replaces.

    An explicit ``install_path`` wins; a frozen build reports itself through
    ``sys.executable``; otherwise the launched script is used. Symlinks are
    resolved so the rename replaces the real file rather than the link.
    """
    if install_path is not None:
        return Path(install_path).expanduser().resolve()
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve()
    return Path(sys.argv[0]).resolve()


@contextlib.contextmanager
def staging_dir(target: Path) -> Iterator[Path]:
    """Create a temporary directory next to ``target``, removed on exit."""
    try:
        path = Path(tempfile.mkdtemp(prefix=f".{target.name}-upgrade-", dir=target.parent))
    except OSError as exc:
        raise InstallIOError(f"unable to create staging directory in {target.parent}: {exc}") from exc

    log.debug("staging_dir_created", path=str(path))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


def staged_executable(staging: Path) -> Path:
    """Return the unpacked release binary inside ``staging``."""
    candidate = staging / RELEASE_BINARY
    if not candidate.is_file():
        raise ArchiveError(f"release archive does not contain {RELEASE_BINARY}")
    return candidate


def set_permissions(path: Path, mode: int = EXECUTABLE_MODE) -> None:
    """Force ``path`` to ``mode`` regardless of the bits it was unpacked with."""
    try:
        previous = stat.S_IMODE(path.stat().st_mode)
        path.chmod(mode)
    except OSError as exc:
        raise InstallIOError(f"unable to set permissions on {path}: {exc}") from exc
    log.debug("permissions_set", path=str(path), previous=oct(previous), mode=oct(mode))


def _companions(staging: Path, replacement: Path) -> list[Path]:
    files: list[Path] = []
    for root, dirnames, filenames in os.walk(staging):
        base = Path(root)
        # os.walk does not descend into symlinked directories; move the links.
        names = filenames + [name for name in dirnames if (base / name).is_symlink()]
        files.extend(base / name for name in sorted(names) if base / name != replacement)
    return files


def _restore(moved: list[tuple[Path, Path | None]]) -> None:
    """Put back the files ``promote`` displaced, newest move first."""
    for destination, saved in reversed(moved):
        try:
            if saved is not None:
                os.replace(saved, destination)
            else:
                destination.unlink(missing_ok=True)
        except OSError as exc:
            log.warning("restore_failed", path=str(destination), error=str(exc))


def promote(staging: Path, target: Path) -> list[Path]:
    """Move the staged release into place, replacing ``target`` last.

    Companion files are moved first; the executable itself is swapped with a
    single atomic rename. Files a companion overwrites are kept aside in
    ``staging`` until that rename succeeds, so a failure at any point puts
    the previous companions back next to the untouched executable. Returns
    the installed paths.
    """
    replacement = staged_executable(staging)
    install_dir = target.parent
    companions = _companions(staging, replacement)
    moved: list[tuple[Path, Path | None]] = []

    try:
        backup = Path(tempfile.mkdtemp(prefix=".previous-", dir=staging))
        for source in companions:
            destination = install_dir / source.relative_to(staging)
            destination.parent.mkdir(parents=True, exist_ok=True)
            saved = None
            if destination.is_symlink() or destination.exists():
                saved = backup / str(len(moved))
                os.replace(destination, saved)
            moved.append((destination, saved))
            os.replace(source, destination)

        os.replace(replacement, target)
    except OSError as exc:
        _restore(moved)
        raise InstallIOError(f"unable to install release into {install_dir}: {exc}") from exc

    installed = [destination for destination, _ in moved] + [target]
    log.debug("release_promoted", files=[str(path) for path in installed])
    return installed
