"""Host operating system to release architecture mapping."""

from __future__ import annotations

import sys
from types import MappingProxyType

from dfx_upgrade.errors import UnsupportedPlatformError

# Operating system identifier -> architecture tag used in release paths
ARCHITECTURES = MappingProxyType(
    {
        "linux": "x86_64-linux",
        "macos": "x86_64-darwin",
    }
)

_SYS_PLATFORMS = MappingProxyType(
    {
        "linux": "linux",
        "darwin": "macos",
    }
)


def host_os() -> str:
    """Return the operating system identifier of this host."""
    for prefix, name in _SYS_PLATFORMS.items():
        if sys.platform.startswith(prefix):
            return name
    return sys.platform


def architecture(os_name: str | None = None) -> str:
    """Return the release architecture tag for ``os_name`` (default: this host).

    Raises:
        UnsupportedPlatformError: No release is published for the platform.
    """
    name = host_os() if os_name is None else os_name
    try:
        return ARCHITECTURES[name]
    except KeyError:
        raise UnsupportedPlatformError(f"Not supported architecture: {name}") from None
