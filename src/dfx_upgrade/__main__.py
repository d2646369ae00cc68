"""Entry point for ``python -m dfx_upgrade``."""

from dfx_upgrade.cli import run

if __name__ == "__main__":
    run()
