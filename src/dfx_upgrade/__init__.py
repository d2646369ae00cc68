"""Self-update subsystem for the dfx command-line tool.

Fetches the release manifest, compares the advertised ``latest`` version
with the installed one, and replaces the running executable with the
platform release archive when a newer version exists.
"""

__version__ = "0.5.0"
