"""Allow ``python -m tubestream`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m tubestream`` behaves identically to the ``tubestream``
console script.
"""

from __future__ import annotations

from tubestream.cli.app import cli

if __name__ == "__main__":
    cli()
