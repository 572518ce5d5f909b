"""CLI console helpers with optional Rich support.

This module intentionally avoids module-level imports of optional UI
dependencies so bootstrap paths (``--help``, ``--version``) remain
functional even when Rich is not installed.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from tubestream.exceptions import EnvironmentError


def _load_rich_console_class() -> type[Any]:
	"""Return ``rich.console.Console`` class or raise ``EnvironmentError``."""
	try:
		from rich.console import Console
	except ModuleNotFoundError as exc:
		raise EnvironmentError(
			"rich is not installed. Install with: pip install rich",
		) from exc
	return Console


def get_rich_console() -> Any:
	"""Create a Rich console instance targeting stderr.

	Stdout is reserved for stream bytes and machine-readable output.
	"""
	console_class = _load_rich_console_class()
	return console_class(stderr=True)


class _ConsoleProxy:
	"""Minimal ``print``-compatible proxy with Rich fallback."""

	def print(self, *objects: object) -> None:
		"""Render with Rich when available, else plain stderr print."""
		try:
			rich_console = get_rich_console()
		except EnvironmentError:
			print(*objects, file=sys.stderr)
			return
		rich_console.print(*objects)


console = _ConsoleProxy()


def configure_logging(verbose: bool = False) -> None:
	"""Route library log records to stderr through Rich.

	``verbose`` enables DEBUG (every synthesized command line); the
	default only shows warnings.  Without Rich no handler is installed
	and Python's last-resort handler still prints warnings.
	"""
	level = logging.DEBUG if verbose else logging.WARNING
	root = logging.getLogger("tubestream")
	root.setLevel(level)
	try:
		from rich.logging import RichHandler

		handler = RichHandler(
			console=get_rich_console(),
			show_path=False,
			rich_tracebacks=False,
		)
	except (ModuleNotFoundError, EnvironmentError):
		return
	handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
	root.handlers[:] = [handler]
