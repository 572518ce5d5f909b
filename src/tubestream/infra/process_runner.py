""":mod:`subprocess` backed implementation of :class:`~tubestream.core.protocols.CommandRunner`.

Runs short-lived commands (extractor queries, the transcoder version
probe) to completion.  ``OSError`` from a missing or non-executable
program is re-raised as :class:`~tubestream.exceptions.EnvironmentError`.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Sequence

from tubestream.core.models import CompletedCommand
from tubestream.exceptions import EnvironmentError

logger = logging.getLogger(__name__)


def child_environment(search_path: str | None) -> dict[str, str] | None:
    """Return the child's environment, or ``None`` to inherit it unchanged.

    *search_path* is prepended to ``PATH`` so the extractor's own plugins
    can find the helper binaries they shell out to.
    """
    if not search_path:
        return None
    env = dict(os.environ)
    current = env.get("PATH")
    env["PATH"] = search_path if not current else os.pathsep.join((search_path, current))
    return env


class SubprocessRunner:
    """Concrete :class:`CommandRunner` built on :func:`subprocess.run`."""

    def run(
        self,
        command: Sequence[str],
        *,
        search_path: str | None = None,
    ) -> CompletedCommand:
        argv = [str(part) for part in command]
        try:
            completed = subprocess.run(
                argv,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=child_environment(search_path),
                check=False,
            )
        except OSError as exc:
            raise EnvironmentError(
                f"Could not run {argv[0]}: {exc}",
                hint="Check the configured binary path.",
            ) from exc

        logger.debug("%s exited with status %d", argv[0], completed.returncode)
        return CompletedCommand(
            command=tuple(argv),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
