"""Infrastructure: build a :class:`~tubestream.core.models.DownloaderConfig`.

Sources, later ones winning:

1. Environment-derived defaults — the running interpreter, the installed
   ``yt_dlp`` package, ``ffmpeg``/``avconv`` found on PATH.
2. The ``[tubestream]`` table of a TOML file (``--config`` or
   ``$TUBESTREAM_CONFIG``).
3. ``TUBESTREAM_*`` environment variables.
"""

from __future__ import annotations

import importlib.util
import os
import shlex
import shutil
import sys
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from tubestream.core.models import DownloaderConfig
from tubestream.exceptions import ConfigurationError, EnvironmentError
from tubestream.infra.transcoder_detector import detect_transcoder

CONFIG_ENV_VAR = "TUBESTREAM_CONFIG"
TABLE_NAME = "tubestream"

_STRING_KEYS: tuple[str, ...] = (
    "extractor",
    "python",
    "transcoder",
    "transcoder_verbosity",
    "helper_dir",
)
_ENV_KEYS: dict[str, str] = {
    "TUBESTREAM_EXTRACTOR": "extractor",
    "TUBESTREAM_PYTHON": "python",
    "TUBESTREAM_TRANSCODER": "transcoder",
    "TUBESTREAM_TRANSCODER_VERBOSITY": "transcoder_verbosity",
    "TUBESTREAM_HELPER_DIR": "helper_dir",
    "TUBESTREAM_EXTRACTOR_PARAMS": "extractor_params",
}


def default_extractor() -> tuple[str | None, str]:
    """Locate yt-dlp; return ``(python, extractor)``.

    Prefers the ``yt_dlp`` package importable by this interpreter, run as
    ``<python> <package dir>``; falls back to a ``yt-dlp`` executable.

    Raises
    ------
    EnvironmentError
        When neither is available.
    """
    spec = importlib.util.find_spec("yt_dlp")
    if spec is not None and spec.origin is not None:
        return sys.executable, str(Path(spec.origin).parent)

    executable = shutil.which("yt-dlp")
    if executable is not None:
        return None, executable

    raise EnvironmentError(
        "yt-dlp is not installed. Install with: pip install yt-dlp",
    )


def read_config_file(path: Path) -> dict[str, Any]:
    """Return the ``[tubestream]`` table of the TOML file at *path*."""
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc

    table = data.get(TABLE_NAME, {})
    if not isinstance(table, dict):
        raise ConfigurationError(f"[{TABLE_NAME}] in {path} must be a table.")
    return _validate_table(table, source=str(path))


def _validate_table(table: Mapping[str, Any], *, source: str) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, value in table.items():
        if key in _STRING_KEYS:
            if not isinstance(value, str):
                raise ConfigurationError(f"{source}: '{key}' must be a string.")
            values[key] = value
        elif key == "extractor_params":
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigurationError(
                    f"{source}: 'extractor_params' must be a list of strings.",
                )
            values[key] = tuple(value)
        else:
            raise ConfigurationError(f"{source}: unknown key '{key}'.")
    return values


def _environment_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for variable, key in _ENV_KEYS.items():
        if variable not in environ:
            continue
        raw = environ[variable]
        values[key] = tuple(shlex.split(raw)) if key == "extractor_params" else raw
    return values


def load_config(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> DownloaderConfig:
    """Assemble a :class:`DownloaderConfig` from defaults, file and environment.

    Raises
    ------
    ConfigurationError
        On an unreadable file, unknown keys, wrong types or invalid values.
    EnvironmentError
        When no extractor is configured and yt-dlp cannot be found.
    """
    env = os.environ if environ is None else environ

    values: dict[str, Any] = {}
    if path is None and env.get(CONFIG_ENV_VAR):
        path = Path(env[CONFIG_ENV_VAR])
    if path is not None:
        values.update(read_config_file(path))
    values.update(_environment_overrides(env))

    if "extractor" not in values:
        python, extractor = default_extractor()
        values["extractor"] = extractor
        values.setdefault("python", python)
    if "transcoder" not in values:
        status = detect_transcoder()
        values["transcoder"] = str(status.path) if status.path else "ffmpeg"

    # An empty interpreter means "run the extractor directly".
    if not values.get("python"):
        values["python"] = None
    if not values.get("helper_dir"):
        values["helper_dir"] = None

    return DownloaderConfig(**values)
