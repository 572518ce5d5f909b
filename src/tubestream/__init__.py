"""tubestream — resolve web pages into live, unbuffered media streams.

Orchestrates an external extractor (yt-dlp) and transcoder (ffmpeg)
behind a strict layered architecture.
"""

from tubestream.version import __version__

__all__: list[str] = ["__version__"]
