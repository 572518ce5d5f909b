"""Smoke tests — verify package wiring.

These tests prove that:
* The CLI entry point is importable and callable.
* The exception hierarchy is correctly structured.
* Version is accessible.
* Exit codes are defined.
"""

from __future__ import annotations

import pytest

from tubestream import __version__
from tubestream.cli import exit_codes
from tubestream.exceptions import (
    ConfigurationError,
    ConversionError,
    EmptyUrlError,
    EnvironmentError,
    ExtractorError,
    InvalidProtocolConversionError,
    InvalidTimeError,
    MetadataParseError,
    PasswordRequiredError,
    PlaylistConversionError,
    PopenStreamError,
    RemuxConflictError,
    RemuxError,
    RemuxMissingSecondUrlError,
    TranscoderError,
    TranscoderNotFoundError,
    TubestreamError,
    UpstreamHttpError,
    WrongPasswordError,
    append_ytdlp_upgrade_suggestion,
)


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

class TestVersion:
    def test_version_is_string(self) -> None:
        assert isinstance(__version__, str)

    def test_version_is_semver_like(self) -> None:
        parts = __version__.split(".")
        assert len(parts) == 3
        assert all(part.isdigit() for part in parts)


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------

class TestExceptions:
    @pytest.mark.parametrize(
        "exc_class",
        [
            ConfigurationError,
            EnvironmentError,
            PopenStreamError,
            TranscoderNotFoundError,
            ExtractorError,
            MetadataParseError,
            EmptyUrlError,
            InvalidTimeError,
            ConversionError,
            TranscoderError,
            UpstreamHttpError,
        ],
    )
    def test_all_exceptions_inherit_from_base(
        self, exc_class: type[TubestreamError]
    ) -> None:
        assert issubclass(exc_class, TubestreamError)

    @pytest.mark.parametrize("exc_class", [PasswordRequiredError, WrongPasswordError])
    def test_password_errors_are_extractor_errors(
        self, exc_class: type[TubestreamError]
    ) -> None:
        assert issubclass(exc_class, ExtractorError)

    @pytest.mark.parametrize(
        "exc_class",
        [PlaylistConversionError, InvalidProtocolConversionError, RemuxError],
    )
    def test_conversion_family(self, exc_class: type[TubestreamError]) -> None:
        assert issubclass(exc_class, ConversionError)

    def test_remux_family(self) -> None:
        assert issubclass(RemuxConflictError, RemuxError)
        assert issubclass(RemuxMissingSecondUrlError, RemuxError)

    def test_environment_error_shadows_builtin(self) -> None:
        assert issubclass(PopenStreamError, EnvironmentError)
        assert not issubclass(EnvironmentError, OSError)

    def test_hint_is_stored(self) -> None:
        err = TubestreamError("boom", hint="try this")
        assert str(err) == "boom"
        assert err.hint == "try this"

    def test_hint_defaults_to_none(self) -> None:
        assert TubestreamError("boom").hint is None

    def test_default_messages(self) -> None:
        assert str(PopenStreamError()) == "Could not open popen stream."
        assert str(EmptyUrlError()) == "youtube-dl returned an empty URL."
        assert str(PlaylistConversionError()) == "Conversion of playlists is not supported."
        assert str(RemuxMissingSecondUrlError()) == "This video does not have two URLs."

    def test_transcoder_not_found_message(self) -> None:
        err = TranscoderNotFoundError("/opt/ffmpeg", hint="install it")
        assert str(err) == "Can't find avconv or ffmpeg at /opt/ffmpeg."
        assert err.path == "/opt/ffmpeg"

    def test_upgrade_suggestion_appended_once(self) -> None:
        once = append_ytdlp_upgrade_suggestion("Check the URL.")
        assert once.startswith("Check the URL.")
        assert append_ytdlp_upgrade_suggestion(once) == once


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

class TestExitCodes:
    def test_values(self) -> None:
        assert exit_codes.SUCCESS == 0
        assert exit_codes.GENERAL_ERROR == 1
        assert exit_codes.UNEXPECTED_ERROR == 2
        assert exit_codes.CREDENTIALS_REQUIRED == 3
        assert exit_codes.KEYBOARD_INTERRUPT == 130

    def test_distinct(self) -> None:
        codes = [
            exit_codes.SUCCESS,
            exit_codes.GENERAL_ERROR,
            exit_codes.UNEXPECTED_ERROR,
            exit_codes.CREDENTIALS_REQUIRED,
            exit_codes.KEYBOARD_INTERRUPT,
        ]
        assert len(set(codes)) == len(codes)
