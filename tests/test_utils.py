# tests/test_utils.py
"""Test utilities and helpers"""

import logging

import pytest

from lyricsync.exceptions import ConfigError, LyricSyncError, ProviderError
from lyricsync.utils.helpers import (
    calculate_similarity,
    format_duration,
    normalize_artist_name,
    normalize_track_title,
    parse_duration_string,
    sanitize_filename,
    truncate_string,
)
from lyricsync.utils.logger import (
    OperationLogger,
    get_current_log_file,
    get_logger,
    log_performance,
    parse_size,
    setup_logging,
)


class TestHelpers:
    """Test helper functions"""

    def test_sanitize_filename(self):
        """Test filename sanitization"""
        assert sanitize_filename("Test/File\\Name") == "TestFileName"
        assert sanitize_filename("CON") == "_CON"  # Reserved Windows name
        assert sanitize_filename("Song: Title?") == "Song Title"
        assert sanitize_filename("") == "unknown"
        assert sanitize_filename("...") == "unknown"

    def test_format_duration(self):
        """Test duration formatting"""
        assert format_duration(90) == "1:30"
        assert format_duration(3661) == "1:01:01"
        assert format_duration(0) == "0:00"
        assert format_duration(-10) == "0:00"
        assert format_duration(None) == "0:00"

    def test_calculate_similarity(self):
        """Test string similarity calculation"""
        assert calculate_similarity("hello", "hello") == 1.0
        assert calculate_similarity("Hello", "hello ") == 1.0
        assert calculate_similarity("hello", "world") < 0.5
        assert calculate_similarity("", "") == 1.0
        assert calculate_similarity("test", "") == 0.0

    def test_normalize_artist_name(self):
        """Test artist name normalization"""
        assert normalize_artist_name("The Beatles") == "beatles"
        assert normalize_artist_name("Artist feat. Other") == "artist"
        assert normalize_artist_name("A Artist") == "artist"
        assert normalize_artist_name(None) == ""

    def test_normalize_track_title(self):
        """Test track title normalization"""
        assert normalize_track_title("Song (Remix)") == "song"
        assert normalize_track_title("Track feat. Artist") == "track"
        assert normalize_track_title("Title [Remaster]") == "title"
        assert normalize_track_title("Live (Live Version)") == "live"

    def test_parse_duration_string(self):
        """Test duration string parsing"""
        assert parse_duration_string("3:45") == 225
        assert parse_duration_string("1:23:45") == 5025
        assert parse_duration_string("212") == 212
        assert parse_duration_string("03:20.50") == 200.5
        assert parse_duration_string("invalid") is None
        assert parse_duration_string(None) is None

    def test_truncate_string(self):
        """Test string truncation"""
        assert truncate_string("short", 10) == "short"
        assert truncate_string("a very long title", 10) == "a very ..."
        assert len(truncate_string("a very long title", 10)) == 10


class TestLogger:
    """Test logging helpers"""

    def test_parse_size(self):
        """Test size strings"""
        assert parse_size("10MB") == 10 * 1024 ** 2
        assert parse_size("500 kb") == 500 * 1024
        assert parse_size("1.5GB") == int(1.5 * 1024 ** 3)
        with pytest.raises(ValueError):
            parse_size("lots")

    def test_file_logging(self, temp_dir):
        """Test file handler setup"""
        log_file = temp_dir / "logs" / "lyricsync.log"
        setup_logging(level="DEBUG", log_file=str(log_file), console_output=False)
        try:
            get_logger("lyricsync.test").debug("written to file")
            assert get_current_log_file() == log_file
            assert log_file.exists()
        finally:
            setup_logging(level="INFO", console_output=False)

        assert get_current_log_file() is None

    def test_console_info(self, caplog):
        """Test console messages are regular INFO records"""
        logger = get_logger("lyricsync.test")
        with caplog.at_level(logging.INFO, logger="lyricsync.test"):
            logger.console_info("visible")

        record = caplog.records[-1]
        assert record.getMessage() == "visible"
        assert record.console_output is True

    def test_operation_logger(self, caplog):
        """Test operation lifecycle messages"""
        operation = OperationLogger(get_logger("lyricsync.test"), "Search", show_progress=False)
        with caplog.at_level(logging.INFO, logger="lyricsync.test"):
            operation.start("starting")
            operation.progress("netease: 3 found", 1, 3)
            operation.complete("done")

        messages = [record.getMessage() for record in caplog.records]
        assert "Operation started: Search" in messages
        assert "Search: netease: 3 found (1/3)" in messages
        assert "done" in messages

    def test_operation_logger_progress_bar(self):
        """Test the progress bar is created and released"""
        operation = OperationLogger(get_logger("lyricsync.test"), "Search")
        operation.progress("kugou", 1, 2)
        assert operation.progress_bar is not None

        operation.error("failed")
        assert operation.progress_bar is None

    def test_log_performance(self):
        """Test the decorator keeps the result and re-raises errors"""
        @log_performance
        def add(a, b):
            return a + b

        @log_performance
        def fail():
            raise RuntimeError("boom")

        assert add(1, 2) == 3
        assert add.__name__ == "add"
        with pytest.raises(RuntimeError):
            fail()


class TestExceptions:
    """Test the exception hierarchy"""

    def test_details(self):
        """Test message and details are kept"""
        error = ConfigError("bad file", details={'file_path': '/tmp/x'})

        assert isinstance(error, LyricSyncError)
        assert str(error) == "bad file"
        assert error.details == {'file_path': '/tmp/x'}

    def test_provider_error_source(self):
        """Test provider errors carry their source"""
        error = ProviderError("offline", source="kugou")

        assert error.source == "kugou"
        assert error.details == {}
