# lyricsync/utils/__init__.py
"""
Utilities package
Common helpers and logging
"""

from .logger import (
    get_logger,
    configure_from_settings,
    setup_logging,
    OperationLogger,
    create_operation_logger,
    log_performance,
    get_current_log_file
)
from .helpers import (
    sanitize_filename,
    format_duration,
    calculate_similarity,
    normalize_artist_name,
    normalize_track_title,
    truncate_string,
    parse_duration_string,
)

__all__ = [
    # Logger exports
    'get_logger',
    'configure_from_settings',
    'setup_logging',
    'OperationLogger',
    'create_operation_logger',
    'log_performance',
    'get_current_log_file',

    # Helper exports
    'sanitize_filename',
    'format_duration',
    'calculate_similarity',
    'normalize_artist_name',
    'normalize_track_title',
    'truncate_string',
    'parse_duration_string',
]
