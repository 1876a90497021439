"""
Utility helper functions for lyricsync
"""

import re
import unicodedata
from typing import Optional, Union


def sanitize_filename(filename: str, max_length: int = 200) -> str:
    """
    Sanitize filename for cross-platform compatibility

    Args:
        filename: Original filename
        max_length: Maximum filename length

    Returns:
        Sanitized filename
    """
    if not filename:
        return "unknown"

    filename = filename.strip().strip('"\'').strip()
    if not filename:
        return "unknown"

    filename = unicodedata.normalize('NFKC', filename)

    # Characters not allowed in Windows filenames
    filename = re.sub(r'[<>:"/\\|?*\x00-\x1f\x7f-\x9f]', '', filename)
    filename = re.sub(r'\s+', ' ', filename)
    filename = filename.strip(' .')

    reserved_names = {
        'CON', 'PRN', 'AUX', 'NUL',
        'COM1', 'COM2', 'COM3', 'COM4', 'COM5', 'COM6', 'COM7', 'COM8', 'COM9',
        'LPT1', 'LPT2', 'LPT3', 'LPT4', 'LPT5', 'LPT6', 'LPT7', 'LPT8', 'LPT9'
    }
    name_part = filename.split('.')[0].upper()
    if name_part in reserved_names:
        filename = f"_{filename}"

    if len(filename) > max_length:
        if '.' in filename:
            name, ext = filename.rsplit('.', 1)
            available_length = max_length - len(ext) - 1
            filename = f"{name[:available_length]}.{ext}" if available_length > 0 else filename[:max_length]
        else:
            filename = filename[:max_length]

    filename = filename.rstrip(' .')
    return filename or "unknown"


def format_duration(seconds: Union[int, float, None]) -> str:
    """
    Format duration in seconds to human-readable string

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string
    """
    if seconds is None or seconds < 0:
        return "0:00"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def calculate_similarity(str1: str, str2: str) -> float:
    """
    Calculate string similarity using Levenshtein distance

    Args:
        str1: First string
        str2: Second string

    Returns:
        Similarity score between 0.0 and 1.0
    """
    if not str1 and not str2:
        return 1.0
    if not str1 or not str2:
        return 0.0

    s1 = str1.lower().strip()
    s2 = str2.lower().strip()

    if s1 == s2:
        return 1.0

    len1, len2 = len(s1), len(s2)

    # Two-row Levenshtein
    previous = list(range(len2 + 1))
    for i in range(1, len1 + 1):
        current = [i] + [0] * len2
        for j in range(1, len2 + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            current[j] = min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost   # substitution
            )
        previous = current

    max_len = max(len1, len2)
    similarity = 1 - (previous[len2] / max_len)

    return max(0.0, similarity)


def normalize_artist_name(artist: str) -> str:
    """
    Normalize artist name for better matching

    Args:
        artist: Original artist name

    Returns:
        Normalized artist name
    """
    normalized = (artist or "").lower()

    for prefix in ('the ', 'a ', 'an '):
        if normalized.startswith(prefix):
            normalized = normalized[len(prefix):]

    feat_patterns = [
        r'\s*\(feat\.?.*?\)',
        r'\s*\(ft\.?.*?\)',
        r'\s*feat\.?.*',
        r'\s*ft\..*',
        r'\s*featuring.*',
    ]
    for pattern in feat_patterns:
        normalized = re.sub(pattern, '', normalized, flags=re.IGNORECASE)

    return re.sub(r'\s+', ' ', normalized).strip()


def normalize_track_title(title: str) -> str:
    """
    Normalize track title for better matching

    Args:
        title: Original track title

    Returns:
        Normalized track title
    """
    normalized = (title or "").lower()

    version_patterns = [
        r'\s*[\(\[].*?(?:version|mix|edit|remaster|live).*?[\)\]]',
        r'\s*\((?:feat|ft)\.?.*?\)',
        r'\s*(?:feat\.?|ft\.|featuring)\s.*',
    ]
    for pattern in version_patterns:
        normalized = re.sub(pattern, '', normalized, flags=re.IGNORECASE)

    return re.sub(r'\s+', ' ', normalized).strip()


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate string to maximum length with suffix

    Args:
        text: Text to truncate
        max_length: Maximum length including suffix
        suffix: Suffix appended when truncated
    """
    if len(text) <= max_length:
        return text
    return text[:max(0, max_length - len(suffix))] + suffix


def parse_duration_string(duration_str: str) -> Optional[float]:
    """
    Parse "m:ss", "h:mm:ss" or plain seconds into seconds

    Returns:
        Duration in seconds or None if the string is not a duration
    """
    if duration_str is None:
        return None

    text = str(duration_str).strip()
    if re.fullmatch(r'\d+(?:\.\d+)?', text):
        return float(text)

    parts = text.split(':')
    if len(parts) not in (2, 3) or not all(re.fullmatch(r'\d+(?:\.\d+)?', p) for p in parts):
        return None

    seconds = 0.0
    for part in parts:
        seconds = seconds * 60 + float(part)
    return seconds
