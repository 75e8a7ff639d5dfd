#!/usr/bin/env python3
"""
Pattern matching for Media Organizer
Decides whether a file name refers to a given season/episode, and extracts TMDB ids
embedded in folder names.

Matching is substring based: a file matches when any of the supported forms occurs
anywhere in its name. Supported forms:

1. S01E05, S1E5, S01.E05, S01xE05, S01 E05, S01EP05, [01x05]
2. E05, EP05, EPISODE 05 (season 1 only)
3. 第1季第5集, 第1季 第5集, S1 第5集 (Arabic or Chinese numerals)
4. 第5話, 第5回, 5話, 5回 (season 1 only), S01 第5話, シーズン1 エピソード5, シーズン1 第5話
5. Positional numbers (season 1 only): "05 Title", "Title 05", "Show 05 Title", "#05", "- 05"
"""

import re
from typing import List, Optional

from media_path import extname
from util import parse_chinese_number


CHINESE_NUMERAL_CHARS = '零一二三四五六七八九十壹贰叁肆伍陆柒捌玖拾'
NUMBER_GROUP = rf'([{CHINESE_NUMERAL_CHARS}\d]+)'

# Chinese season + episode: 第1季第5集, 第一季 第五集
CHINESE_SEASON_EPISODE_PATTERN = rf'第{NUMBER_GROUP}季 ?第{NUMBER_GROUP}集'

# TMDB id embedded in a folder name: "Show (2020) [tmdbid=1396]", "{tmdbid = 1396}"
TMDB_ID_IN_FOLDER_NAME_PATTERN = r'[(\[{]\s*tmdbid\s*=\s*(\d+)\s*[)\]}]'

# The E of an SxxEyy token is not an episode-only marker
NOT_AFTER_SEASON_TOKEN = r'(?<!S\d)(?<!S\d\d)'

# A 話/回 episode preceded by "S2 第" or "シーズン2 " belongs to that season
SEASON_TOKEN_BEFORE_EPISODE = r'(?:S|シーズン)(\d+)[ 　]?第?$'


def _number(value: int) -> str:
    """Regex for a number written padded or unpadded, not followed by another digit"""
    if 0 <= value < 10:
        return rf'0?{value}(?!\d)'
    return rf'{value}(?!\d)'


def _season_episode_patterns(season: int, episode: int) -> List[str]:
    """Forms carrying an explicit season number"""
    s = _number(season)
    e = _number(episode)
    return [
        rf'S{s}[.x ]?EP?{e}',             # S01E05, S1.E5, S01xE05, S01 E05, S01EP05
        rf'\[{s}x{e}\]',                  # [01x05]
        rf'シーズン{s}[ 　]?エピソード{e}',   # シーズン1 エピソード5
        rf'シーズン{s}[ 　]?第{e}[話回]',     # シーズン1 第5話
    ]


def _season_one_patterns(episode: int) -> List[str]:
    """Forms without a season number, which imply season 1"""
    e = _number(episode)
    return [
        rf'{NOT_AFTER_SEASON_TOKEN}E{e}',     # E05
        rf'EP{e}',                            # EP05
        rf'EPISODE[ ._]?{e}',                 # EPISODE 05
    ]


def _positional_patterns(episode: int) -> List[str]:
    """Bare episode numbers, matched against the name without its extension"""
    e = _number(episode)
    return [
        rf'(?:^|\s)#?{e}(?:\s|$)',           # "05 Title", "Show 05 Title", "Title 05", "#05 Title"
        rf'- {e}',                            # "Show - 05"
    ]


def _matches_numbered_form(pattern: str, filename: str, expected: List[int]) -> bool:
    """Match a pattern whose groups may hold Chinese numerals and compare parsed values"""
    for match in re.finditer(pattern, filename, re.IGNORECASE):
        values = [parse_chinese_number(group) for group in match.groups()]
        if values == expected:
            return True
    return False


def _matches_bare_episode_marker(filename: str, episode: int) -> bool:
    """第5話, 5話, 第5回, 5回 without a season token for another season in front of it"""
    for match in re.finditer(rf'(?<!\d){_number(episode)}[話回]', filename):
        season_token = re.search(SEASON_TOKEN_BEFORE_EPISODE, filename[:match.start()], re.IGNORECASE)
        if season_token is None or int(season_token.group(1)) == 1:
            return True
    return False


def matches_episode_pattern(filename: str, season: int, episode: int) -> bool:
    """
    Check whether a file name refers to the given season and episode

    Args:
        filename: File name (base name, with or without extension)
        season: Season number from the catalog
        episode: Episode number from the catalog

    Returns:
        True if any supported form for (season, episode) occurs in the file name
    """
    for pattern in _season_episode_patterns(season, episode):
        if re.search(pattern, filename, re.IGNORECASE):
            return True

    # Chinese forms accept Arabic and Chinese numerals
    if _matches_numbered_form(CHINESE_SEASON_EPISODE_PATTERN, filename, [season, episode]):
        return True
    mixed_pattern = rf'S{_number(season)} ?第{NUMBER_GROUP}[集話回]'  # S1 第5集, S01 第5話
    if _matches_numbered_form(mixed_pattern, filename, [episode]):
        return True

    if season != 1:
        return False

    for pattern in _season_one_patterns(episode):
        if re.search(pattern, filename, re.IGNORECASE):
            return True
    if _matches_bare_episode_marker(filename, episode):
        return True

    ext = extname(filename)
    stem = filename[:-len(ext)] if ext else filename
    for pattern in _positional_patterns(episode):
        if re.search(pattern, stem, re.IGNORECASE):
            return True

    return False


def get_tmdb_id_from_folder_name(folder_name: str) -> Optional[str]:
    """
    Extract an embedded TMDB id from a folder name

    The id must be wrapped in (), [] or {}: "Show (tmdbid=1396)". Leading zeros are kept,
    the first occurrence wins.

    Returns:
        The id as a string, or None if there is no valid tmdbid token
    """
    if not folder_name:
        return None
    match = re.search(TMDB_ID_IN_FOLDER_NAME_PATTERN, folder_name, re.IGNORECASE)
    return match.group(1) if match else None
