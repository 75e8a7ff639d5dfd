#!/usr/bin/env python3
"""
Rename plan validations for Media Organizer

Every check works on RenameTask (source and destination as absolute paths) and
reports problems instead of raising, so that a whole plan can be reviewed at once.
validate_no_abnormal_paths should run before the other checks.
"""

import ntpath
import posixpath
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from media_path import Path, PathFormatError, Platform, resolve_platform


@dataclass(frozen=True)
class RenameTask:
    """One planned rename (absolute paths, POSIX form)"""
    source: str
    destination: str


def _is_normal(path: str, platform: Platform) -> bool:
    # Relative "../" paths normalize to themselves and are left to the file system
    if path.startswith('../'):
        return True
    if '/..' in path or '/./' in path or path.endswith('/.'):
        return False
    try:
        platform_path = Path.to_platform_path(path, platform)
    except PathFormatError:
        return False
    normpath = ntpath.normpath if platform is Platform.WIN else posixpath.normpath
    return normpath(platform_path) == platform_path


def validate_no_abnormal_paths(tasks: List[RenameTask], platform: Optional[Platform] = None) -> List[str]:
    """
    Check that no path contains "." / ".." segments or is otherwise not normalized

    Returns:
        Error messages, empty if every path is normal
    """
    platform = resolve_platform(platform)
    errors = []
    for task in tasks:
        if not _is_normal(task.source, platform):
            errors.append(f'Source path "{task.source}" is abnormal')
        if not _is_normal(task.destination, platform):
            errors.append(f'Destination path "{task.destination}" is abnormal')
    return errors


def _segments_without_drive(path: str) -> List[str]:
    segments = Path(path).abs('posix').split('/')[1:]
    # "/C/Media" and "C:\Media" both compare as ["Media"]
    if segments and len(segments[0]) == 1 and segments[0].isalpha():
        segments = segments[1:]
    return segments


def validate_path_within_media_folder(media_folder: str, tasks: List[RenameTask]) -> List[Tuple[str, str]]:
    """
    Check that both ends of every task are inside the media folder

    Drive letters are ignored and the comparison is done segment by segment, so
    "/media/tv2" is not inside "/media/tv".

    Returns:
        (path, "source" | "destination") for every path outside the media folder
    """
    folder_segments = _segments_without_drive(media_folder)
    invalid_paths = []
    for task in tasks:
        for path, kind in ((task.source, 'source'), (task.destination, 'destination')):
            try:
                segments = _segments_without_drive(path)
            except PathFormatError:
                invalid_paths.append((path, kind))
                continue
            if segments[:len(folder_segments)] != folder_segments:
                invalid_paths.append((path, kind))
    return invalid_paths


def _duplicates(paths: List[str]) -> List[str]:
    seen: Dict[str, int] = {}
    for path in paths:
        seen[path] = seen.get(path, 0) + 1
    return [path for path, count in seen.items() if count > 1]


def validate_no_duplicated_dest_file(tasks: List[RenameTask]) -> List[str]:
    """Return every destination shared by more than one task"""
    return _duplicates([task.destination for task in tasks])


def validate_no_duplicated_source_file(tasks: List[RenameTask]) -> List[str]:
    """Return every source renamed by more than one task"""
    return _duplicates([task.source for task in tasks])


def validate_rename_tasks(media_folder: str, tasks: List[RenameTask], platform: Optional[Platform] = None) -> List[str]:
    """
    Run every validation on a rename plan

    The path checks are skipped when abnormal paths are found, since they cannot be
    compared reliably.

    Returns:
        Error messages, empty if the plan is safe to execute
    """
    errors = validate_no_abnormal_paths(tasks, platform)
    if errors:
        return errors

    for path, kind in validate_path_within_media_folder(media_folder, tasks):
        errors.append(f'{kind.capitalize()} path "{path}" is outside the media folder "{media_folder}"')
    for path in validate_no_duplicated_source_file(tasks):
        errors.append(f'Source path "{path}" is renamed more than once')
    for path in validate_no_duplicated_dest_file(tasks):
        errors.append(f'Destination path "{path}" is used by more than one file')
    return errors
