#!/usr/bin/env python3
"""
Platform-agnostic path model for Media Organizer

A Path is split into a root (the media folder, drive or network share) and a sub
path below it. Every transformation returns a new Path, and none of them can produce
a path above the root: this is what keeps renames inside the media folder.

Supported root formats:
- POSIX:       /media/tv
- Windows:     C:\\Media\\TV
- Windows UNC: \\\\nas.local\\share\\TV
"""

import os
import re
import sys
from enum import Enum
from typing import List, Optional


WIN_PATH_SEPARATOR = '\\'
POSIX_PATH_SEPARATOR = '/'

# Characters that are not allowed in a file name on Windows (and '/' on POSIX)
ILLEGAL_FILENAME_CHARS = r'[<>"/\\|?*\x00-\x1f]'


class PathFormatError(ValueError):
    """Raised when a root or sub path cannot be turned into a Path"""


class Platform(Enum):
    WIN = "win"
    POSIX = "posix"


def detect_platform() -> Platform:
    """Resolve the platform of the running process"""
    if os.name == 'nt' or sys.platform.startswith('win'):
        return Platform.WIN
    return Platform.POSIX


# Resolved once at import; every platform-dependent call also accepts an explicit platform
CURRENT_PLATFORM = detect_platform()


def resolve_platform(platform: Optional[Platform]) -> Platform:
    return CURRENT_PLATFORM if platform is None else platform


def _flatten_split(parts: List[str], separator: str) -> List[str]:
    result = []
    for part in parts:
        result.extend(token for token in part.split(separator) if token.strip())
    return result


def split(path: str) -> List[str]:
    """Split a path on drive-colon-backslash, backslash and slash, dropping blank parts

    Mixed separators normalize to the same segment list:
    split('C:\\Users/John\\Docs') == ['C', 'Users', 'John', 'Docs']
    """
    # "C:/Users" is the same drive boundary as "C:\Users"
    path = re.sub(r'^([A-Za-z]):/', r'\1:' + WIN_PATH_SEPARATOR * 2, path)
    parts = [part for part in path.split(':' + WIN_PATH_SEPARATOR) if part.strip()]
    parts = _flatten_split(parts, WIN_PATH_SEPARATOR)
    parts = _flatten_split(parts, POSIX_PATH_SEPARATOR)
    return parts


def extname(path: str) -> str:
    """Return the extension of the path, including the leading dot ('' if there is none)"""
    words = path.split('.')
    if len(words) == 1:
        return ''
    return '.' + words[-1]


def basename(path: str) -> str:
    """Return the last segment of a path in any supported format"""
    parts = split(path)
    return parts[-1] if parts else ''


def sanitize_filename(name: str) -> str:
    """
    Make a single path segment safe to use as a file name

    Colons become full-width colons, other illegal characters are removed and
    trailing dots/spaces are stripped.

    Raises:
        PathFormatError: If nothing usable is left after sanitization
    """
    clean = name.replace(':', '：')
    clean = re.sub(ILLEGAL_FILENAME_CHARS, '', clean)
    clean = clean.strip().rstrip('. ')
    if not clean or clean in ('.', '..'):
        raise PathFormatError(f"InvalidArgumentError: invalid file name: {name!r}")
    return clean


class Path:
    """Immutable path made of a root and a sub path below it"""

    def __init__(self, root: str, sub: Optional[str] = None):
        if root.strip() == '':
            raise PathFormatError('InvalidArgumentError: root path cannot be empty')

        if sub is not None:
            if sub == '':
                raise PathFormatError('InvalidArgumentError: sub path cannot be empty')
            if len(split(sub)) == 0:
                raise PathFormatError('InvalidArgumentError: invalid sub path')

        if not (root.startswith(POSIX_PATH_SEPARATOR)
                or re.match(r'^[A-Za-z]:', root)
                or root.startswith(WIN_PATH_SEPARATOR * 2)):
            raise PathFormatError(
                f'InvalidArgumentError: root={root}. root path must start with "/" for POSIX format, '
                f'"C:" for Windows format, or "\\\\" for Windows UNC format'
            )

        self._unc = root.startswith(WIN_PATH_SEPARATOR * 2)
        self._root = tuple(split(root))
        self._sub = tuple(split(sub)) if sub is not None else ()

        if len(self._root) == 0:
            raise PathFormatError('InvalidArgumentError: invalid root path')
        if '..' in self._sub:
            raise PathFormatError(f'InvalidArgumentError: sub path cannot go above root: {sub}')

    @classmethod
    def _from_segments(cls, root: tuple, sub: tuple, unc: bool = False) -> 'Path':
        root_str = POSIX_PATH_SEPARATOR + POSIX_PATH_SEPARATOR.join(root)
        path = cls(root_str, POSIX_PATH_SEPARATOR.join(sub)) if sub else cls(root_str)
        path._unc = unc
        return path

    @property
    def root(self) -> List[str]:
        return list(self._root)

    @property
    def sub(self) -> List[str]:
        return list(self._sub)

    @property
    def is_unc(self) -> bool:
        """Network path (UNC) in Windows, e.g. \\\\nas.local\\share\\file.mp4"""
        return self._unc

    def _unc_path(self) -> str:
        server_name = self._root[0]
        parent_path = WIN_PATH_SEPARATOR.join(self._root[1:])
        sub_path = '' if not self._sub else WIN_PATH_SEPARATOR + WIN_PATH_SEPARATOR.join(self._sub)
        return f"{WIN_PATH_SEPARATOR * 2}{server_name}{WIN_PATH_SEPARATOR}{parent_path}{sub_path}"

    def abs(self, fmt: str = "posix") -> str:
        """
        Return the absolute path in the given format ("posix" or "win")

        The POSIX form is the canonical key used to compare paths across platforms:
        drive letters and UNC hosts become ordinary segments.
        """
        if fmt == "win":
            # A root whose first segment is not a drive letter can only be a share
            if self._unc or len(self._root[0]) != 1:
                return self._unc_path()
            root_folders = WIN_PATH_SEPARATOR.join(self._root[1:])
            sub_path = '' if not self._sub else WIN_PATH_SEPARATOR + WIN_PATH_SEPARATOR.join(self._sub)
            return f"{self._root[0]}:{WIN_PATH_SEPARATOR}{root_folders}{sub_path}"
        sub_path = '' if not self._sub else POSIX_PATH_SEPARATOR + POSIX_PATH_SEPARATOR.join(self._sub)
        return f"{POSIX_PATH_SEPARATOR}{POSIX_PATH_SEPARATOR.join(self._root)}{sub_path}"

    def rel(self, fmt: str = "posix") -> str:
        """Return the sub path in the given format"""
        separator = WIN_PATH_SEPARATOR if fmt == "win" else POSIX_PATH_SEPARATOR
        return separator.join(self._sub)

    def name(self) -> str:
        """The file or folder name"""
        if self._sub:
            return self._sub[-1]
        return self._root[-1]

    def dir(self) -> str:
        """The root path in POSIX format"""
        return POSIX_PATH_SEPARATOR + POSIX_PATH_SEPARATOR.join(self._root)

    def cd(self, subpath: str) -> 'Path':
        """Navigate into a sub folder of the root (the current sub path is not kept)"""
        return Path._from_segments(self._root, tuple(Path(self.dir(), subpath)._sub), self._unc)

    def join(self, subpath: str) -> 'Path':
        return Path._from_segments(self._root, self._sub + tuple(split(subpath)), self._unc)

    def filename(self, new_name: str) -> 'Path':
        """
        Replace only the file name, keeping every directory segment above it

        This is what the rename workflow relies on: a rename never moves the file
        out of its current folder.
        """
        if not self._sub:
            raise PathFormatError('InvalidArgumentError: sub path cannot be empty')
        return Path._from_segments(self._root, self._sub[:-1] + (sanitize_filename(new_name),), self._unc)

    def parent(self) -> 'Path':
        if not self._sub:
            raise PathFormatError('reaching parent folder is not allowed')
        return Path._from_segments(self._root, self._sub[:-1], self._unc)

    def platform_abs_path(self, platform: Optional[Platform] = None) -> str:
        return self.abs(resolve_platform(platform).value)

    def platform_rel_path(self, platform: Optional[Platform] = None) -> str:
        return self.rel(resolve_platform(platform).value)

    @staticmethod
    def from_absolute_path(absolute_path: str, root: str) -> 'Path':
        return Path(root, absolute_path.replace(root, '', 1))

    @staticmethod
    def posix(path: str) -> str:
        return Path(path).abs('posix')

    @staticmethod
    def win(path: str) -> str:
        return Path(path).abs('win')

    @staticmethod
    def slash(windows_path: str) -> str:
        """C:\\Users\\username to C:/Users/username"""
        return windows_path.replace(WIN_PATH_SEPARATOR, POSIX_PATH_SEPARATOR)

    @staticmethod
    def path_separator(platform: Optional[Platform] = None) -> str:
        return WIN_PATH_SEPARATOR if resolve_platform(platform) is Platform.WIN else POSIX_PATH_SEPARATOR

    @staticmethod
    def to_platform_path(path: str, platform: Optional[Platform] = None) -> str:
        if resolve_platform(platform) is Platform.WIN:
            return Path.win(path)
        return Path.posix(path)

    def __str__(self) -> str:
        return self.abs()

    def __repr__(self) -> str:
        return f"Path({self.abs()!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Path):
            return NotImplemented
        return self.abs() == other.abs()

    def __hash__(self) -> int:
        return hash(self.abs())
