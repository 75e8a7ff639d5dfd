#!/usr/bin/env python3
"""
Data models for Media Organizer
Defines catalog records (TV shows, movies), episode matches and recognition results.
"""

from typing import List, Optional, Union
from dataclasses import dataclass, field
from enum import Enum


class MediaType(Enum):
    TV = "tv"
    MOVIE = "movie"


class FolderType(Enum):
    TVSHOW_FOLDER = "tvshow-folder"
    MOVIE_FOLDER = "movie-folder"


class RecognitionStrategy(Enum):
    NFO = "nfo"
    TMDB_ID_IN_FOLDER_NAME = "tmdbIdInFolderName"
    FOLDER_NAME_SEARCH = "folderNameSearch"


@dataclass
class Episode:
    """Episode of a catalog season"""
    episode_number: int
    title: str = ""


@dataclass
class Season:
    """Catalog season with its episodes (episodes may be unknown)"""
    season_number: int
    episodes: Optional[List[Episode]] = field(default_factory=list)


@dataclass
class TVShowRecord:
    """TV show catalog record"""
    id: int
    name: str
    original_name: Optional[str] = None
    year: Optional[int] = None
    seasons: List[Season] = field(default_factory=list)

    def find_episode(self, season_number: int, episode_number: int) -> Optional[Episode]:
        for season in self.seasons:
            if season.season_number != season_number:
                continue
            for episode in season.episodes or []:
                if episode.episode_number == episode_number:
                    return episode
        return None


@dataclass
class MovieRecord:
    """Movie catalog record"""
    id: int
    title: str
    original_title: Optional[str] = None
    year: Optional[int] = None


CatalogRecord = Union[TVShowRecord, MovieRecord]


@dataclass(frozen=True)
class MatchResult:
    """A file recognized as a given season/episode"""
    season: int
    episode: int
    video_file_path: str


@dataclass
class RecognitionResult:
    """Outcome of recognizing a media folder

    kind is "tv", "movie" or "none"; strategy tells which recognizer produced it.
    """
    kind: str
    record: Optional[CatalogRecord] = None
    strategy: Optional[RecognitionStrategy] = None

    @classmethod
    def tv(cls, record: TVShowRecord, strategy: RecognitionStrategy) -> 'RecognitionResult':
        return cls(kind=MediaType.TV.value, record=record, strategy=strategy)

    @classmethod
    def movie(cls, record: MovieRecord, strategy: RecognitionStrategy) -> 'RecognitionResult':
        return cls(kind=MediaType.MOVIE.value, record=record, strategy=strategy)

    @classmethod
    def none(cls) -> 'RecognitionResult':
        return cls(kind="none")

    @property
    def success(self) -> bool:
        return self.record is not None

    @property
    def folder_type(self) -> Optional[FolderType]:
        # Derived from the populated record, never guessed
        if isinstance(self.record, TVShowRecord):
            return FolderType.TVSHOW_FOLDER
        if isinstance(self.record, MovieRecord):
            return FolderType.MOVIE_FOLDER
        return None
