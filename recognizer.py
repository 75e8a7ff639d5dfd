#!/usr/bin/env python3
"""
Recognition pipeline for Media Organizer

Two entry points:
- recognize_media_files: pairs catalog episodes with the files of a folder
- recognize_media_folder: decides which TV show or movie a folder holds, trying
  the NFO file, then a tmdbid embedded in the folder name, then a title search
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

from logger import get_logger
from media_path import basename
from model import (
    MatchResult, MovieRecord, RecognitionResult, RecognitionStrategy, Season, TVShowRecord,
)
from nfo import Nfo
from pattern import get_tmdb_id_from_folder_name, matches_episode_pattern
from util import is_video_file


DEFAULT_LANGUAGE = 'zh-CN'

TVSHOW_NFO = 'tvshow.nfo'
MOVIE_NFO = 'movie.nfo'


class MetadataProvider(Protocol):
    """Catalog lookups the pipeline relies on (implemented by tmdb.TMDBClient)"""

    def search_tv(self, query: str, language: str) -> List[TVShowRecord]: ...

    def search_movie(self, query: str, language: str) -> List[MovieRecord]: ...

    def get_tv_by_id(self, tv_id: int, language: str) -> Optional[TVShowRecord]: ...

    def get_movie_by_id(self, movie_id: int, language: str) -> Optional[MovieRecord]: ...


@dataclass
class RecognitionInput:
    """Everything a recognition strategy may look at"""
    folder_path: str
    files: List[str]
    provider: MetadataProvider
    nfo_reader: Optional[Callable[[str], str]] = None
    language: str = DEFAULT_LANGUAGE
    logger: logging.Logger = field(default_factory=lambda: get_logger('recognizer'))

    @property
    def folder_name(self) -> str:
        return basename(self.folder_path)


def recognize_media_files(seasons: Optional[List[Season]], files: Optional[List[str]]) -> List[MatchResult]:
    """
    Match every catalog episode against every video file

    Each hit is kept: a file matching several episodes (or an episode claimed by
    several files) yields several results.

    Args:
        seasons: Seasons of the catalog record
        files: Candidate file paths (any format); non-video files are ignored

    Returns:
        List of MatchResult in season, episode, file order
    """
    if not seasons or not files:
        return []

    video_files = [f for f in files if is_video_file(f)]
    matches = []
    for season in seasons:
        for episode in season.episodes or []:
            for video_file in video_files:
                if matches_episode_pattern(basename(video_file), season.season_number, episode.episode_number):
                    matches.append(MatchResult(
                        season=season.season_number,
                        episode=episode.episode_number,
                        video_file_path=video_file,
                    ))
    return matches


def _find_file(files: List[str], name: str) -> Optional[str]:
    for f in files:
        if basename(f).lower() == name:
            return f
    return None


def recognize_by_nfo(inp: RecognitionInput) -> Optional[RecognitionResult]:
    """Use tvshow.nfo / movie.nfo: fetch the record by its tmdbid, or build one from the NFO title"""
    if inp.nfo_reader is None:
        return None

    for nfo_name in (TVSHOW_NFO, MOVIE_NFO):
        nfo_file = _find_file(inp.files, nfo_name)
        if nfo_file is None:
            continue

        nfo = Nfo.from_xml(inp.nfo_reader(nfo_file))
        is_tv = nfo.kind == 'tvshow'
        inp.logger.debug(f"Read {nfo_file}: title={nfo.name!r}, tmdbid={nfo.tmdbid!r}")

        record = None
        if nfo.tmdbid and nfo.tmdbid.isdigit() and int(nfo.tmdbid) > 0:
            tmdb_id = int(nfo.tmdbid)
            if is_tv:
                record = inp.provider.get_tv_by_id(tmdb_id, inp.language)
            else:
                record = inp.provider.get_movie_by_id(tmdb_id, inp.language)

        if record is None and nfo.name:
            record_id = int(nfo.tmdbid) if nfo.tmdbid and nfo.tmdbid.isdigit() else 0
            if is_tv:
                record = TVShowRecord(id=record_id, name=nfo.name, original_name=nfo.original_title, year=nfo.year)
            else:
                record = MovieRecord(id=record_id, title=nfo.name, original_title=nfo.original_title, year=nfo.year)

        if record is None:
            inp.logger.debug(f"{nfo_file} has no usable identifiers")
            continue

        if isinstance(record, TVShowRecord):
            return RecognitionResult.tv(record, RecognitionStrategy.NFO)
        return RecognitionResult.movie(record, RecognitionStrategy.NFO)

    return None


def recognize_by_tmdb_id_in_folder_name(inp: RecognitionInput) -> Optional[RecognitionResult]:
    """Use a "[tmdbid=NNN]" token in the folder name; TV shows are tried before movies"""
    tmdb_id = get_tmdb_id_from_folder_name(inp.folder_name)
    if tmdb_id is None:
        return None
    if int(tmdb_id) <= 0:
        inp.logger.warning(f"Ignoring invalid TMDB id in folder name: {inp.folder_name}")
        return None

    tv_show = inp.provider.get_tv_by_id(int(tmdb_id), inp.language)
    if tv_show is not None:
        return RecognitionResult.tv(tv_show, RecognitionStrategy.TMDB_ID_IN_FOLDER_NAME)

    movie = inp.provider.get_movie_by_id(int(tmdb_id), inp.language)
    if movie is not None:
        return RecognitionResult.movie(movie, RecognitionStrategy.TMDB_ID_IN_FOLDER_NAME)

    return None


def recognize_by_folder_name(inp: RecognitionInput) -> Optional[RecognitionResult]:
    """Search TV shows and movies by folder name; only exact title matches are accepted"""
    folder_name = inp.folder_name
    if not folder_name:
        return None

    with ThreadPoolExecutor(max_workers=2) as executor:
        tv_future = executor.submit(inp.provider.search_tv, folder_name, inp.language)
        movie_future = executor.submit(inp.provider.search_movie, folder_name, inp.language)
        tv_results = tv_future.result() or []
        movie_results = movie_future.result() or []

    for tv_show in tv_results:
        inp.logger.debug(f"TV result: {tv_show.name} ({tv_show.id})")
        if tv_show.name == folder_name:
            details = inp.provider.get_tv_by_id(tv_show.id, inp.language)
            return RecognitionResult.tv(details or tv_show, RecognitionStrategy.FOLDER_NAME_SEARCH)

    for movie in movie_results:
        inp.logger.debug(f"Movie result: {movie.title} ({movie.id})")
        if movie.title == folder_name:
            details = inp.provider.get_movie_by_id(movie.id, inp.language)
            return RecognitionResult.movie(details or movie, RecognitionStrategy.FOLDER_NAME_SEARCH)

    return None


STRATEGIES = [
    recognize_by_nfo,
    recognize_by_tmdb_id_in_folder_name,
    recognize_by_folder_name,
]


def recognize_media_folder(
    folder_path: str,
    files: List[str],
    provider: MetadataProvider,
    nfo_reader: Optional[Callable[[str], str]] = None,
    language: str = DEFAULT_LANGUAGE,
    logger: Optional[logging.Logger] = None
) -> RecognitionResult:
    """
    Find out which TV show or movie a media folder holds

    Strategies run in order and the first result wins. A strategy that raises is
    logged and skipped; it never stops the following ones.

    Args:
        folder_path: Media folder path (any format)
        files: Files of the folder, as enumerated by the caller
        provider: Catalog lookups (e.g. tmdb.TMDBClient)
        nfo_reader: Callable returning the text of a file; NFO recognition is skipped without it
        language: Catalog language
        logger: Optional logger instance

    Returns:
        RecognitionResult, RecognitionResult.none() if every strategy failed
    """
    inp = RecognitionInput(
        folder_path=folder_path,
        files=list(files or []),
        provider=provider,
        nfo_reader=nfo_reader,
        language=language,
        logger=logger or get_logger('recognizer'),
    )
    inp.logger.info(f"Recognizing media folder: {folder_path}")

    for strategy in STRATEGIES:
        try:
            result = strategy(inp)
        except Exception as e:
            inp.logger.error(f"Error in {strategy.__name__} for '{folder_path}': {e}")
            continue
        if result is not None and result.success:
            inp.logger.info(
                f"Recognized {folder_path} by {result.strategy.value}: "
                f"{_record_name(result)} (ID: {result.record.id})"
            )
            return result

    inp.logger.warning(f"Could not recognize media folder: {folder_path}")
    return RecognitionResult.none()


def _record_name(result: RecognitionResult) -> str:
    if isinstance(result.record, TVShowRecord):
        return result.record.name
    return result.record.title
