#!/usr/bin/env python3
"""
TMDB API client for Media Organizer
Searches and fetches TV shows and movies, returning catalog records shaped with
seasons and episodes.
"""

import logging
import threading
import time
from typing import Optional, List, Dict, Any

import requests
from tmdbv3api import TMDb, TV, Movie, Season as TMDBSeason

from cache import RecordCache
from model import Episode, Season, TVShowRecord, MovieRecord, MediaType


class TMDBError(Exception):
    """Raised when the TMDB client cannot be set up"""


class TMDBClient:
    """Client for interacting with TMDB API (implements recognizer.MetadataProvider)"""

    def __init__(
        self,
        api_key: str,
        languages: Optional[List[str]] = None,
        proxy_host: Optional[str] = None,
        proxy_port: Optional[int] = None,
        rate_limit: int = 40,
        cache: Optional[RecordCache] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize TMDB client

        Args:
            api_key: TMDB API key
            languages: Languages in order of preference (default: ["zh-CN"])
            proxy_host: Proxy host with protocol (e.g., "http://proxy.example.com")
            proxy_port: Proxy port
            rate_limit: Maximum number of requests allowed per second (default: 40)
            cache: Cache for records fetched by id (a new one is created if None)
            logger: Optional logger instance

        Raises:
            TMDBError: If no API key is given
        """
        if not api_key:
            raise TMDBError("TMDB API key is required")

        self.api_key = api_key
        self.languages = languages or ["zh-CN"]
        self.language = self.languages[0]
        self.rate_limit = rate_limit if rate_limit and rate_limit > 0 else 40
        self.min_request_interval = 1.0 / self.rate_limit  # Minimum seconds between requests
        self.last_request_time = 0.0
        self._rate_lock = threading.Lock()
        # tmdbv3api keeps the language process-wide
        self._language_lock = threading.Lock()
        self.cache = cache if cache is not None else RecordCache()
        self.logger = logger or logging.getLogger(__name__)

        self.tmdb = TMDb()
        self.tmdb.api_key = self.api_key
        self.tmdb.language = self.language

        if proxy_host and proxy_port:
            proxy_url = f"{proxy_host.rstrip('/')}:{proxy_port}"
            session = requests.Session()
            session.proxies.update({
                'http': proxy_url,
                'https': proxy_url,
            })
            # Set X-Forwarded-Host header to avoid 403 errors
            session.headers.update({'X-Forwarded-Host': 'api.themoviedb.org'})
            self.tmdb.session = session
            self.logger.debug(f"Proxy configured: {proxy_url}")

        self.tv = TV()
        self.movie = Movie()
        self.season = TMDBSeason()

    def _wait_for_rate_limit(self):
        """
        Enforce rate limiting by waiting if necessary before making a request.
        Ensures we don't exceed rate_limit requests per second.
        """
        with self._rate_lock:
            time_since_last_request = time.time() - self.last_request_time
            if time_since_last_request < self.min_request_interval:
                wait_time = self.min_request_interval - time_since_last_request
                self.logger.debug(f"Rate limiting: waiting {wait_time:.3f} seconds before next request")
                time.sleep(wait_time)
            self.last_request_time = time.time()

    def _request(self, language: Optional[str], call, *args):
        """Run one API call in the given language, restoring the default language afterwards"""
        with self._language_lock:
            try:
                self.tmdb.language = language or self.language
                self._wait_for_rate_limit()
                return call(*args)
            finally:
                self.tmdb.language = self.language

    def search_tv(self, query: str, language: Optional[str] = None) -> List[TVShowRecord]:
        """
        Search for TV shows by name

        Args:
            query: TV show name to search for
            language: Result language (default: first configured language)

        Returns:
            List of TVShowRecord without seasons, empty on error
        """
        try:
            self.logger.debug(f"Searching TMDB for TV show: {query}")
            results = self._request(language, self.tv.search, query)
            records = [self._parse_tv_show_result(r) for r in results or []]
            self.logger.debug(f"Found {len(records)} TV results for: {query}")
            return records
        except Exception as e:
            self.logger.error(f"Error searching TMDB for TV show '{query}': {e}")
            return []

    def search_movie(self, query: str, language: Optional[str] = None) -> List[MovieRecord]:
        """
        Search for movies by title

        Returns:
            List of MovieRecord, empty on error
        """
        try:
            self.logger.debug(f"Searching TMDB for movie: {query}")
            results = self._request(language, self.movie.search, query)
            records = [self._parse_movie_result(r) for r in results or []]
            self.logger.debug(f"Found {len(records)} movie results for: {query}")
            return records
        except Exception as e:
            self.logger.error(f"Error searching TMDB for movie '{query}': {e}")
            return []

    def get_tv_by_id(self, tv_id: int, language: Optional[str] = None) -> Optional[TVShowRecord]:
        """
        Get a TV show with all its seasons and episodes

        Args:
            tv_id: TMDB TV show ID
            language: Result language (default: first configured language)

        Returns:
            TVShowRecord or None if not found
        """
        language = language or self.language
        cached = self.cache.get(MediaType.TV.value, tv_id, language)
        if cached is not None:
            self.logger.debug(f"Cache hit for TV show ID: {tv_id}")
            return cached

        try:
            self.logger.debug(f"Fetching TMDB details for TV show ID: {tv_id}")
            details = self._request(language, self.tv.details, tv_id)
            if not details:
                self.logger.debug(f"No details found for TV show ID: {tv_id}")
                return None
            record = self._parse_tv_show_result(details)
        except Exception as e:
            self.logger.error(f"Error fetching TMDB details for TV show ID {tv_id}: {e}")
            return None

        record.seasons = self._fetch_seasons_and_episodes(tv_id, details, language)
        self.cache.put(MediaType.TV.value, tv_id, language, record)
        return record

    def get_movie_by_id(self, movie_id: int, language: Optional[str] = None) -> Optional[MovieRecord]:
        """
        Get a movie by ID

        Returns:
            MovieRecord or None if not found
        """
        language = language or self.language
        cached = self.cache.get(MediaType.MOVIE.value, movie_id, language)
        if cached is not None:
            self.logger.debug(f"Cache hit for movie ID: {movie_id}")
            return cached

        try:
            self.logger.debug(f"Fetching TMDB details for movie ID: {movie_id}")
            details = self._request(language, self.movie.details, movie_id)
            if not details:
                self.logger.debug(f"No details found for movie ID: {movie_id}")
                return None
            record = self._parse_movie_result(details)
        except Exception as e:
            self.logger.error(f"Error fetching TMDB details for movie ID {movie_id}: {e}")
            return None

        self.cache.put(MediaType.MOVIE.value, movie_id, language, record)
        return record

    def _fetch_seasons_and_episodes(self, tv_id: int, details: Dict[str, Any], language: str) -> List[Season]:
        """
        Fetch all seasons and episodes for a TV show

        Season numbers come from the seasons listed in the details (Specials included),
        falling back to 1..number_of_seasons.
        """
        season_numbers = [
            s.get('season_number') for s in details.get('seasons') or []
            if s.get('season_number') is not None
        ]
        if not season_numbers:
            season_numbers = list(range(1, (details.get('number_of_seasons') or 0) + 1))

        seasons = []
        for season_number in season_numbers:
            try:
                season_details = self._request(language, self.season.details, tv_id, season_number)
                if not season_details:
                    continue
                episodes = [
                    Episode(
                        episode_number=episode.get('episode_number', 0),
                        title=episode.get('name', '') or ''
                    )
                    for episode in season_details.get('episodes') or []
                ]
                seasons.append(Season(season_number=season_number, episodes=episodes))
            except Exception as e:
                self.logger.warning(f"Error fetching season {season_number} for TV show {tv_id}: {e}")
                continue
        return seasons

    def _extract_year_from_date(self, date_string: Optional[str]) -> Optional[int]:
        """Extract year from date string (YYYY-MM-DD format)"""
        if not date_string:
            return None
        try:
            return int(date_string[:4])
        except (ValueError, IndexError):
            return None

    def _parse_tv_show_result(self, result: Dict[str, Any]) -> TVShowRecord:
        return TVShowRecord(
            id=result.get('id', 0),
            name=result.get('name', ''),
            original_name=result.get('original_name'),
            year=self._extract_year_from_date(result.get('first_air_date'))
        )

    def _parse_movie_result(self, result: Dict[str, Any]) -> MovieRecord:
        return MovieRecord(
            id=result.get('id', 0),
            title=result.get('title', ''),
            original_title=result.get('original_title'),
            year=self._extract_year_from_date(result.get('release_date'))
        )


def create_tmdb_client_from_config(config: Any, logger: Optional[logging.Logger] = None) -> TMDBClient:
    """
    Create TMDBClient instance from Config

    Args:
        config: Config instance (with tmdb and proxy at root level)
        logger: Optional logger instance

    Returns:
        TMDBClient instance configured with proxy if specified
    """
    tmdb_config = config.tmdb
    proxy_host = None
    proxy_port = None
    if config.proxy:
        proxy_host = config.proxy.host
        proxy_port = config.proxy.port

    return TMDBClient(
        api_key=tmdb_config.api_key,
        languages=tmdb_config.languages,
        proxy_host=proxy_host,
        proxy_port=proxy_port,
        rate_limit=tmdb_config.rate_limit,
        logger=logger
    )
