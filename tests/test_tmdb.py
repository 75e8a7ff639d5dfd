#!/usr/bin/env python3
"""
Test script for tmdb.py
Tests TMDB client parsing and caching with the API objects replaced by fakes (no network).
"""

import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from cache import RecordCache
from config import Config
from model import Episode, MovieRecord, Season, TVShowRecord
from tmdb import TMDBClient, TMDBError, create_tmdb_client_from_config


BREAKING_BAD_DETAILS = {
    'id': 1396,
    'name': 'Breaking Bad',
    'original_name': 'Breaking Bad',
    'first_air_date': '2008-01-20',
    'number_of_seasons': 2,
    'seasons': [{'season_number': 0}, {'season_number': 1}, {'season_number': 2}],
}

SEASON_DETAILS = {
    0: {'episodes': [{'episode_number': 1, 'name': 'Good Cop Bad Cop'}]},
    1: {'episodes': [{'episode_number': 1, 'name': 'Pilot'}, {'episode_number': 2, 'name': None}]},
}


class FakeTV:
    def __init__(self):
        self.calls = []

    def search(self, query):
        self.calls.append(('search', query))
        return [BREAKING_BAD_DETAILS] if query == 'Breaking Bad' else []

    def details(self, tv_id):
        self.calls.append(('details', tv_id))
        if tv_id != 1396:
            raise Exception("The resource you requested could not be found.")
        return BREAKING_BAD_DETAILS


class FakeMovie:
    def search(self, query):
        raise Exception("connection reset")

    def details(self, movie_id):
        return {'id': movie_id, 'title': 'The Matrix', 'original_title': 'The Matrix', 'release_date': '1999-03-30'}


class FakeSeason:
    def details(self, tv_id, season_number):
        if season_number not in SEASON_DETAILS:
            raise Exception("season not found")
        return SEASON_DETAILS[season_number]


@pytest.fixture
def client(monkeypatch):
    # TMDb mirrors its settings into the environment
    monkeypatch.delenv('TMDB_API_KEY', raising=False)
    monkeypatch.delenv('TMDB_LANGUAGE', raising=False)
    tmdb_client = TMDBClient(api_key='test-key', languages=['en-US', 'zh-CN'], rate_limit=1000)
    tmdb_client.tv = FakeTV()
    tmdb_client.movie = FakeMovie()
    tmdb_client.season = FakeSeason()
    return tmdb_client


class TestTMDBClient:
    """Tests for TMDBClient"""

    def test_requires_api_key(self):
        with pytest.raises(TMDBError):
            TMDBClient(api_key='')

    def test_search_tv(self, client):
        results = client.search_tv('Breaking Bad')
        assert results == [TVShowRecord(id=1396, name='Breaking Bad', original_name='Breaking Bad', year=2008)]
        assert client.search_tv('Nothing') == []

    def test_search_errors_return_empty(self, client):
        assert client.search_movie('The Matrix') == []

    def test_get_tv_by_id_with_seasons(self, client):
        print("\n" + "="*60)
        print("Test: TV show details with seasons and episodes")
        print("="*60)

        record = client.get_tv_by_id(1396)
        for season in record.seasons:
            print(f"  Season {season.season_number}: {len(season.episodes)} episodes")

        assert record.name == 'Breaking Bad'
        assert record.year == 2008
        # Season 2 fails to load and is left out
        assert record.seasons == [
            Season(0, [Episode(1, 'Good Cop Bad Cop')]),
            Season(1, [Episode(1, 'Pilot'), Episode(2, '')]),
        ]

    def test_get_tv_by_id_is_cached(self, client):
        first = client.get_tv_by_id(1396, 'en-US')
        second = client.get_tv_by_id(1396, 'en-US')
        assert first is second
        assert client.tv.calls.count(('details', 1396)) == 1

        client.get_tv_by_id(1396, 'zh-CN')
        assert client.tv.calls.count(('details', 1396)) == 2

    def test_get_tv_by_id_not_found(self, client):
        assert client.get_tv_by_id(999) is None
        assert client.cache.size() == 0

    def test_get_movie_by_id(self, client):
        assert client.get_movie_by_id(603) == MovieRecord(
            id=603, title='The Matrix', original_title='The Matrix', year=1999
        )

    def test_language_is_restored(self, client):
        client.search_tv('Breaking Bad', language='ja-JP')
        assert client.tmdb.language == 'en-US'

    def test_concurrent_languages(self, client):
        seen = []

        class RecordingSearch:
            def search(self, query):
                seen.append((query, client.tmdb.language))
                time.sleep(0.01)
                seen.append((query, client.tmdb.language))
                return []

        client.tv = RecordingSearch()
        client.movie = RecordingSearch()
        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = [
                executor.submit(client.search_tv, 'tv', 'ja-JP'),
                executor.submit(client.search_movie, 'movie', 'fr-FR'),
            ]
            for future in futures:
                future.result()

        assert sorted(set(seen)) == [('movie', 'fr-FR'), ('tv', 'ja-JP')]
        assert client.tmdb.language == 'en-US'

    def test_extract_year(self, client):
        assert client._extract_year_from_date('2008-01-20') == 2008
        assert client._extract_year_from_date('') is None
        assert client._extract_year_from_date('unknown') is None

    def test_create_from_config(self, monkeypatch):
        monkeypatch.delenv('TMDB_API_KEY', raising=False)
        monkeypatch.delenv('TMDB_LANGUAGE', raising=False)
        config = Config.from_dict({
            'tmdb': {'api_key': 'k', 'languages': ['ja-JP'], 'rate_limit': 5},
            'proxy': {'host': 'http://127.0.0.1/', 'port': 7890},
        })
        tmdb_client = create_tmdb_client_from_config(config)
        assert tmdb_client.language == 'ja-JP'
        assert tmdb_client.rate_limit == 5
        assert tmdb_client.tmdb.session.proxies['https'] == 'http://127.0.0.1:7890'


class TestRecordCache:
    """Tests for RecordCache"""

    def test_keyed_by_kind_id_and_language(self):
        cache = RecordCache()
        movie = MovieRecord(id=1, title='A')
        cache.put('movie', 1, 'en-US', movie)

        assert cache.get('movie', 1, 'en-US') is movie
        assert cache.get('tv', 1, 'en-US') is None
        assert cache.get('movie', 1, 'zh-CN') is None
        assert cache.size() == 1

        cache.clear()
        assert cache.size() == 0
