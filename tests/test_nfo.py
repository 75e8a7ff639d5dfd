#!/usr/bin/env python3
"""
NFO parsing tests.
"""

import sys
from pathlib import Path

import pytest

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from nfo import Nfo, NfoParseError, NfoThumb


TVSHOW_NFO = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<tvshow>
  <id>12345</id>
  <title>Test Show</title>
  <originaltitle>Original Test Show</originaltitle>
  <showtitle>Test Show Title</showtitle>
  <plot>This is a test plot</plot>
  <premiered>2008-01-20</premiered>
  <fanart>https://example.com/fanart.jpg</fanart>
  <tmdbid>67890</tmdbid>
  <thumb aspect="poster">https://example.com/poster.jpg</thumb>
  <thumb aspect="poster" season="1" type="season">https://example.com/season1.jpg</thumb>
  <thumb aspect="clearlogo"> </thumb>
</tvshow>
"""


class TestNfoParsing:
    """Tests for Nfo.from_xml"""

    def test_tvshow(self):
        nfo = Nfo.from_xml(TVSHOW_NFO)
        assert nfo.kind == "tvshow"
        assert nfo.id == "12345"
        assert nfo.title == "Test Show"
        assert nfo.original_title == "Original Test Show"
        assert nfo.show_title == "Test Show Title"
        assert nfo.plot == "This is a test plot"
        assert nfo.fanart == "https://example.com/fanart.jpg"
        assert nfo.tmdbid == "67890"
        assert nfo.year == 2008
        assert nfo.name == "Test Show"
        assert nfo.thumbs == [
            NfoThumb(url="https://example.com/poster.jpg", aspect="poster"),
            NfoThumb(url="https://example.com/season1.jpg", aspect="poster", season=1, type="season"),
        ]

    def test_movie_with_uniqueid(self):
        xml = """
        <movie>
          <title>The Matrix</title>
          <year>1999</year>
          <uniqueid type="imdb">tt0133093</uniqueid>
          <uniqueid type="tmdb" default="true">603</uniqueid>
        </movie>
        """
        nfo = Nfo.from_xml(xml)
        assert nfo.kind == "movie"
        assert nfo.tmdbid == "603"
        assert nfo.year == 1999

    def test_tmdbid_element_wins_over_uniqueid(self):
        nfo = Nfo.from_xml("<tvshow><tmdbid>1</tmdbid><uniqueid type='tmdb'>2</uniqueid></tvshow>")
        assert nfo.tmdbid == "1"

    def test_empty_fields(self):
        nfo = Nfo.from_xml("<tvshow><title>  </title><plot/></tvshow>")
        assert nfo.title is None
        assert nfo.plot is None
        assert nfo.tmdbid is None
        assert nfo.name is None
        assert nfo.thumbs == []

    def test_name_fallbacks(self):
        assert Nfo.from_xml("<tvshow><showtitle>Shown</showtitle></tvshow>").name == "Shown"
        assert Nfo.from_xml("<tvshow><originaltitle>Orig</originaltitle></tvshow>").name == "Orig"

    def test_malformed_xml(self):
        for xml in ("<tvshow><title>", "", "not xml at all"):
            with pytest.raises(NfoParseError):
                Nfo.from_xml(xml)

    def test_wrong_root(self):
        with pytest.raises(NfoParseError) as exc_info:
            Nfo.from_xml("<episodedetails><title>x</title></episodedetails>")
        assert "episodedetails" in str(exc_info.value)
