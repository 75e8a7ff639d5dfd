#!/usr/bin/env python3
"""
NFO support for Media Organizer
Parses the tvshow.nfo / movie.nfo sidecar files used by media-center software.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional


NFO_ROOT_TAGS = ('tvshow', 'movie')


class NfoParseError(ValueError):
    """Raised when an NFO document is malformed or has an unexpected root element"""


@dataclass
class NfoThumb:
    url: str
    aspect: Optional[str] = None
    season: Optional[int] = None
    type: Optional[str] = None


@dataclass
class Nfo:
    """Fields of a tvshow/movie NFO document (all optional)"""
    kind: str = 'tvshow'
    id: Optional[str] = None
    title: Optional[str] = None
    original_title: Optional[str] = None
    show_title: Optional[str] = None
    plot: Optional[str] = None
    fanart: Optional[str] = None
    tmdbid: Optional[str] = None
    year: Optional[int] = None
    thumbs: List[NfoThumb] = field(default_factory=list)

    @property
    def name(self) -> Optional[str]:
        """Best display name available in the document"""
        return self.title or self.show_title or self.original_title

    @classmethod
    def from_xml(cls, xml_text: str) -> 'Nfo':
        """
        Parse an NFO document

        Args:
            xml_text: Content of a tvshow.nfo or movie.nfo file

        Returns:
            Nfo with every field found in the document

        Raises:
            NfoParseError: If the XML is malformed or the root is not <tvshow>/<movie>
        """
        try:
            root = ET.fromstring(xml_text.strip())
        except ET.ParseError as e:
            raise NfoParseError(f"Failed to parse XML: {e}") from e

        if root.tag not in NFO_ROOT_TAGS:
            raise NfoParseError(f"XML does not contain a tvshow or movie root element (found <{root.tag}>)")

        def text(tag: str) -> Optional[str]:
            element = root.find(tag)
            if element is None or element.text is None:
                return None
            return element.text.strip() or None

        nfo = cls(
            kind=root.tag,
            id=text('id'),
            title=text('title'),
            original_title=text('originaltitle'),
            show_title=text('showtitle'),
            plot=text('plot'),
            fanart=text('fanart'),
            tmdbid=text('tmdbid'),
        )

        if nfo.tmdbid is None:
            # Kodi style: <uniqueid type="tmdb">1396</uniqueid>
            for uniqueid in root.findall('uniqueid'):
                if uniqueid.get('type', '').lower() == 'tmdb' and uniqueid.text and uniqueid.text.strip():
                    nfo.tmdbid = uniqueid.text.strip()
                    break

        year = text('year') or (text('premiered') or '')[:4]
        if year and year.isdigit():
            nfo.year = int(year)

        for thumb in root.findall('thumb'):
            url = (thumb.text or '').strip()
            if not url:
                continue
            season = thumb.get('season')
            nfo.thumbs.append(NfoThumb(
                url=url,
                aspect=thumb.get('aspect') or None,
                season=int(season) if season is not None and season.lstrip('-').isdigit() else None,
                type=thumb.get('type') or None,
            ))

        return nfo
