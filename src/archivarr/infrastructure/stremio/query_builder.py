"""Search-index query construction for movies and series episodes.

Pure string building, no I/O.  The archive's full-text index has a few
quirks these queries work around:

- upper-case ``TO`` inside a title is parsed as a range operator, so
  titles are always lower-cased;
- items often omit a leading article ("evil dead" for "The Evil Dead");
- long-running soaps are indexed by air date rather than by season and
  episode number.
"""

from __future__ import annotations

import re

from archivarr.domain.entities.stremio import CanonicalMetadata

_LEADING_THE_RE = re.compile(r"^the ", re.IGNORECASE)
_NON_WORD_RE = re.compile(r"\W")
_MONTH_YEAR_RE = re.compile(
    r"(january|february|march|april|may|june|july|august|september|october"
    r"|november|december).*([12][90]\d{2})",
    re.IGNORECASE,
)

# Roughly 300 MB .. 100 GB: excludes clips and raw re-encodes.
_MOVIE_SIZE_CLAUSE = 'item_size:["300000000" TO "100000000000"]'

_SERIES_EXCLUDE_CLAUSE = (
    "-title:(trailer OR trailers OR promo OR promos OR review OR reviews"
    " OR interview OR interviews)"
)
_SERIES_COLLECTION_CLAUSE = (
    "(series OR collection:(television OR unsorted_television OR opensource_movies))"
)

SOAP_GENRE = "Soap"


def normalize_movie_title(title: str) -> str:
    """Lower-case and drop a leading "the "."""
    return _LEADING_THE_RE.sub("", title.lower())


def build_movie_query(meta: CanonicalMetadata) -> str:
    """Build the boolean search query for a movie.

    Example::

        (wachowski OR 1999 OR 1998 OR 2000) AND title:(matrix) AND
        -title:trailer AND mediatype:movies AND item_size:[...]
    """
    alternatives: list[str] = []
    if meta.director_surname:
        alternatives.append(meta.director_surname)
    if meta.year is not None:
        alternatives.extend(
            str(y) for y in (meta.year, meta.year - 1, meta.year + 1)
        )

    parts: list[str] = []
    if alternatives:
        parts.append(f"({' OR '.join(alternatives)})")
    parts.extend(
        [
            f"title:({normalize_movie_title(meta.title)})",
            "-title:trailer",
            "mediatype:movies",
            _MOVIE_SIZE_CLAUSE,
        ]
    )
    return " AND ".join(parts)


def series_match_name(title: str) -> str:
    """Show name as an index wildcard token (``breaking*bad``)."""
    return _NON_WORD_RE.sub("*", title.lower())


def soap_air_date(episode_name: str) -> tuple[str, str] | None:
    """Extract ``(month, year)`` from a soap episode name, if present."""
    m = _MONTH_YEAR_RE.search(episode_name)
    if m is None:
        return None
    return m.group(1), m.group(2)


def build_series_query(meta: CanonicalMetadata, episode_name: str = "") -> str:
    """Build the boolean search query for a series episode.

    Soaps never get the TV-collection restriction.  When the episode name
    carries an air date the title clause searches for
    ``<show> <month> <year>`` instead of the show name alone.
    """
    match_name = series_match_name(meta.title)
    parts = [
        f'title:("{match_name}" OR *{match_name}*)',
        _SERIES_EXCLUDE_CLAUSE,
        "mediatype:movies",
        _SERIES_COLLECTION_CLAUSE,
    ]

    if SOAP_GENRE in meta.genres:
        air_date = soap_air_date(episode_name) if episode_name else None
        if air_date is not None:
            month, year = air_date
            parts[0] = f"title:({meta.title.lower()} {month} {year})"
        parts.pop()

    return " AND ".join(parts)
