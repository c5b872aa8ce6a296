"""File acceptance heuristics for archive items.

Every function here is pure: plain strings and numbers in, booleans,
compiled patterns or token extracts out.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from archivarr.domain.entities.stremio import CandidateFile

VIDEO_EXTENSIONS: frozenset[str] = frozenset({"avi", "mp4", "mkv", "wmv", "mov", "m4v"})
SUBTITLE_EXTENSIONS: frozenset[str] = frozenset({"srt", "vtt", "ass"})

# Archive-generated derivative encodings carry ".ia." before the extension.
_DERIVATIVE_MARKER = ".ia."

_SINGLE_SEASON_RE = re.compile(r"season|[^a-z0-9]s[^a-z]?\d|^s[^a-z]?\d", re.IGNORECASE)
_QUALITY_RE = re.compile(
    r"(?:dvd|blu-?ray|bd|hd|web|nd-?rip)-?(?:rip|dl)?|remux", re.IGNORECASE
)

_LEADING_THE_RE = re.compile(r"^the ", re.IGNORECASE)
_PART_RE = re.compile(r"\W*part\W*[0-9IVX]+\W*", re.IGNORECASE)
_PARENTHESES_RE = re.compile(r"\(.*\)")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def _extension(name: str) -> str:
    return name[-3:].lower()


def is_video_file(name: str) -> bool:
    return _extension(name) in VIDEO_EXTENSIONS


def is_subtitle_file(name: str) -> bool:
    return _extension(name) in SUBTITLE_EXTENSIONS


def is_derivative_file(name: str) -> bool:
    """True for ``movie.ia.mp4``-style derivatives of a primary file."""
    return name[-7:-3] == _DERIVATIVE_MARKER


def meets_runtime(file: CandidateFile, runtime_seconds: int, ratio: float = 0.7) -> bool:
    """True when the file runs longer than ``ratio`` of the canonical runtime.

    Files without a declared duration never qualify.
    """
    if file.length_seconds is None:
        return False
    return file.length_seconds > runtime_seconds * ratio


def extract_quality(text: str) -> str:
    """First rip/source token in *text* (``WEBRip``, ``BluRay``, ...), or ``""``."""
    m = _QUALITY_RE.search(text)
    return m.group(0) if m else ""


def single_season_item(title_and_id: str) -> bool:
    """Whether an item's title/identifier says it holds one season only."""
    return _SINGLE_SEASON_RE.search(title_and_id) is not None


def episode_pattern(season: int, episode: int, single_season: bool) -> re.Pattern[str]:
    """Episode regex: ``E05``/``ep-5``/``episode 5`` or ``S01E05``/``s1-e5``."""
    if single_season:
        return re.compile(
            rf"(?:(?:^|[^a-z])ep?|episode)\D?0*{episode}(?:\D|$)", re.IGNORECASE
        )
    return re.compile(
        rf"s(?:eason)?\D?0*{season}\D*(?:ep?|episode)\D?0*{episode}(?:\D|$)",
        re.IGNORECASE,
    )


def wrong_season_pattern(season: int) -> re.Pattern[str]:
    """Matches ``S<n>``/``season <n>`` markers naming a season other than *season*.

    Leading zeros are consumed before the comparison, so ``S01`` is never
    a wrong season for season 1 while ``S10`` is.
    """
    return re.compile(
        rf"(?:(?:^|[^a-z])s|season)\D?0*(?!{season}(?!\d))[1-9]\d*",
        re.IGNORECASE,
    )


def clean_episode_name(name: str) -> str:
    name = _LEADING_THE_RE.sub("", name)
    name = _PART_RE.sub(" ", name, count=1)
    name = _PARENTHESES_RE.sub("", name)
    return name.strip()


def episode_name_pattern(name: str) -> re.Pattern[str] | None:
    """Fuzzy regex finding an episode title inside a file name.

    ``"The Pilot (Part 1)"`` becomes ``.*pilot.*``.  Names that clean up
    to nothing yield no pattern (it would match every file).
    """
    cleaned = clean_episode_name(name)
    if not cleaned:
        return None
    return re.compile(".*" + _NON_ALNUM_RE.sub(".*", cleaned) + ".*", re.IGNORECASE)


@dataclass(frozen=True)
class EpisodeMatcher:
    """Decides whether a file of one archive item is the requested episode."""

    episode_re: re.Pattern[str]
    wrong_season_re: re.Pattern[str]
    name_re: re.Pattern[str] | None = None

    @classmethod
    def for_item(
        cls,
        title_and_id: str,
        season: int,
        episode: int,
        episode_name: str = "",
    ) -> EpisodeMatcher:
        return cls(
            episode_re=episode_pattern(
                season, episode, single_season_item(title_and_id)
            ),
            wrong_season_re=wrong_season_pattern(season),
            name_re=episode_name_pattern(episode_name) if episode_name else None,
        )

    def item_in_wrong_season(self, title_and_id: str) -> bool:
        return self.wrong_season_re.search(title_and_id) is not None

    def matches(self, file_name: str) -> bool:
        hit = self.episode_re.search(file_name) is not None or (
            self.name_re is not None and self.name_re.search(file_name) is not None
        )
        return hit and self.wrong_season_re.search(file_name) is None
