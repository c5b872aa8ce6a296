"""User-facing labels for archive streams.

Deterministic: identical inputs give byte-identical output.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from unidecode import unidecode

from archivarr.domain.entities.stremio import (
    BehaviorHints,
    CandidateFile,
    StremioStream,
    StremioSubtitle,
)

SOURCE_LABEL = "Archive.org"

_GIB = 1024**3
_MIB = 1024**2

_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]+")

_RESOLUTION_ICONS: tuple[tuple[int, str], ...] = (
    (2160, "💎"),
    (1080, "🔵"),
    (720, "🟢"),
)
_DEFAULT_ICON = "⚪"


def size_to_string(size_bytes: int) -> str:
    """``1.4GB`` from one GiB up, ``700MB`` below."""
    if size_bytes >= _GIB:
        return f"{size_bytes / _GIB:.1f}GB"
    return f"{size_bytes / _MIB:.0f}MB"


def _slug_tokens(text: str) -> list[str]:
    return [t for t in _NON_ALNUM_RE.split(unidecode(text).upper()) if t]


def release_slug(
    title: str,
    year: int | None = None,
    season: int | None = None,
    episode: int | None = None,
    quality: str = "",
    resolution: int | None = None,
    extension: str = "",
    fmt: str | None = None,
) -> str:
    """Release-style file name, e.g. ``FOO.2001.S01E05.WEBRIP.720p.H264.mp4``.

    Missing parts are left out.  The codec token is the archive's format
    label with separators removed, or the upper-cased extension.
    """
    parts = _slug_tokens(title)
    if year:
        parts.append(str(year))
    if season is not None and episode is not None:
        parts.append(f"S{season:02d}E{episode:02d}")
    if quality:
        parts.append("".join(_slug_tokens(quality)))
    if resolution:
        parts.append(f"{resolution}p")
    codec = "".join(_slug_tokens(fmt)) if fmt else ""
    if not codec and extension:
        codec = extension.upper()
    if codec:
        parts.append(codec)
    if extension:
        parts.append(extension.lower())
    return ".".join(parts)


def resolution_icon(height: int | None) -> str:
    for threshold, icon in _RESOLUTION_ICONS:
        if height and height >= threshold:
            return icon
    return _DEFAULT_ICON


def display_name(quality: str, height: int | None, fmt: str) -> str:
    """Bold stream title, e.g. ``🔵 Archive.org WEBRip 1080p h.264``."""
    tokens = [resolution_icon(height), SOURCE_LABEL]
    if quality:
        tokens.append(quality)
    if height:
        tokens.append(f"{height}p")
    if fmt:
        tokens.append(fmt)
    return " ".join(tokens)


def describe(item_title: str, slug: str, file: CandidateFile) -> str:
    ext = file.extension
    kind = f"🎬 {ext} ({file.source})" if file.source else f"🎬 {ext}"
    minutes = f"{file.length_seconds / 60:.0f}" if file.length_seconds else "?"
    lines = [
        item_title,
        slug,
        file.name,
        kind,
        f"🕥 {minutes} min   💾 {size_to_string(file.size_bytes)}",
    ]
    return "\n".join(line for line in lines if line)


def build_stream(
    *,
    url: str,
    item_title: str,
    file: CandidateFile,
    quality: str,
    slug: str,
    subtitles: Sequence[StremioSubtitle] = (),
) -> StremioStream:
    """Assemble the Stremio stream for one accepted video file."""
    return StremioStream(
        url=url,
        name=display_name(quality, file.height, file.format),
        description=describe(item_title, slug, file),
        subtitles=tuple(subtitles),
        behavior_hints=BehaviorHints(
            # mp4 is the only container browsers play natively
            not_web_ready=file.extension != "mp4",
            video_size=file.size_bytes,
            filename=slug,
        ),
    )
