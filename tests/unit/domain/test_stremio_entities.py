"""Tests for Stremio domain entities."""

from __future__ import annotations

import dataclasses

import pytest

from archivarr.domain.entities.stremio import (
    BehaviorHints,
    CandidateFile,
    CanonicalMetadata,
    EpisodeInfo,
    StremioStream,
    StremioStreamRequest,
    StremioSubtitle,
)


def _make_stream() -> StremioStream:
    return StremioStream(
        url="https://archive.org/download/show-s01/show.s01e05.mkv",
        name="🔵 Archive.org WEBRip 1080p Matroska",
        description="Show S01\nSHOW.2001.S01E05.WEBRIP.1080p.MATROSKA.mkv",
        subtitles=(
            StremioSubtitle(
                id="show.s01e05.srt",
                url="https://archive.org/download/show-s01/show.s01e05.srt",
            ),
        ),
        behavior_hints=BehaviorHints(
            not_web_ready=True,
            video_size=734_003_200,
            filename="SHOW.2001.S01E05.WEBRIP.1080p.MATROSKA.mkv",
        ),
    )


class TestStremioStreamRequest:
    def test_movie_cache_key(self) -> None:
        req = StremioStreamRequest(imdb_id="tt0133093", content_type="movie")
        assert req.cache_key == "stream:movie:tt0133093"
        assert req.is_episode is False

    def test_episode_cache_key(self) -> None:
        req = StremioStreamRequest(
            imdb_id="tt0903747", content_type="series", season=1, episode=5
        )
        assert req.cache_key == "stream:series:tt0903747:1:5"
        assert req.is_episode is True

    def test_frozen(self) -> None:
        req = StremioStreamRequest(imdb_id="tt0133093", content_type="movie")
        with pytest.raises(dataclasses.FrozenInstanceError):
            req.imdb_id = "tt1"  # type: ignore[misc]


class TestCanonicalMetadata:
    def test_find_episode(self) -> None:
        meta = CanonicalMetadata(
            title="Show",
            episodes=(EpisodeInfo(1, 1, "Pilot"), EpisodeInfo(1, 2, "Second")),
        )
        found = meta.find_episode(1, 2)
        assert found is not None
        assert found.name == "Second"

    def test_find_episode_missing(self) -> None:
        meta = CanonicalMetadata(title="Show")
        assert meta.find_episode(3, 1) is None


class TestCandidateFile:
    @pytest.mark.parametrize(
        ("name", "ext"),
        [("movie.MP4", "mp4"), ("show.s01e05.mkv", "mkv"), ("subs.SRT", "srt")],
    )
    def test_extension_is_last_three_chars_lowercased(self, name: str, ext: str) -> None:
        assert CandidateFile(name=name).extension == ext


class TestStremioStreamWireFormat:
    def test_to_dict_uses_camel_case_hints(self) -> None:
        data = _make_stream().to_dict()
        assert set(data) == {"url", "name", "description", "subtitles", "behaviorHints"}
        assert data["behaviorHints"] == {
            "notWebReady": True,
            "videoSize": 734_003_200,
            "filename": "SHOW.2001.S01E05.WEBRIP.1080p.MATROSKA.mkv",
        }
        assert data["subtitles"] == [
            {
                "id": "show.s01e05.srt",
                "url": "https://archive.org/download/show-s01/show.s01e05.srt",
                "lang": "en",
            }
        ]

    def test_from_dict_restores_equal_stream(self) -> None:
        stream = _make_stream()
        assert StremioStream.from_dict(stream.to_dict()) == stream

    def test_without_hints(self) -> None:
        stream = StremioStream(url="u", name="n", description="d")
        data = stream.to_dict()
        assert "behaviorHints" not in data
        assert StremioStream.from_dict(data) == stream
