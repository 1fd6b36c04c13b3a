"""Tests for HLS master playlist parsing."""

from __future__ import annotations

from cehennemarr.infrastructure.extraction.hls import (
    manifest_base,
    parse_attributes,
    parse_audio_tracks,
)

_MANIFEST_URL = "https://cdn.example.net/hls/abc/master.m3u8?token=t0k"

_MASTER = """#EXTM3U
#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",NAME="Türkçe",LANGUAGE="tr",URI="tr/index.m3u8"
#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",NAME="English",URI="/shared/en/index.m3u8"
#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",NAME="Deutsch",URI="https://other.cdn/de.m3u8"
#EXT-X-MEDIA:TYPE=SUBTITLES,GROUP-ID="subs",NAME="Türkçe",URI="subs/tr.m3u8"
#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",URI="nameless.m3u8"
#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",NAME="Embedded"
#EXT-X-STREAM-INF:BANDWIDTH=1280000,AUDIO="aud"
720p/index.m3u8
"""


class TestManifestBase:
    def test_drops_file_and_query(self) -> None:
        assert manifest_base(_MANIFEST_URL) == "https://cdn.example.net/hls/abc"

    def test_slash_in_query_is_ignored(self) -> None:
        assert manifest_base("https://cdn.test/a/b.m3u8?p=x/y") == "https://cdn.test/a"


class TestParseAttributes:
    def test_quoted_and_bare_values(self) -> None:
        attrs = parse_attributes('TYPE=AUDIO,NAME="A, B",DEFAULT=YES')
        assert attrs == {"TYPE": "AUDIO", "NAME": "A, B", "DEFAULT": "YES"}


class TestParseAudioTracks:
    def test_named_audio_renditions_only(self) -> None:
        tracks = parse_audio_tracks(_MASTER, _MANIFEST_URL)
        assert [t.name for t in tracks] == ["Türkçe", "English", "Deutsch"]

    def test_relative_uri_joins_manifest_base(self) -> None:
        tracks = parse_audio_tracks(_MASTER, _MANIFEST_URL)
        assert tracks[0].url == "https://cdn.example.net/hls/abc/tr/index.m3u8"

    def test_root_relative_uri_joins_host(self) -> None:
        tracks = parse_audio_tracks(_MASTER, _MANIFEST_URL)
        assert tracks[1].url == "https://cdn.example.net/shared/en/index.m3u8"

    def test_absolute_uri_kept(self) -> None:
        tracks = parse_audio_tracks(_MASTER, _MANIFEST_URL)
        assert tracks[2].url == "https://other.cdn/de.m3u8"

    def test_plain_media_playlist(self) -> None:
        playlist = "#EXTM3U\n#EXT-X-TARGETDURATION:6\n#EXTINF:6.0,\nseg0.ts\n"
        assert parse_audio_tracks(playlist, _MANIFEST_URL) == []
