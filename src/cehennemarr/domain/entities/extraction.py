"""Domain entities produced while scraping an embed page."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Subtitle:
    """A native ``<track>`` subtitle of the embedded player."""

    id: str  # "hdfc-tr", "hdfc-en", ...
    lang: str
    label: str
    url: str
    default: bool = False


@dataclass(frozen=True)
class AudioTrack:
    """A named alternate audio rendition from the HLS master playlist."""

    name: str  # "Türkçe", "English", ...
    url: str  # absolute, resolved against the manifest base


@dataclass(frozen=True)
class AltSource:
    """An alternate embed provider advertised on the content page."""

    name: str
    video_id: str | None = None
    active: bool = False


@dataclass
class ExtractionResult:
    """Everything recovered from one embed page.

    Built incrementally by the extractor.  Only a result with a
    ``video_url`` is playable; tracks alone never count as success.
    """

    video_url: str | None = None
    subtitles: list[Subtitle] = field(default_factory=list)
    audio_tracks: list[AudioTrack] = field(default_factory=list)
    source: str | None = None
    alternative_sources: list[AltSource] = field(default_factory=list)
    embed_origin: str | None = None  # scheme://host of the frame that served it

    @property
    def is_playable(self) -> bool:
        return self.video_url is not None
