"""HLS master playlist helpers."""

from __future__ import annotations

import re
from urllib.parse import urljoin

from cehennemarr.domain.entities.extraction import AudioTrack

_MEDIA_TAG = "#EXT-X-MEDIA:"
_ATTR_RE = re.compile(r'([A-Z0-9-]+)=("[^"]*"|[^,]*)')


def manifest_base(url: str) -> str:
    """Everything before the last ``/`` of *url* (query included in the tail)."""
    path = url.split("?", 1)[0]
    return path[: path.rfind("/")]


def parse_attributes(line: str) -> dict[str, str]:
    """Parse an HLS attribute list (``KEY=VALUE,KEY="quoted"``)."""
    return {k: v.strip('"') for k, v in _ATTR_RE.findall(line)}


def parse_audio_tracks(manifest: str, manifest_url: str) -> list[AudioTrack]:
    """Named ``TYPE=AUDIO`` renditions with absolute URIs."""
    base = manifest_base(manifest_url)
    tracks: list[AudioTrack] = []
    for raw in manifest.splitlines():
        line = raw.strip()
        if not line.startswith(_MEDIA_TAG):
            continue
        attrs = parse_attributes(line[len(_MEDIA_TAG) :])
        name = attrs.get("NAME")
        uri = attrs.get("URI")
        if attrs.get("TYPE") != "AUDIO" or not name or not uri:
            continue
        if uri.startswith(("http://", "https://")):
            url = uri
        elif uri.startswith("/"):
            url = urljoin(manifest_url, uri)
        else:
            url = f"{base}/{uri}"
        tracks.append(AudioTrack(name=name, url=url))
    return tracks
