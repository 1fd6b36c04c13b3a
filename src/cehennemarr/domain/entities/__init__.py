from .content import ContentMatch, ContentType, EpisodeRef, SiteSearchResult, TitleInfo
from .extraction import AltSource, AudioTrack, ExtractionResult, Subtitle
from .proxy import Proxy, ProxyProtocol
from .stremio import StremioStreamRequest

__all__ = [
    "AltSource",
    "AudioTrack",
    "ContentMatch",
    "ContentType",
    "EpisodeRef",
    "ExtractionResult",
    "Proxy",
    "ProxyProtocol",
    "SiteSearchResult",
    "StremioStreamRequest",
    "Subtitle",
    "TitleInfo",
]
