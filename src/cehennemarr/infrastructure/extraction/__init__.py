from .cipher import decode_video_url, decode_with_fallback
from .embed import EmbedExtractor
from .unpacker import unpack_packed_js

__all__ = [
    "EmbedExtractor",
    "decode_video_url",
    "decode_with_fallback",
    "unpack_packed_js",
]
