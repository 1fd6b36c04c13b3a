from .stream_formatter import build_relay_url, playback_headers, to_protocol_streams

__all__ = ["build_relay_url", "playback_headers", "to_protocol_streams"]
