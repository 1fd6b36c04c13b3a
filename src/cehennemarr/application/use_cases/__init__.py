from .resolve_stream import StreamResolutionUseCase, parse_stream_id

__all__ = ["StreamResolutionUseCase", "parse_stream_id"]
