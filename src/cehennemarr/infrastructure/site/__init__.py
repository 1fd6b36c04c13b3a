from .matcher import ContentMatcher
from .validation import is_valid_episode_number, is_valid_imdb_id, validate_request

__all__ = [
    "ContentMatcher",
    "is_valid_episode_number",
    "is_valid_imdb_id",
    "validate_request",
]
