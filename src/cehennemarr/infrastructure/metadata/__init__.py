from .cinemeta import CinemetaClient

__all__ = ["CinemetaClient"]
