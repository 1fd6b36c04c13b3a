from .cache import CachePort
from .metadata import MetadataPort
from .proxy_pool import ProxyPoolPort

__all__ = [
    "CachePort",
    "MetadataPort",
    "ProxyPoolPort",
]
