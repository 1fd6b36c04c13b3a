from .pool import ProxyPool

__all__ = ["ProxyPool"]
