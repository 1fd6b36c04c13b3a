from .fetcher import FetchResponse, ResilientFetcher

__all__ = ["FetchResponse", "ResilientFetcher"]
