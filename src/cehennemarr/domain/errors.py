"""Pipeline error taxonomy.

Every error carries an :class:`ErrorKind` tag.  The subclasses exist so
callers can ``except`` a specific failure; user-facing text is derived
from the tag by :func:`user_message`, not by methods on the classes.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    CONTENT_NOT_FOUND = "content_not_found"
    SCRAPING = "scraping"
    NETWORK = "network"
    TIMEOUT = "timeout"


class PipelineError(Exception):
    """Base class for all resolution pipeline errors."""

    kind: ErrorKind = ErrorKind.NETWORK

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details or {}


class ValidationError(PipelineError):
    """Bad caller input.  Raised before any I/O and never retried."""

    kind = ErrorKind.VALIDATION

    def __init__(self, field: str, value: Any, message: str) -> None:
        super().__init__(message, {"field": field, "value": value})
        self.field = field
        self.value = value


class ContentNotFoundError(PipelineError):
    """No match on the site after all matching strategies."""

    kind = ErrorKind.CONTENT_NOT_FOUND

    def __init__(self, query: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Content not found: {query}", details)
        self.query = query


class ScrapingError(PipelineError):
    """The page did not yield extractable media after all fallback sources."""

    kind = ErrorKind.SCRAPING

    def __init__(
        self, message: str, url: str, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message, {"url": url, **(details or {})})
        self.url = url


class NetworkError(PipelineError):
    """Transport failure or non-2xx response."""

    kind = ErrorKind.NETWORK

    def __init__(
        self,
        message: str,
        url: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message, {"url": url, "status_code": status_code, **(details or {})}
        )
        self.url = url
        self.status_code = status_code


class FetchTimeoutError(NetworkError):
    """A request exceeded its per-attempt deadline."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, url: str, timeout: float) -> None:
        super().__init__(
            f"Request timed out after {timeout:g}s", url, None, {"timeout": timeout}
        )
        self.timeout = timeout


_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.VALIDATION: "Geçersiz parametre: {field}",
    ErrorKind.CONTENT_NOT_FOUND: "\"{query}\" HDFilmCehennemi'de bulunamadı.",
    ErrorKind.SCRAPING: (
        "Video bilgileri alınamadı. Kaynak geçici olarak kullanılamıyor olabilir."
    ),
    ErrorKind.NETWORK: "Bağlantı hatası. Lütfen internet bağlantınızı kontrol edin.",
    ErrorKind.TIMEOUT: "İstek zaman aşımına uğradı. Lütfen tekrar deneyin.",
}

_NETWORK_STATUS_MESSAGES: dict[int, str] = {
    404: "İçerik mevcut değil veya kaldırılmış.",
    429: "Çok fazla istek gönderildi. Lütfen biraz bekleyin.",
}

_GENERIC_MESSAGE = "Bir hata oluştu. Lütfen daha sonra tekrar deneyin."


def user_message(error: BaseException) -> str:
    """Map an error to a localised, user-facing message."""
    if not isinstance(error, PipelineError):
        return _GENERIC_MESSAGE

    if error.kind is ErrorKind.NETWORK:
        status = error.details.get("status_code")
        if status in _NETWORK_STATUS_MESSAGES:
            return _NETWORK_STATUS_MESSAGES[status]
        if isinstance(status, int) and status >= 500:
            return "HDFilmCehennemi sunucusu geçici olarak kullanılamıyor."

    template = _MESSAGES.get(error.kind, _GENERIC_MESSAGE)
    return template.format(
        field=error.details.get("field", ""),
        query=getattr(error, "query", ""),
    )
