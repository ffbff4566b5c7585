"""Exception hierarchy shared by the scraping engine and the provider manager."""

from __future__ import annotations

from typing import Any, Dict, Optional


class StockPromptError(Exception):
    """Base exception for stockprompt."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


# ---- Scraping -------------------------------------------------------------


class InvalidURLError(StockPromptError):
    pass


class UnsupportedPlatformError(StockPromptError):
    pass


class ExtractionError(StockPromptError):
    """Network, HTTP status, parse or navigation failure while scraping."""

    def __init__(self, message: str, platform: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.platform = platform


ScrapeFailed = ExtractionError


class ImageDownloadError(StockPromptError):
    """Preview image could not be fetched or transcoded. Never fails a scrape."""

    pass


# ---- Providers ------------------------------------------------------------


class UnsupportedProviderError(StockPromptError):
    pass


class MissingCredentialError(StockPromptError):
    pass


class MissingImageDataError(StockPromptError):
    pass


class NetworkTimeoutError(StockPromptError):
    """Transport failure or an expired deadline."""

    pass


class VendorError(StockPromptError):
    """
    A provider answered with an error. ``code`` is the normalized taxonomy
    value reported by key validation.
    """

    code = "api_error"

    def __init__(
        self,
        message: str,
        provider: str,
        status: Optional[int] = None,
        vendor_code: Any = None,
        code: Optional[str] = None,
    ):
        super().__init__(message, {"provider": provider, "status": status, "vendor_code": vendor_code})
        self.provider = provider
        self.status = status
        self.vendor_code = vendor_code
        if code:
            self.code = code

    def details(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"code": self.code}
        if self.vendor_code is not None:
            data["originalError"] = self.vendor_code
        if self.status is not None:
            data["status"] = self.status
        return data


class VendorAuthError(VendorError):
    code = "invalid_key"


class VendorQuotaExceededError(VendorError):
    code = "quota_exceeded"


class VendorRateLimitedError(VendorError):
    code = "rate_limited"


class VendorRequestInvalidError(VendorError):
    code = "invalid_request"


class VendorUnknownError(VendorError):
    code = "api_error"
