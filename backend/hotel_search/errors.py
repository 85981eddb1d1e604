"""Error taxonomy shared by the providers, the pipeline and the HTTP layer."""


class HotelSearchError(Exception):
    """Base error carrying a stable machine-readable code and an HTTP status."""

    code = "INTERNAL_ERROR"
    default_status = 500

    def __init__(self, message: str, status: int | None = None, provider: str | None = None):
        super().__init__(message)
        self.message = message
        self.status = status if status is not None else self.default_status
        self.provider = provider

    def to_payload(self) -> dict:
        error = {"code": self.code, "message": self.message}
        if self.provider:
            error["provider"] = self.provider
        return {"error": error}


class ValidationError(HotelSearchError):
    """Caller input is malformed. Never retried."""

    code = "VALIDATION_ERROR"
    default_status = 400


class GeocodingError(HotelSearchError):
    """Location resolution failed. Zero results is not an error."""

    code = "GEOCODING_ERROR"

    def __init__(self, message: str, status: int = 500):
        super().__init__(message, status=status, provider="google_geocoding")


class ProviderError(HotelSearchError):
    """Upstream provider failure, raised once retries are exhausted."""

    code = "PROVIDER_ERROR"
    default_status = 502

    def __init__(self, message: str, provider: str, status: int = 502):
        super().__init__(message, status=status, provider=provider)


class RateLimitError(ProviderError):
    """Transient 429 from an upstream provider."""

    code = "RATE_LIMITED"

    def __init__(self, message: str, provider: str, retry_after: float | None = None):
        super().__init__(message, provider=provider, status=429)
        self.retry_after = retry_after


class CacheError(HotelSearchError):
    """Cache backend failure. Swallowed inside the cache service."""

    code = "CACHE_ERROR"
