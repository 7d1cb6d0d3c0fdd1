# file: airproxy/errors.py

from typing import Optional


class AirProxyError(Exception):
    """Base class for errors raised by the proxy core."""


class UnknownCity(AirProxyError):
    def __init__(self, city_id: str):
        super().__init__(f"Unknown city: {city_id}")
        self.city_id = city_id


class UpstreamError(AirProxyError):
    """A single provider call failed. `status` is None for transport failures and timeouts."""

    def __init__(self, provider: str, status: Optional[int] = None, message: str = "upstream request failed"):
        detail = f"HTTP {status}" if status is not None else "transport failure"
        super().__init__(f"{provider}: {message} ({detail})")
        self.provider = provider
        self.status = status
        self.message = message


class NormalizationError(UpstreamError):
    def __init__(self, provider: str, message: str):
        super().__init__(provider, status=None, message=message)

    def __str__(self) -> str:
        return f"{self.provider}: cannot normalize response: {self.message}"


class NoProviderAvailable(AirProxyError):
    def __init__(self, city_id: str):
        super().__init__(f"All configured providers failed for {city_id}")
        self.city_id = city_id


class NoProviderConfigured(AirProxyError):
    def __init__(self, what: str = "air quality"):
        super().__init__(f"No {what} provider API key configured")
        self.what = what
