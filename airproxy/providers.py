# file: airproxy/providers.py

import asyncio
import logging
import ssl
from typing import Any, Dict, Optional

import aiohttp
import certifi

from airproxy.errors import UpstreamError

IQAIR_URL = "https://api.airvisual.com"
AQICN_URL = "https://api.waqi.info"
DEFAULT_TIMEOUT_SECONDS = 10.0


def create_session() -> aiohttp.ClientSession:
    """Shared HTTP session for all upstream providers, verifying against certifi's CA bundle."""
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    return aiohttp.ClientSession(connector=aiohttp.TCPConnector(ssl=ssl_context))


class ProviderClient:
    """Builds one request for a coordinate pair and returns the provider's raw JSON body.

    Subclasses set `name`, `success_marker` and implement `_request`. No retries happen here.
    """

    name = "provider"
    success_marker = "ok"

    def __init__(self, session: aiohttp.ClientSession, base_url: str,
                 timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def _request(self, lat: float, lon: float, api_key: str) -> tuple[str, Dict[str, str]]:
        raise NotImplementedError

    def _envelope_error(self, body: Dict[str, Any]) -> str:
        return f"status marker {body.get('status')!r}"

    async def fetch(self, lat: float, lon: float, api_key: str) -> Dict[str, Any]:
        url, params = self._request(lat, lon, api_key)
        try:
            async with self.session.get(url, params=params, timeout=self.timeout) as response:
                if response.status < 200 or response.status >= 300:
                    raise UpstreamError(self.name, status=response.status, message="unexpected HTTP status")
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    raise UpstreamError(self.name, status=response.status, message="response is not JSON")
                status = response.status
        except asyncio.TimeoutError:
            raise UpstreamError(self.name, message="request timed out")
        except aiohttp.ClientError as e:
            raise UpstreamError(self.name, message=type(e).__name__)

        if not isinstance(body, dict) or body.get("status") != self.success_marker:
            error = self._envelope_error(body) if isinstance(body, dict) else "malformed envelope"
            raise UpstreamError(self.name, status=status, message=error)
        return body


class IQAirClient(ProviderClient):
    """IQAir (AirVisual) nearest-city feed, the primary provider."""

    name = "iqair"
    success_marker = "success"

    def __init__(self, session: aiohttp.ClientSession, base_url: str = IQAIR_URL,
                 timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        super().__init__(session, base_url, timeout_seconds)

    def _request(self, lat: float, lon: float, api_key: str) -> tuple[str, Dict[str, str]]:
        return f"{self.base_url}/v2/nearest_city", {"lat": str(lat), "lon": str(lon), "key": api_key}

    def _envelope_error(self, body: Dict[str, Any]) -> str:
        data = body.get("data")
        message: Optional[str] = data.get("message") if isinstance(data, dict) else None
        return message or "IQAir API error"


class AqicnClient(ProviderClient):
    """AQICN (WAQI) geo feed, the wider-coverage secondary provider."""

    name = "aqicn"
    success_marker = "ok"

    def __init__(self, session: aiohttp.ClientSession, base_url: str = AQICN_URL,
                 timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        super().__init__(session, base_url, timeout_seconds)

    def _request(self, lat: float, lon: float, api_key: str) -> tuple[str, Dict[str, str]]:
        return f"{self.base_url}/feed/geo:{lat};{lon}/", {"token": api_key}

    def _envelope_error(self, body: Dict[str, Any]) -> str:
        return "AQICN data not available"


if __name__ == "__main__":
    import os
    import sys
    from dotenv import load_dotenv

    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    async def _probe(lat: float, lon: float) -> None:
        async with create_session() as session:
            for client, key in ((IQAirClient(session), os.getenv("IQAIR_API_KEY")),
                                (AqicnClient(session), os.getenv("AQICN_API_KEY"))):
                if not key:
                    logging.warning(f"{client.name}: no API key configured, skipping")
                    continue
                try:
                    body = await client.fetch(lat, lon, key)
                    logging.info(f"{client.name}: {body.get('data')}")
                except UpstreamError as e:
                    logging.error(str(e))

    args = [float(a) for a in sys.argv[1:3]] if len(sys.argv) >= 3 else [41.2995, 69.2401]
    asyncio.run(_probe(*args))
