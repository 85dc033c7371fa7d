"""
Shiprocket shipping API connector.

Thin aiohttp client for the three Shiprocket endpoints the relay uses:
  - POST /auth/login: exchange account email/password for a bearer token
  - POST /orders/create: create a shipping order (adhoc)
  - POST /courier/serviceability: check couriers between two pincodes

The connector does no token caching and no retries; it returns the decoded
response body on 2xx and raises ShiprocketAPIError otherwise. Transport
failures (aiohttp.ClientError) propagate to the caller.
"""
from typing import Any, Dict, Optional
import aiohttp
from app.config import get_settings
from app.utils.logger import log

settings = get_settings()


class ShiprocketAPIError(Exception):
    """Non-success HTTP response from Shiprocket."""

    def __init__(self, status: int, body: Any):
        super().__init__(f"Shiprocket returned status {status}")
        self.status = status
        self.body = body


class ShiprocketConnector:
    """Connector for the Shiprocket external API."""

    def __init__(self, base_url: Optional[str] = None):
        self.name = "Shiprocket"
        self.base_url = (base_url or settings.shiprocket_base_url).rstrip("/")
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """POST /auth/login. The token is in the ``token`` field of the body."""
        return await self._post("/auth/login", {"email": email, "password": password})

    async def create_order(self, token: str, payload: Dict[str, Any]) -> Any:
        """POST /orders/create with a prepared Shiprocket order payload."""
        return await self._post("/orders/create", payload, token=token)

    async def check_serviceability(self, token: str, payload: Dict[str, Any]) -> Any:
        """POST /courier/serviceability with pincodes, weight and value."""
        return await self._post("/courier/serviceability", payload, token=token)

    async def _post(self, path: str, payload: Dict[str, Any], token: Optional[str] = None) -> Any:
        headers = dict(self.headers)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        async with aiohttp.ClientSession() as session:
            async with session.post(
                f"{self.base_url}{path}",
                headers=headers,
                json=payload,
            ) as response:
                body = await self._read_body(response)
                if response.status >= 400:
                    log.debug(f"Shiprocket {path} returned {response.status}: {body}")
                    raise ShiprocketAPIError(response.status, body)
                return body

    @staticmethod
    async def _read_body(response: aiohttp.ClientResponse) -> Any:
        """Decode a JSON body, falling back to raw text for non-JSON errors."""
        text = await response.text()
        if not text:
            return None
        try:
            return await response.json(content_type=None)
        except ValueError:
            return text
