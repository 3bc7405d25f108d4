"""
Abstract base class for upstream provider clients
"""

from abc import ABC
from typing import Any, Dict, Optional
import httpx
import logging

from core.config import settings
from core.exceptions import NetworkError, ProviderRequestError, ProviderResponseError

logger = logging.getLogger(__name__)


class ProviderClient(ABC):
    """
    Abstract base class for all provider clients.

    Responsibilities:
    - HTTP client lifecycle (created lazily, or injected by the caller)
    - Mapping transport failures and bad responses onto the sync exceptions
    - JSON decoding with truncated bodies in the error context

    Subclasses expose the provider-specific fetch operations and return
    validated record schemas.
    """

    source_name: str = "provider"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.api_key = api_key
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """
        Send one request and return the 200 response.

        Raises:
            NetworkError: Timeouts and connection failures
            ProviderRequestError: Any non-200 status
        """
        try:
            response = await self.client.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"{self.source_name} request timed out",
                context={"url": url, "timeout": self.timeout},
                original_exception=e
            )
        except httpx.TransportError as e:
            raise NetworkError(
                f"{self.source_name} request failed: {e}",
                context={"url": url},
                original_exception=e
            )

        if response.status_code != 200:
            raise ProviderRequestError(
                f"API returned status {response.status_code}: {response.text[:200]}",
                context={
                    "url": url,
                    "status_code": response.status_code,
                    "response_body": response.text[:500]
                }
            )

        return response

    def _parse_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError(
                f"failed to parse {self.source_name} response",
                context={"url": str(response.request.url), "response_body": response.text[:500]},
                original_exception=e
            )
