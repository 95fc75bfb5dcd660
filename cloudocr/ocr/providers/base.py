import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

import httpx

from ...config import OCR_HTTP_TIMEOUT, Credentials, ProviderCredentials
from ...errors import ConfigurationError, NetworkError, UpstreamRequestError
from ...models.schemas import OcrResult

logger = logging.getLogger(__name__)


class OCRAdapter(ABC):
    """One vendor behind a common ``call`` contract.

    Subclasses own request building and response parsing. Each call is a
    short sequence of fallible steps (token exchange, then recognition);
    the first failure ends the call.
    """

    name: str = ""
    label: str = ""

    def __init__(
        self,
        credentials: Credentials,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.credentials = credentials
        self.timeout = OCR_HTTP_TIMEOUT if timeout is None else timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _require_credentials(self) -> ProviderCredentials:
        creds = self.credentials.resolve(self.name)
        if not creds.complete:
            raise ConfigurationError(self.name, f"{self.label} API credentials are not configured")
        return creds

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, **kw) -> Dict[str, Any]:
        try:
            resp = await client.request(method, url, **kw)
        except httpx.TransportError as e:
            logger.warning("[%s] transport failure: %s", self.name, e)
            raise NetworkError(f"{self.label} request failed: {e}") from e
        try:
            data = resp.json()
        except ValueError:
            raise UpstreamRequestError(
                self.name, f"{self.label} returned a non-JSON response (HTTP {resp.status_code})"
            )
        if not isinstance(data, dict):
            raise UpstreamRequestError(self.name, f"{self.label} returned an unexpected payload")
        return data

    @abstractmethod
    async def call(
        self,
        image_base64: str,
        language: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> OcrResult:
        ...


def join_lines(items: Optional[Iterable[Any]], key: str) -> str:
    """Join ``item[key]`` with newlines; an absent or empty list yields ""."""
    if not items:
        return ""
    parts = []
    for item in items:
        if isinstance(item, dict):
            t = item.get(key)
            if isinstance(t, str):
                parts.append(t)
    return "\n".join(parts)
