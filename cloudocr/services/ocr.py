"""Frontend-side access to the OCR dispatcher.

``CloudOCRClient`` speaks the dispatcher's JSON contract over HTTP and
maps the frontend's provider enumeration onto wire identifiers. The two
local modes never touch the network; they go to a local engine when one
is configured. ``CloudOCRClient.with_local_engine()`` wires in
``TesseractLocalEngine`` when a tesseract binary is installed.
"""
import logging
from enum import Enum
from typing import Any, Dict, Optional, Union

import httpx

from ..config import CLOUD_OCR_BASE_URL, OCR_HTTP_TIMEOUT
from ..errors import NETWORK_FAILURE_MESSAGE, DispatchError, LocalEngineRequiredError, NetworkError
from ..models.schemas import OcrResult
from .local_ocr import TesseractLocalEngine

logger = logging.getLogger(__name__)


class ClientProvider(str, Enum):
    GEMINI = "GEMINI"
    BAIDU = "BAIDU"
    WECHAT = "WECHAT"
    ALIBABA = "ALIBABA"
    LOCAL = "LOCAL"
    ESEARCH = "ESEARCH"


PROVIDER_MAP: Dict[ClientProvider, str] = {
    ClientProvider.GEMINI: "gemini",
    ClientProvider.BAIDU: "baidu",
    ClientProvider.WECHAT: "wechat",
    ClientProvider.ALIBABA: "aliyun",
    ClientProvider.LOCAL: "local",
    ClientProvider.ESEARCH: "local",
}

LOCAL_PROVIDERS = (ClientProvider.LOCAL, ClientProvider.ESEARCH)
CLOUD_PROVIDERS = (ClientProvider.BAIDU, ClientProvider.ALIBABA, ClientProvider.WECHAT, ClientProvider.GEMINI)

_NETWORK_MARKERS = ("NetworkError", "Failed to fetch")


def _looks_like_network_failure(msg: str) -> bool:
    return any(m in msg for m in _NETWORK_MARKERS)


class CloudOCRClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        local_engine: Any = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or CLOUD_OCR_BASE_URL).rstrip("/")
        self.local_engine = local_engine
        self.timeout = OCR_HTTP_TIMEOUT if timeout is None else timeout
        self.transport = transport

    @classmethod
    def with_local_engine(cls, base_url: Optional[str] = None, **kw) -> "CloudOCRClient":
        engine = TesseractLocalEngine()
        if not engine.is_available():
            engine = None
        return cls(base_url, local_engine=engine, **kw)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def perform_ocr(
        self,
        provider: Union[ClientProvider, str],
        image_base64: str,
        language: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> OcrResult:
        provider = ClientProvider(provider)
        if provider in LOCAL_PROVIDERS:
            if self.local_engine is None:
                raise LocalEngineRequiredError(
                    "Local OCR should call the local service directly, not the cloud dispatcher"
                )
            text = self.local_engine.recognize(image_base64, language)
            return OcrResult(text=text or "", provider=PROVIDER_MAP[provider])

        wire = PROVIDER_MAP[provider]
        payload = {"provider": wire, "imageBase64": image_base64, "language": language, "options": options}
        try:
            async with self._client() as client:
                resp = await client.post("/api/ocr", json=payload)
        except httpx.TransportError as e:
            logger.error("cloud OCR transport failure provider=%s: %s", wire, e)
            raise NetworkError(NETWORK_FAILURE_MESSAGE) from e

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if resp.is_error or not data.get("success"):
            msg = data.get("error") or "OCR request failed"
            logger.error("cloud OCR failed provider=%s status=%s: %s", wire, resp.status_code, msg)
            if _looks_like_network_failure(msg):
                raise NetworkError(NETWORK_FAILURE_MESSAGE)
            raise DispatchError(f"OCR recognition failed: {msg}", status_code=resp.status_code, details=data.get("details"))

        d = data.get("data") or {}
        return OcrResult(text=d.get("text") or "", provider=d.get("provider") or wire, rawResult=d.get("rawResult"))

    async def test_connection(self, provider: Union[ClientProvider, str]) -> Dict[str, Any]:
        provider = ClientProvider(provider)
        if provider in LOCAL_PROVIDERS:
            return {"success": True, "message": "Local OCR needs no cloud connection test"}

        try:
            async with self._client() as client:
                resp = await client.post("/api/ocr/test", json={"provider": PROVIDER_MAP[provider]})
            data = resp.json()
        except (httpx.TransportError, ValueError) as e:
            logger.error("cloud connection test failed: %s", e)
            return {"success": False, "message": f"Connection test failed: {str(e) or 'network error'}"}

        if not isinstance(data, dict):
            logger.error("cloud connection test got a non-object body status=%s", resp.status_code)
            return {"success": False, "message": "Connection test failed: unexpected response body"}
        if resp.is_error:
            return {**data, "success": False, "message": data.get("error") or "Connection test failed"}
        data.setdefault("message", "")
        return data


async def test_ocr_connection(client: CloudOCRClient, provider: Union[ClientProvider, str]) -> Dict[str, Any]:
    try:
        provider = ClientProvider(provider)
    except ValueError:
        return {"success": False, "message": f"Unknown provider: {provider}"}

    if provider in LOCAL_PROVIDERS:
        engine = client.local_engine
        if engine is None or not engine.is_available():
            return {"success": False, "message": "Local OCR engine is not available on this machine"}
        mode = "offline" if provider is ClientProvider.LOCAL else "eSearch built-in"
        return {"success": True, "message": f"Local {mode} OCR mode: engine ready, images stay on this machine"}

    return await client.test_connection(provider)


async def extract_text(
    client: CloudOCRClient,
    provider: Union[ClientProvider, str],
    image_base64: str,
    language: Optional[str] = None,
) -> str:
    result = await client.perform_ocr(provider, image_base64, language)
    return result.text
