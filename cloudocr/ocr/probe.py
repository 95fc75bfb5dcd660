"""Connectivity probe for configured OCR providers.

Only Baidu gets a live handshake (token exchange, no recognition call).
The other providers are reported valid as soon as their credentials are
all present; their network path is not exercised here.
"""
import logging
from typing import Optional

import httpx

from ..config import SUPPORTED_PROVIDERS, Credentials
from ..errors import UnsupportedProviderError, UpstreamAuthError, ValidationError
from .providers.baidu import BaiduOCR

logger = logging.getLogger(__name__)


class ProbeOutcome:
    def __init__(self, status_code: int, body: dict):
        self.status_code = status_code
        self.body = body


async def probe(
    provider: Optional[str],
    credentials: Credentials,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProbeOutcome:
    if not provider:
        raise ValidationError("Missing provider parameter")
    if provider not in SUPPORTED_PROVIDERS:
        raise UnsupportedProviderError(provider)

    creds = credentials.resolve(provider)
    if not creds.complete:
        missing = creds.missing
        logger.info("probe provider=%s missing=%s", provider, missing)
        return ProbeOutcome(400, {
            "success": False,
            "error": f"{provider} OCR environment variables are incomplete",
            "missingFields": missing,
            "message": f"Configure these environment variables: {', '.join(missing)}",
        })

    if provider == "baidu":
        adapter = BaiduOCR(credentials, transport=transport)
        try:
            async with adapter._client() as client:
                token = await adapter.fetch_token(client, creds.get("apiKey"), creds.get("secretKey"))
        except UpstreamAuthError as e:
            logger.info("probe provider=baidu auth_failed")
            return ProbeOutcome(200, {"success": False, "error": str(e)})
        return ProbeOutcome(200, {
            "success": True,
            "message": "Baidu OCR connection test succeeded",
            "expiresIn": token.get("expires_in"),
        })

    return ProbeOutcome(200, {
        "success": True,
        "message": f"{provider} OCR configuration verified",
        "configured": True,
    })
