import logging
from typing import Any, Dict, Optional

from ...errors import UpstreamAuthError, UpstreamRequestError
from ...models.schemas import OcrResult
from .base import OCRAdapter, join_lines

logger = logging.getLogger(__name__)

TOKEN_URL = "https://aip.baidubce.com/oauth/2.0/token"
OCR_URL = "https://aip.baidubce.com/rest/2.0/ocr/v1/general_basic"
DEFAULT_LANGUAGE = "CHN_ENG"


class BaiduOCR(OCRAdapter):
    name = "baidu"
    label = "Baidu OCR"

    async def fetch_token(self, client, api_key: str, secret_key: str) -> Dict[str, Any]:
        """OAuth client-credentials exchange; returns the whole token payload."""
        logger.info("[baidu] token exchange")
        data = await self._send(
            client,
            "POST",
            TOKEN_URL,
            params={
                "grant_type": "client_credentials",
                "client_id": api_key,
                "client_secret": secret_key,
            },
        )
        if data.get("error"):
            raise UpstreamAuthError(
                self.name, f"{self.label} authentication failed: {data.get('error_description') or data['error']}"
            )
        return data

    async def call(self, image_base64: str, language: Optional[str] = None, options: Optional[Dict[str, Any]] = None) -> OcrResult:
        creds = self._require_credentials()
        async with self._client() as client:
            token = await self.fetch_token(client, creds.get("apiKey"), creds.get("secretKey"))

            logger.info("[baidu] general_basic language=%s", language or DEFAULT_LANGUAGE)
            data = await self._send(
                client,
                "POST",
                OCR_URL,
                params={"access_token": token.get("access_token")},
                data={"image": image_base64, "language_type": language or DEFAULT_LANGUAGE},
            )

        if data.get("error_code"):
            raise UpstreamRequestError(
                self.name, f"{self.label} recognition failed: {data.get('error_msg') or data['error_code']}"
            )

        text = join_lines(data.get("words_result"), "words")
        return OcrResult(text=text, provider=self.name, rawResult=data)
