import logging
from typing import Any, Dict, Optional

from ...errors import UpstreamAuthError, UpstreamRequestError
from ...models.schemas import OcrResult
from .base import OCRAdapter, join_lines

logger = logging.getLogger(__name__)

TOKEN_URL = "https://api.weixin.qq.com/cgi-bin/token"
OCR_URL = "https://api.weixin.qq.com/cv/ocr/comm"


class WeChatOCR(OCRAdapter):
    name = "wechat"
    label = "WeChat OCR"

    async def fetch_token(self, client, app_id: str, app_secret: str) -> Dict[str, Any]:
        logger.info("[wechat] token exchange")
        data = await self._send(
            client,
            "GET",
            TOKEN_URL,
            params={"grant_type": "client_credential", "appid": app_id, "secret": app_secret},
        )
        # errcode 0 means success
        if data.get("errcode"):
            raise UpstreamAuthError(self.name, f"{self.label} authentication failed: {data.get('errmsg') or data['errcode']}")
        return data

    async def call(self, image_base64: str, language: Optional[str] = None, options: Optional[Dict[str, Any]] = None) -> OcrResult:
        creds = self._require_credentials()
        async with self._client() as client:
            token = await self.fetch_token(client, creds.get("appId"), creds.get("appSecret"))

            logger.info("[wechat] ocr/comm")
            data = await self._send(
                client,
                "POST",
                OCR_URL,
                params={"access_token": token.get("access_token")},
                json={"img": image_base64, "scene": "general"},
            )

        if data.get("errcode"):
            raise UpstreamRequestError(self.name, f"{self.label} recognition failed: {data.get('errmsg') or data['errcode']}")

        text = join_lines(data.get("items"), "text")
        return OcrResult(text=text, provider=self.name, rawResult=data)
