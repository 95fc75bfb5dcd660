import logging
from typing import Any, Dict, Optional

from ...errors import UpstreamRequestError
from ...models.schemas import OcrResult
from .base import OCRAdapter

logger = logging.getLogger(__name__)

OCR_URL = "https://ocr.cn-shanghai.aliyuncs.com"


class AliyunOCR(OCRAdapter):
    """Single bearer-authenticated call; no token step.

    The bearer header is built from the access key pair directly rather
    than from a full request signature.
    """

    name = "aliyun"
    label = "Aliyun OCR"

    async def call(self, image_base64: str, language: Optional[str] = None, options: Optional[Dict[str, Any]] = None) -> OcrResult:
        creds = self._require_credentials()
        headers = {"Authorization": f"Bearer {creds.get('accessKeyId')}:{creds.get('accessKeySecret')}"}

        logger.info("[aliyun] recognize scene=general")
        async with self._client() as client:
            data = await self._send(
                client,
                "POST",
                OCR_URL,
                headers=headers,
                json={"ImageBase64": image_base64, "Scene": "general"},
            )

        if str(data.get("Code")) != "200":
            raise UpstreamRequestError(
                self.name, f"{self.label} recognition failed: {data.get('Message') or data.get('Code')}"
            )

        content = (data.get("Data") or {}).get("Content")
        text = content if isinstance(content, str) else ""
        return OcrResult(text=text, provider=self.name, rawResult=data)
