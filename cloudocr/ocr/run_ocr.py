import logging
from typing import Any, Dict, Optional, Type

import httpx

from ..config import MAX_IMAGE_BASE64, Credentials
from ..errors import UnsupportedProviderError, ValidationError
from ..models.schemas import OcrRequest, OcrResult
from .providers.aliyun import AliyunOCR
from .providers.baidu import BaiduOCR
from .providers.base import OCRAdapter
from .providers.gemini import GeminiOCR
from .providers.wechat import WeChatOCR

logger = logging.getLogger(__name__)

ADAPTERS: Dict[str, Type[OCRAdapter]] = {
    "baidu": BaiduOCR,
    "aliyun": AliyunOCR,
    "wechat": WeChatOCR,
    "gemini": GeminiOCR,
}


def get_provider(
    name: str,
    credentials: Credentials,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    **kw: Any,
) -> OCRAdapter:
    """Build the adapter registered for ``name``; unknown names are a client error."""
    adapter_cls = ADAPTERS.get(name)
    if adapter_cls is None:
        raise UnsupportedProviderError(name)
    return adapter_cls(credentials, transport=transport, **kw)


def validate_request(req: OcrRequest, max_chars: Optional[int] = None) -> None:
    limit = MAX_IMAGE_BASE64 if max_chars is None else max_chars
    if not req.provider or not req.imageBase64:
        raise ValidationError("Missing required parameters: provider and imageBase64")
    if len(req.imageBase64) > limit:
        raise ValidationError("Image too large, compress it and retry (limit 5MB)")


async def run_ocr(
    req: OcrRequest,
    credentials: Credentials,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    max_chars: Optional[int] = None,
) -> OcrResult:
    # Everything that can be rejected locally is rejected before any vendor call.
    validate_request(req, max_chars=max_chars)
    adapter = get_provider(req.provider, credentials, transport=transport)
    logger.info("ocr dispatch provider=%s b64_len=%s", req.provider, len(req.imageBase64))
    result = await adapter.call(req.imageBase64, language=req.language, options=req.options)
    logger.info("ocr done provider=%s text_len=%s", result.provider, len(result.text))
    return result
