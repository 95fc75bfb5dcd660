import logging
from typing import Any, Dict, Optional

from ...config import GEMINI_OCR_MODEL
from ...errors import UpstreamRequestError
from ...models.schemas import OcrResult
from .base import OCRAdapter

logger = logging.getLogger(__name__)

API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_PROMPT = "Extract all text in the image and output it in its original layout."


class GeminiOCR(OCRAdapter):
    name = "gemini"
    label = "Gemini"

    def __init__(self, credentials, *, model: Optional[str] = None, **kw):
        super().__init__(credentials, **kw)
        self.model = model or GEMINI_OCR_MODEL

    def _payload(self, image_base64: str, prompt: Optional[str]) -> Dict[str, Any]:
        return {
            "contents": [
                {
                    "parts": [
                        {"inlineData": {"mimeType": "image/png", "data": image_base64}},
                        {"text": prompt or DEFAULT_PROMPT},
                    ]
                }
            ],
            "generationConfig": {"temperature": 0.1, "maxOutputTokens": 2048},
        }

    async def call(self, image_base64: str, language: Optional[str] = None, options: Optional[Dict[str, Any]] = None) -> OcrResult:
        creds = self._require_credentials()
        prompt = (options or {}).get("prompt")

        logger.info("[gemini] generateContent model=%s custom_prompt=%s", self.model, bool(prompt))
        async with self._client() as client:
            data = await self._send(
                client,
                "POST",
                f"{API_URL}/{self.model}:generateContent",
                params={"key": creds.get("apiKey")},
                json=self._payload(image_base64, prompt),
            )

        if data.get("error"):
            err = data["error"]
            msg = err.get("message") if isinstance(err, dict) else str(err)
            raise UpstreamRequestError(self.name, f"{self.label} recognition failed: {msg}")

        candidates = data.get("candidates") or []
        if not candidates:
            reason = (data.get("promptFeedback") or {}).get("blockReason")
            msg = f"{self.label} returned no candidates"
            if reason:
                msg += f" (blockReason={reason})"
            raise UpstreamRequestError(self.name, msg)

        parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
        text = ""
        if parts and isinstance(parts[0], dict) and isinstance(parts[0].get("text"), str):
            text = parts[0]["text"]
        return OcrResult(text=text, provider=self.name, rawResult=data)
