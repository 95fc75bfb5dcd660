"""Poster and copy review on top of Gemini.

The model is asked for schema-constrained JSON (``response_schema``) and
the body is validated again with pydantic; a missing or malformed body
is reported as ``AnalysisEmptyResponseError``. The terminology list is
embedded verbatim in every prompt as the reference vocabulary.
"""
import json
import logging
from typing import Any, Iterable, List, Optional, Union

import pydantic
from google import genai
from google.genai import types

from ..config import GEMINI_ANALYSIS_MODEL, Credentials
from ..errors import (
    NETWORK_FAILURE_MESSAGE,
    AnalysisEmptyResponseError,
    ConfigurationError,
    InvalidApiKeyError,
    NetworkError,
    OCRError,
    QuotaExceededError,
    UpstreamRequestError,
)
from ..models.schemas import AnalysisResult, DetectionResult, TerminologyEntry
from .local_ocr import decode_image_base64
from .ocr import ClientProvider, CloudOCRClient, extract_text

logger = logging.getLogger(__name__)

T = types.Type

ERROR_SCHEMA = types.Schema(
    type=T.OBJECT,
    properties={
        "text": types.Schema(type=T.STRING, description="Original phrase or word with the problem"),
        "type": types.Schema(type=T.STRING, enum=["spelling", "grammar", "terminology", "style"]),
        "suggestion": types.Schema(type=T.STRING, description="Proposed correction"),
        "alternatives": types.Schema(type=T.ARRAY, items=types.Schema(type=T.STRING)),
        "explanation": types.Schema(type=T.STRING, description="Reason, citing the terminology list when relevant"),
        "location": types.Schema(
            type=T.ARRAY,
            items=types.Schema(type=T.NUMBER),
            description="[ymin, xmin, ymax, xmax] normalized to 0-1000",
        ),
    },
    required=["text", "type", "suggestion", "alternatives", "explanation", "location"],
)

DETECTION_SCHEMA = types.Schema(
    type=T.OBJECT,
    properties={
        "originalText": types.Schema(type=T.STRING),
        "isProfessional": types.Schema(type=T.BOOLEAN),
        "score": types.Schema(type=T.NUMBER, description="Professionalism score 0-100"),
        "errors": types.Schema(type=T.ARRAY, items=ERROR_SCHEMA),
    },
    required=["originalText", "isProfessional", "score", "errors"],
)

POSTER_SCHEMA = types.Schema(
    type=T.OBJECT,
    properties={
        "text": types.Schema(type=T.STRING, description="Full text extracted from the poster"),
        "analysis": DETECTION_SCHEMA,
    },
    required=["text", "analysis"],
)

TERMS_SCHEMA = types.Schema(
    type=T.ARRAY,
    items=types.Schema(
        type=T.OBJECT,
        properties={
            "term": types.Schema(type=T.STRING),
            "category": types.Schema(type=T.STRING),
            "definition": types.Schema(type=T.STRING),
            "preferredAlternative": types.Schema(type=T.STRING),
        },
        required=["term", "category", "definition"],
    ),
)

_TERMS = pydantic.TypeAdapter(List[TerminologyEntry])

TermInput = Union[TerminologyEntry, dict]


def _terms_json(terminology: Iterable[TermInput]) -> str:
    entries = [TerminologyEntry.model_validate(t) for t in terminology or []]
    return json.dumps([e.model_dump(exclude_none=True) for e in entries], ensure_ascii=False)


def build_poster_prompt(terminology: Iterable[TermInput], pre_extracted_text: Optional[str] = None) -> str:
    ref = " together with the pre-recognized text reference below" if pre_extracted_text else ""
    prompt = f"""
Role: senior designer and technical translator for an international security-products exporter.

Tasks:
1. Content analysis: analyze the supplied image{ref} with high precision.
2. Mandatory terminology check (core task): every technical term must match the company
   terminology list below.
   - If the text uses a "term" for which the list gives a "preferredAlternative", flag it as a
     'terminology' error and give that preferred alternative as the suggestion.
   - If the text uses a non-standard expression for something the list defines, correct it
     according to the list's definition.
   - Terminology list: {_terms_json(terminology)}
3. Quality analysis and localization:
   - Spelling and grammar that international buyers would notice.
   - Technical parameters (4K, 30fps, IP67, IK10) written to industry convention.
   - Brand tone: premium, secure, reliable.
   - Visual grounding: for every issue give its box in the original image as
     [ymin, xmin, ymax, xmax] normalized to 0-1000 (0,0 top-left; 1000,1000 bottom-right),
     tightly enclosing the offending text.
4. Output: write explanations in Chinese; score on terminology accuracy, language quality and layout.
"""
    if pre_extracted_text:
        prompt += (
            f'\nPre-recognized text reference:\n"""\n{pre_extracted_text}\n"""\n'
            "(The reference may contain recognition mistakes; the pixels in the image are authoritative "
            "for the final judgement and for locations.)\n"
        )
    return prompt


def build_text_prompt(input_text: str, terminology: Iterable[TermInput]) -> str:
    return f"""
Role: technical translator and brand copywriter for security products.
Task: review the product copy below.
1. Terminology compliance: correct any non-standard expression against the terminology list.
2. Grammar and rewriting: raise the copy to a premium international trade-show tone.
3. There is no image, so every location must be [0, 0, 0, 0].

Terminology list: {_terms_json(terminology)}
Copy:
\"\"\"
{input_text}
\"\"\"
"""


def build_terms_prompt(raw_text: str) -> str:
    return f"""
You are a security-industry standards expert. Extract the professional terms from the text below.

Text:
\"\"\"
{raw_text}
\"\"\"

Rules:
1. Focus on hardware specs (NVR, PTZ), intelligent algorithms (Deep Learning, SMD) and interface
   standards (PoE, ONVIF).
2. Put the recommended spelling or common abbreviation in preferredAlternative when the text gives one.
3. Use clear categories (storage, visual perception, transport protocol, ...).
"""


def translate_error(e: Exception) -> OCRError:
    msg = str(e)
    low = msg.lower()
    if "API_KEY_INVALID" in msg or "authentication" in low:
        return InvalidApiKeyError()
    if "quota" in low or "rate limit" in low:
        return QuotaExceededError()
    if "network" in low or "fetch" in low:
        return NetworkError(NETWORK_FAILURE_MESSAGE)
    return UpstreamRequestError("gemini", f"Analysis failed: {msg or 'unknown error'}")


class GeminiAnalyzer:
    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        model: Optional[str] = None,
        client: Any = None,
        ocr_client: Optional[CloudOCRClient] = None,
    ):
        if api_key is None:
            api_key = Credentials.from_env().resolve("gemini").get("apiKey")
        self.api_key = api_key
        self.model = model or GEMINI_ANALYSIS_MODEL
        self.ocr_client = ocr_client
        self._client = client

    def _genai(self):
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError("gemini", "Gemini API key is not configured")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def _generate(self, contents, schema: types.Schema) -> Optional[str]:
        client = self._genai()
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
        )
        try:
            response = await client.aio.models.generate_content(model=self.model, contents=contents, config=config)
        except OCRError:
            raise
        except Exception as e:
            logger.error("gemini analysis call failed: %s", e)
            raise translate_error(e) from e
        return getattr(response, "text", None)

    async def _pre_extract(self, ocr_provider: Union[ClientProvider, str], image_base64: str) -> Optional[str]:
        # Any OCR failure, local engine included, degrades to image-only analysis.
        try:
            if ClientProvider(ocr_provider) is ClientProvider.GEMINI:
                return None
            return await extract_text(self.ocr_client, ocr_provider, image_base64, "CHN_ENG")
        except Exception:
            logger.warning("pre-analysis OCR via %s failed, continuing with the image only", ocr_provider, exc_info=True)
            return None

    async def analyze_poster_image(
        self,
        image_base64: str,
        terminology: Iterable[TermInput],
        pre_extracted_text: Optional[str] = None,
        ocr_provider: Union[ClientProvider, str, None] = None,
    ) -> AnalysisResult:
        ocr_text = pre_extracted_text
        if not ocr_text and ocr_provider and self.ocr_client is not None:
            ocr_text = await self._pre_extract(ocr_provider, image_base64)

        image = decode_image_base64(image_base64)

        # The image is always sent; locations come from the pixels, not from the OCR text.
        contents = [
            types.Part.from_bytes(data=image, mime_type="image/png"),
            build_poster_prompt(terminology, ocr_text),
        ]
        logger.info("poster analysis model=%s pre_text=%s", self.model, bool(ocr_text))
        raw = await self._generate(contents, POSTER_SCHEMA)
        if not raw:
            raise AnalysisEmptyResponseError("Analysis engine returned empty response")
        try:
            result = AnalysisResult.model_validate_json(raw)
        except pydantic.ValidationError as e:
            raise AnalysisEmptyResponseError(f"Analysis engine returned a malformed response ({e.error_count()} errors)")

        if not result.text and ocr_text:
            result = result.model_copy(update={"text": ocr_text})
        return result

    analyze = analyze_poster_image

    async def analyze_text(self, input_text: str, terminology: Iterable[TermInput]) -> DetectionResult:
        logger.info("text analysis model=%s len=%s", self.model, len(input_text or ""))
        raw = await self._generate(build_text_prompt(input_text, terminology), DETECTION_SCHEMA)
        if not raw:
            raise AnalysisEmptyResponseError("Text analysis engine returned empty response")
        try:
            return DetectionResult.model_validate_json(raw)
        except pydantic.ValidationError as e:
            raise AnalysisEmptyResponseError(f"Text analysis engine returned a malformed response ({e.error_count()} errors)")

    async def parse_terminology_from_text(self, raw_text: str) -> List[TerminologyEntry]:
        if not (raw_text or "").strip():
            return []
        raw = await self._generate(build_terms_prompt(raw_text), TERMS_SCHEMA)
        if not raw:
            return []
        try:
            return _TERMS.validate_json(raw)
        except pydantic.ValidationError:
            logger.warning("terminology extraction returned an unusable body; treating as empty")
            return []
