from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field


ProviderName = Literal["baidu", "aliyun", "wechat", "gemini"]
ErrorCategory = Literal["spelling", "grammar", "terminology", "style"]


class OcrRequest(BaseModel):
    # Loose on purpose: presence and membership are checked by the handler so
    # it can answer 400 with a message instead of FastAPI's 422.
    provider: Optional[str] = None
    imageBase64: Optional[str] = None
    language: Optional[str] = None
    options: Optional[Dict[str, Any]] = None


class OcrResult(BaseModel):
    model_config = {"frozen": True}

    text: str = ""
    provider: str
    rawResult: Any = None


class ProbeRequest(BaseModel):
    provider: Optional[str] = None
    apiKey: Optional[str] = None      # accepted, not used
    secretKey: Optional[str] = None   # accepted, not used


class TerminologyEntry(BaseModel):
    term: str
    category: str
    definition: str
    preferredAlternative: Optional[str] = None


class DetectionError(BaseModel):
    text: str
    type: ErrorCategory
    suggestion: str
    alternatives: List[str] = Field(default_factory=list)
    explanation: str
    location: List[float] = Field(min_length=4, max_length=4)  # [ymin, xmin, ymax, xmax], 0-1000


class DetectionResult(BaseModel):
    originalText: str
    isProfessional: bool
    score: float
    errors: List[DetectionError] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    text: str = ""
    analysis: DetectionResult
