# cloudocr/config.py
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv; load_dotenv()

# Product defaults (in code)
DEFAULT_GEMINI_OCR_MODEL      = "gemini-1.5-flash"
DEFAULT_GEMINI_ANALYSIS_MODEL = "gemini-1.5-flash"
DEFAULT_CLOUD_OCR_BASE_URL    = "http://localhost:8000"
# ~5MB decoded; base64 adds about a third
DEFAULT_MAX_IMAGE_BASE64      = 7 * 1024 * 1024

# Flags (env or .env)
DEV_MODE              = os.getenv("DEV_MODE", "0") not in ("0", "", "false", "False")
OCR_HTTP_TIMEOUT      = float(os.getenv("OCR_HTTP_TIMEOUT", "60"))
MAX_IMAGE_BASE64      = int(os.getenv("OCR_MAX_IMAGE_BASE64", str(DEFAULT_MAX_IMAGE_BASE64)))
GEMINI_OCR_MODEL      = os.getenv("GEMINI_OCR_MODEL", DEFAULT_GEMINI_OCR_MODEL)
GEMINI_ANALYSIS_MODEL = os.getenv("GEMINI_ANALYSIS_MODEL", DEFAULT_GEMINI_ANALYSIS_MODEL)
CLOUD_OCR_BASE_URL    = os.getenv("CLOUD_OCR_BASE_URL", DEFAULT_CLOUD_OCR_BASE_URL)

# provider -> ((field, ENV_VAR), ...); field names are what the prober reports as missing
PROVIDER_ENV: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "baidu": (
        ("apiKey", "BAIDU_OCR_API_KEY"),
        ("secretKey", "BAIDU_OCR_SECRET_KEY"),
    ),
    "aliyun": (
        ("accessKeyId", "ALIYUN_OCR_ACCESS_KEY_ID"),
        ("accessKeySecret", "ALIYUN_OCR_ACCESS_KEY_SECRET"),
    ),
    "wechat": (
        ("appId", "WECHAT_OCR_APP_ID"),
        ("appSecret", "WECHAT_OCR_APP_SECRET"),
    ),
    "gemini": (
        ("apiKey", "GEMINI_API_KEY"),
    ),
}

SUPPORTED_PROVIDERS = tuple(PROVIDER_ENV)


@dataclass(frozen=True)
class ProviderCredentials:
    provider: str
    values: Dict[str, Optional[str]]

    @property
    def missing(self) -> List[str]:
        return [k for k, v in self.values.items() if not v]

    @property
    def complete(self) -> bool:
        return not self.missing

    def get(self, name: str) -> Optional[str]:
        return self.values.get(name) or None


@dataclass(frozen=True)
class Credentials:
    """Per-provider secrets, resolved once and passed to adapters explicitly.

    Lookups never raise for absent values; callers inspect ``missing`` and
    decide whether that is fatal.
    """

    providers: Dict[str, Dict[str, Optional[str]]] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Credentials":
        env = os.environ if environ is None else environ
        providers = {}
        for provider, pairs in PROVIDER_ENV.items():
            providers[provider] = {name: (env.get(var) or "").strip() or None for name, var in pairs}
        return cls(providers=providers)

    def resolve(self, provider: str) -> ProviderCredentials:
        pairs = PROVIDER_ENV.get(provider)
        if pairs is None:
            raise KeyError(provider)
        stored = self.providers.get(provider) or {}
        return ProviderCredentials(provider, {name: stored.get(name) or None for name, _ in pairs})


def summary(credentials: Optional[Credentials] = None, safe: bool = True) -> dict:
    creds = credentials or Credentials.from_env()
    out = {
        "providers": {p: creds.resolve(p).complete for p in SUPPORTED_PROVIDERS},
        "gemini_ocr_model": GEMINI_OCR_MODEL,
        "gemini_analysis_model": GEMINI_ANALYSIS_MODEL,
        "max_image_base64": MAX_IMAGE_BASE64,
        "http_timeout": OCR_HTTP_TIMEOUT,
    }
    if not safe:
        out["missing"] = {p: creds.resolve(p).missing for p in SUPPORTED_PROVIDERS}
        out["dev_mode"] = DEV_MODE
    return out
