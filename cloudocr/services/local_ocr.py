import base64
import binascii
import io
import logging
from typing import Optional

import pytesseract
from PIL import Image

from ..errors import ValidationError

logger = logging.getLogger(__name__)

# cloud language codes -> tesseract traineddata names
LANGUAGES = {
    "CHN_ENG": "chi_sim+eng",
    "CHN": "chi_sim",
    "ENG": "eng",
    "JAP": "jpn",
    "KOR": "kor",
}
DEFAULT_LANGUAGE = "chi_sim+eng"


def decode_image_base64(image_base64: str) -> bytes:
    """Raw image bytes from plain base64 or a ``data:<mime>;base64,`` URL."""
    data = image_base64
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=False)
    except binascii.Error as e:
        raise ValidationError(f"Image could not be decoded: {e}")


def _b64_to_image(image_base64: str) -> Image.Image:
    raw = decode_image_base64(image_base64)
    try:
        im = Image.open(io.BytesIO(raw))
        im.load()
    except OSError as e:
        raise ValidationError(f"Image could not be decoded: {e}")
    return im.convert("RGB")


def normalize(text: Optional[str]) -> str:
    t = (text or "").replace("\r\n", "\n")
    return t.strip()


class TesseractLocalEngine:
    """Offline recognition for the LOCAL / ESEARCH modes."""

    name = "local"

    def __init__(self, tesseract_cmd: Optional[str] = None):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def is_available(self) -> bool:
        try:
            version = pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            logger.warning("[local] tesseract unavailable: %s", e)
            return False
        logger.info("[local] tesseract version=%s", version)
        return True

    def recognize(self, image_base64: str, language: Optional[str] = None) -> str:
        img = _b64_to_image(image_base64)
        lang = LANGUAGES.get((language or "").upper(), language or DEFAULT_LANGUAGE)
        logger.info("[local] recognize lang=%s size=%sx%s", lang, img.width, img.height)
        return normalize(pytesseract.image_to_string(img, lang=lang))
