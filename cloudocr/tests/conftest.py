# cloudocr/tests/conftest.py
import base64
import io
import os

# --- Set env before anything imports the app code ---
for _var in (
    "BAIDU_OCR_API_KEY", "BAIDU_OCR_SECRET_KEY",
    "ALIYUN_OCR_ACCESS_KEY_ID", "ALIYUN_OCR_ACCESS_KEY_SECRET",
    "WECHAT_OCR_APP_ID", "WECHAT_OCR_APP_SECRET",
    "GEMINI_API_KEY",
):
    os.environ.pop(_var, None)
os.environ["DEV_MODE"] = "0"

import httpx
import pytest
from PIL import Image

from cloudocr.config import Credentials

FULL_ENV = {
    "BAIDU_OCR_API_KEY": "bd-key",
    "BAIDU_OCR_SECRET_KEY": "bd-secret",
    "ALIYUN_OCR_ACCESS_KEY_ID": "ali-id",
    "ALIYUN_OCR_ACCESS_KEY_SECRET": "ali-secret",
    "WECHAT_OCR_APP_ID": "wx-app",
    "WECHAT_OCR_APP_SECRET": "wx-secret",
    "GEMINI_API_KEY": "gm-key",
}

BAIDU_TOKEN = "https://aip.baidubce.com/oauth/2.0/token"
BAIDU_OCR = "https://aip.baidubce.com/rest/2.0/ocr/v1/general_basic"
ALIYUN_OCR = "https://ocr.cn-shanghai.aliyuncs.com"
WECHAT_TOKEN = "https://api.weixin.qq.com/cgi-bin/token"
WECHAT_OCR = "https://api.weixin.qq.com/cv/ocr/comm"
GEMINI_OCR = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"


def _bare(url: httpx.URL) -> str:
    return f"{url.scheme}://{url.host}{url.path}".rstrip("/")


class FakeVendor:
    """Scripted vendor endpoints keyed by (METHOD, url-without-query)."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def on(self, method, url, payload=None, status_code=200, handler=None):
        self.routes[(method, url.rstrip("/"))] = handler or (lambda _req: httpx.Response(status_code, json=payload))
        return self

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, _bare(request.url))
        if key not in self.routes:
            raise AssertionError(f"unexpected vendor call {key}")
        return self.routes[key](request)

    @property
    def transport(self):
        return httpx.MockTransport(self.handle)

    def urls(self):
        return [_bare(r.url) for r in self.calls]


@pytest.fixture()
def credentials():
    return Credentials.from_env(FULL_ENV)


@pytest.fixture()
def empty_credentials():
    return Credentials.from_env({})


@pytest.fixture()
def vendor():
    return FakeVendor()


@pytest.fixture()
def tiny_png_b64():
    # 1x1 transparent image
    buf = io.BytesIO()
    Image.new("RGBA", (1, 1), (0, 0, 0, 0)).save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")
