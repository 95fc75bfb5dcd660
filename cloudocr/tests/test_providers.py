from urllib.parse import parse_qs

import httpx
import pytest

from cloudocr.errors import ConfigurationError, NetworkError, UpstreamAuthError, UpstreamRequestError
from cloudocr.ocr.providers.aliyun import AliyunOCR
from cloudocr.ocr.providers.baidu import BaiduOCR
from cloudocr.ocr.providers.base import join_lines
from cloudocr.ocr.providers.gemini import DEFAULT_PROMPT, GeminiOCR
from cloudocr.ocr.providers.wechat import WeChatOCR

from .conftest import ALIYUN_OCR, BAIDU_OCR, BAIDU_TOKEN, GEMINI_OCR, WECHAT_OCR, WECHAT_TOKEN


def test_join_lines_tolerates_absent_and_odd_items():
    assert join_lines(None, "words") == ""
    assert join_lines([], "words") == ""
    assert join_lines([{"words": "a"}, {"other": 1}, "x", {"words": "b"}], "words") == "a\nb"


# ---- Baidu -----------------------------------------------------------------

@pytest.mark.asyncio
async def test_baidu_two_calls_and_joined_text(credentials, vendor):
    vendor.on("POST", BAIDU_TOKEN, {"access_token": "tok-1", "expires_in": 2592000})
    vendor.on("POST", BAIDU_OCR, {"words_result": [{"words": "4K NVR"}, {"words": "IP67"}], "words_result_num": 2})

    result = await BaiduOCR(credentials, transport=vendor.transport).call("aGVsbG8=", language="ENG")

    assert result.text == "4K NVR\nIP67"
    assert result.provider == "baidu"
    assert result.rawResult["words_result_num"] == 2
    assert vendor.urls() == [BAIDU_TOKEN, BAIDU_OCR]

    token_req, ocr_req = vendor.calls
    assert token_req.url.params["client_id"] == "bd-key"
    assert token_req.url.params["client_secret"] == "bd-secret"
    assert ocr_req.url.params["access_token"] == "tok-1"
    form = parse_qs(ocr_req.content.decode())
    assert form["image"] == ["aGVsbG8="]
    assert form["language_type"] == ["ENG"]


@pytest.mark.asyncio
async def test_baidu_defaults_language(credentials, vendor):
    vendor.on("POST", BAIDU_TOKEN, {"access_token": "t"})
    vendor.on("POST", BAIDU_OCR, {"words_result": []})
    await BaiduOCR(credentials, transport=vendor.transport).call("x")
    assert parse_qs(vendor.calls[1].content.decode())["language_type"] == ["CHN_ENG"]


@pytest.mark.asyncio
async def test_baidu_token_error_stops_before_second_call(credentials, vendor):
    vendor.on("POST", BAIDU_TOKEN, {"error": "invalid_client", "error_description": "unknown client id"})
    vendor.on("POST", BAIDU_OCR, {"words_result": []})

    with pytest.raises(UpstreamAuthError) as ei:
        await BaiduOCR(credentials, transport=vendor.transport).call("x")
    assert "unknown client id" in str(ei.value)
    assert vendor.urls() == [BAIDU_TOKEN]


@pytest.mark.asyncio
async def test_baidu_recognition_error_code(credentials, vendor):
    vendor.on("POST", BAIDU_TOKEN, {"access_token": "t"})
    vendor.on("POST", BAIDU_OCR, {"error_code": 216201, "error_msg": "image format error"})

    with pytest.raises(UpstreamRequestError) as ei:
        await BaiduOCR(credentials, transport=vendor.transport).call("x")
    assert "image format error" in str(ei.value)


@pytest.mark.asyncio
async def test_baidu_missing_credentials_names_provider(empty_credentials, vendor):
    with pytest.raises(ConfigurationError) as ei:
        await BaiduOCR(empty_credentials, transport=vendor.transport).call("x")
    assert "Baidu" in str(ei.value)
    assert ei.value.provider == "baidu"
    assert vendor.calls == []


# ---- Aliyun ----------------------------------------------------------------

@pytest.mark.asyncio
async def test_aliyun_single_call(credentials, vendor):
    vendor.on("POST", ALIYUN_OCR, {"Code": "200", "Data": {"Content": "Smart PTZ"}})

    result = await AliyunOCR(credentials, transport=vendor.transport).call("img")

    assert result.text == "Smart PTZ"
    assert len(vendor.calls) == 1
    req = vendor.calls[0]
    assert req.headers["Authorization"] == "Bearer ali-id:ali-secret"
    assert b'"ImageBase64":"img"' in req.content.replace(b" ", b"")


@pytest.mark.asyncio
async def test_aliyun_error_code(credentials, vendor):
    vendor.on("POST", ALIYUN_OCR, {"Code": "InvalidImage", "Message": "bad image"})
    with pytest.raises(UpstreamRequestError, match="bad image"):
        await AliyunOCR(credentials, transport=vendor.transport).call("img")


@pytest.mark.asyncio
async def test_aliyun_no_data_is_empty_string(credentials, vendor):
    vendor.on("POST", ALIYUN_OCR, {"Code": "200"})
    result = await AliyunOCR(credentials, transport=vendor.transport).call("img")
    assert result.text == ""


# ---- WeChat ----------------------------------------------------------------

@pytest.mark.asyncio
async def test_wechat_two_calls(credentials, vendor):
    vendor.on("GET", WECHAT_TOKEN, {"access_token": "wx-tok", "expires_in": 7200})
    vendor.on("POST", WECHAT_OCR, {"errcode": 0, "errmsg": "ok", "items": [{"text": "PoE"}, {"text": "ONVIF"}]})

    result = await WeChatOCR(credentials, transport=vendor.transport).call("img")

    assert result.text == "PoE\nONVIF"
    assert vendor.urls() == [WECHAT_TOKEN, WECHAT_OCR]
    assert vendor.calls[0].url.params["appid"] == "wx-app"
    assert vendor.calls[1].url.params["access_token"] == "wx-tok"


@pytest.mark.asyncio
async def test_wechat_token_error_stops(credentials, vendor):
    vendor.on("GET", WECHAT_TOKEN, {"errcode": 40013, "errmsg": "invalid appid"})
    with pytest.raises(UpstreamAuthError, match="invalid appid"):
        await WeChatOCR(credentials, transport=vendor.transport).call("img")
    assert len(vendor.calls) == 1


@pytest.mark.asyncio
async def test_wechat_ocr_error(credentials, vendor):
    vendor.on("GET", WECHAT_TOKEN, {"access_token": "wx-tok"})
    vendor.on("POST", WECHAT_OCR, {"errcode": 101002, "errmsg": "image decode failed"})
    with pytest.raises(UpstreamRequestError, match="image decode failed"):
        await WeChatOCR(credentials, transport=vendor.transport).call("img")


# ---- Gemini ----------------------------------------------------------------

@pytest.mark.asyncio
async def test_gemini_first_part_text_and_default_prompt(credentials, vendor):
    vendor.on("POST", GEMINI_OCR, {"candidates": [{"content": {"parts": [{"text": "HELLO"}, {"text": "ignored"}]}}]})

    result = await GeminiOCR(credentials, transport=vendor.transport).call("img")

    assert result.text == "HELLO"
    req = vendor.calls[0]
    assert req.url.params["key"] == "gm-key"
    body = httpx.Response(200, content=req.content).json()
    parts = body["contents"][0]["parts"]
    assert parts[0]["inlineData"] == {"mimeType": "image/png", "data": "img"}
    assert parts[1]["text"] == DEFAULT_PROMPT


@pytest.mark.asyncio
async def test_gemini_prompt_override(credentials, vendor):
    vendor.on("POST", GEMINI_OCR, {"candidates": [{"content": {"parts": [{"text": ""}]}}]})
    await GeminiOCR(credentials, transport=vendor.transport).call("img", options={"prompt": "Only digits"})
    body = httpx.Response(200, content=vendor.calls[0].content).json()
    assert body["contents"][0]["parts"][1]["text"] == "Only digits"


@pytest.mark.asyncio
async def test_gemini_empty_candidates_is_explicit_failure(credentials, vendor):
    vendor.on("POST", GEMINI_OCR, {"candidates": [], "promptFeedback": {"blockReason": "SAFETY"}})
    with pytest.raises(UpstreamRequestError, match="SAFETY"):
        await GeminiOCR(credentials, transport=vendor.transport).call("img")


@pytest.mark.asyncio
async def test_gemini_error_field(credentials, vendor):
    vendor.on("POST", GEMINI_OCR, {"error": {"code": 400, "message": "API key not valid"}}, status_code=400)
    with pytest.raises(UpstreamRequestError, match="API key not valid"):
        await GeminiOCR(credentials, transport=vendor.transport).call("img")


# ---- shared behavior -------------------------------------------------------

@pytest.mark.parametrize("adapter_cls,routes", [
    (BaiduOCR, [("POST", BAIDU_TOKEN, {"access_token": "t"}), ("POST", BAIDU_OCR, {"words_result_num": 0})]),
    (AliyunOCR, [("POST", ALIYUN_OCR, {"Code": "200", "Data": {}})]),
    (WeChatOCR, [("GET", WECHAT_TOKEN, {"access_token": "t"}), ("POST", WECHAT_OCR, {"errcode": 0})]),
    (GeminiOCR, [("POST", GEMINI_OCR, {"candidates": [{"content": {"parts": []}}]})]),
])
@pytest.mark.asyncio
async def test_no_text_found_yields_empty_string(credentials, vendor, tiny_png_b64, adapter_cls, routes):
    for method, url, payload in routes:
        vendor.on(method, url, payload)
    result = await adapter_cls(credentials, transport=vendor.transport).call(tiny_png_b64)
    assert result.text == ""
    assert result.provider == adapter_cls.name


@pytest.mark.asyncio
async def test_transport_failure_becomes_network_error(credentials):
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError):
        await AliyunOCR(credentials, transport=httpx.MockTransport(boom)).call("img")


@pytest.mark.asyncio
async def test_non_json_body_is_upstream_error(credentials, vendor):
    vendor.on("POST", ALIYUN_OCR, handler=lambda _req: httpx.Response(502, text="<html>bad gateway</html>"))
    with pytest.raises(UpstreamRequestError, match="HTTP 502"):
        await AliyunOCR(credentials, transport=vendor.transport).call("img")
