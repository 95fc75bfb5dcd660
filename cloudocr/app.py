import logging
import traceback
from typing import Optional

if __name__ == "__main__":
    raise SystemExit("Run with: python -m uvicorn cloudocr.app:app --port 8000")

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response

from . import config
from .config import Credentials, summary
from .errors import ValidationError
from .models.schemas import OcrRequest, ProbeRequest
from .ocr.probe import probe
from .ocr.run_ocr import run_ocr

logger = logging.getLogger("cloudocr")
if not logger.handlers:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

CORS_METHODS = ["GET", "OPTIONS", "PATCH", "DELETE", "POST", "PUT"]
CORS_HEADERS = [
    "X-CSRF-Token", "X-Requested-With", "Accept", "Accept-Version", "Content-Length",
    "Content-MD5", "Content-Type", "Date", "X-Api-Version",
]
OCR_PATHS = ["/ocr", "/api/ocr"]
PROBE_PATHS = ["/ocr/test", "/api/ocr/test"]
NON_POST_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE"]
PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ",".join(CORS_METHODS),
    "Access-Control-Allow-Headers": ", ".join(CORS_HEADERS),
}


def _fail(status_code: int, error: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error, **extra})


def create_app(
    credentials: Optional[Credentials] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    dev_mode: Optional[bool] = None,
) -> FastAPI:
    app = FastAPI(title="cloudocr")
    # Resolved once; handlers read it from app.state rather than the environment.
    app.state.credentials = credentials or Credentials.from_env()
    app.state.transport = transport
    app.state.dev_mode = config.DEV_MODE if dev_mode is None else dev_mode

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        # Wildcards throughout: a preflight is always answered 200 with origin "*".
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=False,
    )

    @app.exception_handler(RequestValidationError)
    async def _bad_body(_request: Request, exc: RequestValidationError):
        logger.info("rejected body: %s", exc.errors())
        return _fail(400, "Malformed request body")

    # Preflight for clients that skip the CORS headers
    for path in OCR_PATHS + PROBE_PATHS:
        app.add_api_route(path, _preflight, methods=["OPTIONS"], include_in_schema=False)
        app.add_api_route(path, _method_not_allowed, methods=NON_POST_METHODS, include_in_schema=False)

    for path in OCR_PATHS:
        app.add_api_route(path, ocr_dispatch, methods=["POST"])
    for path in PROBE_PATHS:
        app.add_api_route(path, ocr_probe, methods=["POST"])

    @app.get("/health")
    @app.get("/api/health")
    def health():
        return {"ok": True, "service": "cloudocr"}

    @app.get("/api/config")
    def config_probe(request: Request):
        return summary(request.app.state.credentials, safe=True)

    logger.info("[boot] providers=%s", summary(app.state.credentials)["providers"])
    logger.info("[boot] DEV_MODE=%s", "1" if app.state.dev_mode else "0")
    return app


def _preflight() -> Response:
    return Response(status_code=200, headers=PREFLIGHT_HEADERS)


def _method_not_allowed() -> JSONResponse:
    return _fail(405, "Only POST requests are supported")


async def ocr_dispatch(body: OcrRequest, request: Request):
    state = request.app.state
    try:
        result = await run_ocr(body, state.credentials, transport=state.transport)
    except ValidationError as e:
        logger.info("ocr rejected provider=%s: %s", body.provider, e)
        return _fail(400, str(e))
    except Exception as e:
        logger.exception("ocr failed provider=%s", body.provider)
        extra = {"details": traceback.format_exc()} if state.dev_mode else {}
        return _fail(500, str(e) or "OCR processing failed", **extra)
    return {"success": True, "data": result.model_dump()}


async def ocr_probe(body: ProbeRequest, request: Request):
    state = request.app.state
    try:
        outcome = await probe(body.provider, state.credentials, transport=state.transport)
    except ValidationError as e:
        return _fail(400, str(e))
    except Exception as e:
        logger.exception("probe failed provider=%s", body.provider)
        return _fail(500, str(e) or "Connection test failed")
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)


app = create_app()
