import logging
import os
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sensei.config import Settings
from sensei.errors import GenerationError, InvalidRequestError
from sensei.llm_client import generate_code, status as llm_status
from sensei.render import render_index, render_preview
from sensei.schemas import GenerateRequest, PreviewRequest

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)

API_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "X-Content-Type-Options": "nosniff",
}


def _error_response(status_code: int, payload: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=payload, headers=API_HEADERS)


def _validation_message(exc: RequestValidationError) -> str:
    for err in exc.errors():
        if err.get("type") == "json_invalid":
            return "Invalid JSON in request body."
        if err.get("type") == "missing" and tuple(err.get("loc", ())) == ("body",):
            return "Request body is missing."
    return InvalidRequestError.public_message


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app around one Settings object; nothing is read from globals per request."""
    settings = settings or Settings.from_env()
    app = FastAPI(title="SenSei")
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        rid = str(uuid.uuid4())
        start = time.time()
        request.state.request_id = rid
        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            dur_ms = int((time.time() - start) * 1000)
            log.info(
                "rid=%s method=%s path=%s status=%s dur_ms=%d",
                rid,
                request.method,
                request.url.path,
                getattr(response, "status_code", "?"),
                dur_ms,
            )

    @app.exception_handler(RequestValidationError)
    async def on_validation_error(request: Request, exc: RequestValidationError):
        message = _validation_message(exc)
        log.info("rejected request path=%s: %s", request.url.path, message)
        return _error_response(400, {"error": message})

    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(request: Request, exc: StarletteHTTPException):
        resp = _error_response(exc.status_code, {"error": str(exc.detail)})
        for key, value in (exc.headers or {}).items():
            resp.headers[key] = value
        return resp

    @app.get("/", response_class=HTMLResponse)
    def root() -> str:
        return render_index()

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/llm/status")
    def llm_status_endpoint(request: Request) -> Dict[str, Any]:
        return llm_status(request.app.state.settings)

    @app.post("/generate")
    def generate_endpoint(req: GenerateRequest, request: Request):
        """
        Turn a prompt into {html, css, js, text}.
        Every failure is answered as {error, fullError?} with 400 or 500.
        """
        try:
            result = generate_code(req.prompt, request.app.state.settings)
        except GenerationError as e:
            if e.status_code >= 500:
                log.error("generate failed: %s (%s)", e, type(e).__name__)
            return _error_response(e.status_code, e.to_payload())
        except Exception as e:
            log.exception("generate: unexpected failure")
            return _error_response(500, {"error": "Failed to generate code.", "fullError": str(e)})
        return JSONResponse(result.to_response(), headers=API_HEADERS)

    @app.post("/preview", response_class=HTMLResponse)
    def preview(req: PreviewRequest) -> HTMLResponse:
        return HTMLResponse(render_preview(req.html, req.css, req.js))

    return app


app = create_app()
