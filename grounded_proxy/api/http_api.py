"""
HTTP API adapter for the grounded Gemini proxy.

Architectural role:
- Expose the proxy endpoint to browsers/frontends over HTTP.
- Hand the raw method and body to `grounded_proxy.core.engine.process_request`.
- Render the runtime-neutral `ProxyResponse` as a JSON response.

Endpoint responsibilities:
- `/.netlify/functions/gemini_proxy`, `/api/gemini`: accept every standard method;
  the engine answers 405 for everything except POST. Non-standard methods get
  the same `{error}` envelope through the 405 exception handler.
- `GET /healthz`: liveness, configured model, and whether a credential is set.

Error handling strategy:
- All pipeline failures are already translated by the engine.
- Nothing in this module inspects or echoes the credential.

Side effects:
- Loads settings from the environment at import time via `ProxySettings.from_env()`
  (after `load_dotenv()` in `provider_config`).
"""

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from grounded_proxy.core.engine import process_request
from grounded_proxy.core.errors import MethodNotAllowed, translate_error
from grounded_proxy.core.types import InboundRequest
from grounded_proxy.llm.provider_config import ProxySettings

PROXY_ROUTES = ("/.netlify/functions/gemini_proxy", "/api/gemini")

# Methods routed to the engine so non-POST calls get the 405 envelope.
ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "CONNECT"]


class HealthStatus(BaseModel):
    """Health probe payload. Never carries the credential itself."""
    status: str
    model: str
    credential_configured: bool


def create_app(settings: ProxySettings | None = None) -> FastAPI:
    """
    Build the FastAPI application bound to one `ProxySettings` instance.

    Settings are captured once; every request reads the same frozen object.
    """
    settings = settings or ProxySettings.from_env()
    api = FastAPI(title="grounded-proxy")
    api.state.settings = settings

    async def gemini_proxy(request: Request):
        result = await process_request(
            InboundRequest(method=request.method, raw_body=await request.body()),
            request.app.state.settings,
        )
        return JSONResponse(
            status_code=result.status_code,
            content=result.body,
            headers=result.headers,
        )

    for path in PROXY_ROUTES:
        api.add_api_route(path, gemini_proxy, methods=ROUTED_METHODS)

    @api.exception_handler(StarletteHTTPException)
    async def method_not_allowed_envelope(request: Request, exc: StarletteHTTPException):
        # Methods outside ROUTED_METHODS never reach the engine.
        if exc.status_code != 405:
            return await http_exception_handler(request, exc)
        envelope = translate_error(MethodNotAllowed(f"method {request.method!r} not allowed"))
        return JSONResponse(status_code=envelope.status_code, content=envelope.body())

    @api.get("/healthz", response_model=HealthStatus)
    def healthz():
        current = api.state.settings
        return HealthStatus(
            status="ok",
            model=current.model_name,
            credential_configured=current.has_credential,
        )

    return api


app = create_app()
