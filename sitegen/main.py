import logging
import os
import threading
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from sitegen.analytics import AnalyticsRecorder, caller_key
from sitegen.errors import NoProviderError, ValidationError
from sitegen.generation import ProviderChoice, generate_website
from sitegen.providers import ProviderKind, ProviderRegistry, credential_variable, short_name

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 5000
DEFAULT_CURRENT_PROVIDER = ProviderKind.OPENAI

HEALTH_PATH = "/api/health"
GENERATE_PATH = "/api/generate"
# Health checks must not move the counters they report
UNTRACKED_PATHS = frozenset({HEALTH_PATH})

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
}


class GenerateRequest(BaseModel):
    description: Optional[str] = Field(default=None, description="Natural-language description of the website")
    provider: ProviderChoice = Field(default=ProviderChoice.AUTO, description="auto, openai or deepseek")


class SetProviderRequest(BaseModel):
    provider: ProviderKind


class ServerState:
    """Everything one app instance owns: providers, counters and the display provider."""

    def __init__(
        self,
        registry: ProviderRegistry,
        analytics: AnalyticsRecorder,
        current_provider: ProviderKind = DEFAULT_CURRENT_PROVIDER,
    ) -> None:
        self.registry = registry
        self.analytics = analytics
        self._current_provider = ProviderKind(current_provider)
        self._lock = threading.Lock()

    @property
    def current_provider(self) -> ProviderKind:
        with self._lock:
            return self._current_provider

    def set_current_provider(self, kind: ProviderKind) -> None:
        with self._lock:
            self._current_provider = ProviderKind(kind)


def get_state(request: Request) -> ServerState:
    return request.app.state.server


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, **extra})


def _log_provider_banner(state: ServerState) -> None:
    kinds = state.registry.kinds()
    if len(kinds) > 1:
        log.info("LLM integration: multiple providers available (%s)", ", ".join(k.value for k in kinds))
        log.info("Current provider: %s", state.current_provider.value)
    elif kinds:
        log.info("LLM integration: %s enabled", state.registry.get(kinds[0]).config.display_name)
    else:
        log.warning("LLM integration: no providers configured, using template fallback")
        log.warning(
            "Add %s or %s to .env to enable AI generation",
            credential_variable(ProviderKind.OPENAI),
            credential_variable(ProviderKind.DEEPSEEK),
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    _log_provider_banner(app.state.server)
    log.info("Health check at %s, analytics at /api/analytics", HEALTH_PATH)
    yield


async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


def _counts_as_request(path: str, status_code: int) -> bool:
    if path in UNTRACKED_PATHS:
        return False
    # A rejected generate body leaves every counter untouched
    return not (path == GENERATE_PATH and status_code == 400)


async def track_request(request: Request, call_next):
    rid = str(uuid.uuid4())
    start = time.time()
    request.state.request_id = rid
    response = None
    try:
        response = await call_next(request)
        if _counts_as_request(request.url.path, response.status_code):
            caller = caller_key(
                request.client.host if request.client else None,
                request.headers.get("user-agent"),
            )
            request.app.state.server.analytics.record_request(caller)
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


async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return _error(400, str(exc))


async def handle_no_provider(request: Request, exc: NoProviderError) -> JSONResponse:
    return _error(400, str(exc))


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for e in exc.errors():
        loc = ".".join(str(p) for p in e.get("loc", ()) if p != "body") or "(body)"
        errors.append({"path": loc, "message": e.get("msg", "invalid")})
    return _error(400, "Invalid request body", errors=errors)


router = APIRouter(prefix="/api")


@router.post("/generate")
def generate_endpoint(req: GenerateRequest, state: ServerState = Depends(get_state)):
    description = req.description or ""
    if not description.strip():
        raise ValidationError("Description is required")

    try:
        result = generate_website(description, req.provider, state.registry)
        state.analytics.record_generation(description, result.usage_category)
    except Exception as e:
        log.exception("Generation error")
        return _error(500, "Failed to generate website", error=str(e))

    return {
        "success": True,
        "html": result.html,
        "message": "Website generated successfully",
        "method": result.method,
        "provider": result.requested.value,
    }


@router.post("/set-provider")
def set_provider_endpoint(req: SetProviderRequest, state: ServerState = Depends(get_state)):
    kind = req.provider
    if not state.registry.has_provider(kind):
        raise NoProviderError(
            kind.value,
            f"{short_name(kind)} not configured. Add {credential_variable(kind)} to .env",
        )

    try:
        state.set_current_provider(kind)
    except Exception as e:
        log.exception("Provider switch error")
        return _error(500, "Failed to switch provider", error=str(e))

    log.info("Provider switched to %s", kind.value)
    return {
        "success": True,
        "message": f"Provider switched to {kind.value}",
        "provider": state.current_provider.value,
    }


@router.get("/analytics")
def analytics_endpoint(state: ServerState = Depends(get_state)) -> Dict[str, Any]:
    return {"success": True, "data": state.analytics.snapshot().to_dict()}


@router.get("/health")
def health(state: ServerState = Depends(get_state)) -> Dict[str, Any]:
    return {
        "success": True,
        "status": "OK",
        "message": "Site generator server is running",
        "providers": {**state.registry.status(), "current": state.current_provider.value},
        "analytics": state.analytics.brief(),
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }


def create_app(
    registry: Optional[ProviderRegistry] = None,
    analytics: Optional[AnalyticsRecorder] = None,
    current_provider: ProviderKind = DEFAULT_CURRENT_PROVIDER,
) -> FastAPI:
    """Build an app instance that owns its own provider registry and counters.

    With no arguments the registry is read from the environment and the
    counters start at zero.
    """
    app = FastAPI(title="sitegen", lifespan=lifespan)
    app.state.server = ServerState(
        registry if registry is not None else ProviderRegistry.from_env(),
        analytics if analytics is not None else AnalyticsRecorder(),
        current_provider,
    )

    allow_origins = [o.strip() for o in os.getenv("ALLOW_ORIGINS", "*").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(add_security_headers)
    app.middleware("http")(track_request)

    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(NoProviderError, handle_no_provider)
    app.add_exception_handler(RequestValidationError, handle_request_validation)

    app.include_router(router)
    return app


app = create_app()


def _port() -> int:
    try:
        return int(os.getenv("PORT", str(DEFAULT_PORT)) or DEFAULT_PORT)
    except ValueError:
        return DEFAULT_PORT


def main() -> None:
    """Serve the app with uvicorn on HOST:PORT (default 0.0.0.0:5000)."""
    import uvicorn

    uvicorn.run(
        "sitegen.main:app",
        host=os.getenv("HOST", DEFAULT_HOST) or DEFAULT_HOST,
        port=_port(),
        reload=False,
    )


if __name__ == "__main__":
    main()
