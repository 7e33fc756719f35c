from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api import frame, health, tips
from .config import Settings, settings as default_settings
from .core.errors import (
    InputValidationError,
    NoSupportedChainError,
    UnsupportedConfigurationError,
    UpstreamFailureError,
)
from .core.frames.flow import FrameFlow
from .core.frames.templates import FrameTemplates
from .core.tips.registry import AssetRegistry
from .core.tips.tx_builder import NameResolver, TransactionPreparer
from .logging_config import setup_logging
from .middleware.logging_middleware import RequestLoggingMiddleware
from .middleware.rate_limit import Clock, RateLimiterRegistry, RateLimitMiddleware


def _error_body(error: str, message: str, field: Optional[str] = None) -> dict:
    body = {"error": error, "message": message}
    if field:
        body["field"] = field
    return body


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InputValidationError)
    async def input_validation_handler(request: Request, exc: InputValidationError):
        return JSONResponse(status_code=400, content=_error_body("Invalid request", exc.reason, exc.field))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or None
        return JSONResponse(
            status_code=400,
            content=_error_body("Invalid request", first.get("msg", "Invalid request body"), field),
        )

    @app.exception_handler(NoSupportedChainError)
    async def no_chain_handler(request: Request, exc: NoSupportedChainError):
        return JSONResponse(status_code=500, content=_error_body("Configuration error", str(exc)))

    @app.exception_handler(UnsupportedConfigurationError)
    async def unsupported_handler(request: Request, exc: UnsupportedConfigurationError):
        return JSONResponse(status_code=400, content=_error_body("Unsupported", str(exc)))

    @app.exception_handler(UpstreamFailureError)
    async def upstream_handler(request: Request, exc: UpstreamFailureError):
        return JSONResponse(status_code=500, content=_error_body("Upstream failure", str(exc)))


def create_app(
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
    registry: Optional[AssetRegistry] = None,
    resolver: Optional[NameResolver] = None,
) -> FastAPI:
    """Build the API. Tests pass their own settings, clock and registry."""
    settings = settings or default_settings
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Tip Chain API",
        description="Frame and web backend for sending crypto tips",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    registry = registry or AssetRegistry(preferred_chain_id=settings.preferred_chain_id)
    templates = FrameTemplates(settings=settings, registry=registry)
    app.state.settings = settings
    app.state.flow = FrameFlow(
        templates=templates,
        preparer=TransactionPreparer(registry=registry, resolver=resolver),
    )
    app.state.rate_limiters = RateLimiterRegistry(settings.rate_limit_configs(), clock=clock)

    # Last added runs first: CORS, then request logging, then rate limiting
    app.add_middleware(
        RateLimitMiddleware,
        registry=app.state.rate_limiters,
        trusted_ips=settings.trusted_ip_list,
        trusted_proxies=settings.trusted_proxy_list,
        enabled=settings.rate_limit_enabled,
    )
    app.add_middleware(RequestLoggingMiddleware, trusted_proxies=settings.trusted_proxy_list)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(frame.router, tags=["Frame"])
    app.include_router(tips.router, tags=["Tips"])

    @app.get("/")
    async def root():
        """Root endpoint with basic info"""
        return {
            "name": "Tip Chain API",
            "version": __version__,
            "frame": f"{settings.base_url}/frame",
            "docs": "/docs",
            "health": "/healthz",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "tipchain.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=True,
        log_level=default_settings.log_level.lower(),
    )
