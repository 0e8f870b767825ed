from contextlib import asynccontextmanager
from typing import Optional

import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from csp_headers import __version__
from csp_headers.config import Settings, load_policy, settings
from csp_headers.middleware.csp_nonce import CSPNonceMiddleware
from csp_headers.middleware.nonce_injection import NonceInjectionMiddleware
from csp_headers.middleware.security_headers import SecurityHeadersMiddleware
from csp_headers.schemas.policy import HeaderPolicy
from csp_headers.services.header_service import csp_header_name
from csp_headers.web.home_routes import router as home_router


def configure_logging(app_settings: Settings) -> None:
    handlers = [logging.StreamHandler()]
    if app_settings.LOG_FILE:
        handlers.append(logging.FileHandler(app_settings.LOG_FILE))

    logging.basicConfig(
        level=app_settings.LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


configure_logging(settings)
logger = logging.getLogger(__name__)


def create_app(
    policy: Optional[HeaderPolicy] = None,
    app_settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the application with the security header pipeline installed.

    The header policy is loaded and validated here, before any request is
    served; an invalid configuration raises ConfigError and the process
    does not start.
    """
    app_settings = app_settings or settings
    if policy is None:
        policy = load_policy(app_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan event handler for startup and shutdown events"""
        logger.info(f"[>>] Starting {app_settings.APP_NAME}...")
        if policy.enforce:
            logger.info(f"[OK] CSP enforcing ({csp_header_name(policy)})")
        else:
            logger.warning(
                f"[WARN] CSP in report-only mode ({csp_header_name(policy)}), "
                "set CSP_ENFORCE=true to enforce"
            )
        yield
        logger.info(f"[<<] Shutting down {app_settings.APP_NAME}...")

    app = FastAPI(
        title=app_settings.APP_NAME,
        description="Nonce-based Content-Security-Policy and security headers",
        version=__version__,
        debug=app_settings.DEBUG,
        lifespan=lifespan,
    )
    app.state.header_policy = policy

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Log every unhandled exception"""
        logger.error(
            "Unhandled exception on %s %s: %s",
            request.method,
            request.url.path,
            str(exc),
            exc_info=True,
        )
        return PlainTextResponse(
            "Internal Server Error. Please contact support if the problem persists.",
            status_code=500,
        )

    # Middleware added last runs first.
    # Nonce injection (innermost, rewrites the rendered HTML body)
    app.add_middleware(NonceInjectionMiddleware)

    # Security Headers Middleware (uses nonce from CSPNonceMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, policy=policy)

    # CSP Nonce Middleware (outermost, issues the nonce before anything else)
    app.add_middleware(CSPNonceMiddleware)

    # Health check endpoint (API only)
    @app.get("/api/health")
    async def health_check():
        return {"status": "ok"}

    # Include web routes (HTML pages)
    app.include_router(home_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
    )
