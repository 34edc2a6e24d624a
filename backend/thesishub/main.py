from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from thesishub.core.config import settings
from thesishub.core.database import AsyncSessionLocal, close_db, init_db
from thesishub.core.exceptions import ThesisHubError, error_response
from thesishub.core.logging_config import logger
from thesishub.core.middleware import RequestLoggingMiddleware
from thesishub.api.router import api_router
from thesishub.services.auth_service import AuthService


async def ensure_default_admin() -> None:
    """Seed the configured admin account on an empty database"""
    if not (settings.DEFAULT_ADMIN_USERNAME and settings.DEFAULT_ADMIN_PASSWORD):
        logger.info("[Startup] No default admin configured")
        return

    async with AsyncSessionLocal() as session:
        admin = await AuthService(session).ensure_default_admin()
        if admin:
            logger.info(f"[Startup] Created default admin '{admin.username}'")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"AI assistant: {'enabled' if settings.ai_enabled else 'offline drafts'}")
    logger.info("=" * 60)

    await init_db()
    logger.info("[Startup] Database tables ready")
    await ensure_default_admin()

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await close_db()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Thesis group formation, proposals and supervision",
        version="1.0.0",
        lifespan=lifespan,
        redirect_slashes=False,
    )

    # Last added runs first
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time"],
    )

    @app.exception_handler(ThesisHubError)
    async def thesishub_exception_handler(request: Request, exc: ThesisHubError):
        if exc.status_code >= 500:
            logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
        return JSONResponse(status_code=exc.status_code, content=error_response(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Validation failed",
                "error": {"code": "VALIDATION_ERROR", "message": "Validation failed",
                          "details": {"errors": errors}},
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Global exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": str(exc) if settings.DEBUG else "Server error",
            },
        )

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "message": f"{settings.APP_NAME} API",
            "docs": "/docs",
            "health": f"{settings.API_PREFIX}/health",
        }

    return app


app = create_app()
