"""
ClipStream API application.

create_app() builds the FastAPI app: catalog and media routes under
/api/v1, the YouTube search proxy at the path the web client already
calls, and health checks. Tests build their own instance and swap
dependencies through app.dependency_overrides.

Run locally with:
    uvicorn src.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import channels, health, media, videos, youtube
from .config.settings import get_settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Open the shared outbound HTTP pool and report configuration gaps.

    Missing settings are logged, not fatal: mock-mode development has
    no credentials at all.
    """
    settings = get_settings()

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    app.state.http_client = httpx.AsyncClient(timeout=settings.youtube_timeout_seconds)

    logger.info(
        "ClipStream API starting",
        extra={
            "version": settings.api_version,
            "snowflake_mock_mode": settings.snowflake_mock_mode,
            "r2_mock_mode": settings.r2_mock_mode,
        }
    )

    try:
        yield
    finally:
        await app.state.http_client.aclose()
        logger.info("ClipStream API shutting down")


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Video sharing backend.

        - Channels, plus upload, browse and search for videos
        - Short-lived signed URLs for private video and thumbnail objects
        - Likes, dislikes and view counting
        - YouTube search proxy that keeps the API key on the server

        `/api/v1` endpoints need an `X-API-Key` header. Upload, view
        and reaction endpoints also need the signed-in user's ID in
        `X-User-Id`.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(channels.router, prefix="/api/v1/channels", tags=["Channels"])
    app.include_router(videos.router, prefix="/api/v1/videos", tags=["Videos"])
    app.include_router(media.router, prefix="/api/v1/media", tags=["Media"])

    # Path kept identical to the serverless function the web client calls
    app.include_router(
        youtube.router,
        prefix="/functions/v1/fetch-youtube-videos",
        tags=["YouTube"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "ClipStream API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Log the real error, answer with a generic 500."""
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"}
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=get_settings().log_level.lower(),
    )
