import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from fragments.exceptions import FragmentsError
from fragments.logging_config import setup_logging_from_env
from fragments.settings import get_settings
from fragments.storage import get_store
from services.api.exception_handlers import (
    fragments_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from services.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from services.api.routes import router as v1_router
from services.api.schemas import HealthResponse

VERSION = os.getenv("FRAGMENTS_VERSION", "0.1.0")


def create_app() -> FastAPI:
    setup_logging_from_env()

    app = FastAPI(
        title="Fragments API",
        version=VERSION,
        description="Store owner-scoped text and image fragments and convert them between formats",
    )

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    # added last so it runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Location"],
    )

    @app.on_event("startup")
    async def _init_store() -> None:
        settings = get_settings()
        store = get_store()
        logger.info(
            "API initialised with storage backend={backend} ({store})",
            backend=settings.storage.effective_backend,
            store=type(store).__name__,
        )

    @app.get("/", tags=["meta"], response_model=HealthResponse)
    async def root() -> JSONResponse:
        # clients shouldn't cache the health check
        payload = HealthResponse(version=VERSION, storage=type(get_store()).__name__)
        return JSONResponse(content=payload.model_dump(), headers={"Cache-Control": "no-cache"})

    @app.get("/healthz", tags=["meta"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    app.add_exception_handler(FragmentsError, fragments_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(v1_router)

    return app


app = create_app()


def run() -> None:
    """Run a development ASGI server using uvicorn.

    Exposes the app at host:port (default 0.0.0.0:8080). Set PORT env var to override.
    """
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    reload = os.getenv("RELOAD", "false").lower() in {"1", "true", "yes", "on"}

    uvicorn.run("services.api.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    run()


__all__ = ["app", "create_app", "run"]
