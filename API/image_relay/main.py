import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from image_relay.api import images, registry, system
from image_relay.core.config import Settings
from image_relay.core.context import RelayContext, build_context
from image_relay.core.errors import RelayError
from image_relay.core.logging import setup_logging

logger = logging.getLogger(__name__)


def create_app(context: RelayContext | None = None) -> FastAPI:
    context = context or build_context(Settings())
    setup_logging(context.settings.LOG_LEVEL)

    app = FastAPI(title="Image Relay – Docker tar to registry")
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=context.settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(images.router)
    app.include_router(registry.router)
    app.include_router(system.router)

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        if exc.status_code >= 500:
            logger.error(f"{request.url.path}: {exc.error}: {exc.details}")
        else:
            logger.warning(f"{request.url.path}: {exc.error}: {exc.details}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.error, "details": exc.details},
        )

    # ---------- Startup / Shutdown ----------

    @app.on_event("startup")
    async def startup_event():
        settings = app.state.context.settings
        settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
        logger.info(
            f"[STARTUP] Image relay ready: uploads in {settings.UPLOAD_DIR}, "
            f"registry {settings.LOCAL_REGISTRY_URL}"
        )

    return app


app = create_app()
