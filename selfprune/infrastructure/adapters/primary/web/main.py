"""FastAPI application for the self-pruning context service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from selfprune import __version__
from selfprune.configuration.config import Settings, get_settings
from selfprune.configuration.di_container import DIContainer
from selfprune.infrastructure.adapters.primary.web.routers import context, prune, tokens, usage
from selfprune.infrastructure.agent.context.errors import PruneError, PruneErrorCategory

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# LiteLLM installs its own handlers; keep its records out of the root logger
for _logger_name in ["LiteLLM", "LiteLLM Router", "LiteLLM Proxy"]:
    logging.getLogger(_logger_name).propagate = False

_STATUS_BY_CATEGORY = {
    PruneErrorCategory.VALIDATION: 422,
    PruneErrorCategory.NOT_FOUND: 404,
    PruneErrorCategory.STORAGE: 503,
    PruneErrorCategory.INTERNAL: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting SelfPrune application...")
    if getattr(app.state, "container", None) is None:
        app.state.container = DIContainer(settings=app.state.settings)

    container: DIContainer = app.state.container
    await container.startup()
    logger.info("Prune state loaded")

    yield

    # Shutdown
    logger.info("Shutting down SelfPrune application...")
    await container.shutdown()


async def prune_error_handler(request: Request, exc: PruneError) -> JSONResponse:
    status_code = _STATUS_BY_CATEGORY.get(exc.category, 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})


def create_app(
    app_settings: Settings | None = None, container: DIContainer | None = None
) -> FastAPI:
    app_settings = app_settings or settings
    app = FastAPI(
        title="SelfPrune API",
        description="Agent-directed context pruning: token accounting, archive and restore.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.api_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(PruneError, prune_error_handler)

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "version": __version__}

    # Register Routers
    app.include_router(tokens.router)
    app.include_router(usage.router)
    app.include_router(prune.router)
    app.include_router(context.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
