"""FastAPI application entry point for the Chartbuddies profile gate."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chartbuddies import __version__
from chartbuddies.api.routes import router
from chartbuddies.config import get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting Chartbuddies profile gate v{__version__}")
    settings = get_settings()
    logger.info(
        f"Debug mode: {settings.debug}, "
        f"propagation delay: {settings.profile_propagation_delay_ms}ms"
    )
    if not settings.supabase_service_role_key:
        logger.info("No service role key set, privileged functions use the anon key")

    yield

    logger.info("Shutting down Chartbuddies profile gate")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Chartbuddies",
        description="Sign-in with self-healing profile provisioning",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    return app


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "chartbuddies.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
