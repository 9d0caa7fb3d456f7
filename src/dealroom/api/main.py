"""FastAPI application for the deal room service."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from dealroom.backend import MemoryStore
from dealroom.catalog import CatalogSynchronizer, LiveCatalog
from dealroom.config import config
from dealroom.negotiation import NegotiationDesk, NegotiationInitiator

from .config import get_settings
from .routes.deals import router as deals_router
from .routes.health import router as health_router
from .routes.negotiations import router as negotiations_router

logger = structlog.get_logger(__name__)


def create_app(store: MemoryStore | None = None) -> FastAPI:
    """
    Build the service around ``store``.

    Without a store, a fresh MemoryStore is created at startup and seeded
    from DEALROOM_SEED_PATH when that is set.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the catalog subscription at startup, close it at shutdown."""
        settings = get_settings()
        for problem in config.validate():
            logger.warning("lifespan.config_problem", problem=problem)

        backend = store
        if backend is None:
            backend = MemoryStore()
            if settings.DEALROOM_SEED_PATH:
                backend.load_seed(settings.DEALROOM_SEED_PATH)

        logger.info("lifespan.startup", seeded=bool(settings.DEALROOM_SEED_PATH))

        catalog = LiveCatalog(CatalogSynchronizer(backend))
        catalog.start()

        # Store on app.state for request handlers
        app.state.store = backend
        app.state.catalog = catalog
        app.state.initiator = NegotiationInitiator(backend)
        app.state.desk = NegotiationDesk(backend)
        app.state.default_sort = config.DEFAULT_SORT

        logger.info("lifespan.ready")
        yield

        logger.info("lifespan.shutdown")
        catalog.stop()

    application = FastAPI(
        title="dealroom",
        description="Live deal catalog and funding negotiations",
        lifespan=lifespan,
    )
    application.include_router(health_router)
    application.include_router(deals_router)
    application.include_router(negotiations_router)
    return application


app = create_app()
