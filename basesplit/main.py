from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from basesplit.core.config import settings
from basesplit.core.logging import get_logger
from basesplit.api import session, requests, contacts
from basesplit.api import settings as settings_api
from basesplit.services.container import ServiceContainer

logger = get_logger(__name__)


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.container = container or ServiceContainer(settings)
        await app.state.container.startup()
        logger.info("api_started", project=settings.PROJECT_NAME, version=settings.VERSION)
        yield
        await app.state.container.shutdown()
        logger.info("api_stopped")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )

    # CORS middleware - allow all origins for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(session.router, prefix=settings.API_V1_STR)
    app.include_router(requests.router, prefix=settings.API_V1_STR)
    app.include_router(contacts.router, prefix=settings.API_V1_STR)
    app.include_router(settings_api.router, prefix=settings.API_V1_STR)

    @app.get("/")
    async def root():
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "docs": "/docs"
        }

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()
