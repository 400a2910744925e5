from __future__ import annotations  # FastAPI server exposing the interview portal

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import catalog_router, register_error_handlers, results_router, router
from config.settings import settings
from storage.migrate import migrate


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:  # Ensure schema before serving
    migrate(settings.DB_PATH)
    logger.info("Database ready at %s", settings.DB_PATH)
    yield


def create_app() -> FastAPI:  # Assemble routers, middleware and error mapping
    application = FastAPI(title="Interview Portal API", lifespan=lifespan)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"]
    )
    application.include_router(catalog_router)
    application.include_router(router)
    application.include_router(results_router)
    register_error_handlers(application)
    return application


app = create_app()
