"""FastAPI application entry point for the ZipShip API."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from zipship.api.routes import credits, deploys, github, health

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize resources on startup and clean up on shutdown."""
    from zipship.data.db import dispose_engine, init_db

    init_db()
    yield
    dispose_engine()


app = FastAPI(
    title="ZipShip API",
    description="API for deploying ZIP archives as GitHub repositories",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(deploys.router, prefix="/api")
app.include_router(credits.router, prefix="/api")
app.include_router(github.router, prefix="/api")


def main() -> None:
    """Start the development server."""
    import uvicorn

    logging.basicConfig(
        level=os.getenv("ZIPSHIP_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "zipship.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )


if __name__ == "__main__":
    main()
