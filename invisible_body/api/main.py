"""Invisible Body HTTP/WS app.

Serves the performer overlay stream, the operator config and the session
endpoints used by the viewer voting page.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from invisible_body.api.routes import config, health, sessions, stream


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Stop the performance loop (camera, speech worker, vote subscription) on shutdown."""

    from invisible_body.api.services.state import stop_engine

    yield
    stop_engine()


def create_app() -> FastAPI:
    application = FastAPI(title="Invisible Body API", lifespan=lifespan)
    # The viewer page is served from a different origin than the projection host.
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    for module in (health, config, sessions, stream):
        application.include_router(module.router)
    return application


app = create_app()


if __name__ == "__main__":
    uvicorn.run("invisible_body.api.main:app", host="0.0.0.0", port=8000, reload=True)
