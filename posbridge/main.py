from __future__ import annotations
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from posbridge import __version__
from posbridge.config import configure_logging
from posbridge.controllers.printer_session import PrinterSession
from posbridge.views import (
    health_router,
    printer_router,
    print_router,
    ws_router,
)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    try:
        yield
    finally:
        # Release the printer socket on shutdown
        await app.state.printer_session.disconnect()


def create_app(*, session: PrinterSession | None = None) -> FastAPI:
    # Configure logging first
    configure_logging()

    app = FastAPI(
        title="posbridge",
        version=__version__,
        description="Prints images, text and QR codes on ESC/POS receipt printers over raw TCP.",
        lifespan=_lifespan,
    )

    app.state.printer_session = session or PrinterSession.from_settings()

    # Configure CORS
    cors_env = os.getenv("CORS_ALLOWED_ORIGINS", "*")
    if cors_env.strip() == "*" or cors_env.strip() == "":
        allowed_origins = ["*"]
    else:
        allowed_origins = [o.strip() for o in cors_env.split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include all routers by type
    app.include_router(health_router)
    app.include_router(printer_router)
    app.include_router(print_router)
    app.include_router(ws_router)

    return app


app = create_app()
