"""
FastAPI application entry point for the heritage content service.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from heritage.admin_routes import router as admin_router
from heritage.config import get_settings
from heritage.errors import register_error_handlers
from heritage.routes import router


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    app = FastAPI(title="Khmer Heritage Content API", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(admin_router, prefix=settings.api_prefix)
    register_error_handlers(app)
    return app


app = create_app()
