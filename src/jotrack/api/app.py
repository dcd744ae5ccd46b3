from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jotrack.api.ai_routes import router as ai_router
from jotrack.api.deps import http_error
from jotrack.api.routes import router as api_router
from jotrack.config import get_settings
from jotrack.db.init import init_database
from jotrack.errors import JoTrackError
from jotrack.logging_config import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def _startup() -> None:
        init_database()

    @app.exception_handler(JoTrackError)
    async def _domain_error(request: Request, exc: JoTrackError) -> JSONResponse:
        return await http_exception_handler(request, http_error(exc))

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    app.include_router(ai_router)
    return app
