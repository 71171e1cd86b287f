import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from booklend.api import routes
from booklend.core.config import Settings, configure_logging
from booklend.core.database import Database
from booklend.core.errors import register_exception_handlers
from booklend.core.security import SessionIssuer

logger = logging.getLogger("booklend")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        app.state.sessions = SessionIssuer(settings)
        db = Database(settings.database_url, timeout=settings.db_timeout_seconds)
        db.create_all()
        app.state.db = db
        logger.info(f"{settings.app_name} started")
        try:
            yield
        finally:
            db.dispose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(routes.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
