from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from lifeos.db_init import init_db
from lifeos.errors import (
    LifeOSError,
    lifeos_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from lifeos.logging_config import configure_logging
from lifeos.routes import goals, habits, insights, notes, tasks, weeks, wellbeing


def create_app(init_database: bool = True) -> FastAPI:
    configure_logging()
    app = FastAPI(title="Life OS API", version="0.1.0")

    app.add_exception_handler(LifeOSError, lifeos_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(tasks.router)
    app.include_router(habits.router)
    app.include_router(goals.router)
    app.include_router(weeks.router)
    app.include_router(wellbeing.router)
    app.include_router(insights.router)
    app.include_router(notes.router)

    if init_database:
        @app.on_event("startup")
        async def _startup():
            await init_db()

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


app = create_app()
