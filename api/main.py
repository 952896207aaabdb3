import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.db import Database
from core.errors import install_handlers
from core.settings import Settings, load_settings
from records import repository as records_repository
from records import router as records_router
from records.store import RecordStore
from subcategories import repository as subcategories_repository
from subcategories import router as subcategories_router
from subcategories.service import SubcategoryStore


def create_app(
    settings: Settings | None = None,
    *,
    record_store: RecordStore | None = None,
    subcategory_store: SubcategoryStore | None = None,
) -> FastAPI:
    """
    Build the app. Stores passed in are used as-is; otherwise a Postgres pool
    is opened on startup and both stores are backed by it.
    """
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database: Database | None = None
        if app.state.record_store is None or app.state.subcategory_store is None:
            # One pool per process.
            database = Database(settings)
            await database.connect()
            if app.state.record_store is None:
                app.state.record_store = records_repository.RecordRepository(database)
            if app.state.subcategory_store is None:
                app.state.subcategory_store = subcategories_repository.SubcategoryRepository(database)
        try:
            yield
        finally:
            if database is not None:
                await database.close()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.record_store = record_store
    app.state.subcategory_store = subcategory_store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_handlers(app)
    app.include_router(records_router.router, tags=["records"])
    app.include_router(subcategories_router.router, tags=["subcategories"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
