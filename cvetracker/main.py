import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from cvetracker.config import Settings
from cvetracker.database import init_db, make_engine, make_session_factory
from cvetracker.errors import ValidationError
from cvetracker.routes import pages, vulnerabilities
from cvetracker.samples import SAMPLE_VULNERABILITIES, seed_store
from cvetracker.services.registry import InMemoryUserRegistry, SqlUserRegistry
from cvetracker.services.store import InMemoryVulnerabilityStore, SqlVulnerabilityStore

logger = logging.getLogger(__name__)


def build_backends(settings: Settings):
    """Create the store and registry for the configured medium.

    For the database medium the connection is checked and tables are created;
    a failure here is fatal to the process.
    """
    if settings.store_backend == "memory":
        initial = SAMPLE_VULNERABILITIES if settings.seed_samples else None
        return InMemoryVulnerabilityStore(initial=initial), InMemoryUserRegistry(), None

    engine = make_engine(settings.database_url)
    try:
        init_db(engine)
    except SQLAlchemyError as e:
        logger.error("Could not connect to the database: %s", e)
        raise SystemExit(1) from e

    session_factory = make_session_factory(engine)
    store = SqlVulnerabilityStore(session_factory)
    if settings.seed_samples:
        seed_store(store)
    return store, SqlUserRegistry(session_factory), engine


def create_app(settings: Settings = None, store=None, registry=None) -> FastAPI:
    """Application factory.

    ``store`` and ``registry`` may be injected (tests do); otherwise they are
    built from ``settings`` when the application starts.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        if app.state.store is None or app.state.registry is None:
            app.state.store, app.state.registry, engine = build_backends(settings)
            logger.info("using %s storage", settings.store_backend)
        yield
        if engine is not None:
            engine.dispose()

    app = FastAPI(title="CVE Tracker API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.registry = registry

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request, exc):
        # Malformed bodies are reported like any other invalid submission
        return JSONResponse(status_code=400, content={"detail": ValidationError.default_message})

    @app.get("/health")
    def health(request: Request):
        store = request.app.state.store
        return {"status": "ok", "backend": getattr(store, "backend", settings.store_backend)}

    app.include_router(vulnerabilities.router)
    app.include_router(pages.router)
    return app


app = create_app()
