"""FastAPI application factory."""

import base64
import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from config.settings import settings
from regwatch.api.routes import router
from regwatch.db.documents import DocumentStore
from regwatch.db.jobs import JobRepository
from regwatch.db.session import close_pool, get_pool
from regwatch.ingestion.crawler import Crawler
from regwatch.ingestion.jobs import ScrapeJobRunner
from regwatch.ingestion.pipeline import IngestionPipeline
from regwatch.ingestion.summarizer import Summarizer
from regwatch.rag.search import RegulatorySearch

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup: init DB pool, wire services. Shutdown: close pool."""
    logging.basicConfig(level=logging.INFO)
    logger.info("Starting up...")

    pool = await get_pool()
    store = DocumentStore(pool)
    jobs = JobRepository(pool)
    # One crawler (and so one rate limiter) for every job this process runs
    pipeline = IngestionPipeline(Crawler(), store, summarizer=Summarizer())

    app.state.pool = pool
    app.state.store = store
    app.state.jobs = jobs
    app.state.job_runner = ScrapeJobRunner(jobs, pipeline)
    app.state.search = RegulatorySearch(pool)

    yield

    logger.info("Shutting down...")
    await close_pool()


UNAUTHORIZED = Response(
    content="Unauthorized",
    status_code=401,
    headers={"WWW-Authenticate": "Basic"},
)


AUTH_USERNAME = settings.auth_username.encode()
AUTH_PASSWORD = settings.auth_password.encode()

# Paths that authenticate themselves (cron uses a bearer secret)
_SELF_AUTHENTICATED_PREFIXES = ("/cron/",)


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Enforce HTTP Basic Auth on all requests except self-authenticated paths."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        if request.url.path.startswith(_SELF_AUTHENTICATED_PREFIXES):
            return await call_next(request)
        auth = request.headers.get("Authorization")
        if auth and auth.startswith("Basic "):
            try:
                decoded = base64.b64decode(auth[6:]).decode()
                username, password = decoded.split(":", 1)
            except Exception:
                return UNAUTHORIZED
            if secrets.compare_digest(username.encode(), AUTH_USERNAME) and secrets.compare_digest(
                password.encode(), AUTH_PASSWORD
            ):
                return await call_next(request)
        return UNAUTHORIZED


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="Regwatch", lifespan=lifespan)
    app.add_middleware(BasicAuthMiddleware)
    app.include_router(router)
    return app
