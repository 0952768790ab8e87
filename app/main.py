import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.router import api_router
from app.core.config import get_settings
from app.core.errors import SavingsError
from app.core.logging import configure_logging
from app.db.session import get_session_factory
from app.services.accounts import ensure_admin
from app.services.cache import LedgerSnapshotCache
from app.services.change_feed import ChangeFeed

logger = logging.getLogger(__name__)


async def savings_error_handler(_: Request, exc: SavingsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()

    change_feed = ChangeFeed()
    snapshot_cache = LedgerSnapshotCache(lambda: get_session_factory()())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.auto_create_admin:
            with get_session_factory()() as db:
                _, created = ensure_admin(db, settings.bootstrap_admin_login, settings.bootstrap_admin_password)
                if created:
                    logger.info("Bootstrap admin %s created.", settings.bootstrap_admin_login)
        snapshot_cache.attach(change_feed)
        try:
            yield
        finally:
            snapshot_cache.detach()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.change_feed = change_feed
    app.state.snapshot_cache = snapshot_cache

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SavingsError, savings_error_handler)
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    return app


app = create_app()
