"""Paste service app factory and process entry point."""
from __future__ import annotations

import argparse
import logging
from contextlib import asynccontextmanager
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI

from pasta.common.health import router as health_router
from pasta.common.logging_setup import setup_logging
from pasta.config.runtime_config import Settings, load_settings
from pasta.paste.pool import ConnectionPool
from pasta.paste.routes import register_error_handlers, router as paste_router
from pasta.paste.service import PasteService
from pasta.paste.store import InMemoryKeyValueStore, memory_connection_factory, redis_connection_factory

logger = logging.getLogger(__name__)


def build_pool(settings: Settings) -> ConnectionPool:
    if settings.store_backend == "memory":
        factory = memory_connection_factory(InMemoryKeyValueStore())
    else:
        factory = redis_connection_factory(settings.redis_url)
    return ConnectionPool(factory, max_size=settings.pool_size, timeout=settings.pool_timeout)


def build_service(settings: Settings) -> PasteService:
    return PasteService(
        build_pool(settings),
        ttl_seconds=settings.ttl_seconds,
        namespace=settings.namespace,
    )


def create_app(settings: Optional[Settings] = None, service: Optional[PasteService] = None) -> FastAPI:
    """Build the app.

    A supplied service is used as-is and left open on shutdown; otherwise one
    is built from settings on startup and its pool closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned: Optional[PasteService] = None
        if app.state.paste_service is None:
            resolved = settings or load_settings()
            owned = build_service(resolved)
            app.state.paste_service = owned
            logger.info(
                f"Paste store ready: backend={resolved.store_backend} url={resolved.redis_url} "
                f"pool_size={resolved.pool_size} ttl={resolved.ttl_seconds}s"
            )
        try:
            yield
        finally:
            if owned is not None:
                owned.pool.close()
                app.state.paste_service = None
                logger.info("Paste store pool closed")

    app = FastAPI(title="Pasta", version="0.1.0", lifespan=lifespan)
    app.state.paste_service = service
    register_error_handlers(app)
    app.include_router(paste_router)
    app.include_router(health_router)
    return app


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Serve self-destructing pastes")
    parser.add_argument("redis_url", nargs="?", help="Store URL (default: $PASTA_REDIS_URL or redis://localhost:6379)")
    parser.add_argument("--host", help="Bind host (default: $PASTA_BIND_HOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Bind port (default: $PASTA_BIND_PORT or 3000)")
    args = parser.parse_args(argv)

    setup_logging()
    settings = load_settings([args.redis_url] if args.redis_url else None)
    overrides = {}
    if args.host:
        overrides["bind_host"] = args.host
    if args.port is not None:
        overrides["bind_port"] = args.port
    settings = Settings.model_validate({**settings.model_dump(), **overrides})

    logger.info(f"Listening on http://{settings.bind_host}:{settings.bind_port}")
    uvicorn.run(create_app(settings), host=settings.bind_host, port=settings.bind_port, log_config=None)


if __name__ == "__main__":
    main()
