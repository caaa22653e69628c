# roomrelay/main.py

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roomrelay.core.config import settings as default_settings
from roomrelay.core.logging import setup_logging, get_logger
from roomrelay.core.state import RelayState
from roomrelay.services.message_store import MessageStore, PersistenceError, build_message_store
from roomrelay.services.redis_pub_sub import AsyncRedisPubSubService
from roomrelay.api.routes import root, health, rooms
from roomrelay.api import websocket as websocket_module

# Configure logging first
setup_logging()
logger = get_logger(__name__)


def create_app(store: MessageStore | None = None, settings=default_settings) -> FastAPI:
    """
    Build the FastAPI app with its own registry, connection manager and store.

    Args:
        store: Message store to use; built from STORAGE_BACKEND on startup if omitted
        settings: Settings object (defaults to the environment-backed one)
    """
    app = FastAPI(title="Room Relay")
    app.state.relay = RelayState(store=store, default_rooms=settings.DEFAULT_ROOMS)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # REST routes
    app.include_router(root.router)
    app.include_router(health.router)
    app.include_router(rooms.router)

    # WebSocket routes
    app.include_router(websocket_module.router)

    @app.on_event("startup")
    async def startup_event():
        relay = app.state.relay
        logger.info("🚀 Application starting - storage=%s, pubsub=%s",
                    settings.STORAGE_BACKEND if store is None else type(store).__name__,
                    settings.PUB_SUB_SERVICE)

        if relay.store is None:
            relay.store = build_message_store(settings)
        try:
            await relay.store.ensure_indexes()
        except PersistenceError as e:
            # Keep serving; each event reports its own storage failure
            logger.error("❌ Message store not ready: %s", e)

        if settings.PUB_SUB_SERVICE == "redis":
            redis_service = AsyncRedisPubSubService(
                relay.connection_manager,
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                access_key=settings.REDIS_ACCESS_KEY,
                ssl=settings.REDIS_SSL,
            )
            await redis_service.connect()
            relay.redis_service = redis_service
            relay.connection_manager.relay = redis_service

            # Start subscriber in background
            redis_service.start()

    @app.on_event("shutdown")
    async def on_shutdown():
        relay = app.state.relay
        if relay.redis_service is not None:
            relay.connection_manager.relay = None
            await relay.redis_service.close()
        if relay.store is not None:
            await relay.store.close()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("roomrelay.main:app", host=default_settings.HOST, port=default_settings.PORT)

# ============================================================================
# END OF FILE
# ============================================================================
