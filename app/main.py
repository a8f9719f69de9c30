import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.dependencies.redis import close_redis_client, redis_available
from app.routers import rooms, ws
from app.services.game.session import get_game_session_service
from app.services.websocket.manager import get_connection_manager

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Tabletop Hub API")
    logger.debug("Debug mode: %s", settings.DEBUG)

    connection_manager = get_connection_manager()
    await connection_manager.start_cleanup_task()
    logger.info("WebSocket connection manager initialized")

    yield

    logger.info("Shutting down Tabletop Hub API")
    await get_game_session_service().close()
    await connection_manager.stop_cleanup_task()
    await connection_manager.close_all_connections()
    await close_redis_client()
    logger.info("WebSocket and Redis cleanup complete")


app = FastAPI(
    title="Tabletop Hub API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.debug("CORS configured with origins: %s", settings.CORS_ORIGINS)

app.include_router(rooms.router, prefix="/api/v1")
app.include_router(ws.router, prefix="/api/v1")
logger.debug("Routers registered: /api/v1/rooms, /api/v1/ws")


@app.get("/")
def root():
    return {"message": "Tabletop Hub API"}


@app.get("/health")
async def health():
    if await redis_available():
        return {"status": "healthy", "redis": "ok"}
    return {"status": "degraded", "redis": "unavailable"}
