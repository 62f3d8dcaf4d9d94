from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import time

from .core.config import settings
from .core.cache import cache_manager
from .core.database import close_db_connections, init_models
from .core.error_handlers import register_exception_handlers
from .core.logging import setup_logging
from .routers import health, chat_router, websocket_router
from .services.chat.presence_registry import PresenceRegistry
from .services.chat.realtime_gateway import RealtimeGateway

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting LMS Chat API")

    if settings.environment == "development":
        await init_models()
        logger.info("Database tables ensured")

    await cache_manager.connect()

    yield

    logger.info("Shutting down LMS Chat API")
    app.state.gateway.close()
    await cache_manager.disconnect()
    await close_db_connections()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title="LMS Chat API",
        description="Course chat between students and instructors with real-time push",
        version=settings.app_version,
        lifespan=lifespan
    )

    # One presence map per process, owned by the app
    app.state.gateway = RealtimeGateway(PresenceRegistry())

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        logger.info(f"{request.method} {request.url.path} - {process_time:.3f}s")
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        max_age=3600,
    )

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(chat_router)
    app.include_router(websocket_router)

    @app.get("/")
    async def root():
        return {
            "message": "LMS Chat API",
            "version": settings.app_version,
            "features": ["Course chat", "Unread counts", "Real-time push"],
            "status": "active"
        }

    return app


setup_logging()
app = create_app()


def run():
    import uvicorn
    uvicorn.run("lms_chat.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
