from contextlib import asynccontextmanager
from typing import Optional
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from config.settings import Settings, get_settings, validate_startup
from errors.handlers import register_exception_handlers
from middleware.session import setup_session
from session.context import SessionContext
from session.store import SessionStore
from telemetry.service import initialize_telemetry

load_dotenv()

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[SessionStore] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application with session support.

    Args:
        settings: Application settings; loaded from the environment if omitted
        store: Session store override, mainly for tests
        configure_logging: Install the JSON log handler on the root logger

    Returns:
        The configured application. The session context is available as
        app.state.session_context.
    """
    settings = settings or get_settings()
    validate_startup(settings)
    context = SessionContext(settings, store=store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events."""
        initialize_telemetry(settings, configure_root=configure_logging)
        logger.info("Starting session service...")
        await context.initialize()

        yield  # Application runs here

        logger.info("Shutting down session service...")
        await context.shutdown()

    app = FastAPI(title="Session Service", version="1.0.0", lifespan=lifespan)
    app.state.session_context = context

    # Register exception handlers for structured error responses
    register_exception_handlers(app)

    setup_session(app, context)

    @app.get("/health")
    async def health():
        """
        Report session store connectivity.

        Returns 200 when the store answers and 503 otherwise.
        """
        healthy = await context.store.health_check()
        content = {
            "status": "healthy" if healthy else "unhealthy",
            "service": "Session Service",
            "session_store": type(context.store).__name__,
        }
        return JSONResponse(status_code=200 if healthy else 503, content=content)

    return app


if __name__ == "__main__":
    import os
    import uvicorn
    port = int(os.environ.get("PORT", 8080))
    uvicorn.run(create_app(), host="0.0.0.0", port=port, log_level="info")
