from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from kanban_access import __version__
from kanban_access.api.errors import register_exception_handlers
from kanban_access.core import get_settings
from kanban_access.core.middleware import RequestLoggingMiddleware
from kanban_access.db import init_db
from kanban_access.logs.server_log import api_logger

# Get application settings
settings = get_settings()


# Lifespan event handler
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    try:
        await init_db()
        api_logger.info("Database initialized successfully")
    except Exception as e:
        api_logger.critical(f"Error initializing database: {e}")
        raise

    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Board access control, invitations, audit trail and card ordering",
        version=__version__,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=3600,
    )

    # Add request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    @app.get("/")
    async def root(request: Request):
        """Health check endpoint"""
        api_logger.info(f"Received health check request: {request.method} {request.url}")
        return {"message": f"{settings.PROJECT_NAME} is running"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    api_logger.info("Сервер запускается на http://0.0.0.0:8000")

    uvicorn.run(
        "kanban_access.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
