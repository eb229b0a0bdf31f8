"""
Main application entry point
"""

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import structlog
from datetime import datetime

from .config import config
from .types import FlightAdminError
from .api.monitoring_endpoints import router as monitoring_router
from .container import ServiceContainer, configure_environment
from .error_handlers import flight_admin_exception_handler, global_exception_handler
from .utils.logger import bind_request_context, clear_request_context, setup_logging


logger = structlog.get_logger()


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the FastAPI application around a service container.

    Tests pass their own container; otherwise one is built from config.
    """
    setup_logging()
    container = container or ServiceContainer()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Flight Admin API", version="1.0.0")
        configure_environment()

        try:
            await container.initialize()
        except Exception as e:
            logger.error("Failed to initialize service container", error=str(e))
            raise

        yield

        logger.info("Shutting down Flight Admin API")
        await container.cleanup()

    app = FastAPI(
        title="Flight Admin API",
        description="Request lifecycle and booking calendar core of the flight admin dashboard",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if config.server.debug else None,
        redoc_url="/redoc" if config.server.debug else None,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if config.is_development else [],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(monitoring_router)

    app.add_exception_handler(FlightAdminError, flight_admin_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    @app.middleware("http")
    async def log_requests(request, call_next):
        """Log all HTTP requests"""
        start_time = datetime.now()
        request_id = f"req_{int(start_time.timestamp() * 1000)}"
        request.state.request_id = request_id
        bind_request_context(request_id, path=request.url.path)

        try:
            logger.info("HTTP request received", method=request.method, url=str(request.url))

            response = await call_next(request)

            duration = (datetime.now() - start_time).total_seconds()
            logger.info(
                "HTTP request completed",
                status_code=response.status_code,
                duration_ms=int(duration * 1000)
            )
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response

    return app


def main():
    """Main entry point"""
    uvicorn.run(
        "flight_admin.main:create_app",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        reload=config.is_development,
        log_level=config.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
