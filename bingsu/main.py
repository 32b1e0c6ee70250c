"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from bingsu import __version__
from bingsu.api import admin_router, router
from bingsu.api.dependencies import get_services
from bingsu.config import get_settings
from bingsu.errors import ShopError, ValidationFailed
from bingsu.services import ShopServices
from bingsu.state.manager import close_state_manager, get_state_manager
from bingsu.utils.logging import get_logger, setup_logging

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("application_starting")

    await get_state_manager()
    logger.info("state_manager_initialized")

    yield

    logger.info("application_shutting_down")
    await close_state_manager()


app = FastAPI(
    title="Bingsu Shop",
    description="Order service for a shaved-ice dessert shop",
    version=__version__,
    lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, **exc.to_dict())
    else:
        logger.info("request_rejected", path=request.url.path, code=exc.error_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report every invalid field at once, as a 400."""
    fields = {
        ".".join(str(part) for part in error["loc"] if part != "body"): error["msg"]
        for error in exc.errors()
    }
    error = ValidationFailed("Invalid request", fields)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.get("/health")
async def health_check(services: ShopServices = Depends(get_services)) -> dict[str, str]:
    """Health check endpoint."""
    try:
        store = "ok" if await services.state.ping() else "unavailable"
    except RedisError:
        store = "unavailable"
    return {"status": "healthy", "service": "bingsu-shop", "store": store}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "message": "Bingsu Shop API",
        "docs": "/docs",
        "health": "/health",
    }


app.include_router(router, prefix="/api/v1", tags=["shop"])
app.include_router(admin_router, prefix="/api/v1", tags=["admin"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bingsu.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == "development",
    )
