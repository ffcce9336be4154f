# storefront/api/__init__.py
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.api.routers import admin, carts, coupons, health, orders, users
from storefront.domain.errors import InsufficientStock, StorefrontError
from storefront.utils.settings import APP_ENV
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _error_body(message: str, exc: Exception | None = None, **extra) -> dict:
    body = {"success": False, "error": message, **extra}
    #stack tylko w trybie developerskim
    if exc is not None and APP_ENV == "development":
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


def register_error_handlers(app: FastAPI):
    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
        logger.warning(f"[ERROR] {exc.status_code} - {exc.message} ({request.method} {request.url.path})")
        extra = {}
        if isinstance(exc, InsufficientStock):
            extra = {"product": exc.product_name, "available": exc.available}
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc, error_type=type(exc).__name__, **extra),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {"field": ".".join(str(p) for p in err["loc"][1:]), "message": err["msg"]}
            for err in exc.errors()
        ]
        logger.warning(f"[ERROR] 400 - Validation failed ({request.method} {request.url.path})")
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Validation failed", "details": details},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"[ERROR] 500 - {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content=_error_body("Internal server error", exc))


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront Checkout Service",
        version="1.0.0",
    )

    register_error_handlers(app)

    # Include routers
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(carts.router)
    app.include_router(coupons.router)
    app.include_router(orders.router)
    app.include_router(admin.router)

    return app
