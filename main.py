
#main.py
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.payouts.errors import PayoutError
from middleware import RequestContextMiddleware
from routes.admin_exports import router as admin_exports_router
from routes.health import router as health_router
from routes.metrics import router as metrics_router
from routes.payouts import router as payouts_router
from services.errors import http_error_for
from settings import settings, validate_env_settings

logger = logging.getLogger("payouts")


def configure_logging() -> None:
    logging.basicConfig(
        level=(settings.LOG_LEVEL or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    configure_logging()
    validate_env_settings()

    app = FastAPI(title="Payouts API", version="1.0.0")
    app.add_middleware(RequestContextMiddleware)

    # -----------------------------
    # ROUTERS
    # -----------------------------

    app.include_router(health_router)
    app.include_router(metrics_router)
    # static /export.* and /import paths must register before /{payout_id}
    app.include_router(admin_exports_router)
    app.include_router(payouts_router)

    @app.exception_handler(PayoutError)
    async def payout_error_handler(request: Request, exc: PayoutError):
        status, body = http_error_for(exc)
        return JSONResponse(status_code=status, content=body)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    return app


app = create_app()
