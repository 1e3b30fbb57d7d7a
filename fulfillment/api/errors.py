# fulfillment/api/errors.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fulfillment.domain.errors import FulfillmentError
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(FulfillmentError)
    async def fulfillment_error_handler(request: Request, exc: FulfillmentError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} - {exc.status_code} - {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} - {exc.status_code} - {exc.message}")

        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        # szczegoly tylko w logach, nigdy w odpowiedzi
        logger.exception(f"{request.method} {request.url.path} - unhandled error")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
