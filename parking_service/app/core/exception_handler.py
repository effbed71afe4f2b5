import logging

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from .exceptions import ParkingServiceError
from shared.core.schemas import JsonOutResult
from shared.utils.app_status_code import AppStatusCode

logger = logging.getLogger(__name__)


def failure(message: str, status_code: str) -> dict:
    return JsonOutResult(
        data=None,
        status="Failure",
        status_code=status_code,
        message=message
    ).model_dump()


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(ParkingServiceError)
    async def parking_exception_handler(request: Request, exc: ParkingServiceError):
        return JSONResponse(
            content=failure(exc.message, exc.app_status_code),
            status_code=exc.http_status
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        # detail may already be a packed JsonOutResult
        if isinstance(exc.detail, dict) and "status_code" in exc.detail:
            content = exc.detail
        else:
            content = failure(str(exc.detail), AppStatusCode.OPERATION_FAILED)
        return JSONResponse(content=content, status_code=exc.status_code or 400)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            content=failure(str(exc), AppStatusCode.INVALID_INPUT),
            status_code=422
        )

    # Catch all unhandled exceptions
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s", request.url.path)
        return JSONResponse(
            content=failure(str(exc), AppStatusCode.OPERATION_FAILED),
            status_code=500
        )
