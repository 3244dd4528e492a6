"""Global error handlers: every failure leaves as the API error envelope."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ciphergate.errors import GatewayError, InvalidRequest

log = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI):

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        log.warning(f"[{exc.code}] {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        missing = [".".join(str(p) for p in err["loc"] if p != "body") for err in exc.errors()]
        err = InvalidRequest(f"invalid or missing fields: {', '.join(missing)}")
        log.warning(f"[{err.code}] {request.url.path}: {err.message}")
        return JSONResponse(status_code=err.http_status, content=err.to_response())
