import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from portal.errors import PortalError

logger = logging.getLogger(__name__)

async def portal_error_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "kind": exc.kind})

async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Raw request input is dropped so submitted passwords are never echoed back.
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"detail": "Invalid request", "kind": "ValidationError", "errors": errors},
    )

def register_error_handlers(app: FastAPI):
    app.add_exception_handler(PortalError, portal_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
