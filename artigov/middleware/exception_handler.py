"""Turns artigov errors and request validation failures into JSON error bodies.

Every error response has the shape ``{"error": CODE, "message": str, "details": {}}``.
"""

import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..exceptions import ArtigovException, ErrorCode

logger = logging.getLogger(__name__)


def _log_rejection(request: Request, status_code: int, code: str, message: str, details: dict) -> None:
    # 4xx are ordinary workflow outcomes (viewer approving, locked artifact edited).
    logger.log(
        logging.ERROR if status_code >= 500 else logging.INFO,
        "%s %s rejected with %s: %s", request.method, request.url.path, code, message,
        extra={"error_code": code, "status_code": status_code, "details": details},
    )


async def artigov_exception_handler(request: Request, exc: ArtigovException) -> JSONResponse:
    _log_rejection(request, exc.status_code, exc.error_code.value, exc.message, exc.details)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema failures get the same 400 body as a service-level ValidationError."""
    problems = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
        for err in jsonable_encoder(exc.errors())
    ]
    body = {
        "error": ErrorCode.VALIDATION_ERROR.value,
        "message": "Invalid request",
        "details": {"errors": problems},
    }
    _log_rejection(request, 400, body["error"], body["message"], body["details"])
    return JSONResponse(status_code=400, content=body)
