"""Exception-to-response mapping for the marketplace API.

Protean's handlers cover ``ValidationError`` (400) and ``ObjectNotFoundError``
(404). The handlers here are registered on top for the marketplace's own
errors; FastAPI picks the most specific handler along the exception's MRO.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError
from protean.integrations.fastapi import register_exception_handlers

from marketplace.exceptions import (
    InsufficientStock,
    InvalidTransition,
    TransactionAbort,
    Unauthorized,
)

logger = structlog.get_logger(__name__)


def _error_body(exc, code: str) -> dict:
    return {"code": code, "error": exc.messages}


async def _insufficient_stock(request: Request, exc: InsufficientStock) -> JSONResponse:
    body = _error_body(exc, exc.code)
    body["item"] = exc.as_dict()
    return JSONResponse(status_code=400, content=body)


async def _invalid_transition(request: Request, exc: InvalidTransition) -> JSONResponse:
    body = _error_body(exc, exc.code)
    body.update({"current": exc.current, "requested": exc.requested})
    return JSONResponse(status_code=400, content=body)


async def _unauthorized(request: Request, exc: Unauthorized) -> JSONResponse:
    logger.warning("Request refused", path=request.url.path, reason=exc.messages)
    return JSONResponse(status_code=403, content=_error_body(exc, exc.code))


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    # Protean's own ObjectNotFoundError carries no messages
    messages = getattr(exc, "messages", None) or {"_entity": [str(exc)]}
    return JSONResponse(status_code=404, content={"code": "not_found", "error": messages})


async def _transaction_abort(request: Request, exc: TransactionAbort) -> JSONResponse:
    logger.info(
        "Write conflict",
        path=request.url.path,
        expected_revision=exc.expected_revision,
        actual_revision=exc.actual_revision,
    )
    body = _error_body(exc, exc.code)
    body["revision"] = exc.actual_revision
    return JSONResponse(status_code=409, content=body)


async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"code": "invalid_request", "error": jsonable_encoder(exc.errors())})


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(InsufficientStock, _insufficient_stock)
    app.add_exception_handler(InvalidTransition, _invalid_transition)
    app.add_exception_handler(Unauthorized, _unauthorized)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(TransactionAbort, _transaction_abort)
    app.add_exception_handler(RequestValidationError, _request_validation)
