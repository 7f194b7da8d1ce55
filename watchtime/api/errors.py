"""Translate the core error taxonomy into HTTP responses.

Body shape for every error: {"error": <kind>, "message": <detail>}.
StorageFailure details stay in the logs; clients only see the kind.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from watchtime.core.errors import ActivityError, StorageFailure, Unauthenticated

logger = logging.getLogger(__name__)


async def _activity_error(_request: Request, exc: ActivityError) -> JSONResponse:
    message = exc.public_message if isinstance(exc, StorageFailure) else exc.message
    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.public_message, "message": message},
        headers=headers,
    )


async def _validation_error(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    logger.info("Rejected request: %s", "; ".join(problems))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid input", "message": "; ".join(problems)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ActivityError, _activity_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error)  # type: ignore[arg-type]
