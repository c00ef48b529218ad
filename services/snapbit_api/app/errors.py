"""Request-level errors and their JSON rendering."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ClientInputError(Exception):
    """A request field is missing or malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class LedgerUnavailable(Exception):
    """The ledger store could not complete an operation."""


async def _client_input_handler(request: Request, exc: ClientInputError) -> JSONResponse:
    return JSONResponse({"error": exc.message}, status_code=status.HTTP_400_BAD_REQUEST)


async def _validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected malformed request", extra={"path": request.url.path, "errors": str(exc.errors())})
    return JSONResponse(
        {"error": "Missing or invalid fields"}, status_code=status.HTTP_400_BAD_REQUEST
    )


async def _ledger_unavailable_handler(request: Request, exc: LedgerUnavailable) -> JSONResponse:
    return JSONResponse(
        {"error": "Ledger store unavailable"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClientInputError, _client_input_handler)
    app.add_exception_handler(RequestValidationError, _validation_handler)
    app.add_exception_handler(LedgerUnavailable, _ledger_unavailable_handler)


__all__ = ["ClientInputError", "LedgerUnavailable", "install_error_handlers"]
