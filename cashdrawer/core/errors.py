from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from cashdrawer.core.logging import get_logger

log = get_logger("errors")


class ShiftError(Exception):
    """Base de todos los errores del dominio de turnos."""

    code = "SHIFT_ERROR"
    status_code = 400

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.code)
        self.detail = detail or self.code


class ValidationError(ShiftError):
    code = "VALIDATION_ERROR"
    status_code = 422


class InvalidAmountError(ValidationError):
    code = "INVALID_AMOUNT"


class NotFoundError(ShiftError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(ShiftError):
    """Ya existe un turno OPEN para (branch, section)."""

    code = "SHIFT_ALREADY_OPEN"
    status_code = 409

    def __init__(self, branch_id: str, section_id: str):
        super().__init__(f"A shift is already open for section {section_id} in branch {branch_id}")
        self.branch_id = branch_id
        self.section_id = section_id


class AlreadyClosedError(ShiftError):
    """close() sobre un turno ya cerrado; lleva el resumen existente."""

    code = "ALREADY_CLOSED"
    status_code = 200

    def __init__(self, shift_id: str, summary: Optional[Any] = None):
        super().__init__(f"Shift {shift_id} is already closed")
        self.shift_id = shift_id
        self.summary = summary


class ShiftClosedError(ShiftError):
    code = "SHIFT_CLOSED"
    status_code = 409

    def __init__(self, shift_id: str):
        super().__init__(f"Shift {shift_id} is not open")
        self.shift_id = shift_id


class ProbeFailure(ShiftError):
    """Falla de una sola estrategia del resolver (se traga y se sigue)."""

    code = "PROBE_FAILURE"
    status_code = 502


class PersistenceUnavailable(ShiftError):
    code = "PERSISTENCE_UNAVAILABLE"
    status_code = 503


def _body(detail: str, code: str) -> dict:
    return {"detail": detail, "code": code}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ShiftError)
    async def _shift_error(request: Request, exc: ShiftError):
        return JSONResponse(status_code=exc.status_code, content=_body(exc.detail, exc.code))

    @app.exception_handler(SQLAlchemyError)
    async def _db_error(request: Request, exc: SQLAlchemyError):
        log.error("persistence failure on %s %s: %r", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=503,
            content=_body("Persistence layer unavailable", PersistenceUnavailable.code),
        )
