"""FastAPI application exposing the expense tracking endpoints.

Every response under ``/api`` uses the ``{success, data|message}`` envelope.
Errors raised by the store are translated by the exception handlers below, so
the route functions only deal with the successful path.
"""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from expense_tracker import schemas
from expense_tracker.config import Settings, load_settings
from expense_tracker.errors import ExpenseError, ValidationError
from expense_tracker.logging import setup_logger

from . import crud, database

LOG = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "amount", "category")
MISSING_FIELDS_MESSAGE = "Title, amount and category are required"
ROUTE_NOT_FOUND_MESSAGE = "Route not found"


def _require_fields(payload: Dict[str, Any]) -> None:
    """Reject payloads lacking a required field before they reach the store."""

    for field in REQUIRED_FIELDS:
        value = payload.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(MISSING_FIELDS_MESSAGE)


def _envelope(expense) -> schemas.ExpenseEnvelope:
    return schemas.ExpenseEnvelope(data=schemas.ExpenseRead.model_validate(expense))


def _error_response(status_code: int, message: str) -> JSONResponse:
    body = schemas.MessageEnvelope(success=False, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


router = APIRouter(prefix="/api/expenses", tags=["expenses"])


@router.post(
    "",
    response_model=schemas.ExpenseEnvelope,
    status_code=status.HTTP_201_CREATED,
)
def create_expense(
    payload: Dict[str, Any] = Body(
        ...,
        examples=[{"title": "Lunch", "amount": 12.5, "category": "food", "notes": ""}],
    ),
    db: Session = Depends(database.get_db),
) -> schemas.ExpenseEnvelope:
    _require_fields(payload)
    return _envelope(crud.create_expense(db, payload))


@router.get("", response_model=schemas.ExpenseListEnvelope)
def list_expenses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[schemas.Category] = Query(None),
    sort_by: schemas.SortField = Query("date", alias="sortBy"),
    order: schemas.SortOrder = Query("desc"),
    db: Session = Depends(database.get_db),
) -> schemas.ExpenseListEnvelope:
    query = schemas.ExpenseQuery(page=page, limit=limit, category=category, sort_by=sort_by, order=order)
    expenses = [schemas.ExpenseRead.model_validate(item) for item in crud.list_expenses(db, query)]
    return schemas.ExpenseListEnvelope(count=len(expenses), data=expenses)


@router.get("/summary", response_model=schemas.SummaryEnvelope)
def get_summary(db: Session = Depends(database.get_db)) -> schemas.SummaryEnvelope:
    return schemas.SummaryEnvelope(data=crud.expense_summary(db))


@router.get("/{expense_id}", response_model=schemas.ExpenseEnvelope)
def get_expense(expense_id: str, db: Session = Depends(database.get_db)) -> schemas.ExpenseEnvelope:
    return _envelope(crud.get_expense(db, expense_id))


@router.put("/{expense_id}", response_model=schemas.ExpenseEnvelope)
def update_expense(
    expense_id: str,
    payload: Dict[str, Any] = Body(..., examples=[{"amount": 18.0}]),
    db: Session = Depends(database.get_db),
) -> schemas.ExpenseEnvelope:
    return _envelope(crud.update_expense(db, expense_id, payload))


@router.delete("/{expense_id}", response_model=schemas.MessageEnvelope)
def delete_expense(expense_id: str, db: Session = Depends(database.get_db)) -> schemas.MessageEnvelope:
    crud.delete_expense(db, expense_id)
    return schemas.MessageEnvelope(success=True, message="Expense deleted successfully")


async def _handle_expense_error(_: Request, exc: ExpenseError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message)


async def _handle_request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(status.HTTP_400_BAD_REQUEST, schemas.describe_errors(exc.errors()))


async def _handle_http_exception(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return _error_response(status.HTTP_404_NOT_FOUND, ROUTE_NOT_FOUND_MESSAGE)
    return _error_response(exc.status_code, str(exc.detail))


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    LOG.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Server Error")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API application wired to ``settings``."""

    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        setup_logger("expense_tracker", json_format=settings.json_logs, level=settings.log_level)
        database.init_db()
        LOG.info("Expense store ready")
        yield

    application = FastAPI(title="Expense Tracker API", version="1.0.0", lifespan=lifespan)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @application.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        LOG.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": elapsed_ms,
            },
        )
        return response

    application.include_router(router)

    @application.get("/health", tags=["system"])
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    application.add_exception_handler(ExpenseError, _handle_expense_error)
    application.add_exception_handler(RequestValidationError, _handle_request_validation)
    application.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    application.add_exception_handler(Exception, _handle_unexpected)
    return application


app = create_app()


def main(settings: Optional[Settings] = None) -> None:
    """Entrypoint for running the API with uvicorn."""
    import uvicorn

    settings = settings or load_settings()
    database.configure(settings.database_url)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
