"""BorrowDesk FastAPI application.

Usage:
    pip install -e ".[serve]"
    uvicorn main:app --reload
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from db import create_db_and_tables
from errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ReservationError,
    UpstreamError,
    ValidationError,
)
from log import configure_logging
from routers import auth, cart, inventory, requests, transactions

configure_logging()

app = FastAPI(title="BorrowDesk")

STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    InvalidStateError: 409,
    ConflictError: 409,
    UpstreamError: 503,
}


@app.on_event("startup")
def on_startup() -> None:
    create_db_and_tables()


@app.exception_handler(ReservationError)
async def reservation_error_handler(request: Request, exc: ReservationError):
    status_code = next(
        (code for cls, code in STATUS_CODES.items() if isinstance(exc, cls)),
        400,
    )
    headers = {"Retry-After": "1"} if isinstance(exc, UpstreamError) else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": exc.code},
        headers=headers,
    )


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(auth.router)
app.include_router(inventory.router, prefix="/inventory")
app.include_router(cart.router, prefix="/cart")
app.include_router(requests.router, prefix="/requests")
app.include_router(transactions.router, prefix="/transactions")
