from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Cookie, Depends, HTTPException
from fastapi.responses import JSONResponse

import config
from db import StoreDep
from errors import ReservationError
from identity import (
    AuthUser,
    SessionIdentity,
    create_session_token,
    hash_password,
    verify_password,
)
from schemas import LoginData, UserCreate, UserRead

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["auth"])


def get_identity(
    store: StoreDep,
    session_token: Optional[str] = Cookie(default=None, alias=config.SESSION_COOKIE),
) -> SessionIdentity:
    return SessionIdentity(store, session_token)


IdentityDep = Annotated[SessionIdentity, Depends(get_identity)]


def get_current_user(identity: IdentityDep) -> AuthUser:
    """
    Reads the session cookie and returns {"id": ..., "email": ...}.
    Raises 401 if not logged in / invalid.
    """
    user = identity.current_user()
    if user is None:
        raise HTTPException(status_code=401, detail="Not logged in")
    return user


CurrentUserDep = Annotated[AuthUser, Depends(get_current_user)]


def get_current_borrower_id(identity: IdentityDep, user: CurrentUserDep) -> int:
    """Borrower profile of the logged-in user; NotFoundError becomes a 404."""
    return identity.borrower_id_for(user["id"])


BorrowerDep = Annotated[int, Depends(get_current_borrower_id)]


def _with_session_cookie(response: JSONResponse, user_id: int) -> JSONResponse:
    response.set_cookie(
        key=config.SESSION_COOKIE,
        value=create_session_token(user_id),
        httponly=True,
        secure=False,
        samesite="lax",
        max_age=config.SESSION_MAX_AGE,
    )
    return response


@router.post("/register", status_code=201)
def register(user_in: UserCreate, store: StoreDep):
    """
    Register a new user with a hashed password, plus the borrower profile
    that carts and transactions hang off.
    """
    if store.query("users", {"email": user_in.email}):
        raise HTTPException(status_code=400, detail="Email already registered")

    user = store.insert(
        "users",
        {
            "email": user_in.email,
            "name": user_in.name,
            "password_hash": hash_password(user_in.password),
        },
    )
    try:
        borrower = store.insert(
            "borrowers",
            {"auth_id": user["id"], "name": user_in.name, "email": user_in.email},
        )
    except ReservationError:
        # A user row must never outlive a failed borrower insert
        store.delete("users", {"id": user["id"]})
        logger.warning("register.rolled_back", user_id=user["id"])
        raise

    resp = JSONResponse(
        {"message": "Registration successful", "borrower_id": borrower["id"]},
        status_code=201,
    )
    return _with_session_cookie(resp, user["id"])


@router.post("/login")
def login(payload: LoginData, store: StoreDep):
    """Log in with email + password and set a signed cookie."""
    rows = store.query("users", {"email": payload.email})
    if not rows or not verify_password(payload.password, rows[0]["password_hash"]):
        raise HTTPException(status_code=400, detail="Invalid email or password")

    return _with_session_cookie(JSONResponse({"message": "Login successful"}), rows[0]["id"])


@router.post("/logout")
def logout():
    """Clear the session cookie."""
    response = JSONResponse({"message": "Logged out"})
    response.delete_cookie(config.SESSION_COOKIE)
    return response


@router.get("/me", response_model=UserRead)
def read_me(user: CurrentUserDep, store: StoreDep):
    """
    Get info about the currently logged-in user and their borrower profile.
    """
    row = store.query("users", {"id": user["id"]})[0]
    borrower = store.query("borrowers", {"auth_id": user["id"]})
    return UserRead(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        borrower_id=borrower[0]["id"] if borrower else None,
    )
