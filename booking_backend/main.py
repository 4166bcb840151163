import logging
import math
import os
from typing import Optional

import psycopg2
import psycopg2.extras
from dotenv import load_dotenv
from fastapi import Cookie, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from jose import JWTError, jwt
from pydantic import BaseModel

from booking_backend import app_context
from booking_backend.app.routes.bookings import router as bookings_router
from booking_backend.app.routes.payments import router as payments_router
from booking_backend.app.routes.public_bookings import router as public_bookings_router
from booking_backend.app.services.manage_links import get_manage_link_signer


load_dotenv()

def _parse_connect_timeout(raw_value: str) -> int:
    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))

DB_CFG = dict(
    host=os.getenv("DB_HOST", "127.0.0.1"),
    port=int(os.getenv("DB_PORT", "5432")),
    dbname=os.getenv("DB_NAME", "bookings_db"),
    user=os.getenv("DB_USER", "bookings_user"),
    password=os.getenv("DB_PASSWORD", "bookings_pass"),
    connect_timeout=_parse_connect_timeout(os.getenv("DB_CONNECT_TIMEOUT", "5")),
)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-change-me")
JWT_ALGORITHM = "HS256"
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if origin.strip()]

logger = logging.getLogger("bookings")


class Practitioner(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


def get_conn():
    return psycopg2.connect(**DB_CFG)


def get_practitioner_by_id(practitioner_id: str) -> Optional[Practitioner]:
    with get_conn() as conn, conn.cursor(cursor_factory=psycopg2.extras.DictCursor) as cur:
        cur.execute("SELECT id, email, name FROM profiles WHERE id = %s", (practitioner_id,))
        row = cur.fetchone()
    if not row:
        return None
    return Practitioner(id=str(row["id"]), email=row["email"], name=row["name"])


def resolve_practitioner_from_session_token(session_token: str) -> Optional[Practitioner]:
    try:
        payload = jwt.decode(session_token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None
    subject = payload.get("sub")
    if not subject:
        return None
    return get_practitioner_by_id(str(subject))


def get_current_user(session_token: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME)) -> Practitioner:
    if not session_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    practitioner = resolve_practitioner_from_session_token(session_token)
    if practitioner is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return practitioner


app_context.configure(get_conn=get_conn, get_current_user=get_current_user)

app = FastAPI(title="Bookings API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(payments_router)
app.include_router(public_bookings_router)
app.include_router(bookings_router)


@app.on_event("startup")
def ensure_manage_link_secret() -> None:
    get_manage_link_signer()
    logger.info("Manage link signer configured")


@app.get("/healthz")
def healthcheck() -> dict:
    return {"status": "ok"}
