"""
JWT Authentication routes - register, login, logout, me.

The token is returned in the body (for Bearer clients) and set as an
httpOnly cookie (for the browser app); deps.get_current_user accepts either.
Rate limiting for these endpoints is enforced at the middleware level
(RateLimitMiddleware in main.py).
"""
import os
import re
import logging
from datetime import datetime, timedelta, timezone
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from passlib.context import CryptContext
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.db import get_db
from app.api.deps import AUTH_COOKIE_NAME, ALGORITHM, SECRET_KEY, get_current_user
from app.api.responses import success_response
from app.models.orm_models import Company, User

logger = logging.getLogger("rateboard-auth")

# Simple RFC-5322 subset email regex (no external library required)
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")
_MIN_PASSWORD_LEN = 8

ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
_SECURE_COOKIE = os.getenv("APP_ENV", "development").lower() == "production"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _validate_email(email: str) -> str:
    """Normalise and validate email format. Raises HTTPException 400 on failure."""
    email = email.strip().lower()
    if not _EMAIL_RE.match(email):
        raise HTTPException(status_code=400, detail="Invalid email format")
    return email


def _validate_password(password: str) -> None:
    if len(password) < _MIN_PASSWORD_LEN:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {_MIN_PASSWORD_LEN} characters",
        )


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str
    password: str
    company_name: str = Field(..., min_length=1, max_length=200)


class LoginRequest(BaseModel):
    email: str
    password: str


def create_access_token(data: dict) -> str:
    to_encode = data.copy()
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def _token_for(user: User) -> str:
    return create_access_token({
        "sub": user.id,
        "company_id": user.company_id or "",
        "role": user.role,
    })


def _serialize_user(user: User, company: Company | None = None) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "company": {"id": company.id, "name": company.name} if company else None,
    }


def _with_session_cookie(response: JSONResponse, token: str) -> JSONResponse:
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=_SECURE_COOKIE,
        samesite="strict",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return response


@router.post("/register")
async def register(req: RegisterRequest, db: AsyncSession = Depends(get_db)):
    email = _validate_email(req.email)
    _validate_password(req.password)

    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use")

    company = Company(name=req.company_name.strip())
    db.add(company)
    await db.flush()

    user = User(
        name=req.name.strip(),
        email=email,
        hashed_password=pwd_context.hash(req.password),
        role="owner",
        company_id=company.id,
    )
    db.add(user)
    await db.flush()
    logger.info("User registered", extra={"user_id": user.id})

    token = _token_for(user)
    response = success_response(
        "Registration successful",
        {"token": token, "user": _serialize_user(user, company)},
        status_code=201,
    )
    return _with_session_cookie(response, token)


@router.post("/login")
async def login(req: LoginRequest, db: AsyncSession = Depends(get_db)):
    email = _validate_email(req.email)

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if not user or not pwd_context.verify(req.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account deactivated")

    company = await db.get(Company, user.company_id) if user.company_id else None
    token = _token_for(user)
    response = success_response(
        "Login successful",
        {"token": token, "user": _serialize_user(user, company)},
    )
    return _with_session_cookie(response, token)


@router.post("/logout")
async def logout():
    response = success_response("Logged out successfully")
    response.delete_cookie(AUTH_COOKIE_NAME, httponly=True, samesite="strict", secure=_SECURE_COOKIE)
    return response


@router.get("/me")
async def get_me(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    company = await db.get(Company, user.company_id) if user.company_id else None
    return success_response("User retrieved successfully", {"user": _serialize_user(user, company)})
