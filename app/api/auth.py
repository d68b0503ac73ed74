"""
Authentication: registration, login and the current-owner dependency.

Tokens are HS256 JWTs signed with JWT_SECRET and carry the user id in the
"id" claim. Document routes depend only on get_current_owner, which turns
a valid bearer token into the opaque owner id; they never see credentials.
"""

import asyncio
import logging
import uuid
from datetime import timedelta
from typing import Annotated, Any, Optional

import bcrypt
import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings
from app.exceptions import InvalidCredentials
from app.models.document import utcnow
from app.models.user import AuthResponse, LoginRequest, RegisterRequest, UserPublic, UserRecord
from app.services.container import VaultServices, get_app_settings, get_services

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)
router = APIRouter()


def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("ascii"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def _require_secret(settings: Settings) -> str:
    if not settings.jwt_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication not configured (JWT_SECRET required).",
        )
    return settings.jwt_secret


def create_access_token(user_id: str, settings: Settings) -> str:
    secret = _require_secret(settings)
    now = utcnow()
    payload = {
        "id": user_id,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> dict[str, Any]:
    secret = _require_secret(settings)
    try:
        return jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning("JWT verification failed: %s", e)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token is not valid.")


async def get_current_owner(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> str:
    """Dependency: validate the bearer token and return the owner id it names."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied.",
        )
    payload = decode_access_token(credentials.credentials, settings)
    owner_id = payload.get("id")
    if not owner_id or not isinstance(owner_id, str):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token missing user id")
    return owner_id


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=AuthResponse,
    summary="Register a new user",
)
async def register(
    body: RegisterRequest,
    services: Annotated[VaultServices, Depends(get_services)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> AuthResponse:
    password_hash = await asyncio.to_thread(hash_password, body.password)
    user = await services.user_store.create(
        UserRecord(
            id=uuid.uuid4().hex,
            username=body.username,
            email=body.email,
            password_hash=password_hash,
        )
    )
    logger.info("Registered user %s", user.id)
    return AuthResponse(token=create_access_token(user.id, settings), user=UserPublic.from_record(user))


@router.post("/login", response_model=AuthResponse, summary="Log in")
async def login(
    body: LoginRequest,
    services: Annotated[VaultServices, Depends(get_services)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> AuthResponse:
    user = await services.user_store.get_by_email(body.email)
    if user is None or not await asyncio.to_thread(verify_password, body.password, user.password_hash):
        raise InvalidCredentials()
    return AuthResponse(token=create_access_token(user.id, settings), user=UserPublic.from_record(user))


@router.get("/user", response_model=UserPublic, summary="Current user profile")
async def current_user(
    owner_id: Annotated[str, Depends(get_current_owner)],
    services: Annotated[VaultServices, Depends(get_services)],
) -> UserPublic:
    user = await services.user_store.get(owner_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserPublic.from_record(user)


@router.post("/consent", response_model=dict, summary="Record PDPA consent")
async def record_consent(
    owner_id: Annotated[str, Depends(get_current_owner)],
    services: Annotated[VaultServices, Depends(get_services)],
) -> dict:
    user = await services.user_store.update(owner_id, pdpa_consent=True, pdpa_consent_date=utcnow())
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return {"status": "success", "message": "Consent recorded"}
