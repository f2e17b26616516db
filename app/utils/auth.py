"""
Authentication and authorization utilities: password hashing, JWT issue/verify, role dependencies
"""

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from passlib.context import CryptContext
from typing import Any, Dict, Optional
from datetime import datetime, timedelta, timezone
import uuid

from app.config import settings
from app.models.database import User
from app.services.store_service import store_service
from app.utils.constants import ERROR_MESSAGES, Role
from app.utils.error_handler import UnauthorizedError, ForbiddenError
from app.utils.logger import logger


security = HTTPBearer(auto_error=False)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unknown or malformed hash
        return False


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """
    Issue a signed token for a user

    Args:
        user: Authenticated account
        expires_delta: Lifetime override, defaults to JWT_EXPIRATION_HOURS

    Returns:
        Encoded JWT carrying sub (user id), email and role
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=settings.JWT_EXPIRATION_HOURS))
    to_encode = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the token claims, or None when the token is invalid or expired"""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sub") or payload.get("role") not in (Role.TEACHER.value, Role.STUDENT.value):
        return None
    return payload


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> User:
    """
    Dependency to get current authenticated user with request context

    Raises:
        UnauthorizedError: If the token is missing, invalid, or its account no longer exists
    """
    if not hasattr(request.state, "request_id"):
        request.state.request_id = str(uuid.uuid4())

    if not credentials:
        logger.warning(
            "Missing authentication credentials",
            extra={"request_id": request.state.request_id, "path": request.url.path}
        )
        raise UnauthorizedError(ERROR_MESSAGES["AUTH_REQUIRED"])

    payload = decode_access_token(credentials.credentials)
    user = store_service.get_user(payload["sub"]) if payload else None

    if not user or user.role != payload.get("role"):
        logger.warning(
            "Invalid or expired token",
            extra={"request_id": request.state.request_id, "path": request.url.path}
        )
        raise UnauthorizedError(ERROR_MESSAGES["INVALID_TOKEN"])

    request.state.user_id = str(user.id)

    logger.debug(
        "User authenticated",
        extra={
            "request_id": request.state.request_id,
            "user_id": str(user.id),
            "path": request.url.path
        }
    )

    return user


def _require_role(role: Role, message_key: str):
    async def dependency(request: Request, current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role.value:
            logger.warning(
                f"{role.value.capitalize()} access required",
                extra={
                    "request_id": getattr(request.state, "request_id", None),
                    "user_id": str(current_user.id),
                }
            )
            raise ForbiddenError(ERROR_MESSAGES[message_key])
        return current_user

    return dependency


require_teacher = _require_role(Role.TEACHER, "TEACHER_REQUIRED")
require_student = _require_role(Role.STUDENT, "STUDENT_REQUIRED")


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "email": user.email,
        "role": user.role,
        "name": user.name,
    }
