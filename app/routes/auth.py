"""
FastAPI routes for authentication: fixed teacher credentials, student accounts
"""

from fastapi import APIRouter, Depends, status
from typing import Optional
import secrets

from app.config import settings
from app.models.database import User
from app.models.schemas import LoginRequest, RegisterRequest
from app.services.store_service import store_service
from app.utils.auth import (
    create_access_token,
    get_current_user,
    get_password_hash,
    serialize_user,
    verify_password,
)
from app.utils.constants import ERROR_MESSAGES, Role
from app.utils.error_handler import ConflictError, UnauthorizedError
from app.utils.helpers import normalize_email
from app.utils.logger import logger

router = APIRouter(prefix=f"{settings.API_PREFIX}/auth", tags=["Authentication"])


def _auth_response(user: User) -> dict:
    return {
        "success": True,
        "access_token": create_access_token(user),
        "token_type": "bearer",
        "user": serialize_user(user),
    }


def _is_teacher_pair(email: str, password: str) -> bool:
    email_ok = secrets.compare_digest(normalize_email(email), normalize_email(settings.TEACHER_EMAIL))
    password_ok = secrets.compare_digest(password.encode("utf-8"), settings.TEACHER_PASSWORD.encode("utf-8"))
    return email_ok and password_ok


def _get_or_create_teacher() -> User:
    """The teacher account is created on its first successful login"""
    teacher = store_service.get_user_by_email(settings.TEACHER_EMAIL, role=Role.TEACHER.value)
    if teacher is None:
        teacher = store_service.create_user(
            email=settings.TEACHER_EMAIL,
            password_hash=get_password_hash(settings.TEACHER_PASSWORD),
            role=Role.TEACHER.value,
            name="Teacher",
        )
        logger.info("Teacher account created", extra={"user_id": str(teacher.id)})
    return teacher


def _authenticate_student(email: str, password: str) -> Optional[User]:
    student = store_service.get_user_by_email(email, role=Role.STUDENT.value)
    if student is None or not verify_password(password, student.password_hash):
        return None
    return student


@router.post("/teacher/login", status_code=status.HTTP_200_OK)
async def teacher_login(request: LoginRequest):
    """
    Login with the configured teacher credentials

    - **email**: TEACHER_EMAIL
    - **password**: TEACHER_PASSWORD
    """
    if not _is_teacher_pair(request.email, request.password):
        logger.warning("Rejected teacher login")
        raise UnauthorizedError(ERROR_MESSAGES["INVALID_TEACHER_CREDENTIALS"])

    return _auth_response(_get_or_create_teacher())


@router.post("/student/register", status_code=status.HTTP_201_CREATED)
async def student_register(request: RegisterRequest):
    """
    Register a student account

    - **email**: Student email address
    - **password**: Password (min 6 characters)
    - **name**: Optional display name
    """
    taken = normalize_email(request.email) == normalize_email(settings.TEACHER_EMAIL)
    if taken or store_service.get_user_by_email(request.email) is not None:
        raise ConflictError(ERROR_MESSAGES["ALREADY_REGISTERED"], reason="ALREADY_REGISTERED")

    student = store_service.create_user(
        email=request.email,
        password_hash=get_password_hash(request.password),
        role=Role.STUDENT.value,
        name=request.name,
    )
    logger.info("Student registered", extra={"user_id": str(student.id)})
    return _auth_response(student)


@router.post("/student/login", status_code=status.HTTP_200_OK)
async def student_login(request: LoginRequest):
    student = _authenticate_student(request.email, request.password)
    if student is None:
        raise UnauthorizedError(ERROR_MESSAGES["INVALID_CREDENTIALS"])
    return _auth_response(student)


@router.post("/login", status_code=status.HTTP_200_OK)
async def login(request: LoginRequest):
    """Unified login: the teacher pair is tried first, then student accounts"""
    if _is_teacher_pair(request.email, request.password):
        return _auth_response(_get_or_create_teacher())

    student = _authenticate_student(request.email, request.password)
    if student is None:
        raise UnauthorizedError(ERROR_MESSAGES["INVALID_CREDENTIALS"])
    return _auth_response(student)


@router.get("/verify")
async def verify(current_user: User = Depends(get_current_user)):
    """Validate the bearer token and return its account"""
    return {"success": True, "user": serialize_user(current_user)}
