"""
API routes for assessment authoring, delivery and results
"""

from fastapi import APIRouter, Depends, status

from app.config import settings
from app.models.database import User
from app.models.schemas import AssessmentCreate, AssignStudentsRequest, GenerateQuestionsRequest
from app.services.ai_service import Evaluator, get_evaluator
from app.services.analytics_service import analytics_service
from app.services.assessment_service import assessment_service, serialize_assessment
from app.services.question_service import QuestionService
from app.services.session_service import SessionService, get_session_service
from app.utils.auth import get_current_user, require_student, require_teacher
from app.utils.constants import Role
from app.utils.logger import logger

router = APIRouter(prefix=f"{settings.API_PREFIX}/assessments", tags=["Assessments"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_assessment(payload: AssessmentCreate, teacher: User = Depends(require_teacher)):
    """
    Create an assessment with all of its questions

    - **duration**: minutes, between MIN_DURATION_MINUTES and MAX_DURATION_MINUTES
    - **questions**: at least one programming, theory or mcq question
    - **student_emails**: students to assign immediately
    """
    assessment = assessment_service.create(teacher, payload)
    return {
        "success": True,
        "message": "Assessment created successfully",
        "assessment": serialize_assessment(assessment),
    }


@router.get("")
async def list_assessments(teacher: User = Depends(require_teacher)):
    """Teacher's active assessments with assignment and session counts"""
    assessments = analytics_service.teacher_overview(teacher)
    return {"success": True, "assessments": assessments, "total": len(assessments)}


@router.get("/teacher")
async def list_teacher_assessments(teacher: User = Depends(require_teacher)):
    return await list_assessments(teacher)


@router.get("/student")
async def list_student_assessments(student: User = Depends(require_student)):
    """Assessments assigned to the student with a derived not-started / in-progress / completed status"""
    assessments = assessment_service.list_for_student(student)
    return {"success": True, "assessments": assessments, "total": len(assessments)}


@router.post("/generate-questions")
async def generate_questions(
    payload: GenerateQuestionsRequest,
    teacher: User = Depends(require_teacher),
    evaluator: Evaluator = Depends(get_evaluator),
):
    """
    Generate questions per requested type

    Types the provider cannot generate are filled with placeholder questions,
    flagged by `warning` and `suggestions` in the response.
    """
    logger.info(f"Question generation requested for topic: {payload.topic}", extra={"user_id": str(teacher.id)})
    result = QuestionService(evaluator).generate(
        topic=payload.topic,
        difficulty=payload.difficulty.value,
        question_types=payload.question_types,
        counts=payload.counts.model_dump(),
        language=payload.language,
    )
    return {"success": True, **result}


@router.get("/{assessment_id}")
async def get_assessment(assessment_id: str, current_user: User = Depends(get_current_user)):
    """
    Assessment detail

    Students see only assigned assessments, without hidden test cases,
    correct answers or reference solutions.
    """
    if current_user.role == Role.TEACHER.value:
        assessment = assessment_service.get_owned(assessment_id, current_user)
        return {"success": True, "assessment": serialize_assessment(assessment)}

    assessment = assessment_service.get_assigned(assessment_id, current_user)
    return {"success": True, "assessment": serialize_assessment(assessment, student_view=True)}


@router.get("/{assessment_id}/session")
async def get_session(
    assessment_id: str,
    student: User = Depends(require_student),
    sessions: SessionService = Depends(get_session_service),
):
    assessment = assessment_service.get_assigned(assessment_id, student)
    return {"success": True, **sessions.get_status(assessment, student)}


@router.post("/{assessment_id}/start")
async def start_assessment(
    assessment_id: str,
    student: User = Depends(require_student),
    sessions: SessionService = Depends(get_session_service),
):
    """Start a timed session; calling again returns the existing session unchanged"""
    assessment = assessment_service.get_assigned(assessment_id, student)
    session = sessions.start(assessment, student)
    message = "Assessment already started" if session["already_started"] else "Assessment started"
    return {"success": True, "message": message, **session}


@router.post("/{assessment_id}/assign")
async def assign_students(
    assessment_id: str,
    payload: AssignStudentsRequest,
    teacher: User = Depends(require_teacher),
):
    assessment = assessment_service.assign(assessment_id, teacher, payload.student_emails)
    return {
        "success": True,
        "message": f"Assessment assigned to {len(payload.student_emails)} students",
        "assigned_students": list(assessment.assigned_students),
    }


@router.get("/{assessment_id}/results")
async def get_assessment_results(assessment_id: str, teacher: User = Depends(require_teacher)):
    """Every student's session for one of the teacher's assessments"""
    assessment = assessment_service.get_owned(assessment_id, teacher)
    return {"success": True, **analytics_service.assessment_results(assessment)}


@router.delete("/{assessment_id}")
async def delete_assessment(assessment_id: str, teacher: User = Depends(require_teacher)):
    """Soft delete: the assessment is deactivated, its sessions are kept"""
    assessment_service.delete(assessment_id, teacher)
    return {"success": True, "message": "Assessment deleted successfully"}
