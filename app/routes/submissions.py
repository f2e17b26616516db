"""
API routes for answering questions within a timed session
"""

from fastapi import APIRouter, Depends
from typing import Optional

from app.config import settings
from app.models.database import Assessment, Submission, User
from app.models.schemas import (
    CompleteAssessmentRequest,
    RunCodeRequest,
    SubmitAnswerRequest,
    SubmitCodeRequest,
)
from app.services.ai_service import Evaluator, get_evaluator
from app.services.assessment_service import assessment_service
from app.services.session_service import SessionService, get_session_service
from app.services.store_service import store_service
from app.utils.auth import require_student
from app.utils.constants import QuestionType
from app.utils.error_handler import AppValidationError

router = APIRouter(prefix=f"{settings.API_PREFIX}/submissions", tags=["Submissions"])

ANSWER_TYPES = (QuestionType.THEORY.value, QuestionType.MCQ.value)


def _check_question_kind(assessment: Assessment, question_id: str, expects_code: bool) -> None:
    question = assessment.get_question(question_id)
    if question is None:
        # Reported as not found by the session service
        return
    is_code = question.type == QuestionType.PROGRAMMING.value
    if expects_code and not is_code:
        raise AppValidationError(
            "Use /submissions/answer for theory and mcq questions",
            details={"question_id": question_id, "question_type": question.type},
        )
    if not expects_code and question.type not in ANSWER_TYPES:
        raise AppValidationError(
            "Use /submissions/code for programming questions",
            details={"question_id": question_id, "question_type": question.type},
        )


def serialize_submission(submission: Submission) -> dict:
    return {
        "id": str(submission.id),
        "assessment_id": submission.assessment_id,
        "question_id": submission.question_id,
        "code": submission.code,
        "answer": submission.answer,
        "language": submission.language,
        "status": submission.status,
        "score": submission.score,
        "feedback": submission.feedback,
        "execution_time": submission.execution_time,
        "memory_used": submission.memory_used,
        "submitted_at": submission.submitted_at.isoformat() if submission.submitted_at else None,
        "evaluated_at": submission.evaluated_at.isoformat() if submission.evaluated_at else None,
    }


@router.post("/code")
async def submit_code(
    payload: SubmitCodeRequest,
    student: User = Depends(require_student),
    sessions: SessionService = Depends(get_session_service),
):
    """Submit code for a programming question; it is evaluated before the response returns"""
    assessment = assessment_service.get_assigned(payload.assessment_id, student)
    _check_question_kind(assessment, payload.question_id, expects_code=True)
    result = sessions.submit(
        assessment, payload.question_id, student, code=payload.code, language=payload.language
    )
    return {"success": True, **result}


@router.post("/answer")
async def submit_answer(
    payload: SubmitAnswerRequest,
    student: User = Depends(require_student),
    sessions: SessionService = Depends(get_session_service),
):
    """Submit a theory answer, or an mcq option index"""
    assessment = assessment_service.get_assigned(payload.assessment_id, student)
    _check_question_kind(assessment, payload.question_id, expects_code=False)
    result = sessions.submit(assessment, payload.question_id, student, answer=payload.answer)
    return {"success": True, **result}


@router.post("/run")
async def run_code(
    payload: RunCodeRequest,
    student: User = Depends(require_student),
    evaluator: Evaluator = Depends(get_evaluator),
):
    """Scratch run of code; nothing is stored or scored"""
    run = evaluator.run_code(payload.code, payload.language, payload.input)
    return {
        "success": True,
        "output": run.output,
        "error": run.error,
        "execution_time": run.execution_time,
    }


@router.get("/assessment/{assessment_id}")
async def list_submissions(assessment_id: str, student: User = Depends(require_student)):
    assessment = assessment_service.get_assigned(assessment_id, student)
    submissions = store_service.list_submissions(str(assessment.id), student.email)
    return {"success": True, "submissions": [serialize_submission(s) for s in submissions]}


@router.post("/complete/{assessment_id}")
async def complete_assessment(
    assessment_id: str,
    payload: Optional[CompleteAssessmentRequest] = None,
    student: User = Depends(require_student),
    sessions: SessionService = Depends(get_session_service),
):
    """Close the session; the score stays as the last scored submission left it"""
    auto_submitted = payload.auto_submitted if payload else False
    result = sessions.complete(assessment_id, student, auto_submitted=auto_submitted)
    return {"success": True, "message": "Assessment completed successfully", "result": result}
