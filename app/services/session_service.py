"""
Timed assessment sessions: start, submit, complete, with lazily detected expiry

A session is open while `completed_at` is unset. Expiry is not swept in the
background; it is detected when the student next submits, at which point the
session is force-completed and the submission rejected.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import Depends

from app.models.database import Assessment, AssessmentResult, User
from app.services.ai_service import Evaluator, SubmissionContent, get_evaluator
from app.services.store_service import StoreService, store_service
from app.utils.constants import ERROR_MESSAGES
from app.utils.error_handler import (
    ConflictError,
    NotFoundError,
    TimeLimitExceededError,
)
from app.utils.helpers import (
    calculate_percentage,
    calculate_time_remaining,
    clamp_score,
    elapsed_minutes,
    utcnow,
)
from app.utils.logger import logger


Clock = Callable[[], datetime]


def get_clock() -> Clock:
    """FastAPI dependency for the time source; tests override it"""
    return utcnow


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class SessionService:
    """Session lifecycle over an injected store, evaluator and clock"""

    def __init__(self, store: StoreService, evaluator: Evaluator, now: Clock = utcnow):
        self.store = store
        self.evaluator = evaluator
        self.now = now

    def get_status(self, assessment: Assessment, student: User) -> Dict[str, Any]:
        result = self.store.get_result(str(assessment.id), student.email)
        if result is None:
            return {"has_session": False, "duration": assessment.duration}

        status = {
            "has_session": True,
            "result_id": str(result.id),
            "started_at": isoformat(result.started_at),
            "completed_at": isoformat(result.completed_at),
            "duration": assessment.duration,
            "is_completed": result.is_completed,
        }
        if not result.is_completed:
            status["time_remaining"] = calculate_time_remaining(result.started_at, assessment.duration, self.now())
        return status

    def start(self, assessment: Assessment, student: User) -> Dict[str, Any]:
        """
        Open a session, or return the existing one unchanged.

        Re-starting never resets the clock, even for a completed session.
        """
        assessment_id = str(assessment.id)
        result = self.store.get_result(assessment_id, student.email)
        already_started = result is not None

        if result is None:
            result = self.store.create_result({
                "assessment_id": assessment_id,
                "student_email": student.email,
                "total_score": 0,
                "max_score": assessment.max_score,
                "percentage": 0,
                "submissions": [],
                "started_at": self.now(),
            })
            logger.info(
                "Assessment session started",
                extra={"assessment_id": assessment_id, "student_email": student.email},
            )

        return {
            "result_id": str(result.id),
            "started_at": isoformat(result.started_at),
            "duration": assessment.duration,
            "already_started": already_started,
            "is_completed": result.is_completed,
        }

    def _open_session(self, assessment: Assessment, student: User) -> AssessmentResult:
        """Load the student's session and enforce the time window, force-completing on expiry"""
        assessment_id = str(assessment.id)
        result = self.store.get_result(assessment_id, student.email)
        if result is None:
            raise ConflictError(ERROR_MESSAGES["NOT_STARTED"], reason="NOT_STARTED")

        now = self.now()
        elapsed = elapsed_minutes(result.started_at, now)
        expired = elapsed > assessment.duration
        details = {"duration": assessment.duration, "elapsed_minutes": round(elapsed, 2)}

        if result.is_completed:
            if expired:
                raise TimeLimitExceededError(details)
            raise ConflictError(ERROR_MESSAGES["ALREADY_COMPLETED"], reason="ALREADY_COMPLETED")

        if expired:
            result.completed_at = now
            result.time_spent = round(elapsed, 2)
            self.store.save_result(result)
            logger.info(
                "Assessment time limit exceeded, session force-completed",
                extra={"assessment_id": assessment_id, "student_email": student.email},
            )
            raise TimeLimitExceededError(details)

        return result

    def submit(
        self,
        assessment: Assessment,
        question_id: str,
        student: User,
        code: Optional[str] = None,
        answer: Optional[str] = None,
        language: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Store and score one answer, then refresh the session total.

        When the evaluator fails the submission stays `pending`, the session is
        left as it was, and the response reports `evaluated=False`.
        """
        assessment_id = str(assessment.id)
        question = assessment.get_question(question_id)
        if question is None:
            raise NotFoundError("Question", question_id, details={"message": ERROR_MESSAGES["QUESTION_NOT_FOUND"]})

        self._open_session(assessment, student)

        submission = self.store.upsert_submission(
            assessment_id,
            question_id,
            student.email,
            {"code": code, "answer": answer, "language": language, "submitted_at": self.now()},
        )

        try:
            evaluation = self.evaluator.evaluate_submission(
                question, SubmissionContent(code=code, answer=answer, language=language)
            )
        except Exception as e:
            logger.error(
                f"Evaluation failed, submission left pending: {str(e)}",
                extra={"assessment_id": assessment_id, "student_email": student.email},
            )
            return {
                "submission_id": str(submission.id),
                "status": submission.status,
                "evaluated": False,
                "message": "Answer submitted, evaluation pending",
            }

        submission.status = evaluation.status
        submission.score = clamp_score(evaluation.score, question.points)
        submission.feedback = evaluation.feedback
        submission.execution_time = evaluation.execution_time
        submission.memory_used = evaluation.memory_used
        submission.evaluated_at = self.now()
        self.store.save_submission(submission)

        result = self.recompute(assessment_id, student.email)
        logger.info(
            f"Submission scored {submission.score}/{question.points}",
            extra={"assessment_id": assessment_id, "student_email": student.email},
        )

        return {
            "submission_id": str(submission.id),
            "status": submission.status,
            "score": submission.score,
            "max_score": float(question.points),
            "feedback": submission.feedback,
            "evaluated": True,
            "total_score": result.total_score if result else None,
            "percentage": result.percentage if result else None,
            "message": "Answer submitted and evaluated",
        }

    def complete(self, assessment_id: str, student: User, auto_submitted: bool = False) -> Dict[str, Any]:
        result = self.store.get_result(assessment_id, student.email)
        if result is None:
            raise NotFoundError("Assessment result", assessment_id, details={"message": ERROR_MESSAGES["SESSION_NOT_FOUND"]})
        if result.is_completed:
            raise ConflictError(ERROR_MESSAGES["ALREADY_COMPLETED"], reason="ALREADY_COMPLETED")

        now = self.now()
        result.completed_at = now
        result.time_spent = round(elapsed_minutes(result.started_at, now), 2)
        self.store.save_result(result)

        logger.info(
            f"Assessment completed ({'auto' if auto_submitted else 'manual'} submit)",
            extra={"assessment_id": assessment_id, "student_email": student.email},
        )
        return serialize_result(result)

    def recompute(self, assessment_id: str, student_email: str) -> Optional[AssessmentResult]:
        """Rebuild total, percentage and submission ids from every stored submission"""
        result = self.store.get_result(assessment_id, student_email)
        if result is None:
            return None

        submissions = self.store.list_submissions(assessment_id, student_email)
        result.total_score = round(sum(float(s.score or 0) for s in submissions), 2)
        result.percentage = calculate_percentage(result.total_score, result.max_score)
        result.submissions = [str(s.id) for s in submissions]
        return self.store.save_result(result)


def serialize_result(result: AssessmentResult) -> Dict[str, Any]:
    return {
        "id": str(result.id),
        "assessment_id": result.assessment_id,
        "student_email": result.student_email,
        "total_score": result.total_score,
        "max_score": result.max_score,
        "percentage": result.percentage,
        "submissions": list(result.submissions),
        "started_at": isoformat(result.started_at),
        "completed_at": isoformat(result.completed_at),
        "time_spent": result.time_spent,
        "is_completed": result.is_completed,
    }


def get_session_service(
    evaluator: Evaluator = Depends(get_evaluator),
    now: Clock = Depends(get_clock),
) -> SessionService:
    return SessionService(store_service, evaluator, now)
