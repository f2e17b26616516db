"""
MongoDB persistence service - connection management and per-collection operations
"""

from typing import Any, Dict, List, Optional

from bson import ObjectId
from mongoengine import connect, disconnect
from mongoengine.connection import get_db
from mongoengine.errors import NotUniqueError

from app.config import settings
from app.models.database import Assessment, AssessmentResult, Submission, User
from app.utils.helpers import normalize_email, utcnow
from app.utils.logger import logger


def is_object_id(value: Optional[str]) -> bool:
    return bool(value) and ObjectId.is_valid(value)


class StoreService:
    """Thin data-access layer over the four collections"""

    def __init__(self):
        self._connected = False

    def connect(self, host: Optional[str] = None, db: Optional[str] = None, **kwargs) -> None:
        """Open the default mongoengine connection"""
        if self._connected:
            return
        connect(db=db or settings.MONGODB_DB, host=host or settings.MONGODB_URI, alias="default", **kwargs)
        self._connected = True
        logger.info("MongoDB connection configured")

    def disconnect(self) -> None:
        disconnect(alias="default")
        self._connected = False

    def ping(self) -> bool:
        """True when the database answers a ping"""
        try:
            get_db().command("ping")
            return True
        except Exception as e:
            logger.warning(f"MongoDB ping failed: {str(e)}")
            return False

    def ensure_indexes(self) -> None:
        for document in (User, Assessment, AssessmentResult, Submission):
            document.ensure_indexes()

    # ============================================
    # User Operations
    # ============================================

    def get_user(self, user_id: str) -> Optional[User]:
        if not is_object_id(user_id):
            return None
        return User.objects(id=user_id).first()

    def get_user_by_email(self, email: str, role: Optional[str] = None) -> Optional[User]:
        query = {"email": normalize_email(email)}
        if role:
            query["role"] = role
        return User.objects(**query).first()

    def create_user(self, email: str, password_hash: str, role: str, name: Optional[str] = None) -> User:
        user = User(email=normalize_email(email), password_hash=password_hash, role=role, name=name)
        user.save()
        return user

    def list_users(self, role: str) -> List[User]:
        return list(User.objects(role=role).order_by("-created_at"))

    # ============================================
    # Assessment Operations
    # ============================================

    def create_assessment(self, assessment_data: Dict[str, Any]) -> Assessment:
        assessment = Assessment(**assessment_data)
        assessment.save()
        return assessment

    def get_assessment(self, assessment_id: str) -> Optional[Assessment]:
        if not is_object_id(assessment_id):
            return None
        return Assessment.objects(id=assessment_id).first()

    def list_teacher_assessments(self, teacher_id: str) -> List[Assessment]:
        return list(Assessment.objects(created_by=teacher_id, is_active=True).order_by("-created_at"))

    def list_student_assessments(self, email: str) -> List[Assessment]:
        return list(
            Assessment.objects(assigned_students=normalize_email(email), is_active=True).order_by("-created_at")
        )

    def count_student_assessments(self, email: str) -> int:
        return Assessment.objects(assigned_students=normalize_email(email), is_active=True).count()

    def deactivate_assessment(self, assessment: Assessment) -> Assessment:
        assessment.is_active = False
        assessment.save()
        return assessment

    def add_assigned_students(self, assessment: Assessment, emails: List[str]) -> Assessment:
        Assessment.objects(id=assessment.id).update_one(
            add_to_set__assigned_students=emails, set__updated_at=utcnow()
        )
        assessment.reload()
        return assessment

    # ============================================
    # Session (AssessmentResult) Operations
    # ============================================

    def get_result(self, assessment_id: str, student_email: str) -> Optional[AssessmentResult]:
        return AssessmentResult.objects(
            assessment_id=assessment_id, student_email=normalize_email(student_email)
        ).first()

    def create_result(self, result_data: Dict[str, Any]) -> AssessmentResult:
        """
        Insert a new session.

        A concurrent insert for the same (assessment, student) pair loses to the
        unique index; the caller then gets the existing session.
        """
        result = AssessmentResult(**result_data)
        try:
            result.save(force_insert=True)
        except NotUniqueError:
            logger.info(
                "Session already created by a concurrent request",
                extra={"assessment_id": result.assessment_id, "student_email": result.student_email},
            )
            return self.get_result(result.assessment_id, result.student_email)
        return result

    def save_result(self, result: AssessmentResult) -> AssessmentResult:
        result.save()
        return result

    def list_student_results(self, student_email: str) -> List[AssessmentResult]:
        return list(AssessmentResult.objects(student_email=normalize_email(student_email)).order_by("-started_at"))

    def list_assessment_results(self, assessment_id: str) -> List[AssessmentResult]:
        return list(AssessmentResult.objects(assessment_id=assessment_id).order_by("-started_at"))

    def count_assessment_results(self, assessment_id: str) -> int:
        return AssessmentResult.objects(assessment_id=assessment_id).count()

    # ============================================
    # Submission Operations
    # ============================================

    def get_submission(self, assessment_id: str, question_id: str, student_email: str) -> Optional[Submission]:
        return Submission.objects(
            assessment_id=assessment_id,
            question_id=question_id,
            student_email=normalize_email(student_email),
        ).first()

    def upsert_submission(
        self,
        assessment_id: str,
        question_id: str,
        student_email: str,
        content: Dict[str, Any],
    ) -> Submission:
        """
        Create or overwrite the single submission for (assessment, question, student).

        The overwritten record goes back to `pending`; its previous score is
        kept until a new evaluation replaces it.
        """
        student_email = normalize_email(student_email)
        submission = self.get_submission(assessment_id, question_id, student_email)
        if submission is None:
            submission = Submission(
                assessment_id=assessment_id,
                question_id=question_id,
                student_email=student_email,
            )
        self._reset_submission(submission, content)
        try:
            submission.save()
        except NotUniqueError:
            # Lost an insert race for the same key; overwrite the winner instead
            submission = self.get_submission(assessment_id, question_id, student_email)
            self._reset_submission(submission, content)
            submission.save()
        return submission

    @staticmethod
    def _reset_submission(submission: Submission, content: Dict[str, Any]) -> None:
        submission.code = content.get("code")
        submission.answer = content.get("answer")
        submission.language = content.get("language")
        submission.status = "pending"
        submission.submitted_at = content.get("submitted_at") or utcnow()

    def save_submission(self, submission: Submission) -> Submission:
        submission.save()
        return submission

    def list_submissions(self, assessment_id: str, student_email: str) -> List[Submission]:
        return list(
            Submission.objects(
                assessment_id=assessment_id, student_email=normalize_email(student_email)
            ).order_by("-submitted_at")
        )


# Global service instance
store_service = StoreService()
