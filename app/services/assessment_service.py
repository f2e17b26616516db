"""
Assessment authoring, access checks and serialization
"""

from typing import Any, Dict, List, Optional

from app.models.database import (
    Assessment,
    AssessmentResult,
    CodeTestCase,
    McqQuestion,
    ProgrammingQuestion,
    Question,
    TheoryQuestion,
    User,
)
from app.models.schemas import (
    AssessmentCreate,
    McqQuestionIn,
    ProgrammingQuestionIn,
    TheoryQuestionIn,
)
from app.services.store_service import StoreService, store_service
from app.utils.constants import ERROR_MESSAGES, AssessmentQuestionType, SessionStatus
from app.utils.error_handler import ForbiddenError, NotFoundError
from app.utils.helpers import normalize_emails
from app.utils.logger import logger


# Fields a student must never see before grading
STUDENT_HIDDEN_FIELDS = ("solution", "correct_answer", "explanation", "expected_keywords")


def build_question(question_in, difficulty: str, language: str) -> Question:
    """Turn a validated question payload into its embedded document"""
    common = {
        "title": question_in.title,
        "description": question_in.description,
        "difficulty": question_in.difficulty.value if question_in.difficulty else difficulty,
        "points": question_in.points,
    }

    if isinstance(question_in, ProgrammingQuestionIn):
        return ProgrammingQuestion(
            type=question_in.type,
            language=question_in.language or language,
            starter_code=question_in.starter_code,
            solution=question_in.solution,
            test_cases=[
                CodeTestCase(input=tc.input, output=tc.output, is_hidden=tc.is_hidden)
                for tc in question_in.test_cases
            ],
            sample_input=question_in.sample_input,
            sample_output=question_in.sample_output,
            constraints=question_in.constraints,
            time_limit=question_in.time_limit,
            memory_limit=question_in.memory_limit,
            **common,
        )
    if isinstance(question_in, TheoryQuestionIn):
        return TheoryQuestion(
            type=question_in.type,
            expected_keywords=question_in.expected_keywords,
            min_words=question_in.min_words,
            max_words=question_in.max_words,
            **common,
        )
    if isinstance(question_in, McqQuestionIn):
        return McqQuestion(
            type=question_in.type,
            options=question_in.options,
            correct_answer=question_in.correct_answer,
            explanation=question_in.explanation,
            **common,
        )
    raise ValueError(f"Unsupported question payload: {type(question_in).__name__}")


def serialize_question(question: Question, student_view: bool = False) -> Dict[str, Any]:
    data = question.to_mongo().to_dict()
    data.pop("_cls", None)

    if student_view:
        for field in STUDENT_HIDDEN_FIELDS:
            data.pop(field, None)
        if "test_cases" in data:
            data["test_cases"] = [tc for tc in data["test_cases"] if not tc.get("is_hidden")]

    return data


def serialize_assessment(
    assessment: Assessment,
    student_view: bool = False,
    include_questions: bool = True,
) -> Dict[str, Any]:
    data = {
        "id": str(assessment.id),
        "title": assessment.title,
        "topic": assessment.topic,
        "language": assessment.language,
        "question_type": assessment.question_type,
        "difficulty": assessment.difficulty,
        "duration": assessment.duration,
        "instructions": assessment.instructions,
        "max_score": assessment.max_score,
        "question_count": len(assessment.questions),
        "created_by": assessment.created_by,
        "is_active": assessment.is_active,
        "created_at": assessment.created_at.isoformat() if assessment.created_at else None,
        "updated_at": assessment.updated_at.isoformat() if assessment.updated_at else None,
    }
    if include_questions:
        data["questions"] = [serialize_question(q, student_view=student_view) for q in assessment.questions]
    if not student_view:
        data["assigned_students"] = list(assessment.assigned_students)
    return data


def session_status(result: Optional[AssessmentResult]) -> str:
    if result is None:
        return SessionStatus.NOT_STARTED.value
    if result.is_completed:
        return SessionStatus.COMPLETED.value
    return SessionStatus.IN_PROGRESS.value


class AssessmentService:
    """Teacher-side assessment operations and the access rules shared by every route"""

    def __init__(self, store: StoreService = store_service):
        self.store = store

    def create(self, teacher: User, payload: AssessmentCreate) -> Assessment:
        questions = [build_question(q, payload.difficulty.value, payload.language) for q in payload.questions]
        assessment = self.store.create_assessment({
            "title": payload.title,
            "topic": payload.topic,
            "language": payload.language,
            "question_type": AssessmentQuestionType.MIXED.value,
            "difficulty": payload.difficulty.value,
            "duration": payload.duration,
            "instructions": payload.instructions or "",
            "questions": questions,
            "assigned_students": normalize_emails(payload.student_emails),
            "created_by": str(teacher.id),
        })
        logger.info(
            f"Assessment created with {len(questions)} questions",
            extra={"assessment_id": str(assessment.id), "user_id": str(teacher.id)},
        )
        return assessment

    def get_owned(self, assessment_id: str, teacher: User) -> Assessment:
        """
        Load an active assessment the teacher created.

        Raises:
            NotFoundError: unknown, malformed or soft-deleted id
            ForbiddenError: assessment belongs to another teacher
        """
        assessment = self.store.get_assessment(assessment_id)
        if assessment is None or not assessment.is_active:
            raise NotFoundError("Assessment", assessment_id, details={"message": ERROR_MESSAGES["ASSESSMENT_NOT_FOUND"]})
        if assessment.created_by != str(teacher.id):
            raise ForbiddenError(ERROR_MESSAGES["ACCESS_DENIED"])
        return assessment

    def get_assigned(self, assessment_id: str, student: User) -> Assessment:
        """
        Load an active assessment assigned to the student.

        Unknown, malformed, inactive and unassigned ids all raise the same
        ForbiddenError so students cannot probe which assessments exist.
        """
        assessment = self.store.get_assessment(assessment_id)
        if assessment is None or not assessment.is_active or not assessment.is_assigned_to(student.email):
            logger.warning(
                "Student access denied",
                extra={"assessment_id": assessment_id, "student_email": student.email},
            )
            raise ForbiddenError(ERROR_MESSAGES["ACCESS_DENIED"])
        return assessment

    def list_for_student(self, student: User) -> List[Dict[str, Any]]:
        results = {r.assessment_id: r for r in self.store.list_student_results(student.email)}
        items = []
        for assessment in self.store.list_student_assessments(student.email):
            result = results.get(str(assessment.id))
            item = serialize_assessment(assessment, student_view=True, include_questions=False)
            item["status"] = session_status(result)
            if result is not None:
                item.update(
                    started_at=result.started_at.isoformat() if result.started_at else None,
                    completed_at=result.completed_at.isoformat() if result.completed_at else None,
                    total_score=result.total_score,
                    percentage=result.percentage,
                )
            items.append(item)
        return items

    def delete(self, assessment_id: str, teacher: User) -> Assessment:
        assessment = self.get_owned(assessment_id, teacher)
        self.store.deactivate_assessment(assessment)
        logger.info("Assessment deactivated", extra={"assessment_id": assessment_id, "user_id": str(teacher.id)})
        return assessment

    def assign(self, assessment_id: str, teacher: User, emails: List[str]) -> Assessment:
        assessment = self.get_owned(assessment_id, teacher)
        emails = normalize_emails(emails)
        assessment = self.store.add_assigned_students(assessment, emails)
        logger.info(
            f"Assigned {len(emails)} students",
            extra={"assessment_id": assessment_id, "user_id": str(teacher.id)},
        )
        return assessment


# Global service instance
assessment_service = AssessmentService()
