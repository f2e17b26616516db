"""
Models package - Database models and schemas
"""

from app.models.database import (
    User,
    Assessment,
    Question,
    ProgrammingQuestion,
    TheoryQuestion,
    McqQuestion,
    CodeTestCase,
    AssessmentResult,
    Submission
)

from app.models.schemas import (
    LoginRequest,
    RegisterRequest,
    QuestionIn,
    AssessmentCreate,
    GenerateQuestionsRequest,
    AssignStudentsRequest,
    InviteStudentsRequest,
    SubmitCodeRequest,
    SubmitAnswerRequest,
    RunCodeRequest,
    CompleteAssessmentRequest
)

__all__ = [
    # Database Models
    "User",
    "Assessment",
    "Question",
    "ProgrammingQuestion",
    "TheoryQuestion",
    "McqQuestion",
    "CodeTestCase",
    "AssessmentResult",
    "Submission",
    # Schemas
    "LoginRequest",
    "RegisterRequest",
    "QuestionIn",
    "AssessmentCreate",
    "GenerateQuestionsRequest",
    "AssignStudentsRequest",
    "InviteStudentsRequest",
    "SubmitCodeRequest",
    "SubmitAnswerRequest",
    "RunCodeRequest",
    "CompleteAssessmentRequest"
]
