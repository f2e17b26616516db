"""
Pydantic schemas for request validation

Request bodies accept both snake_case and camelCase keys so existing
clients posting `assessmentId` / `studentEmails` keep working.
"""

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel

from app.config import settings
from app.utils.constants import Difficulty, QuestionType


class ApiModel(BaseModel):
    """Base for request bodies"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


# ============================================
# Auth Schemas
# ============================================

class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=settings.MIN_PASSWORD_LENGTH)
    name: Optional[str] = Field(default=None, max_length=100)


# ============================================
# Question Schemas
# ============================================

# Nested payload blocks older clients send instead of flat fields
NESTED_QUESTION_BLOCKS = ("programmingData", "theoryData", "mcqData")


class CodeTestCaseIn(ApiModel):
    input: str
    output: str
    is_hidden: bool = False

    @model_validator(mode="before")
    @classmethod
    def accept_expected_output(cls, data: Any) -> Any:
        if isinstance(data, dict) and "output" not in data and "expectedOutput" in data:
            data = {**data, "output": data["expectedOutput"]}
        return data


class QuestionBase(ApiModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: str = Field(..., min_length=1)
    difficulty: Optional[Difficulty] = None
    points: float = Field(default=settings.DEFAULT_QUESTION_POINTS, gt=0)

    @model_validator(mode="before")
    @classmethod
    def flatten_nested_blocks(cls, data: Any) -> Any:
        """Lift programmingData / theoryData / mcqData fields to the top level"""
        if not isinstance(data, dict):
            return data
        flat = {k: v for k, v in data.items() if k not in NESTED_QUESTION_BLOCKS and k != "_id"}
        for block in NESTED_QUESTION_BLOCKS:
            nested = data.get(block)
            if isinstance(nested, dict):
                for key, value in nested.items():
                    flat.setdefault(key, value)
        if "keywords" in flat and "expectedKeywords" not in flat:
            flat["expectedKeywords"] = flat.pop("keywords")
        return flat


class ProgrammingQuestionIn(QuestionBase):
    type: Literal["programming"]
    language: Optional[str] = None
    starter_code: Optional[str] = None
    solution: Optional[str] = None
    test_cases: List[CodeTestCaseIn] = Field(default_factory=list)
    sample_input: Optional[str] = None
    sample_output: Optional[str] = None
    constraints: Optional[str] = None
    time_limit: int = Field(default=2, gt=0)
    memory_limit: int = Field(default=128, gt=0)


class TheoryQuestionIn(QuestionBase):
    type: Literal["theory"]
    expected_keywords: List[str] = Field(default_factory=list)
    min_words: Optional[int] = Field(default=None, ge=0)
    max_words: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_word_bounds(self):
        if self.min_words is not None and self.max_words is not None and self.min_words > self.max_words:
            raise ValueError("min_words must not exceed max_words")
        return self


class McqQuestionIn(QuestionBase):
    type: Literal["mcq"]
    options: List[str] = Field(..., min_length=2)
    correct_answer: int = Field(default=0, ge=0)
    explanation: Optional[str] = None

    @model_validator(mode="after")
    def check_correct_answer(self):
        if self.correct_answer >= len(self.options):
            raise ValueError("correct_answer must index one of the options")
        return self


QuestionIn = Annotated[
    Union[ProgrammingQuestionIn, TheoryQuestionIn, McqQuestionIn],
    Field(discriminator="type"),
]


# ============================================
# Assessment Schemas
# ============================================

class AssessmentCreate(ApiModel):
    title: str = Field(..., min_length=1, max_length=200)
    topic: str = Field(..., min_length=1, max_length=200)
    language: str = Field(..., min_length=1, max_length=50)
    difficulty: Difficulty
    duration: int = Field(..., ge=settings.MIN_DURATION_MINUTES, le=settings.MAX_DURATION_MINUTES)
    instructions: Optional[str] = Field(default="", max_length=5000)
    questions: List[QuestionIn] = Field(..., min_length=1)
    student_emails: List[EmailStr] = Field(default_factory=list)


class QuestionCounts(ApiModel):
    programming: int = Field(default=0, ge=0, le=20)
    theory: int = Field(default=0, ge=0, le=20)
    mcq: int = Field(default=0, ge=0, le=20)

    def for_type(self, question_type: QuestionType) -> int:
        return getattr(self, question_type.value)


class GenerateQuestionsRequest(ApiModel):
    topic: str = Field(..., min_length=1, max_length=200)
    language: Optional[str] = Field(default=None, max_length=50)
    difficulty: Difficulty
    question_types: List[QuestionType] = Field(..., min_length=1)
    counts: QuestionCounts


class AssignStudentsRequest(ApiModel):
    student_emails: List[EmailStr] = Field(..., min_length=1)


class InviteStudentsRequest(ApiModel):
    emails: List[EmailStr] = Field(..., min_length=1)


# ============================================
# Submission Schemas
# ============================================

class SubmitCodeRequest(ApiModel):
    model_config = ConfigDict(str_strip_whitespace=False)

    assessment_id: str = Field(..., min_length=1)
    question_id: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    language: str = Field(..., min_length=1)


class SubmitAnswerRequest(ApiModel):
    assessment_id: str = Field(..., min_length=1)
    question_id: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)


class RunCodeRequest(ApiModel):
    model_config = ConfigDict(str_strip_whitespace=False)

    code: str = Field(..., min_length=1)
    language: str = Field(..., min_length=1)
    input: str = ""


class CompleteAssessmentRequest(ApiModel):
    auto_submitted: bool = False

