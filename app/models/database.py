"""
MongoDB document models - one collection per entity
"""

from typing import Optional
from uuid import uuid4

from mongoengine import Document, EmbeddedDocument, fields

from app.utils.constants import (
    AssessmentQuestionType,
    Difficulty,
    QuestionType,
    Role,
    SubmissionStatus,
)
from app.utils.helpers import utcnow


ROLE_CHOICES = [r.value for r in Role]
DIFFICULTY_CHOICES = [d.value for d in Difficulty]
STATUS_CHOICES = [s.value for s in SubmissionStatus]


def new_question_id() -> str:
    return uuid4().hex


class TimestampedDocument(Document):
    """Keeps created_at / updated_at current on every save"""
    meta = {"abstract": True}

    created_at = fields.DateTimeField(default=utcnow)
    updated_at = fields.DateTimeField(default=utcnow)

    def save(self, *args, **kwargs):
        self.updated_at = utcnow()
        return super().save(*args, **kwargs)


class User(TimestampedDocument):
    """Teacher or student account"""
    meta = {
        "collection": "users",
        "indexes": [("email", "role")],
    }

    email = fields.StringField(required=True, unique=True)
    password_hash = fields.StringField(required=True)
    role = fields.StringField(required=True, choices=ROLE_CHOICES)
    name = fields.StringField()

    def clean(self):
        if self.email:
            self.email = self.email.strip().lower()
        if self.name:
            self.name = self.name.strip()


class CodeTestCase(EmbeddedDocument):
    input = fields.StringField(required=True)
    output = fields.StringField(required=True)
    is_hidden = fields.BooleanField(default=False)


class Question(EmbeddedDocument):
    """
    Base of the embedded question variants.

    Stored with a `type` tag alongside mongoengine's `_cls` so that each
    variant loads back as its own class.
    """
    meta = {"allow_inheritance": True}

    question_id = fields.StringField(required=True, default=new_question_id)
    type = fields.StringField(required=True, choices=[t.value for t in QuestionType])
    title = fields.StringField(required=True)
    description = fields.StringField(required=True)
    difficulty = fields.StringField(choices=DIFFICULTY_CHOICES)
    points = fields.FloatField(required=True, min_value=0.01, default=10)


class ProgrammingQuestion(Question):
    language = fields.StringField()
    starter_code = fields.StringField()
    solution = fields.StringField()
    test_cases = fields.EmbeddedDocumentListField(CodeTestCase)
    sample_input = fields.StringField()
    sample_output = fields.StringField()
    constraints = fields.StringField()
    time_limit = fields.IntField(default=2)  # seconds
    memory_limit = fields.IntField(default=128)  # MB

    def clean(self):
        self.type = QuestionType.PROGRAMMING.value


class TheoryQuestion(Question):
    expected_keywords = fields.ListField(fields.StringField())
    min_words = fields.IntField(min_value=0)
    max_words = fields.IntField(min_value=0)

    def clean(self):
        self.type = QuestionType.THEORY.value


class McqQuestion(Question):
    options = fields.ListField(fields.StringField(), required=True)
    correct_answer = fields.IntField(required=True, min_value=0)
    explanation = fields.StringField()

    def clean(self):
        self.type = QuestionType.MCQ.value


class Assessment(TimestampedDocument):
    """Teacher-authored assessment with its questions embedded by value"""
    meta = {
        "collection": "assessments",
        "indexes": [("created_by", "is_active"), "assigned_students"],
        "ordering": ["-created_at"],
    }

    title = fields.StringField(required=True)
    topic = fields.StringField(required=True)
    language = fields.StringField(required=True)
    question_type = fields.StringField(
        default=AssessmentQuestionType.MIXED.value,
        choices=[t.value for t in AssessmentQuestionType],
    )
    difficulty = fields.StringField(required=True, choices=DIFFICULTY_CHOICES)
    duration = fields.IntField(required=True, min_value=1)  # minutes
    instructions = fields.StringField(default="")
    questions = fields.EmbeddedDocumentListField(Question)
    assigned_students = fields.ListField(fields.StringField())
    created_by = fields.StringField(required=True)
    is_active = fields.BooleanField(default=True)

    @property
    def max_score(self) -> float:
        return sum(float(q.points or 0) for q in self.questions)

    def get_question(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.question_id == question_id:
                return question
        return None

    def is_assigned_to(self, email: str) -> bool:
        return email.strip().lower() in self.assigned_students


class AssessmentResult(Document):
    """One student's timed attempt at one assessment"""
    meta = {
        "collection": "assessment_results",
        "indexes": [
            {"fields": ["assessment_id", "student_email"], "unique": True},
        ],
    }

    assessment_id = fields.StringField(required=True)
    student_email = fields.StringField(required=True)
    total_score = fields.FloatField(default=0)
    max_score = fields.FloatField(required=True)
    percentage = fields.IntField(default=0)
    submissions = fields.ListField(fields.StringField())
    started_at = fields.DateTimeField(default=utcnow)
    completed_at = fields.DateTimeField()
    time_spent = fields.FloatField(default=0)  # minutes

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


class Submission(Document):
    """A student's latest answer to one question"""
    meta = {
        "collection": "submissions",
        "indexes": [
            {"fields": ["assessment_id", "question_id", "student_email"], "unique": True},
            ("assessment_id", "student_email"),
        ],
    }

    assessment_id = fields.StringField(required=True)
    question_id = fields.StringField(required=True)
    student_email = fields.StringField(required=True)
    code = fields.StringField()
    answer = fields.StringField()
    language = fields.StringField()
    status = fields.StringField(default=SubmissionStatus.PENDING.value, choices=STATUS_CHOICES)
    score = fields.FloatField(default=0)
    feedback = fields.StringField()
    execution_time = fields.IntField()  # milliseconds
    memory_used = fields.IntField()  # KB
    submitted_at = fields.DateTimeField(default=utcnow)
    evaluated_at = fields.DateTimeField()
