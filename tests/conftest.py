import os
from datetime import datetime, timedelta

# Configure before the app reads its settings
os.environ["JWT_SECRET"] = "test-jwt-secret-with-enough-length"
os.environ["TEACHER_EMAIL"] = "teacher@example.com"
os.environ["TEACHER_PASSWORD"] = "teacher-pass-123"
os.environ["AI_PROVIDER"] = "openai"
os.environ["OPENAI_API_KEY"] = ""
os.environ["GOOGLE_GEMINI_API_KEY"] = ""
os.environ["GROQ_API_KEY"] = ""
os.environ["DEBUG"] = "False"

import mongomock
import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.models.database import Assessment, AssessmentResult, Submission, User
from app.services.ai_service import (
    EvaluationResult,
    Evaluator,
    RunResult,
    get_evaluator,
    status_for_score,
)
from app.services.session_service import get_clock
from app.services.store_service import store_service
from app.utils.error_handler import EvaluationError


# ============================================================================
# IN-MEMORY DATABASE FOR TESTING
# ============================================================================

@pytest.fixture(scope="session", autouse=True)
def mongo_connection():
    """Connect mongoengine to mongomock once per session."""
    store_service.connect(
        host="mongodb://localhost",
        db="assessment-platform-test",
        mongo_client_class=mongomock.MongoClient,
    )
    store_service.ensure_indexes()
    yield
    store_service.disconnect()


@pytest.fixture(autouse=True)
def cleanup_db_between_tests():
    """Clean up test data after each test."""
    yield
    for document in (Submission, AssessmentResult, Assessment, User):
        document.objects.delete()
    app.dependency_overrides.clear()


# ============================================================================
# CONTROLLABLE COLLABORATORS
# ============================================================================

class FakeClock:
    """Mutable time source; starts at a fixed instant"""

    def __init__(self, start: datetime = datetime(2025, 1, 6, 9, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, minutes: float = 0, seconds: float = 0):
        self.current += timedelta(minutes=minutes, seconds=seconds)


class FakeEvaluator(Evaluator):
    """Returns scripted scores per question id; full points when unscripted"""

    name = "fake"

    def __init__(self):
        self.scores = {}
        self.fail_evaluation = False
        self.fail_generation = False
        self.evaluated = []

    def generate_questions(self, request):
        if self.fail_generation:
            raise EvaluationError("provider unavailable")
        return [
            {
                "type": "mcq",
                "title": f"{request.topic} question {i + 1}",
                "description": "Pick one",
                "difficulty": request.difficulty,
                "points": 10,
                "options": ["a", "b"],
                "correct_answer": 0,
            }
            for i in range(request.count)
        ]

    def evaluate_submission(self, question, submission):
        if self.fail_evaluation:
            raise EvaluationError("provider unavailable")
        self.evaluated.append((question.question_id, submission))
        score = self.scores.get(question.question_id, question.points)
        return EvaluationResult(
            score=score,
            max_score=question.points,
            feedback=f"scored {score}",
            status=status_for_score(score, question.points),
        )

    def run_code(self, code, language, input_data=""):
        return RunResult(output=f"ran {language}", execution_time=1)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def evaluator():
    return FakeEvaluator()


# ============================================================================
# FASTAPI APP & TEST CLIENT
# ============================================================================

@pytest.fixture
def client(clock, evaluator):
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_evaluator] = lambda: evaluator
    return TestClient(app)


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def teacher_token(client):
    response = client.post(
        "/api/auth/teacher/login",
        json={"email": "teacher@example.com", "password": "teacher-pass-123"},
    )
    assert response.status_code == 200
    return response.json()["access_token"]


@pytest.fixture
def teacher_headers(teacher_token):
    return auth_headers(teacher_token)


def register_student(client, email: str, password: str = "secret123", name: str = "Student") -> str:
    response = client.post(
        "/api/auth/student/register",
        json={"email": email, "password": password, "name": name},
    )
    assert response.status_code == 201, response.text
    return response.json()["access_token"]


@pytest.fixture
def student_headers(client):
    return auth_headers(register_student(client, "alice@example.com", name="Alice"))


@pytest.fixture
def other_student_headers(client):
    return auth_headers(register_student(client, "bob@example.com", name="Bob"))


# ============================================================================
# ENTITY FIXTURES
# ============================================================================

def assessment_payload(**overrides) -> dict:
    """Two questions worth 10 and 20 points, 60 minutes, assigned to alice"""
    payload = {
        "title": "Python Basics",
        "topic": "Python",
        "language": "python",
        "difficulty": "beginner",
        "duration": 60,
        "instructions": "Answer everything",
        "questions": [
            {
                "type": "programming",
                "title": "Sum two numbers",
                "description": "Read two integers and print their sum",
                "points": 10,
                "starterCode": "def solve():\n    pass",
                "solution": "def solve(a, b):\n    return a + b",
                "testCases": [
                    {"input": "1 2", "expectedOutput": "3", "isHidden": False},
                    {"input": "5 5", "output": "10", "isHidden": True},
                ],
            },
            {
                "type": "theory",
                "title": "Explain lists",
                "description": "What is a Python list?",
                "points": 20,
                "expectedKeywords": ["mutable", "ordered"],
            },
        ],
        "studentEmails": ["Alice@Example.com"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def assessment(client, teacher_headers):
    response = client.post("/api/assessments", json=assessment_payload(), headers=teacher_headers)
    assert response.status_code == 201, response.text
    return response.json()["assessment"]


@pytest.fixture
def question_ids(assessment):
    return [q["question_id"] for q in assessment["questions"]]
