"""
Application constants and enums
"""

from enum import Enum


class Role(str, Enum):
    """Account role enumeration"""
    TEACHER = "teacher"
    STUDENT = "student"


class QuestionType(str, Enum):
    """Question type enumeration"""
    PROGRAMMING = "programming"
    THEORY = "theory"
    MCQ = "mcq"


class AssessmentQuestionType(str, Enum):
    """Declared question-type mix of an assessment"""
    PROGRAMMING = "programming"
    THEORY = "theory"
    MCQ = "mcq"
    MIXED = "mixed"


class Difficulty(str, Enum):
    """Difficulty level enumeration"""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class SubmissionStatus(str, Enum):
    """Submission status enumeration"""
    PENDING = "pending"
    RUNNING = "running"
    ACCEPTED = "accepted"
    WRONG = "wrong"
    ERROR = "error"
    TIMEOUT = "timeout"
    PARTIAL = "partial"


class SessionStatus(str, Enum):
    """Derived status of a student's attempt at an assessment"""
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


POINTS_BY_DIFFICULTY = {
    Difficulty.BEGINNER.value: 10,
    Difficulty.INTERMEDIATE.value: 20,
    Difficulty.ADVANCED.value: 30,
}
DEFAULT_GENERATED_POINTS = 15

# Word-count bounds for placeholder theory questions, per difficulty
THEORY_WORD_BOUNDS = {
    Difficulty.BEGINNER.value: (50, 150),
    Difficulty.INTERMEDIATE.value: (100, 300),
    Difficulty.ADVANCED.value: (150, 500),
}

STARTER_CODE = {
    "javascript": "function solve() {\n  // Your code here\n  \n}",
    "python": "def solve():\n    # Your code here\n    pass",
    "java": "public class Solution {\n    public void solve() {\n        // Your code here\n    }\n}",
    "cpp": "#include <iostream>\nusing namespace std;\n\nint main() {\n    // Your code here\n    return 0;\n}",
    "c": "#include <stdio.h>\n\nint main() {\n    // Your code here\n    return 0;\n}",
}


# Prompt Templates
GENERATION_SYSTEM_PROMPT = (
    "You are an expert programming instructor. Generate high-quality, educational "
    "programming and theory questions. Always respond with valid JSON only. "
    "Do not include markdown code blocks."
)

PROGRAMMING_QUESTION_PROMPT = """Generate {count} {difficulty} level programming questions about {topic} in {language}.
For each question, provide:
1. Title (concise)
2. Description (detailed problem statement)
3. Sample input/output
4. Test cases (at least 3)
5. Constraints
6. Time limit (in seconds)
7. Memory limit (in MB)
8. Starter code

Format the response as a JSON array with this structure:
[{{
    "type": "programming",
    "title": "Question Title",
    "description": "Detailed problem description",
    "sampleInput": "sample input",
    "sampleOutput": "sample output",
    "constraints": "constraints",
    "timeLimit": 2,
    "memoryLimit": 128,
    "language": "{language}",
    "starterCode": "starter code",
    "testCases": [
        {{"input": "test1", "output": "output1", "isHidden": false}},
        {{"input": "test2", "output": "output2", "isHidden": true}}
    ]
}}]
"""

THEORY_QUESTION_PROMPT = """Generate {count} {difficulty} level theory questions about {topic}.
For each question, provide:
1. Title (concise)
2. Description (detailed question)
3. Expected keywords for evaluation
4. Minimum and maximum word counts for a good answer

Format the response as a JSON array with this structure:
[{{
    "type": "theory",
    "title": "Question Title",
    "description": "Detailed question description",
    "expectedKeywords": ["keyword1", "keyword2", "keyword3"],
    "minWords": 50,
    "maxWords": 300
}}]
"""

MCQ_QUESTION_PROMPT = """Generate {count} {difficulty} level multiple choice questions about {topic}.
For each question, provide:
1. Title (concise)
2. Description (question text)
3. Four options
4. Correct answer index (0-3)
5. Explanation

Format the response as a JSON array with this structure:
[{{
    "type": "mcq",
    "title": "Question Title",
    "description": "Question text",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correctAnswer": 0,
    "explanation": "Why this is correct"
}}]
"""

EVALUATION_SYSTEM_PROMPT = (
    "You are a strict but fair evaluator of student answers for programming "
    "assessments. Always respond with valid JSON only."
)

EVALUATION_PROMPT = """Evaluate the following {question_type} submission.

Question: {title}
{description}
{reference}
Student {answer_label}:
{answer}

Award between 0 and {max_points} points.
Respond in JSON format:
{{
    "score": <number between 0 and {max_points}>,
    "feedback": "Short constructive feedback",
    "status": "accepted" | "partial" | "wrong"
}}
"""

# Error Messages
ERROR_MESSAGES = {
    "AUTH_REQUIRED": "Access denied. No token provided.",
    "INVALID_TOKEN": "Invalid or expired token",
    "TEACHER_REQUIRED": "Access denied. Teacher role required.",
    "STUDENT_REQUIRED": "Access denied. Student role required.",
    "INVALID_CREDENTIALS": "Invalid credentials",
    "INVALID_TEACHER_CREDENTIALS": "Invalid teacher credentials",
    "ASSESSMENT_NOT_FOUND": "Assessment not found",
    "ACCESS_DENIED": "Access denied",
    "QUESTION_NOT_FOUND": "Question not found",
    "SESSION_NOT_FOUND": "Assessment result not found",
    "NOT_STARTED": "Assessment not started",
    "ALREADY_COMPLETED": "Assessment already completed",
    "ALREADY_REGISTERED": "Student already registered",
    "STUDENT_NOT_FOUND": "Student not found",
}
