"""
Question generation orchestration with placeholder fallback
"""

from typing import Any, Dict, List, Optional

from app.services.ai_service import (
    Evaluator,
    GenerationRequest,
    points_for_difficulty,
    question_adapter,
)
from app.utils.constants import STARTER_CODE, THEORY_WORD_BOUNDS, QuestionType
from app.utils.error_handler import EvaluationError
from app.utils.logger import logger


GENERATION_FAILED_WARNING = "AI Generation Failed"
GENERATION_FAILED_MESSAGE = (
    "AI service is not available. Placeholder questions were generated instead. "
    "You can edit them manually or add your own questions."
)
GENERATION_SUGGESTIONS = [
    "Check your AI API keys in the .env file",
    "Ensure you have valid Gemini, OpenAI or Groq API credentials",
    "Edit the placeholder questions to match your requirements",
    "Add your own custom questions manually",
]


def _placeholder_programming(topic: str, language: str, difficulty: str, number: int) -> Dict[str, Any]:
    return {
        "type": QuestionType.PROGRAMMING.value,
        "title": f"{topic} Programming Challenge {number}",
        "description": (
            f"Write a {language} program to solve this {topic} problem.\n\n"
            "Requirements:\n"
            f"1. Implement a solution that demonstrates understanding of {topic}\n"
            f"2. Follow best practices for {language} programming\n"
            "3. Handle edge cases appropriately\n"
            "4. Optimize for time and space complexity"
        ),
        "difficulty": difficulty,
        "points": points_for_difficulty(difficulty),
        "language": language,
        "starter_code": STARTER_CODE.get(language.lower(), STARTER_CODE["javascript"]),
        "test_cases": [
            {"input": "sample input", "output": "expected output", "is_hidden": False},
            {"input": "edge case input", "output": "edge case output", "is_hidden": True},
        ],
    }


def _placeholder_theory(topic: str, difficulty: str, number: int) -> Dict[str, Any]:
    min_words, max_words = THEORY_WORD_BOUNDS.get(difficulty, (50, 300))
    return {
        "type": QuestionType.THEORY.value,
        "title": f"Understanding {topic} - Question {number}",
        "description": (
            f"Provide a comprehensive explanation of {topic}. Your answer should cover:\n\n"
            "1. Definition and core concepts\n"
            "2. Practical applications and use cases\n"
            "3. Advantages and limitations\n"
            "4. Real-world examples"
        ),
        "difficulty": difficulty,
        "points": points_for_difficulty(difficulty),
        "expected_keywords": [topic.lower(), "explanation", "example", "application"],
        "min_words": min_words,
        "max_words": max_words,
    }


def _placeholder_mcq(topic: str, difficulty: str, number: int) -> Dict[str, Any]:
    return {
        "type": QuestionType.MCQ.value,
        "title": f"{topic} Concept Check {number}",
        "description": f"Which statement about {topic} is correct?",
        "difficulty": difficulty,
        "points": points_for_difficulty(difficulty),
        "options": [
            f"A correct statement about {topic}",
            f"A common misconception about {topic}",
            "An unrelated statement",
            "None of the above",
        ],
        "correct_answer": 0,
        "explanation": "Replace these options with real ones before assigning.",
    }


def placeholder_questions(request: GenerationRequest) -> List[Dict[str, Any]]:
    """Deterministic stand-in questions for when the provider cannot generate"""
    language = request.language or "javascript"
    questions = []
    for number in range(1, request.count + 1):
        if request.type == QuestionType.PROGRAMMING:
            payload = _placeholder_programming(request.topic, language, request.difficulty, number)
        elif request.type == QuestionType.THEORY:
            payload = _placeholder_theory(request.topic, request.difficulty, number)
        else:
            payload = _placeholder_mcq(request.topic, request.difficulty, number)
        questions.append(question_adapter.validate_python(payload).model_dump(mode="json"))
    return questions


class QuestionService:
    """Generates questions per requested type, degrading to placeholders"""

    def __init__(self, evaluator: Evaluator):
        self.evaluator = evaluator

    def generate(
        self,
        topic: str,
        difficulty: str,
        question_types: List[QuestionType],
        counts: Dict[str, int],
        language: Optional[str] = None,
    ) -> Dict[str, Any]:
        all_questions: List[Dict[str, Any]] = []
        errors: List[str] = []
        used_placeholders = False

        for question_type in dict.fromkeys(question_types):
            count = counts.get(question_type.value, 0)
            if count <= 0:
                continue

            request = GenerationRequest(
                topic=topic,
                type=question_type,
                difficulty=difficulty,
                count=count,
                language=(language or "javascript") if question_type == QuestionType.PROGRAMMING else None,
            )

            try:
                questions = self.evaluator.generate_questions(request)
            except EvaluationError as e:
                logger.warning(f"{question_type.value} question generation failed: {str(e)}")
                errors.append(f"{question_type.value.capitalize()} questions: {str(e)}")
                questions = placeholder_questions(request)
                used_placeholders = True

            all_questions.extend(questions)

        response: Dict[str, Any] = {
            "questions": all_questions,
            "total_generated": len(all_questions),
        }
        if used_placeholders:
            response.update(
                warning=GENERATION_FAILED_WARNING,
                message=GENERATION_FAILED_MESSAGE,
                ai_error=True,
                suggestions=GENERATION_SUGGESTIONS,
            )
            logger.warning("Using placeholder questions due to AI service unavailability")
        if errors:
            response["errors"] = errors
            response["partial_failure"] = True

        logger.info(f"Generated {len(all_questions)} questions about {topic}")
        return response
