"""
Evaluation collaborator: question generation, submission scoring and code runs

Two implementations share the `Evaluator` interface. `LLMEvaluator` calls the
configured provider (Gemini, OpenAI or Groq) through the OpenAI SDK, since all
three expose OpenAI-compatible chat endpoints. `RuleBasedEvaluator` is fully
deterministic and is used when no provider key is configured, and by tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastapi import Request
from openai import OpenAI
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.config import Settings, settings
from app.models.database import McqQuestion, ProgrammingQuestion, Question, TheoryQuestion
from app.models.schemas import QuestionIn
from app.utils.constants import (
    DEFAULT_GENERATED_POINTS,
    EVALUATION_PROMPT,
    EVALUATION_SYSTEM_PROMPT,
    GENERATION_SYSTEM_PROMPT,
    MCQ_QUESTION_PROMPT,
    POINTS_BY_DIFFICULTY,
    PROGRAMMING_QUESTION_PROMPT,
    THEORY_QUESTION_PROMPT,
    QuestionType,
    SubmissionStatus,
)
from app.utils.error_handler import EvaluationError
from app.utils.helpers import clamp_score, count_words, validate_json_response
from app.utils.logger import logger


question_adapter = TypeAdapter(QuestionIn)


@dataclass
class GenerationRequest:
    topic: str
    type: QuestionType
    difficulty: str
    count: int
    language: Optional[str] = None


@dataclass
class SubmissionContent:
    code: Optional[str] = None
    answer: Optional[str] = None
    language: Optional[str] = None


@dataclass
class EvaluationResult:
    score: float
    max_score: float
    feedback: str
    status: str
    execution_time: Optional[int] = None
    memory_used: Optional[int] = None


@dataclass
class RunResult:
    output: str
    error: Optional[str] = None
    execution_time: int = 0


def points_for_difficulty(difficulty: str) -> int:
    return POINTS_BY_DIFFICULTY.get(difficulty, DEFAULT_GENERATED_POINTS)


def status_for_score(score: float, max_score: float) -> str:
    if max_score > 0 and score >= max_score:
        return SubmissionStatus.ACCEPTED.value
    if score <= 0:
        return SubmissionStatus.WRONG.value
    return SubmissionStatus.PARTIAL.value


class Evaluator(ABC):
    """Contract every evaluation collaborator fulfils"""

    name = "evaluator"

    @abstractmethod
    def generate_questions(self, request: GenerationRequest) -> List[Dict[str, Any]]:
        """
        Produce `request.count` questions as validated question payloads.

        Raises:
            EvaluationError: when no usable question could be produced
        """

    @abstractmethod
    def evaluate_submission(self, question: Question, submission: SubmissionContent) -> EvaluationResult:
        """
        Score one submission on the question's own points scale.

        Raises:
            EvaluationError: when the submission could not be scored
        """

    @abstractmethod
    def run_code(self, code: str, language: str, input_data: str = "") -> RunResult:
        """Execute scratch code without scoring it"""


class RuleBasedEvaluator(Evaluator):
    """Deterministic grading used without an AI provider"""

    name = "rule-based"

    def generate_questions(self, request: GenerationRequest) -> List[Dict[str, Any]]:
        raise EvaluationError("No AI provider configured for question generation")

    def evaluate_submission(self, question: Question, submission: SubmissionContent) -> EvaluationResult:
        if isinstance(question, McqQuestion):
            return self._grade_mcq(question, submission.answer)
        if isinstance(question, TheoryQuestion):
            return self._grade_theory(question, submission.answer)
        if isinstance(question, ProgrammingQuestion):
            return self._grade_programming(question, submission.code)
        raise EvaluationError(f"Unsupported question type: {question.type}")

    def run_code(self, code: str, language: str, input_data: str = "") -> RunResult:
        # No sandbox is wired in; report a simulated run
        logger.info(f"Simulated {language} run with {len(input_data)} bytes of input")
        return RunResult(
            output=f"{language} execution result for input: {input_data}",
            error=None,
            execution_time=100 + len(code) % 1000,
        )

    def _grade_mcq(self, question: McqQuestion, answer: Optional[str]) -> EvaluationResult:
        points = float(question.points)
        selected = self._selected_option(question, answer)
        if selected is None:
            return EvaluationResult(0.0, points, "Answer does not match any option.", SubmissionStatus.WRONG.value)

        if selected == question.correct_answer:
            feedback = "Correct."
            if question.explanation:
                feedback = f"Correct. {question.explanation}"
            return EvaluationResult(points, points, feedback, SubmissionStatus.ACCEPTED.value)
        return EvaluationResult(0.0, points, "Incorrect option selected.", SubmissionStatus.WRONG.value)

    @staticmethod
    def _selected_option(question: McqQuestion, answer: Optional[str]) -> Optional[int]:
        if answer is None:
            return None
        answer = answer.strip()
        if answer.isdecimal() and answer.isascii():
            index = int(answer)
            return index if index < len(question.options) else None
        lowered = answer.lower()
        for index, option in enumerate(question.options):
            if option.strip().lower() == lowered:
                return index
        return None

    def _grade_theory(self, question: TheoryQuestion, answer: Optional[str]) -> EvaluationResult:
        points = float(question.points)
        text = (answer or "").lower()
        words = count_words(answer)
        keywords = [k.lower() for k in question.expected_keywords or [] if k]

        if words == 0:
            return EvaluationResult(0.0, points, "No answer provided.", SubmissionStatus.WRONG.value)

        if keywords:
            matched = [k for k in keywords if k in text]
            coverage = len(matched) / len(keywords)
            feedback = f"Covered {len(matched)} of {len(keywords)} expected key points."
        else:
            coverage = 1.0
            feedback = "Answer recorded."

        if question.min_words and words < question.min_words:
            coverage *= 0.5
            feedback += f" Answer is shorter than the expected {question.min_words} words."
        elif question.max_words and words > question.max_words:
            coverage *= 0.5
            feedback += f" Answer is longer than the allowed {question.max_words} words."

        score = round(points * coverage, 2)
        return EvaluationResult(score, points, feedback, status_for_score(score, points))

    def _grade_programming(self, question: ProgrammingQuestion, code: Optional[str]) -> EvaluationResult:
        points = float(question.points)
        code = (code or "").strip()
        starter = (question.starter_code or "").strip()

        if not code or code == starter:
            return EvaluationResult(0.0, points, "No changes from the starter code.", SubmissionStatus.WRONG.value)

        score = round(points / 2, 2)
        return EvaluationResult(
            score,
            points,
            "Solution recorded. Automated test execution is unavailable, partial credit awarded.",
            SubmissionStatus.PARTIAL.value,
        )


class LLMEvaluator(Evaluator):
    """Generation and scoring through an OpenAI-compatible chat API"""

    def __init__(
        self,
        client: OpenAI,
        model: str,
        provider: str,
        max_tokens: int = 2000,
        fallback: Optional[Evaluator] = None,
    ):
        self.client = client
        self.model = model
        self.name = provider
        self.max_tokens = max_tokens
        self.fallback = fallback or RuleBasedEvaluator()

    def _complete(self, system_prompt: str, prompt: str, temperature: float) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=self.max_tokens,
        )
        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise EvaluationError(f"Empty response from {self.name}")
        return content

    @staticmethod
    def _build_generation_prompt(request: GenerationRequest) -> str:
        template = {
            QuestionType.PROGRAMMING: PROGRAMMING_QUESTION_PROMPT,
            QuestionType.THEORY: THEORY_QUESTION_PROMPT,
            QuestionType.MCQ: MCQ_QUESTION_PROMPT,
        }[request.type]
        return template.format(
            count=request.count,
            difficulty=request.difficulty,
            topic=request.topic,
            language=request.language or "any language",
        )

    def generate_questions(self, request: GenerationRequest) -> List[Dict[str, Any]]:
        prompt = self._build_generation_prompt(request)
        logger.info(f"Requesting {request.count} {request.type.value} questions from {self.name}")

        try:
            content = self._complete(GENERATION_SYSTEM_PROMPT, prompt, temperature=0.7)
            raw = validate_json_response(content)
        except EvaluationError:
            raise
        except Exception as e:
            raise EvaluationError(f"{self.name} question generation failed: {str(e)}") from e

        if isinstance(raw, dict):
            raw = raw.get("questions", [raw])
        if not isinstance(raw, list):
            raise EvaluationError("Response is not an array of questions")

        questions = []
        for index, item in enumerate(raw[: request.count]):
            if not isinstance(item, dict):
                continue
            payload = {
                **item,
                "type": request.type.value,
                "difficulty": request.difficulty,
                "points": points_for_difficulty(request.difficulty),
            }
            payload.setdefault("title", f"{request.topic} Question {index + 1}")
            if request.type == QuestionType.PROGRAMMING and request.language:
                payload.setdefault("language", request.language)
            try:
                question = question_adapter.validate_python(payload)
            except PydanticValidationError as e:
                logger.warning(f"Dropping malformed generated question {index + 1}: {e.error_count()} errors")
                continue
            questions.append(question.model_dump(mode="json"))

        if not questions:
            raise EvaluationError(f"{self.name} returned no usable questions")
        return questions

    def evaluate_submission(self, question: Question, submission: SubmissionContent) -> EvaluationResult:
        if isinstance(question, McqQuestion):
            return self.fallback.evaluate_submission(question, submission)

        points = float(question.points)
        if isinstance(question, ProgrammingQuestion):
            visible = [f"input: {tc.input} -> output: {tc.output}" for tc in question.test_cases]
            reference = "Test cases:\n" + "\n".join(visible) if visible else ""
            answer_label, answer = f"code ({submission.language or question.language or 'unknown'})", submission.code
        else:
            keywords = ", ".join(question.expected_keywords or [])
            reference = f"Expected key points: {keywords}" if keywords else ""
            answer_label, answer = "answer", submission.answer

        prompt = EVALUATION_PROMPT.format(
            question_type=question.type,
            title=question.title,
            description=question.description,
            reference=reference,
            answer_label=answer_label,
            answer=answer or "",
            max_points=points,
        )

        try:
            content = self._complete(EVALUATION_SYSTEM_PROMPT, prompt, temperature=0.2)
            data = validate_json_response(content)
        except EvaluationError:
            raise
        except Exception as e:
            raise EvaluationError(f"{self.name} evaluation failed: {str(e)}") from e

        if not isinstance(data, dict) or "score" not in data:
            raise EvaluationError("Evaluation response missing score")

        score = clamp_score(data.get("score"), points)
        status = data.get("status")
        if status not in (SubmissionStatus.ACCEPTED.value, SubmissionStatus.PARTIAL.value, SubmissionStatus.WRONG.value):
            status = status_for_score(score, points)
        return EvaluationResult(score, points, str(data.get("feedback") or ""), status)

    def run_code(self, code: str, language: str, input_data: str = "") -> RunResult:
        return self.fallback.run_code(code, language, input_data)


def _valid_key(key: Optional[str], prefix: Optional[str] = None) -> bool:
    if not key or len(key) <= 20 or "your-" in key.lower() or key.upper().startswith("YOUR_"):
        return False
    return prefix is None or key.startswith(prefix)


def build_evaluator(config: Settings = settings) -> Evaluator:
    """
    Construct the evaluator for this process.

    The preferred provider is used when its key looks valid; otherwise the
    first other provider with a valid key, and finally the rule-based
    evaluator.
    """
    providers = {
        "gemini": (config.GOOGLE_GEMINI_API_KEY, "AIza", config.GEMINI_MODEL, config.GEMINI_BASE_URL),
        "openai": (config.OPENAI_API_KEY, "sk-", config.OPENAI_MODEL, None),
        "groq": (config.GROQ_API_KEY, "gsk_", config.GROQ_MODEL, config.GROQ_BASE_URL),
    }
    order = [config.AI_PROVIDER] + [p for p in providers if p != config.AI_PROVIDER]

    for provider in order:
        if provider not in providers:
            logger.warning(f"Unknown AI provider '{provider}' ignored")
            continue
        key, prefix, model, base_url = providers[provider]
        if not _valid_key(key, prefix):
            continue
        try:
            client = OpenAI(api_key=key, base_url=base_url) if base_url else OpenAI(api_key=key)
        except Exception as e:
            logger.error(f"Error initializing {provider} client: {str(e)}")
            continue
        logger.info(f"Using {provider} ({model}) for question generation and evaluation")
        return LLMEvaluator(client=client, model=model, provider=provider, max_tokens=config.MAX_TOKENS)

    logger.warning("No valid AI provider key configured. Using rule-based evaluation and placeholder questions.")
    return RuleBasedEvaluator()


def get_evaluator(request: Request) -> Evaluator:
    """FastAPI dependency returning the evaluator built at startup"""
    evaluator = getattr(request.app.state, "evaluator", None)
    if evaluator is None:
        evaluator = build_evaluator()
        request.app.state.evaluator = evaluator
    return evaluator
