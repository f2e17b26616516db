from datetime import datetime

import pytest

from app.models.database import AssessmentResult, McqQuestion, Submission
from app.services.ai_service import RuleBasedEvaluator
from app.services.session_service import SessionService
from app.services.store_service import store_service
from app.utils.error_handler import ConflictError, NotFoundError, TimeLimitExceededError
from tests.conftest import FakeClock, FakeEvaluator


def start(client, assessment, headers):
    return client.post(f"/api/assessments/{assessment['id']}/start", headers=headers)


def submit_code(client, assessment, question_id, headers, code="print(1 + 2)"):
    return client.post(
        "/api/submissions/code",
        json={"assessmentId": assessment["id"], "questionId": question_id, "code": code, "language": "python"},
        headers=headers,
    )


def submit_answer(client, assessment, question_id, headers, answer="Lists are ordered and mutable"):
    return client.post(
        "/api/submissions/answer",
        json={"assessmentId": assessment["id"], "questionId": question_id, "answer": answer},
        headers=headers,
    )


def result_for(assessment) -> AssessmentResult:
    return AssessmentResult.objects.get(assessment_id=assessment["id"], student_email="alice@example.com")


def test_start_snapshots_max_score(client, student_headers, assessment):
    response = start(client, assessment, student_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["already_started"] is False
    assert body["duration"] == 60
    result = result_for(assessment)
    assert result.max_score == 30
    assert result.total_score == 0
    assert result.submissions == []


def test_start_is_idempotent(client, clock, student_headers, assessment):
    first = start(client, assessment, student_headers).json()
    clock.advance(minutes=15)
    second = start(client, assessment, student_headers).json()

    assert second["already_started"] is True
    assert second["result_id"] == first["result_id"]
    assert second["started_at"] == first["started_at"]
    assert AssessmentResult.objects.count() == 1


def test_session_status(client, clock, student_headers, assessment):
    before = client.get(f"/api/assessments/{assessment['id']}/session", headers=student_headers).json()
    start(client, assessment, student_headers)
    clock.advance(minutes=10)
    during = client.get(f"/api/assessments/{assessment['id']}/session", headers=student_headers).json()

    assert before["has_session"] is False
    assert before["duration"] == 60
    assert during["has_session"] is True
    assert during["is_completed"] is False
    assert during["time_remaining"] == 50 * 60


def test_scored_walkthrough(client, clock, evaluator, student_headers, assessment, question_ids):
    first_q, second_q = question_ids
    evaluator.scores[first_q] = 8
    evaluator.scores[second_q] = 20
    start(client, assessment, student_headers)

    clock.advance(minutes=5)
    a = submit_code(client, assessment, first_q, student_headers)
    assert a.status_code == 200
    assert a.json()["evaluated"] is True
    assert a.json()["score"] == 8
    assert a.json()["status"] == "partial"
    assert (a.json()["total_score"], a.json()["percentage"]) == (8, 27)

    clock.advance(minutes=5)
    b = submit_answer(client, assessment, second_q, student_headers)
    assert (b.json()["total_score"], b.json()["percentage"]) == (28, 93)
    assert b.json()["status"] == "accepted"

    completed = client.post(f"/api/submissions/complete/{assessment['id']}", headers=student_headers)

    assert completed.status_code == 200
    result = result_for(assessment)
    assert result.completed_at == clock()
    assert result.time_spent == 10
    assert result.total_score == 28
    assert result.percentage == 93
    assert len(result.submissions) == 2


def test_late_first_submission_force_completes(client, clock, student_headers, assessment, question_ids):
    start(client, assessment, student_headers)
    clock.advance(minutes=61)

    response = submit_code(client, assessment, question_ids[0], student_headers)

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "TIME_LIMIT_EXCEEDED"
    assert error["message"] == "Assessment time limit exceeded"
    result = result_for(assessment)
    assert result.completed_at == clock()
    assert result.time_spent == 61
    assert result.total_score == 0
    assert Submission.objects.count() == 0


def test_second_late_submission_keeps_completed_at(client, clock, student_headers, assessment, question_ids):
    start(client, assessment, student_headers)
    clock.advance(minutes=61)
    submit_code(client, assessment, question_ids[0], student_headers)
    completed_at = result_for(assessment).completed_at

    clock.advance(minutes=30)
    again = submit_answer(client, assessment, question_ids[1], student_headers)

    assert again.status_code == 409
    assert again.json()["error"]["code"] == "TIME_LIMIT_EXCEEDED"
    assert result_for(assessment).completed_at == completed_at


def test_submission_exactly_at_deadline_is_accepted(client, clock, student_headers, assessment, question_ids):
    start(client, assessment, student_headers)
    clock.advance(minutes=60)

    response = submit_code(client, assessment, question_ids[0], student_headers)

    assert response.status_code == 200
    assert result_for(assessment).completed_at is None


def test_submit_after_complete_is_conflict(client, student_headers, assessment, question_ids):
    start(client, assessment, student_headers)
    client.post(f"/api/submissions/complete/{assessment['id']}", headers=student_headers)

    response = submit_code(client, assessment, question_ids[0], student_headers)

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "STATE_CONFLICT"
    assert error["details"]["reason"] == "ALREADY_COMPLETED"


def test_submit_without_start_is_conflict(client, student_headers, assessment, question_ids):
    response = submit_code(client, assessment, question_ids[0], student_headers)

    assert response.status_code == 409
    assert response.json()["error"]["details"]["reason"] == "NOT_STARTED"


def test_complete_twice_is_conflict(client, student_headers, assessment):
    start(client, assessment, student_headers)
    client.post(f"/api/submissions/complete/{assessment['id']}", headers=student_headers)

    again = client.post(f"/api/submissions/complete/{assessment['id']}", headers=student_headers)

    assert again.status_code == 409
    assert again.json()["error"]["details"]["reason"] == "ALREADY_COMPLETED"


def test_complete_without_session_is_not_found(client, student_headers, assessment):
    response = client.post(
        f"/api/submissions/complete/{assessment['id']}",
        json={"autoSubmitted": True},
        headers=student_headers,
    )

    assert response.status_code == 404


def test_resubmission_overwrites(client, evaluator, student_headers, assessment, question_ids):
    first_q = question_ids[0]
    start(client, assessment, student_headers)
    evaluator.scores[first_q] = 4
    first = submit_code(client, assessment, first_q, student_headers, code="v1")
    evaluator.scores[first_q] = 9
    second = submit_code(client, assessment, first_q, student_headers, code="v2")

    assert first.json()["submission_id"] == second.json()["submission_id"]
    assert Submission.objects.count() == 1
    submission = Submission.objects.get()
    assert submission.code == "v2"
    assert submission.score == 9
    assert second.json()["total_score"] == 9
    assert result_for(assessment).submissions == [str(submission.id)]


def test_evaluation_failure_leaves_submission_pending(client, evaluator, student_headers, assessment, question_ids):
    first_q = question_ids[0]
    start(client, assessment, student_headers)
    evaluator.scores[first_q] = 6
    submit_code(client, assessment, first_q, student_headers, code="v1")
    evaluator.fail_evaluation = True

    response = submit_code(client, assessment, first_q, student_headers, code="v2")

    assert response.status_code == 200
    assert response.json()["evaluated"] is False
    assert response.json()["status"] == "pending"
    submission = Submission.objects.get()
    assert submission.code == "v2"
    assert submission.status == "pending"
    assert submission.score == 6
    assert result_for(assessment).total_score == 6


def test_scores_are_clamped_to_question_points(client, evaluator, student_headers, assessment, question_ids):
    evaluator.scores[question_ids[0]] = 50
    start(client, assessment, student_headers)

    response = submit_code(client, assessment, question_ids[0], student_headers)

    assert response.json()["score"] == 10
    assert result_for(assessment).percentage == 33


def test_unknown_question_is_not_found(client, student_headers, assessment):
    start(client, assessment, student_headers)

    response = submit_code(client, assessment, "no-such-question", student_headers)

    assert response.status_code == 404


def test_wrong_endpoint_for_question_type(client, student_headers, assessment, question_ids):
    start(client, assessment, student_headers)

    code_for_theory = submit_code(client, assessment, question_ids[1], student_headers)
    answer_for_code = submit_answer(client, assessment, question_ids[0], student_headers)

    assert code_for_theory.status_code == 422
    assert answer_for_code.status_code == 422
    assert Submission.objects.count() == 0


def test_unassigned_student_cannot_start_view_or_submit(
    client, other_student_headers, assessment, question_ids
):
    responses = [
        start(client, assessment, other_student_headers),
        client.get(f"/api/assessments/{assessment['id']}/session", headers=other_student_headers),
        submit_code(client, assessment, question_ids[0], other_student_headers),
        client.get(f"/api/submissions/assessment/{assessment['id']}", headers=other_student_headers),
    ]

    assert [r.status_code for r in responses] == [403, 403, 403, 403]
    assert AssessmentResult.objects.count() == 0


def test_list_own_submissions(client, student_headers, assessment, question_ids):
    start(client, assessment, student_headers)
    submit_code(client, assessment, question_ids[0], student_headers)

    response = client.get(f"/api/submissions/assessment/{assessment['id']}", headers=student_headers)

    [submission] = response.json()["submissions"]
    assert submission["question_id"] == question_ids[0]
    assert submission["status"] == "accepted"


def test_run_code_is_not_stored(client, student_headers):
    response = client.post(
        "/api/submissions/run",
        json={"code": "print(1)", "language": "python", "input": "5"},
        headers=student_headers,
    )

    assert response.status_code == 200
    assert response.json()["output"] == "ran python"
    assert Submission.objects.count() == 0


# ============================================================================
# SessionService without HTTP
# ============================================================================

@pytest.fixture
def student():
    return store_service.create_user("zoe@example.com", "x", role="student", name="Zoe")


def make_assessment(questions=None, duration=30):
    return store_service.create_assessment({
        "title": "Direct",
        "topic": "Direct",
        "language": "python",
        "difficulty": "beginner",
        "duration": duration,
        "questions": questions or [],
        "assigned_students": ["zoe@example.com"],
        "created_by": "teacher-id",
    })


def test_zero_question_session_has_zero_percentage(student):
    service = SessionService(store_service, FakeEvaluator(), FakeClock())
    assessment = make_assessment()

    service.start(assessment, student)
    result = service.recompute(str(assessment.id), student.email)

    assert result.max_score == 0
    assert result.percentage == 0


def test_service_complete_records_time_spent(student):
    clock = FakeClock(datetime(2025, 3, 1, 12, 0, 0))
    service = SessionService(store_service, FakeEvaluator(), clock)
    assessment = make_assessment()
    service.start(assessment, student)

    clock.advance(minutes=12, seconds=30)
    completed = service.complete(str(assessment.id), student)

    assert completed["time_spent"] == 12.5
    assert completed["is_completed"] is True
    with pytest.raises(ConflictError):
        service.complete(str(assessment.id), student)


def test_service_complete_unknown_session(student):
    service = SessionService(store_service, FakeEvaluator(), FakeClock())

    with pytest.raises(NotFoundError):
        service.complete("64b7f0c2a1b2c3d4e5f60718", student)


def test_service_time_limit_error_carries_reason(student):
    clock = FakeClock()
    service = SessionService(store_service, FakeEvaluator(), clock)
    assessment = make_assessment(
        questions=[McqQuestion(type="mcq", title="q", description="d", points=5, options=["a", "b"], correct_answer=0)]
    )
    service.start(assessment, student)
    clock.advance(minutes=31)

    with pytest.raises(TimeLimitExceededError) as excinfo:
        service.submit(assessment, assessment.questions[0].question_id, student, answer="0")

    assert excinfo.value.details["reason"] == "TIME_LIMIT_EXCEEDED"
    assert store_service.get_result(str(assessment.id), student.email).is_completed


class CrashingEvaluator(FakeEvaluator):
    def evaluate_submission(self, question, submission):
        raise ValueError("unexpected evaluator bug")


def mcq_assessment():
    return make_assessment(
        questions=[McqQuestion(type="mcq", title="q", description="d", points=5, options=["a", "b"], correct_answer=0)]
    )


def test_unexpected_evaluator_error_leaves_submission_pending(student):
    service = SessionService(store_service, CrashingEvaluator(), FakeClock())
    assessment = mcq_assessment()
    service.start(assessment, student)

    response = service.submit(assessment, assessment.questions[0].question_id, student, answer="0")

    assert response["evaluated"] is False
    assert response["status"] == "pending"
    assert Submission.objects.get().status == "pending"
    assert store_service.get_result(str(assessment.id), student.email).total_score == 0


def test_non_ascii_digit_mcq_answer_is_graded_wrong(student):
    service = SessionService(store_service, RuleBasedEvaluator(), FakeClock())
    assessment = mcq_assessment()
    service.start(assessment, student)

    response = service.submit(assessment, assessment.questions[0].question_id, student, answer="²")

    assert response["evaluated"] is True
    assert (response["score"], response["status"]) == (0, "wrong")
