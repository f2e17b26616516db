"""
Read-only aggregates over sessions: student stats, roster, per-assessment results
"""

from typing import Any, Dict, List

from app.models.database import Assessment, AssessmentResult, User
from app.services.assessment_service import serialize_assessment, session_status
from app.services.store_service import StoreService, store_service
from app.utils.constants import ERROR_MESSAGES, Role
from app.utils.error_handler import NotFoundError


def average_percentage(results: List[AssessmentResult]) -> float:
    if not results:
        return 0
    return round(sum(r.percentage or 0 for r in results) / len(results), 2)


class AnalyticsService:

    def __init__(self, store: StoreService = store_service):
        self.store = store

    def student_stats(self, student: User) -> Dict[str, Any]:
        results = self.store.list_student_results(student.email)
        return {
            "total_assessments": self.store.count_student_assessments(student.email),
            "completed_assessments": sum(1 for r in results if r.is_completed),
            "average_score": average_percentage(results),
            "total_time_spent": round(sum(r.time_spent or 0 for r in results), 2),
            # Not tracked yet
            "current_streak": 0,
            "rank": 0,
        }

    def roster(self) -> List[Dict[str, Any]]:
        students = []
        for student in self.store.list_users(Role.STUDENT.value):
            results = self.store.list_student_results(student.email)
            students.append({
                "id": str(student.id),
                "name": student.name,
                "email": student.email,
                "registered_at": student.created_at.isoformat() if student.created_at else None,
                "assessments_completed": sum(1 for r in results if r.is_completed),
                "average_score": average_percentage(results),
                "status": "active",
            })
        return students

    def student_detail(self, student_id: str) -> Dict[str, Any]:
        student = self.store.get_user(student_id)
        if student is None or student.role != Role.STUDENT.value:
            raise NotFoundError("Student", student_id, details={"message": ERROR_MESSAGES["STUDENT_NOT_FOUND"]})

        history = []
        for result in self.store.list_student_results(student.email):
            assessment = self.store.get_assessment(result.assessment_id)
            history.append({
                "assessment_id": result.assessment_id,
                "assessment_title": assessment.title if assessment else None,
                "score": result.percentage,
                "total_score": result.total_score,
                "max_score": result.max_score,
                "started_at": result.started_at.isoformat() if result.started_at else None,
                "completed_at": result.completed_at.isoformat() if result.completed_at else None,
                "time_spent": result.time_spent,
            })

        return {
            "id": str(student.id),
            "name": student.name,
            "email": student.email,
            "registered_at": student.created_at.isoformat() if student.created_at else None,
            "assessment_history": history,
        }

    def teacher_overview(self, teacher: User) -> List[Dict[str, Any]]:
        """Teacher's active assessments with assignment and session counts"""
        overview = []
        for assessment in self.store.list_teacher_assessments(str(teacher.id)):
            item = serialize_assessment(assessment)
            item["assigned_count"] = len(assessment.assigned_students)
            item["session_count"] = self.store.count_assessment_results(str(assessment.id))
            overview.append(item)
        return overview

    def assessment_results(self, assessment: Assessment) -> Dict[str, Any]:
        results = self.store.list_assessment_results(str(assessment.id))
        completed = [r for r in results if r.is_completed]
        return {
            "assessment_id": str(assessment.id),
            "title": assessment.title,
            "max_score": assessment.max_score,
            "assigned_count": len(assessment.assigned_students),
            "session_count": len(results),
            "completed_count": len(completed),
            "average_percentage": average_percentage(completed),
            "results": [
                {
                    "result_id": str(r.id),
                    "student_email": r.student_email,
                    "total_score": r.total_score,
                    "max_score": r.max_score,
                    "percentage": r.percentage,
                    "status": session_status(r),
                    "started_at": r.started_at.isoformat() if r.started_at else None,
                    "completed_at": r.completed_at.isoformat() if r.completed_at else None,
                    "time_spent": r.time_spent,
                }
                for r in results
            ],
        }


# Global service instance
analytics_service = AnalyticsService()
