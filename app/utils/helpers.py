"""
Helper utility functions
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
import json
import re


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form MongoDB round-trips"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Drop tzinfo after converting to UTC so stored and computed datetimes compare"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def elapsed_minutes(start_time: datetime, now: datetime) -> float:
    """Minutes between two datetimes"""
    return (as_naive_utc(now) - as_naive_utc(start_time)).total_seconds() / 60


def calculate_time_remaining(start_time: datetime, duration_minutes: int, now: datetime) -> int:
    """Calculate remaining time in seconds"""
    end_time = as_naive_utc(start_time) + timedelta(minutes=duration_minutes)
    remaining = (end_time - as_naive_utc(now)).total_seconds()
    return max(0, int(remaining))


def calculate_percentage(score: float, max_score: float) -> int:
    """Whole-number percentage; zero when there is nothing to score"""
    if max_score <= 0:
        return 0
    # Round half up, as JavaScript's Math.round does for positive values
    return int(score / max_score * 100 + 0.5)


def clamp_score(score: Any, max_points: float) -> float:
    """Coerce an evaluator score into [0, max_points]"""
    try:
        value = float(score)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(value, float(max_points)))


def validate_json_response(content: str) -> Any:
    """Parse JSON returned by an LLM, tolerating code fences and surrounding prose"""
    content = content.strip()

    if content.startswith("```json"):
        content = content[7:].strip()
    elif content.startswith("```"):
        content = content[3:].strip()

    if content.endswith("```"):
        content = content[:-3].strip()

    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass

    # Fall back to the first JSON array or object embedded in text
    match = re.search(r"(\[.*\]|\{.*\})", content, re.DOTALL)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON response from LLM: {str(e)}")
    raise ValueError("Invalid JSON response from LLM: no JSON found")


def normalize_email(email: str) -> str:
    """Emails are compared case-insensitively"""
    return email.strip().lower()


def normalize_emails(emails: Optional[List[str]]) -> List[str]:
    """Lowercase, strip and deduplicate while keeping order"""
    seen: Dict[str, None] = {}
    for email in emails or []:
        if email and email.strip():
            seen.setdefault(normalize_email(email), None)
    return list(seen)


def count_words(text: Optional[str]) -> int:
    """Whitespace-delimited word count"""
    return len(text.split()) if text else 0
