"""
Application configuration and environment variables
"""

from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv

# Get the project root directory (parent of 'app' folder)
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env file from project root explicitly
env_path = BASE_DIR / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # API Configuration
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Assessment Platform"
    VERSION: str = "1.0.0"

    # MongoDB Configuration
    MONGODB_URI: str = "mongodb://localhost:27017/assessment-platform"
    MONGODB_DB: str = "assessment-platform"

    # JWT Configuration
    JWT_SECRET: str = "change-me-jwt-secret"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24

    # Fixed teacher credential pair (the teacher is never self-registered)
    TEACHER_EMAIL: str = "teacher@example.com"
    TEACHER_PASSWORD: str = "change-me-teacher-password"

    # AI provider selection: gemini, openai or groq
    AI_PROVIDER: str = "gemini"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    GOOGLE_GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL: str = "llama-3.3-70b-versatile"
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    MAX_TOKENS: int = 2000

    # Application Settings
    DEBUG: bool = False
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:5174,http://localhost:5175,http://localhost:5176,http://localhost:5177"

    # Assessment Defaults
    MIN_DURATION_MINUTES: int = 10
    MAX_DURATION_MINUTES: int = 300
    DEFAULT_QUESTION_POINTS: int = 10
    MIN_PASSWORD_LENGTH: int = 6

    @field_validator('AI_PROVIDER')
    @classmethod
    def normalize_provider(cls, v):
        """Lowercase provider name"""
        return v.strip().lower() if isinstance(v, str) else v

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(',') if origin.strip()]

    model_config = {
        "env_file": str(BASE_DIR / ".env"),
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }


# Global settings instance
try:
    settings = Settings()

    # Validate and warn about placeholder values
    import warnings
    if settings.JWT_SECRET.startswith("change-me"):
        warnings.warn(
            "[WARN] JWT_SECRET is not configured. Please set it in your .env file.",
            UserWarning
        )
    if settings.TEACHER_PASSWORD.startswith("change-me"):
        warnings.warn(
            "[WARN] TEACHER_PASSWORD is not configured. Please set it in your .env file.",
            UserWarning
        )
except Exception as e:
    import sys
    print(f"[ERROR] Error loading configuration: {e}", file=sys.stderr)
    print("Please check your .env file or create one with required variables.", file=sys.stderr)
    raise
