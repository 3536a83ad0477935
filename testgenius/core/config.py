# testgenius/core/config.py
import os
from pathlib import Path
from typing import Dict, Any, List
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

class Config:
    """Centralized configuration management"""

    # ==================== API Configuration ====================
    API_TITLE = os.getenv("API_TITLE", "TestGenius API")
    API_DESCRIPTION = "Turns documents, syllabi and topics into multiple-choice practice tests"
    API_VERSION = os.getenv("API_VERSION", "1.0.0")

    API_HOST = os.getenv("API_HOST", "0.0.0.0")
    API_PORT = int(os.getenv("API_PORT", "8080"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")

    # ==================== Development Settings ====================
    USE_DUMMY_DATA = os.getenv("USE_DUMMY_DATA", "true").lower() == "true"

    # ==================== AI Service Configuration ====================
    # Groq settings
    GROQ_API_KEY = os.getenv("GROQ_API_KEY", "")
    GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    GROQ_TIMEOUT = int(os.getenv("GROQ_TIMEOUT", "60"))
    GROQ_TEMPERATURE = float(os.getenv("GROQ_TEMPERATURE", "0.4"))
    GROQ_MAX_TOKENS = int(os.getenv("GROQ_MAX_TOKENS", "8000"))
    GROQ_TOP_P = float(os.getenv("GROQ_TOP_P", "0.9"))

    # Scoring settings
    SCORING_TEMPERATURE = float(os.getenv("SCORING_TEMPERATURE", "0.0"))

    # Transport attempts inside the gateway; 1 means a single call
    LLM_RETRIES = int(os.getenv("LLM_RETRIES", "1"))

    # ==================== Question Generation ====================
    MIN_QUESTIONS = int(os.getenv("MIN_QUESTIONS", "5"))
    MAX_QUESTIONS = int(os.getenv("MAX_QUESTIONS", "50"))
    OPTIONS_PER_QUESTION = 4

    # ==================== Ingestion ====================
    MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "20"))
    MAX_DOCUMENT_CHARS = int(os.getenv("MAX_DOCUMENT_CHARS", "200000"))
    MAX_TOPIC_LENGTH = int(os.getenv("MAX_TOPIC_LENGTH", "500"))

    # ==================== Test Configuration ====================
    MAX_TIMER_MINUTES = int(os.getenv("MAX_TIMER_MINUTES", "720"))  # 12 hours
    DEFAULT_NEGATIVE_MARK = float(os.getenv("DEFAULT_NEGATIVE_MARK", "0.25"))

    # Session expiration
    SESSION_EXPIRATION_SECONDS = int(os.getenv("SESSION_EXPIRATION_SECONDS", "21600"))  # 6 hours
    SESSION_CLEANUP_INTERVAL = int(os.getenv("SESSION_CLEANUP_INTERVAL", "1800"))  # 30 minutes

    # ==================== History Configuration ====================
    HISTORY_BACKEND = os.getenv("HISTORY_BACKEND", "file").lower()
    HISTORY_FILE = os.getenv("HISTORY_FILE", str(BASE_DIR.parent / "data" / "test_history.json"))
    HISTORY_CAPACITY = int(os.getenv("HISTORY_CAPACITY", "20"))
    HISTORY_RECORD_KEY = "testGeniusHistory"

    # MongoDB
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "testgenius")
    HISTORY_COLLECTION = os.getenv("HISTORY_COLLECTION", "test_history")

    # ==================== PDF Configuration ====================
    PDF_PAGE_SIZE = os.getenv("PDF_PAGE_SIZE", "LETTER")

    @property
    def MAX_UPLOAD_BYTES(self) -> int:
        return self.MAX_UPLOAD_MB * 1024 * 1024

    @property
    def CORS_ORIGIN_LIST(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # ==================== Environment Overrides ====================
    @classmethod
    def from_env(cls) -> 'Config':
        """Create config with environment variable overrides"""
        return cls()

    # ==================== Validation ====================
    def validate(self) -> Dict[str, Any]:
        """Validate configuration and return status"""
        issues = []

        if self.MIN_QUESTIONS < 1:
            issues.append("MIN_QUESTIONS must be at least 1")

        if self.MAX_QUESTIONS < self.MIN_QUESTIONS:
            issues.append("MAX_QUESTIONS must not be lower than MIN_QUESTIONS")

        if self.HISTORY_CAPACITY < 1:
            issues.append("HISTORY_CAPACITY must be at least 1")

        if self.HISTORY_BACKEND not in ("file", "mongo", "memory"):
            issues.append("HISTORY_BACKEND must be one of: file, mongo, memory")

        if self.DEFAULT_NEGATIVE_MARK <= 0:
            issues.append("DEFAULT_NEGATIVE_MARK must be greater than 0")

        if self.LLM_RETRIES < 1:
            issues.append("LLM_RETRIES must be at least 1")

        if not self.USE_DUMMY_DATA and not self.GROQ_API_KEY:
            issues.append("GROQ_API_KEY is required when not using dummy data")

        return {
            "valid": len(issues) == 0,
            "issues": issues,
            "config_loaded": True,
            "using_dummy_data": self.USE_DUMMY_DATA
        }

# Global configuration instance
config = Config.from_env()

# Validate on import
validation_result = config.validate()
if not validation_result["valid"]:
    import logging
    logger = logging.getLogger(__name__)
    logger.warning(f"Configuration issues: {validation_result['issues']}")
