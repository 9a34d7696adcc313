"""
Configuration management for Sage backend.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent
BACKEND_DIR = Path(__file__).parent

# User data directories
HOME_DIR = Path.home()
SAGE_DATA_DIR = Path(os.getenv("SAGE_DATA_DIR", str(HOME_DIR / ".sage_data")))
AUDIT_LOG_FILE = str(SAGE_DATA_DIR / "audit.log")
EXPORTS_DIR = str(SAGE_DATA_DIR / "exports")

# API Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")

# Auth
JWT_SECRET = os.getenv("SAGE_JWT_SECRET", "")
JWT_ALGORITHM = "HS256"

# Email (Resend)
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_FROM_EMAIL = os.getenv("RESEND_FROM_EMAIL", "Sage <noreply@sage-edu.app>")
APP_URL = os.getenv("APP_URL", "http://localhost:5000")

# Supabase (optional persistent storage)
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "")

# Server configuration
HOST = os.getenv("SAGE_HOST", "0.0.0.0")
PORT = int(os.getenv("SAGE_PORT", "5000"))
DEBUG = os.getenv("SAGE_DEBUG", "").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("SAGE_LOG_LEVEL", "INFO")

# Pagination defaults (8.5" x 11", double spaced)
LINES_PER_PAGE = 22
CHARS_PER_LINE = 65
CHARS_PER_PAGE = 1800
WORDS_PER_PAGE = 500

SUPPORTED_EXPORT_FORMATS = ['docx', 'pdf', 'txt']


class Config:
    """Application configuration class."""

    def __init__(self):
        self.ai_provider = os.getenv("SAGE_AI_PROVIDER", "openai")
        self.ai_model = os.getenv("SAGE_AI_MODEL", "gpt-4o")
        self.words_per_page = WORDS_PER_PAGE
        self.lines_per_page = LINES_PER_PAGE
        self.chars_per_line = CHARS_PER_LINE
        self.token_ttl_hours = 12
        self.storage_backend = "supabase" if SUPABASE_URL and SUPABASE_SERVICE_KEY else "memory"
        self.seed_demo_data = True

    def to_dict(self):
        return {
            "ai_provider": self.ai_provider,
            "ai_model": self.ai_model,
            "words_per_page": self.words_per_page,
            "lines_per_page": self.lines_per_page,
            "chars_per_line": self.chars_per_line,
            "token_ttl_hours": self.token_ttl_hours,
            "storage_backend": self.storage_backend,
            "seed_demo_data": self.seed_demo_data,
        }

    def update(self, data: dict):
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)


# Global config instance
config = Config()
