"""
Configuration settings for the HireBot interview analysis backend.
"""
import os
from pathlib import Path

# Base paths
BASE_DIR = Path(__file__).parent.parent.parent
UPLOAD_DIR = Path(os.environ.get("HIREBOT_UPLOAD_DIR", BASE_DIR / "uploads"))

# Logging configuration
LOG_LEVEL = os.environ.get("HIREBOT_LOG_LEVEL", "INFO")
LOG_FILE = os.environ.get("HIREBOT_LOG_FILE")  # console only when unset

# Gemini configuration
# The key is checked when the gateway is built, so the app can still start
# (and report a degraded status) without one.
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY")
GEMINI_MODEL_NAME = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_API_BASE = os.environ.get(
    "GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta"
)
GEMINI_GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 8192,
}
GEMINI_SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
]

# Gateway limits
REQUEST_TIMEOUT_SECONDS = 120.0  # per attempt
MAX_ATTACHMENT_MB = 20.0  # decoded size

# Backoff policy (seconds)
OVERLOAD_BACKOFF_SECONDS = (30.0, 120.0, 300.0)  # last entry repeats
RATE_LIMIT_BASE_DELAY_SECONDS = 30.0  # x attempt number
RETRY_BASE_DELAY_SECONDS = 5.0  # x attempt number

# Attempt budgets per call site
HEALTH_CHECK_ATTEMPTS = 1
STAGE_ATTEMPTS = {
    "cv_analysis": 2,
    "media_transcription": 3,
    "face_analysis": 3,
    "technical_analysis": 3,
    "communication_analysis": 3,
    "final_report": 3,
}

# Media size caps in MB
UPLOAD_LIMIT_MB = {"audio": 25.0, "video": 10.0}
PROCESSING_LIMIT_MB = {"audio": 20.0, "video": 8.0}
MAX_UPLOAD_MB = 50.0  # any single uploaded file
UPLOAD_CHUNK_BYTES = 1024 * 1024
RATE_LIMIT_RETRY_AFTER_SECONDS = 600

# Session store configuration
SESSION_TTL_SECONDS = int(os.environ.get("HIREBOT_SESSION_TTL", 6 * 60 * 60))
MAX_SESSIONS = int(os.environ.get("HIREBOT_MAX_SESSIONS", 500))

# API configuration
FRONTEND_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("FRONTEND_URL", "*").split(",")
    if origin.strip()
]
API_HOST = os.environ.get("HIREBOT_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("PORT", 3000))
