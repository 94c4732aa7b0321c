import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "0.9"))
READING_LANGUAGE = os.getenv("READING_LANGUAGE", "Vietnamese")

SECRET_KEY = os.getenv("SECRET_KEY", "mind-color-map-secret-key")
SESSION_TTL = int(os.getenv("SESSION_TTL", "3600"))  # seconds
MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "500"))
RATELIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

LOG_FILE = os.getenv("LOG_FILE", "mind_color_map.log")
PORT = int(os.getenv("PORT", "5000"))

BUSY_MESSAGE = os.getenv(
    "BUSY_MESSAGE",
    "The channel is busy right now. Please try again in a moment.",
)

# The oracle is asked for this many indicators; other counts are tolerated.
EXPECTED_INDICATOR_COUNT = 21


def flask_config() -> dict:
    """Settings copied into ``app.config`` by ``create_app``."""
    return {
        "SECRET_KEY": SECRET_KEY,
        "CACHE_TYPE": "SimpleCache",
        "CACHE_DEFAULT_TIMEOUT": SESSION_TTL,
        "CACHE_THRESHOLD": MAX_SESSIONS,
        "RATELIMIT_STORAGE_URI": RATELIMIT_STORAGE_URI,
        "RATELIMIT_HEADERS_ENABLED": True,
    }
