import os
from dotenv import load_dotenv
from pathlib import Path

# Load environment variables from .env file with explicit path
load_dotenv(dotenv_path=Path(__file__).parent.parent / '.env')

# OpenAI Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
MODEL = os.getenv("MODEL", "gpt-4o-mini")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")

# Generation is kept at a low temperature so replies stay on-policy
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.4"))
TOP_K = int(os.getenv("TOP_K", "3"))

# Skip the generation backend entirely and answer from the CSV only
DUMMY_MODE = os.getenv("DUMMY_MODE", "").lower() == "true"

# Persona placeholders interpolated into the system prompt
COMPANY_NAME = os.getenv("COMPANY_NAME", "{{FÖRETAGSNAMN}}")
BOOKING_URL = os.getenv("BOOKING_URL", "{{BOKNINGSLÄNK}}")

# Knowledge base CSV (columns: question, answer)
KB_PATH = os.getenv("KB_PATH") or str(Path(__file__).parent.parent / "knowledge_base.csv")

# Block startup until KB embeddings are built (default: serve immediately)
WAIT_FOR_EMBEDDINGS = os.getenv("WAIT_FOR_EMBEDDINGS", "false").lower() == "true"

# HTTP Configuration
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()]
MAX_BODY_BYTES = 1024 * 1024  # 1mb

# Rate limit per client IP
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "60"))

# Only trust X-Forwarded-For / X-Real-IP when running behind a known reverse proxy
TRUST_PROXY = os.getenv("TRUST_PROXY", "false").lower() == "true"


def generation_backend_configured() -> bool:
    """True when replies may be generated by the LLM (not dummy mode, key present)."""
    return not DUMMY_MODE and bool(OPENAI_API_KEY)
