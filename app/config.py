import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# ============================================================================#
# AI PROVIDERS
# ============================================================================#
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
CLAUDE_API_KEY = os.getenv("CLAUDE_API_KEY")
PERPLEXITY_API_KEY = os.getenv("PERPLEXITY_API_KEY")
DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY")

# OpenAI walks this chain when a model call fails with a generic API error
OPENAI_MODELS = [
    m.strip() for m in os.getenv("OPENAI_MODELS", "gpt-4o,gpt-4o-mini").split(",") if m.strip()
]
CLAUDE_MODEL = os.getenv("CLAUDE_MODEL", "claude-3-haiku-20240307")
PERPLEXITY_MODEL = os.getenv("PERPLEXITY_MODEL", "sonar-pro")
DEEPSEEK_MODEL = os.getenv("DEEPSEEK_MODEL", "deepseek-chat")

CLAUDE_API_URL = "https://api.anthropic.com/v1/messages"
CLAUDE_API_VERSION = "2023-06-01"
PERPLEXITY_API_URL = "https://api.perplexity.ai/chat/completions"
DEEPSEEK_BASE_URL = "https://api.deepseek.com/v1"

MAX_TOKENS = 1000

# ============================================================================#
# SUPABASE
# ============================================================================#
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
SUPABASE_IMAGE_BUCKET = os.getenv("SUPABASE_IMAGE_BUCKET", "plant-images")

# ============================================================================#
# WEATHER
# ============================================================================#
OPENWEATHERMAP_API_KEY = os.getenv("OPENWEATHERMAP_API_KEY")
OPENWEATHERMAP_BASE_URL = "https://api.openweathermap.org/data/2.5"
FORECAST_DAYS = 14

# ============================================================================#
# RESEARCH DATA SOURCES
# ============================================================================#
AGRIS_SEARCH_URL = "https://agris.fao.org/search"
EU_AGRI_DATA_URL = "https://agridata.ec.europa.eu/api/farmers"
RESEARCH_USER_AGENT = "Garden-Buddy-App/1.0"

# ============================================================================#
# HTTP
# ============================================================================#
API_TIMEOUT = float(os.getenv("API_TIMEOUT", "60"))  # seconds
API_CONNECT_TIMEOUT = float(os.getenv("API_CONNECT_TIMEOUT", "15"))

# Rate limiting (slowapi syntax)
DIAGNOSE_RATE_LIMIT = os.getenv("DIAGNOSE_RATE_LIMIT", "20/minute")

# Values copied verbatim from .env.example files; treated as "no key"
PLACEHOLDER_KEYS = {
    "your-openai-api-key",
    "your-claude-api-key",
    "your-perplexity-api-key",
    "your-deepseek-api-key",
    "your-openweathermap-api-key",
    "your-supabase-key",
}


def is_key_configured(key) -> bool:
    """Return True when `key` is a usable credential (not empty, not a placeholder)."""
    if not key:
        return False
    key = key.strip()
    return bool(key) and key not in PLACEHOLDER_KEYS
