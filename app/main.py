# Garden Buddy API v1.0.0
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware

from app.config import (
    CLAUDE_API_KEY,
    DEEPSEEK_API_KEY,
    OPENAI_API_KEY,
    OPENWEATHERMAP_API_KEY,
    PERPLEXITY_API_KEY,
    is_key_configured,
)
from app.dependencies import create_http_client, create_supabase_client
from app.routers import community, diagnose, diagnoses, health, pesticides, weather
from app.services.community import CommunityVoting
from app.services.diagnosis import DiagnosisService
from app.services.storage import DiagnosisStore
from app.utils.rate_limiter import limiter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _flag(key) -> str:
    return '✓' if is_key_configured(key) else '✗'


# ============================================================================#
# Lifespan Events
# ============================================================================#

@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    # Startup
    http_client = create_http_client()
    supabase_client = create_supabase_client()
    store = DiagnosisStore(supabase_client) if supabase_client else None

    app_instance.state.http_client = http_client
    app_instance.state.store = store
    app_instance.state.voting = CommunityVoting(supabase_client) if supabase_client else None
    app_instance.state.diagnosis_service = DiagnosisService(http_client=http_client, store=store)

    logger.info("=" * 60)
    logger.info("Starting Garden Buddy API")
    logger.info(f"OpenAI API: {_flag(OPENAI_API_KEY)}")
    logger.info(f"Claude API: {_flag(CLAUDE_API_KEY)}")
    logger.info(f"Perplexity API: {_flag(PERPLEXITY_API_KEY)}")
    logger.info(f"DeepSeek API: {_flag(DEEPSEEK_API_KEY)}")
    logger.info(f"OpenWeatherMap: {_flag(OPENWEATHERMAP_API_KEY)}")
    logger.info(f"Supabase: {'✓' if supabase_client else '✗'}")
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("Shutting down gracefully...")
    await http_client.aclose()


# Initialize FastAPI app
app = FastAPI(
    title="Garden Buddy API",
    description="Plant disease diagnosis with pluggable AI providers, spray calendar and pesticide reference",
    version="1.0.0",
    lifespan=lifespan
)

# Initialize Rate Limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS Middleware for the web client
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(diagnoses.router)
app.include_router(weather.router)
app.include_router(pesticides.router)
app.include_router(community.router)
# Registered last: /api/{provider} would otherwise shadow the fixed /api/* paths
app.include_router(diagnose.router)


if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
