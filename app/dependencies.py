"""
Shared clients, built once at startup and handed to routes.

``create_supabase_client`` / ``create_http_client`` are called from the
lifespan in ``app.main``; routes read the results off ``app.state`` through
the ``get_*`` dependencies so tests can override them.
"""

import logging
from typing import Optional

import httpx
from fastapi import HTTPException, Request
from supabase import Client, create_client

from app.config import API_CONNECT_TIMEOUT, API_TIMEOUT, SUPABASE_KEY, SUPABASE_URL, is_key_configured
from app.services.community import CommunityVoting
from app.services.diagnosis import DiagnosisService
from app.services.storage import DiagnosisStore

logger = logging.getLogger(__name__)


def create_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=httpx.Timeout(API_TIMEOUT, connect=API_CONNECT_TIMEOUT))


def create_supabase_client() -> Optional[Client]:
    if not (SUPABASE_URL and is_key_configured(SUPABASE_KEY)):
        logger.info("Supabase not configured - storage features disabled")
        return None
    try:
        client = create_client(SUPABASE_URL, SUPABASE_KEY)
        logger.info("Supabase initialized successfully")
        return client
    except Exception as e:
        logger.error(f"Failed to initialize Supabase: {e}")
        return None


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_diagnosis_service(request: Request) -> DiagnosisService:
    return request.app.state.diagnosis_service


def get_store(request: Request) -> DiagnosisStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Supabase not available")
    return store


def get_voting(request: Request) -> CommunityVoting:
    voting = getattr(request.app.state, "voting", None)
    if voting is None:
        raise HTTPException(status_code=503, detail="Supabase not available")
    return voting
