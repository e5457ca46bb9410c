import logging

from fastapi import APIRouter, Depends, Request

from app.config import OPENWEATHERMAP_API_KEY, is_key_configured
from app.dependencies import get_diagnosis_service
from app.services.diagnosis import DiagnosisService

logger = logging.getLogger(__name__)

router = APIRouter()

VERSION = "1.0.0"


@router.get("/")
async def root():
    return {
        "status": "online",
        "service": "Garden Buddy API",
        "version": VERSION,
        "features": [
            "Multi-provider plant disease diagnosis",
            "Static plant disease database",
            "Weather-based spray calendar",
            "Pesticide dosage and IPM reference",
            "Community voting",
        ],
    }


@router.get("/health")
async def health_check(request: Request, service: DiagnosisService = Depends(get_diagnosis_service)):
    return {
        "status": "healthy",
        "version": VERSION,
        "services": {
            "providers": service.available_providers(),
            "supabase": getattr(request.app.state, "store", None) is not None,
            "weather": is_key_configured(OPENWEATHERMAP_API_KEY),
        },
    }
